"""
Exceptions raised by relmodel.

Everything here is raised synchronously to the caller of the operation that
failed; nothing is retried.
"""


class RelModelError(Exception):
    """Base exception for relmodel"""
    pass


class AssociationError(RelModelError):
    """Base exception for has-many association problems"""
    pass


class MalformedAssociationData(AssociationError, TypeError):
    """Raised when association data is not an ordered sequence of field-sets or entities"""
    pass


class UnresolvedAssociationDeclaration(AssociationError, TypeError):
    """Raised when an association declaration cannot be resolved to a collection and model type"""
    pass


class PersistenceError(RelModelError):
    """Base exception for persistence operations"""
    pass


class EntityNotFoundError(PersistenceError):
    """Raised when an entity record is not found"""
    pass

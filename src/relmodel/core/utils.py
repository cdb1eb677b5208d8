from dataclasses import dataclass, field
from enum import Enum
from collections.abc import Mapping
from typing import Any, Dict, Optional


class CallShape(Enum):
    """The ways ``set`` can be called."""
    FIELD = "field"                  # set("name", value, options)
    FIELD_MAP = "field_map"          # set({"name": value}, options)
    OPTIONS_ONLY = "options_only"    # set(None, options)


@dataclass
class SetCall:
    """A normalized ``set`` call: a private field map plus options."""
    shape: CallShape
    attrs: Dict[str, Any] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)


def normalize_set_args(key: Any = None, value: Any = None,
                       options: Optional[Mapping[str, Any]] = None,
                       **kwargs: Any) -> SetCall:
    """
    Classify the arguments of a ``set`` call and return the canonical
    ``(attrs, options)`` pair.

    A mapping (or ``None``) in first position is the field map and the second
    argument holds the options. Anything else is a field name, paired with
    ``value``, and options come third. Keyword arguments are merged over the
    options mapping. The returned ``attrs`` is always a fresh dict.
    """
    if key is None:
        shape, attrs = CallShape.OPTIONS_ONLY, {}
        opts = value if value is not None else options
    elif isinstance(key, Mapping):
        shape, attrs = CallShape.FIELD_MAP, dict(key)
        opts = value if value is not None else options
    else:
        shape, attrs = CallShape.FIELD, {key: value}
        opts = options

    if opts is not None and not isinstance(opts, Mapping):
        raise TypeError(f"set() options must be a mapping, got {type(opts).__name__}")

    merged = dict(opts or {})
    merged.update(kwargs)
    return SetCall(shape=shape, attrs=attrs, options=merged)

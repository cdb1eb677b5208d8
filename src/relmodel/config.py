"""
Configuration Management for relmodel

Process-wide settings for entities, persistence and logging. A configuration
can be built for an environment, from a dict, from a JSON/YAML file or from
``RELMODEL_*`` environment variables.
"""

from typing import Dict, Any, Optional, Union
from dataclasses import dataclass, field
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
import json
import logging
import os

import yaml


class Environment(Enum):
    """Application environments"""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


@dataclass
class EntityConfig:
    """Entity defaults"""
    id_attribute: str = "id"


@dataclass
class PersistenceConfig:
    """Persistence layer configuration"""
    default_backend: str = "memory"
    default_ttl: Optional[int] = None


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class RelModelConfig:
    """Complete relmodel configuration"""
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    entities: EntityConfig = field(default_factory=EntityConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    custom: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_environment(cls, environment: Environment) -> 'RelModelConfig':
        """Create configuration for specific environment"""
        config = cls(environment=environment)

        if environment == Environment.DEVELOPMENT:
            config.debug = True
            config.logging.level = "DEBUG"

        elif environment == Environment.TESTING:
            config.logging.level = "WARNING"

        elif environment == Environment.PRODUCTION:
            config.debug = False
            config.logging.level = "INFO"

        return config

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'RelModelConfig':
        """Create configuration from dictionary"""
        if "environment" in config_dict:
            config = cls.for_environment(Environment(config_dict["environment"]))
        else:
            config = cls()

        if "debug" in config_dict:
            config.debug = bool(config_dict["debug"])

        for section in ("entities", "persistence", "logging"):
            target = getattr(config, section)
            for key, value in config_dict.get(section, {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)

        config.custom.update(config_dict.get("custom", {}))
        return config

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> 'RelModelConfig':
        """Load configuration from a JSON or YAML file"""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if config_path.suffix == '.json':
            with open(config_path) as f:
                config_dict = json.load(f)
        elif config_path.suffix in ('.yml', '.yaml'):
            with open(config_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

        return cls.from_dict(config_dict)

    @classmethod
    def from_environment(cls) -> 'RelModelConfig':
        """Create configuration from environment variables"""
        env_name = os.getenv('RELMODEL_ENV', 'development')
        config = cls.for_environment(Environment(env_name))

        if os.getenv('RELMODEL_DEBUG'):
            config.debug = os.getenv('RELMODEL_DEBUG').lower() == 'true'

        if os.getenv('RELMODEL_ID_ATTRIBUTE'):
            config.entities.id_attribute = os.getenv('RELMODEL_ID_ATTRIBUTE')

        if os.getenv('RELMODEL_DEFAULT_BACKEND'):
            config.persistence.default_backend = os.getenv('RELMODEL_DEFAULT_BACKEND')

        if os.getenv('RELMODEL_DEFAULT_TTL'):
            config.persistence.default_ttl = int(os.getenv('RELMODEL_DEFAULT_TTL'))

        if os.getenv('RELMODEL_LOG_LEVEL'):
            config.logging.level = os.getenv('RELMODEL_LOG_LEVEL').upper()

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            "environment": self.environment.value,
            "debug": self.debug,
            "entities": {
                "id_attribute": self.entities.id_attribute,
            },
            "persistence": {
                "default_backend": self.persistence.default_backend,
                "default_ttl": self.persistence.default_ttl,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file_path": self.logging.file_path,
                "max_file_size": self.logging.max_file_size,
                "backup_count": self.logging.backup_count,
            },
            "custom": self.custom,
        }


# Global configuration management
_current_config: Optional[RelModelConfig] = None


def set_config(config: RelModelConfig):
    """Set the global configuration"""
    global _current_config
    _current_config = config


def get_config() -> RelModelConfig:
    """Get the current global configuration"""
    global _current_config

    if _current_config is None:
        # Auto-create from environment if not set
        _current_config = RelModelConfig.from_environment()

    return _current_config


def reset_config():
    """Forget the global configuration; the next get_config() rebuilds it"""
    global _current_config
    _current_config = None


def configure_from_file(config_path: Union[str, Path]):
    """Configure relmodel from file"""
    config = RelModelConfig.from_file(config_path)
    set_config(config)
    return config


def configure_from_dict(config_dict: Dict[str, Any]):
    """Configure relmodel from dictionary"""
    config = RelModelConfig.from_dict(config_dict)
    set_config(config)
    return config


def configure_logging(config: Optional[RelModelConfig] = None) -> logging.Logger:
    """Attach handlers to the ``relmodel`` logger according to the logging config."""
    settings = (config or get_config()).logging
    logger = logging.getLogger("relmodel")
    logger.setLevel(settings.level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(settings.format)
    handlers = [logging.StreamHandler()]
    if settings.file_path:
        handlers.append(RotatingFileHandler(settings.file_path,
                                            maxBytes=settings.max_file_size,
                                            backupCount=settings.backup_count))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


__all__ = [
    "RelModelConfig", "Environment", "EntityConfig", "PersistenceConfig", "LoggingConfig",
    "set_config", "get_config", "reset_config", "configure_from_file", "configure_from_dict",
    "configure_logging",
]

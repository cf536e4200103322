"""
Configuration loading for revo.

Configuration files are YAML (plain JSON files load as well). Values are read through
typed accessors that fall back to a default when a key is missing or null and raise a
ConfigError naming the key when a value has the wrong type.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Type, TypeVar, Union

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent.parent / "config"
DEFAULT_CONFIG_FILENAME = "default_config.yaml"

E = TypeVar("E", bound=Enum)


class ConfigError(ValueError):
    """Raised when a configuration value is missing, malformed or out of range."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Invalid config value for '{key}': {message}")


class Config:
    """
    Read-only view over a configuration mapping with typed accessors.

    Example:
        >>> config = Config.from_string("{pop_width: 3, mut_prob: 0.5}")
        >>> config.get_uint("pop_width", 128)
        3
        >>> config.get_float("crossover_prob", 0.1)
        0.1
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(values or {})

    @classmethod
    def from_string(cls, text: str) -> "Config":
        """Parse a YAML (or JSON) document."""
        data = yaml.safe_load(text)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("<root>", f"expected a mapping, got {type(data).__name__}")
        return cls(data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Config":
        with open(path, "r") as f:
            return cls.from_string(f.read())

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def section(self, key: str) -> "Config":
        """Return a nested mapping as its own Config (empty if missing)."""
        value = self._values.get(key)
        if value is None:
            return Config()
        if not isinstance(value, dict):
            raise ConfigError(key, f"expected a mapping, got {type(value).__name__}")
        return Config(value)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def with_overrides(self, **overrides: Any) -> "Config":
        """Return a copy with the given top-level keys replaced (None values are ignored)."""
        values = dict(self._values)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return Config(values)

    def get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        if self._values.get(key) is None:
            return default
        value = self._values[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(key, f"expected a number, got {value!r}")
        return float(value)

    def get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        if self._values.get(key) is None:
            return default
        value = self._values[key]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(key, f"expected an integer, got {value!r}")
        return value

    def get_uint(self, key: str, default: Optional[int] = None) -> Optional[int]:
        value = self.get_int(key, default)
        if value is not None and value < 0:
            raise ConfigError(key, f"expected a non-negative integer, got {value!r}")
        return value

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        if self._values.get(key) is None:
            return default
        value = self._values[key]
        if not isinstance(value, bool):
            raise ConfigError(key, f"expected a boolean, got {value!r}")
        return value

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        if self._values.get(key) is None:
            return default
        value = self._values[key]
        if not isinstance(value, str):
            raise ConfigError(key, f"expected a string, got {value!r}")
        return value

    def get_enum(self, key: str, enum_cls: Type[E], default: Optional[E] = None) -> Optional[E]:
        """
        Read a string value and convert it to a member of ``enum_cls``.

        Uses ``enum_cls.from_string`` when the enum defines it, otherwise matches
        member values case-insensitively.
        """
        raw = self.get_str(key)
        if raw is None:
            return default
        try:
            if hasattr(enum_cls, "from_string"):
                return enum_cls.from_string(raw)
            return enum_cls(raw.strip().lower())
        except ValueError as e:
            raise ConfigError(key, str(e)) from e


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries, with override taking precedence.

    Args:
        base: Base dictionary
        override: Dictionary with override values

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def resolve_config_path(config_path: Union[str, Path], config_dir: Optional[Path] = None) -> Path:
    """
    Find a configuration file by path or by short name.

    Args:
        config_path: Path to a file, or a name such as ``salesman``
        config_dir: Directory searched for named configs (default: the bundled ``revo/config/``)

    Returns:
        Path to an existing configuration file

    Raises:
        FileNotFoundError: If no candidate exists
    """
    config_file = Path(config_path)
    if config_file.exists():
        return config_file

    config_dir = config_dir or CONFIG_DIR
    possible_paths = [
        config_dir / f"{config_path}_config.yaml",
        config_dir / f"{config_path}.yaml",
        Path("config") / f"{config_path}_config.yaml",
        Path("config") / f"{config_path}.yaml",
    ]
    for path in possible_paths:
        if path.exists():
            return path

    raise FileNotFoundError(
        f"Configuration file not found: {config_path}. "
        f"Tried: {[str(p) for p in possible_paths]}"
    )


def load_config(config_path: Union[str, Path], config_dir: Optional[Path] = None) -> Config:
    """
    Load configuration from a YAML file.

    A top-level ``defaults`` key pulls in ``default_config.yaml`` from the same
    directory, with the loaded file taking precedence.

    Args:
        config_path: Path to configuration file, or a config name
        config_dir: Directory searched for named configs and the defaults file

    Returns:
        Config instance
    """
    config_file = resolve_config_path(config_path, config_dir)
    logger.info(f"Loading configuration from: {config_file}")

    values = Config.from_file(config_file).to_dict()

    if "defaults" in values:
        default_config_path = (config_dir or config_file.parent) / DEFAULT_CONFIG_FILENAME
        if default_config_path.exists() and default_config_path.resolve() != config_file.resolve():
            default_values = Config.from_file(default_config_path).to_dict()
            values = _deep_merge(default_values, values)
        else:
            logger.warning(f"Defaults requested but {default_config_path} not found")
        del values["defaults"]

    return Config(values)

"""
Configuration module for flagref.

Supports loading from YAML/JSON files with environment variable overrides.
Default values are loaded from defaults.yaml for maintainability.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Path to the default configuration file
_DEFAULTS_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

# Location used by `flagref setup` and picked up automatically by load_config
USER_CONFIG_PATH = Path.home() / ".flagref" / "config.yaml"

# Cache for default values
_defaults_cache: dict[str, Any] | None = None


def _load_defaults() -> dict[str, Any]:
    """Load default configuration values from defaults.yaml."""
    global _defaults_cache

    if _defaults_cache is not None:
        return _defaults_cache

    if not _DEFAULTS_CONFIG_PATH.exists():
        logger.warning(f"Defaults config not found: {_DEFAULTS_CONFIG_PATH}")
        _defaults_cache = {}
        return _defaults_cache

    try:
        content = _DEFAULTS_CONFIG_PATH.read_text(encoding="utf-8")
        _defaults_cache = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse defaults config: {e}")
        _defaults_cache = {}

    return _defaults_cache


def _get_default(section: str, key: str, fallback: Any = None) -> Any:
    """Get a default value from the defaults config."""
    defaults = _load_defaults()
    section_defaults = defaults.get(section, {})
    return section_defaults.get(key, fallback)


@dataclass
class ApiConfig:
    """Configuration for the management API client."""

    host: str = field(
        default_factory=lambda: _get_default("api", "host", "https://api.configcat.com")
    )
    username: str = field(default_factory=lambda: _get_default("api", "username", ""))
    password: str = field(default_factory=lambda: _get_default("api", "password", ""))
    timeout: float = field(default_factory=lambda: _get_default("api", "timeout", 30.0))
    max_retries: int = field(default_factory=lambda: _get_default("api", "max_retries", 3))


@dataclass
class ScanConfig:
    """Configuration for code reference scanning."""

    config_id: str = field(default_factory=lambda: _get_default("scan", "config_id", ""))
    line_count: int = field(default_factory=lambda: _get_default("scan", "line_count", 4))
    max_workers: Optional[int] = field(
        default_factory=lambda: _get_default("scan", "max_workers", None)
    )
    match_mode: str = field(
        default_factory=lambda: _get_default("scan", "match_mode", "substring")
    )
    ignore_file_names: list[str] = field(
        default_factory=lambda: _get_default(
            "scan", "ignore_file_names", [".gitignore", ".ignore", ".ccignore"]
        )
    )
    skip_directories: list[str] = field(
        default_factory=lambda: _get_default("scan", "skip_directories", [".git"])
    )
    follow_symlinks: bool = field(
        default_factory=lambda: _get_default("scan", "follow_symlinks", False)
    )
    collect_aliases: bool = field(
        default_factory=lambda: _get_default("scan", "collect_aliases", True)
    )


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = field(default_factory=lambda: _get_default("logging", "level", "WARNING"))
    format: str = field(
        default_factory=lambda: _get_default("logging", "format", "%(message)s")
    )


@dataclass
class FlagrefConfig:
    """Main configuration class for flagref."""

    api: ApiConfig = field(default_factory=ApiConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: Path | str) -> "FlagrefConfig":
        """
        Load configuration from a YAML or JSON file.

        Args:
            path: Path to the configuration file (.yaml, .yml, or .json)

        Returns:
            FlagrefConfig instance with loaded values

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValueError: If the file format is unsupported or the content is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text(encoding="utf-8")

        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(content) or {}
            elif path.suffix == ".json":
                data = json.loads(content) if content.strip() else {}
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

            return cls._from_dict(data)
        except (yaml.YAMLError, TypeError) as e:
            raise ValueError(f"Invalid configuration file {path}: {e}") from e

    @classmethod
    def _from_dict(cls, data: dict) -> "FlagrefConfig":
        """Create FlagrefConfig from a dictionary."""
        config = cls()

        if "api" in data:
            config.api = ApiConfig(**data["api"])
        if "scan" in data:
            config.scan = ScanConfig(**data["scan"])
        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        return config

    def apply_env_overrides(self) -> "FlagrefConfig":
        """
        Apply environment variable overrides to the configuration.

        Environment variables follow the pattern: FLAGREF_<SECTION>_<KEY>
        Examples:
            - FLAGREF_API_HOST
            - FLAGREF_API_USER / FLAGREF_API_PASS
            - FLAGREF_SCAN_CONFIG_ID
            - FLAGREF_SCAN_MAX_WORKERS
            - FLAGREF_LOGGING_LEVEL

        Returns:
            Self with environment overrides applied
        """
        env_mappings = {
            # API config
            "FLAGREF_API_HOST": ("api", "host", str),
            "FLAGREF_API_USER": ("api", "username", str),
            "FLAGREF_API_USERNAME": ("api", "username", str),
            "FLAGREF_API_PASS": ("api", "password", str),
            "FLAGREF_API_PASSWORD": ("api", "password", str),
            "FLAGREF_API_TIMEOUT": ("api", "timeout", float),
            "FLAGREF_API_MAX_RETRIES": ("api", "max_retries", int),
            # Scan config
            "FLAGREF_SCAN_CONFIG_ID": ("scan", "config_id", str),
            "FLAGREF_SCAN_LINE_COUNT": ("scan", "line_count", int),
            "FLAGREF_SCAN_MAX_WORKERS": ("scan", "max_workers", int),
            "FLAGREF_SCAN_MATCH_MODE": ("scan", "match_mode", str),
            "FLAGREF_SCAN_FOLLOW_SYMLINKS": ("scan", "follow_symlinks", _parse_bool),
            "FLAGREF_SCAN_COLLECT_ALIASES": ("scan", "collect_aliases", _parse_bool),
            # Logging config
            "FLAGREF_LOGGING_LEVEL": ("logging", "level", str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is not None:
                section_obj = getattr(self, section)
                setattr(section_obj, key, converter(value))

        return self

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Serialize configuration to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def to_json(self) -> str:
        """Serialize configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def save(self, path: Path | str) -> None:
        """
        Save configuration to a file.

        Args:
            path: Path to save the configuration (.yaml, .yml, or .json)

        Raises:
            ValueError: If the file format is unsupported
        """
        path = Path(path)

        if path.suffix in (".yaml", ".yml"):
            content = self.to_yaml()
        elif path.suffix == ".json":
            content = self.to_json()
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def _parse_bool(value: str) -> bool:
    """Parse a string to boolean."""
    return value.lower() in ("true", "1", "yes", "on")


def load_config(
    config_path: Optional[Path | str] = None,
    apply_env: bool = True,
    user_config_path: Optional[Path] = None,
) -> FlagrefConfig:
    """
    Load configuration with optional environment variable overrides.

    An explicit ``config_path`` wins; otherwise the user configuration written
    by ``flagref setup`` is used when it exists. A ``.env`` file in the working
    directory is loaded before environment overrides are applied.

    Args:
        config_path: Optional path to config file.
        apply_env: Whether to apply environment variable overrides.
        user_config_path: Override for the user configuration location.

    Returns:
        FlagrefConfig instance
    """
    user_config = user_config_path or USER_CONFIG_PATH

    if config_path:
        config = FlagrefConfig.from_file(config_path)
    elif user_config.exists():
        logger.debug(f"Using user configuration {user_config}")
        config = FlagrefConfig.from_file(user_config)
    else:
        config = FlagrefConfig()

    if apply_env:
        load_dotenv()
        config.apply_env_overrides()

    return config

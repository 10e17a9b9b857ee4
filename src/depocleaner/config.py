"""Configuration loading and persistence for depocleaner."""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from depocleaner.errors import ConfigError

CONFIG_DIR = Path("~/.depocleaner")
CONFIG_FILENAME = "config.yaml"
ENV_PREFIX = "DEPOCLEANER_"

# System locations the walker never enters
DEFAULT_IGNORE_PATHS = [
    "/System",
    "/Library",
    "/Applications",
    "/private/var",
    "/dev",
    "/proc",
    "/sys",
    "/.Trash",
    "/Network",
]


class ScannerConfig(BaseModel):
    """Settings for a scan and its cache."""

    scan_path: str = Field("~", description="Default root to scan")
    cache_path: str = Field(str(CONFIG_DIR / "cache.json"), description="Cache file location")
    log_path: str = Field(str(CONFIG_DIR / "depocleaner.log"), description="Log file location")
    workers: int = Field(4, ge=1, le=256, description="Number of analysis workers")
    max_depth: int = Field(10, ge=0, description="Maximum walk depth (0 = unlimited)")
    ignore_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE_PATHS))

    def expanded(self, value: str) -> Path:
        return Path(os.path.expanduser(os.path.expandvars(value)))

    @property
    def cache_file(self) -> Path:
        return self.expanded(self.cache_path)

    @property
    def log_file(self) -> Path:
        return self.expanded(self.log_path)


def default_config_path() -> Path:
    return Path(os.path.expanduser(str(CONFIG_DIR / CONFIG_FILENAME)))


def coerce_value(key: str, raw: str, separator: str = ",") -> Any:
    """
    Turn a command-line or environment string into input for field ``key``.

    List fields are split on ``separator``. Scalars are passed through as
    strings; pydantic's lax mode converts them for int and bool fields and
    keeps them verbatim for str fields (so ``scan_path=2024`` stays a path).
    """
    if ScannerConfig.model_fields[key].annotation == list[str]:
        return [p for p in raw.split(separator) if p]
    return raw


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for key in ScannerConfig.model_fields:
        raw = os.environ.get(ENV_PREFIX + key.upper())
        if raw is not None:
            overrides[key] = coerce_value(key, raw, os.pathsep)
    return overrides


def load_config(config_path: Optional[Path] = None) -> ScannerConfig:
    """
    Load configuration from YAML, then apply environment overrides.

    Args:
        config_path: Explicit file; defaults to ~/.depocleaner/config.yaml

    Returns:
        Validated ScannerConfig

    Raises:
        ConfigError: explicit file missing, invalid YAML or invalid values
    """
    path = Path(config_path).expanduser() if config_path else default_config_path()

    raw: Any = {}
    if path.exists():
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(str(path), f"invalid YAML: {exc}") from exc
        except OSError as exc:
            raise ConfigError(str(path), f"cannot read config: {exc}") from exc
    elif config_path is not None:
        raise ConfigError(str(path), "config file not found")

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(str(path), "config file must be a YAML mapping")

    raw.update(_env_overrides())

    try:
        return ScannerConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(path), f"invalid configuration: {exc}") from exc


def save_config(config: ScannerConfig, config_path: Optional[Path] = None) -> Path:
    """Write configuration as YAML and return the path written."""
    path = Path(config_path).expanduser() if config_path else default_config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(config.model_dump(), sort_keys=True), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(str(path), f"cannot write config: {exc}") from exc
    return path


def set_config_value(key: str, value: str, config_path: Optional[Path] = None) -> ScannerConfig:
    """Update a single key and persist the result."""
    if key not in ScannerConfig.model_fields:
        raise ConfigError(message=f"unknown configuration key: {key}")

    if config_path is not None and not Path(config_path).expanduser().exists():
        config = ScannerConfig()
    else:
        config = load_config(config_path)
    data = config.model_dump()
    data[key] = coerce_value(key, value)

    try:
        updated = ScannerConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(message=f"invalid value for {key}: {value}") from exc

    save_config(updated, config_path)
    return updated


def reset_config(config_path: Optional[Path] = None) -> ScannerConfig:
    """Restore and persist default settings."""
    config = ScannerConfig()
    save_config(config, config_path)
    return config

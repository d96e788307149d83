"""Configuration system for tasktop."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path

import tomlkit

from tasktop.layout import FALLBACK_ROWS

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class SamplingConfig:
    """Sampling cadence."""

    interval_seconds: float = 1.0  # Seconds between refreshes in top mode
    warmup_seconds: float = 0.2  # Delay between the two samples of a snapshot


@dataclass
class DisplayConfig:
    """Table sizing."""

    max_procs: int = 0  # 0 = fit to terminal
    fallback_rows: int = FALLBACK_ROWS  # Terminal height assumed when unknown


@dataclass
class LoggingConfig:
    """Log file settings."""

    level: str = "INFO"
    log_max_bytes: int = 1024 * 1024  # Max log file size (1MB)
    log_backup_count: int = 2  # Number of rotated files to keep


@dataclass
class Config:
    """Main configuration container."""

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "tasktop"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "tasktop"

    @property
    def log_path(self) -> Path:
        """JSON log file path."""
        return self.state_dir / "tasktop.log"

    @property
    def log_level(self) -> int:
        """Numeric log level for the stdlib root logger."""
        return logging.getLevelName(self.logging.level)

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("sampling", "display", "logging"):
            section = getattr(self, name)
            table = tomlkit.table()
            for f in fields(section):
                table.add(f.name, getattr(section, f.name))
            doc.add(name, table)
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        Raises:
            ValueError: If the file cannot be read or parsed, or holds invalid values.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except OSError as e:
            raise ValueError(f"Failed to read config file {path}: {e}") from e
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            sampling=_load_sampling_config(_section(data, "sampling")),
            display=_load_display_config(_section(data, "display")),
            logging=_load_logging_config(_section(data, "logging")),
        )


def _section(data: Mapping, name: str) -> Mapping:
    """Return the ``[name]`` table, or an empty mapping when it is absent."""
    section = data.get(name, {})
    if not isinstance(section, Mapping):
        raise ValueError(f"[{name}] must be a table, got {type(section).__name__}")
    return section


def _number(data: Mapping, key: str, default, kind: type):
    """Read ``key`` as ``kind`` (int or float), falling back to ``default``."""
    value = data.get(key, default)
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{key} must be a number, got {value!r}") from e


def _load_sampling_config(data: Mapping) -> SamplingConfig:
    """Load sampling config, using dataclass defaults for missing fields."""
    defaults = SamplingConfig()
    interval = _number(data, "interval_seconds", defaults.interval_seconds, float)
    warmup = _number(data, "warmup_seconds", defaults.warmup_seconds, float)

    if interval <= 0:
        raise ValueError(f"interval_seconds must be > 0, got {interval}")
    if warmup < 0:
        raise ValueError(f"warmup_seconds must be >= 0, got {warmup}")

    return SamplingConfig(interval_seconds=interval, warmup_seconds=warmup)


def _load_display_config(data: Mapping) -> DisplayConfig:
    """Load display config, using dataclass defaults for missing fields."""
    defaults = DisplayConfig()
    max_procs = _number(data, "max_procs", defaults.max_procs, int)
    fallback_rows = _number(data, "fallback_rows", defaults.fallback_rows, int)

    if max_procs < 0:
        raise ValueError(f"max_procs must be >= 0, got {max_procs}")
    if fallback_rows < 1:
        raise ValueError(f"fallback_rows must be >= 1, got {fallback_rows}")

    return DisplayConfig(max_procs=max_procs, fallback_rows=fallback_rows)


def _load_logging_config(data: Mapping) -> LoggingConfig:
    """Load logging config, using dataclass defaults for missing fields."""
    defaults = LoggingConfig()
    level = str(data.get("level", defaults.level)).upper()

    if level not in _LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level!r}. Must be one of {sorted(_LOG_LEVELS)}")

    return LoggingConfig(
        level=level,
        log_max_bytes=_number(data, "log_max_bytes", defaults.log_max_bytes, int),
        log_backup_count=_number(data, "log_backup_count", defaults.log_backup_count, int),
    )

"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_STORE_PATH = "~/.pomodoro/pomodoro.db"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class StoreSettings:
    """Session database location from `[store]`."""
    path: str = DEFAULT_STORE_PATH


@dataclass(frozen=True)
class TimerSettings:
    """Default run shape and console progress cadence from `[timer]`."""
    work_minutes: float = 25.0
    break_minutes: float = 5.0
    cycles: int = 1
    progress_interval_seconds: int = 60


@dataclass(frozen=True)
class LoggingSettings:
    """Root log level from `[logging]`."""
    level: str = "WARNING"


@dataclass(frozen=True)
class UIServerSettings:
    """Built-in live UI server settings from `[ui_server]`."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8765
    index_file: str = ""
    allow_commands: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    store: StoreSettings
    timer: TimerSettings
    logging: LoggingSettings
    ui_server: UIServerSettings
    source_file: str

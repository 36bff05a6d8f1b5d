"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

from app_config_schema import (
    DEFAULT_STORE_PATH,
    AppConfig,
    AppConfigurationError,
    LoggingSettings,
    StoreSettings,
    TimerSettings,
    UIServerSettings,
)

_ALLOWED_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})

_Number = TypeVar("_Number", int, float)


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    return AppConfig(
        store=_parse_store_settings(_section(raw, "store"), base_dir=base_dir),
        timer=_parse_timer_settings(_section(raw, "timer")),
        logging=_parse_logging_settings(_section(raw, "logging")),
        ui_server=_parse_ui_server_settings(_section(raw, "ui_server"), base_dir=base_dir),
        source_file=source_file,
    )


def _parse_store_settings(section: Mapping[str, Any], *, base_dir: Path) -> StoreSettings:
    path = _as_str(section.get("path"), "store.path") or DEFAULT_STORE_PATH
    return StoreSettings(path=_resolve_path(base_dir, path))


def _parse_timer_settings(section: Mapping[str, Any]) -> TimerSettings:
    defaults = TimerSettings()
    work_minutes = _as_number(
        section.get("work_minutes", defaults.work_minutes), "timer.work_minutes", float
    )
    break_minutes = _as_number(
        section.get("break_minutes", defaults.break_minutes), "timer.break_minutes", float
    )
    cycles = _as_number(section.get("cycles", defaults.cycles), "timer.cycles", int)
    progress_interval = _as_number(
        section.get("progress_interval_seconds", defaults.progress_interval_seconds),
        "timer.progress_interval_seconds",
        int,
    )

    _require(work_minutes > 0, "timer.work_minutes must be greater than zero.")
    _require(break_minutes >= 0, "timer.break_minutes must not be negative.")
    _require(cycles >= 1, "timer.cycles must be at least 1.")
    _require(progress_interval >= 1, "timer.progress_interval_seconds must be at least 1.")
    return TimerSettings(
        work_minutes=work_minutes,
        break_minutes=break_minutes,
        cycles=cycles,
        progress_interval_seconds=progress_interval,
    )


def _parse_logging_settings(section: Mapping[str, Any]) -> LoggingSettings:
    level = _as_str(section.get("level"), "logging.level").upper() or LoggingSettings().level
    _require(
        level in _ALLOWED_LOG_LEVELS,
        f"logging.level must be one of: {', '.join(_ALLOWED_LOG_LEVELS)}.",
    )
    return LoggingSettings(level=level)


def _parse_ui_server_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> UIServerSettings:
    defaults = UIServerSettings()
    index_file = _as_str(section.get("index_file"), "ui_server.index_file")
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", defaults.enabled), "ui_server.enabled"),
        host=_as_str(section.get("host", defaults.host), "ui_server.host"),
        port=_as_number(section.get("port", defaults.port), "ui_server.port", int),
        index_file=_resolve_path(base_dir, index_file),
        allow_commands=_as_bool(
            section.get("allow_commands", defaults.allow_commands),
            "ui_server.allow_commands",
        ),
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name)
    if raw is None:
        return {}
    _require(isinstance(raw, Mapping), f"[{name}] must be a table.")
    return raw


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise AppConfigurationError(message)


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    _require(isinstance(value, str), f"{field} must be a string.")
    return value.strip()


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    lowered = value.strip().lower() if isinstance(value, str) else None
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_number(value: Any, field: str, kind: Callable[[Any], _Number]) -> _Number:
    """Coerce TOML numbers or numeric strings; booleans and lossy floats are rejected."""
    label = "an integer" if kind is int else "a number"
    _require(not isinstance(value, bool), f"{field} must be {label}.")
    if isinstance(value, str):
        value = value.strip()
    elif kind is int and isinstance(value, float):
        _require(value.is_integer(), f"{field} must be {label}.")
    elif not isinstance(value, (int, float)):
        raise AppConfigurationError(f"{field} must be {label}.")
    try:
        return kind(value)
    except ValueError as error:
        raise AppConfigurationError(f"{field} must be {label}.") from error


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)

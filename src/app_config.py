"""Locate and load `config.toml`, applying environment overrides."""

from __future__ import annotations

import os
import tomllib
from dataclasses import replace
from pathlib import Path
from typing import Mapping, Optional

from app_config_parser import parse_app_config
from app_config_schema import (
    DEFAULT_CONFIG_FILE,
    AppConfig,
    AppConfigurationError,
    LoggingSettings,
    StoreSettings,
    TimerSettings,
    UIServerSettings,
)

CONFIG_FILE_ENV = "POMODORO_CONFIG_FILE"
DB_FILE_ENV = "POMODORO_DB_FILE"


def resolve_config_path(
    config_path: str | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    env = environ if environ is not None else os.environ
    raw = config_path or env.get(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    return path


def default_app_config(source_file: str = "") -> AppConfig:
    return AppConfig(
        store=StoreSettings(path=str(Path(StoreSettings().path).expanduser())),
        timer=TimerSettings(),
        logging=LoggingSettings(),
        ui_server=UIServerSettings(),
        source_file=source_file,
    )


def load_app_config(
    config_path: str | None = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Load configuration; a missing default `config.toml` yields built-in defaults.

    A file named explicitly (argument or `POMODORO_CONFIG_FILE`) must exist.
    `POMODORO_DB_FILE` overrides `[store] path`.
    """
    env = environ if environ is not None else os.environ
    explicit = bool(config_path or env.get(CONFIG_FILE_ENV))
    path = resolve_config_path(config_path, environ=env)

    if path.exists():
        app_config = _load_file(path)
    elif explicit:
        raise AppConfigurationError(f"Config file not found: {path}")
    else:
        app_config = default_app_config()

    db_override = env.get(DB_FILE_ENV, "").strip()
    if db_override:
        app_config = replace(
            app_config,
            store=StoreSettings(path=str(Path(db_override).expanduser().resolve())),
        )
    return app_config


def _load_file(path: Path) -> AppConfig:
    if not path.is_file():
        raise AppConfigurationError(f"Config path is not a file: {path}")

    try:
        with open(path, "rb") as fh:
            raw = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as error:
        raise AppConfigurationError(f"Failed to parse config TOML: {error}") from error

    return parse_app_config(raw, base_dir=path.parent, source_file=str(path))

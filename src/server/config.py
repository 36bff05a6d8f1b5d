"""Configuration model for the live status page and websocket server."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class ServerConfigurationError(Exception):
    """Raised when UI server configuration is invalid."""


WEBSOCKET_PATH = "/ws"
ROOT_PATH = "/"
INDEX_PATH = "/index.html"
HEALTHZ_PATH = "/healthz"
STATUS_PATH = "/status.json"


def default_index_file() -> Path:
    """Status page shipped inside the `server` package."""
    return Path(__file__).resolve().parent / "static" / "index.html"


@dataclass(frozen=True)
class UIServerConfig:
    """Validated UI server configuration derived from `[ui_server]` settings."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 8765
    index_file: str = ""
    allow_commands: bool = True

    def __post_init__(self) -> None:
        if not self.host.strip():
            raise ServerConfigurationError("ui_server.host cannot be empty")
        if not 1 <= self.port <= 65535:
            raise ServerConfigurationError(
                f"ui_server.port must be in [1, 65535], got: {self.port}"
            )
        if self.enabled:
            _require_index_file(self.index_file)

    @property
    def websocket_path(self) -> str:
        return WEBSOCKET_PATH

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{ROOT_PATH}"

    @classmethod
    def from_settings(cls, settings) -> "UIServerConfig":
        index_file = (settings.index_file or "").strip() or str(default_index_file())
        return cls(
            enabled=bool(settings.enabled),
            host=settings.host,
            port=settings.port,
            index_file=index_file,
            allow_commands=bool(settings.allow_commands),
        )


def _require_index_file(index_file: str) -> None:
    if not index_file:
        raise ServerConfigurationError("ui_server.index_file cannot be empty")
    index_path = Path(index_file)
    if not index_path.exists():
        raise ServerConfigurationError(f"UI index file not found: {index_path}")
    if not index_path.is_file():
        raise ServerConfigurationError(f"UI index path is not a file: {index_path}")

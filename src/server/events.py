"""Wire helpers for status page events: envelopes, sticky replay, client commands."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from contracts.ui_protocol import (
    EVENT_COMMAND,
    STICKY_EVENT_ORDER,
    STICKY_EVENT_TYPES,
    UI_COMMANDS,
)


def make_event(
    event_type: str,
    *,
    now_fn: Callable[[], datetime] | None = None,
    **payload: Any,
) -> str:
    """Serialize one server event as `{"type", "timestamp", **payload}` JSON."""
    now = (now_fn or _utc_now)()
    return json.dumps({"type": event_type, "timestamp": now.isoformat(), **payload})


def parse_client_command(raw: str | bytes) -> Optional[str]:
    """Return the command named by a client message, or None if it is not a known command."""
    try:
        message = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(message, dict) or message.get("type") != EVENT_COMMAND:
        return None
    command = message.get("command")
    if isinstance(command, str) and command in UI_COMMANDS:
        return command
    return None


class StickyEventStore:
    """Latest serialized event per sticky type, shared between publisher and server threads."""

    def __init__(self):
        self._latest: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, event_type: str, message: str) -> None:
        if event_type in STICKY_EVENT_TYPES:
            with self._lock:
                self._latest[event_type] = message

    def snapshot(self) -> list[str]:
        with self._lock:
            latest = dict(self._latest)
        return [latest[event_type] for event_type in STICKY_EVENT_ORDER if event_type in latest]

    def as_json_array(self) -> bytes:
        return ("[" + ",".join(self.snapshot()) + "]").encode("utf-8")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)

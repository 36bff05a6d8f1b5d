"""Null-safe bridge from the coordination loop to the optional status server."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from contracts.ui_protocol import EVENT_ERROR, EVENT_POMODORO, STATE_ERROR
from pomodoro import PhaseSnapshot


class UIServerLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...

    def publish_state(self, state: str, *, message: Optional[str] = None, **payload: Any) -> None:
        ...


class RuntimeUIPublisher:
    """Publishes pomodoro events when a UI server is attached; a no-op otherwise."""

    def __init__(self, ui_server: Optional[UIServerLike]):
        self._ui_server = ui_server

    @property
    def enabled(self) -> bool:
        return self._ui_server is not None

    def publish(self, event_type: str, **payload: Any) -> None:
        if self._ui_server is not None:
            self._ui_server.publish(event_type, **payload)

    def publish_state(self, state: str, *, message: Optional[str] = None, **payload: Any) -> None:
        if self._ui_server is not None:
            self._ui_server.publish_state(state, message=message, **payload)

    def publish_pomodoro_update(
        self,
        snapshot: Optional[PhaseSnapshot],
        *,
        action: str,
        message: Optional[str] = None,
        **extra: Any,
    ) -> None:
        """Publish one `pomodoro` event; the snapshot fields are flattened into the payload."""
        if self._ui_server is None:
            return
        payload: dict[str, Any] = {"action": action, **extra}
        if snapshot is not None:
            payload.update(snapshot.to_payload())
        if message:
            payload["message"] = message
        self._ui_server.publish(EVENT_POMODORO, **payload)

    def publish_error(self, error: Exception) -> None:
        self.publish(EVENT_ERROR, message=str(error), error_type=type(error).__name__)
        self.publish_state(STATE_ERROR, message=str(error))

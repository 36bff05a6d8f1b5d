"""Threaded websocket server streaming live pomodoro events to a status page."""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Coroutine, Optional
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.server import ServerConnection
from websockets.datastructures import Headers
from websockets.http11 import Request, Response

from contracts.ui_protocol import (
    EVENT_ERROR,
    EVENT_HELLO,
    EVENT_STATE_UPDATE,
    STATE_IDLE,
)

from .config import HEALTHZ_PATH, INDEX_PATH, ROOT_PATH, STATUS_PATH, UIServerConfig
from .events import StickyEventStore, make_event, parse_client_command

CommandHandler = Callable[[str], None]

_HTML = "text/html; charset=utf-8"
_JSON = "application/json"
_TEXT = "text/plain; charset=utf-8"


class UIServer:
    """Serves the status page and fans pomodoro events out to websocket clients.

    The asyncio loop runs on its own daemon thread; `publish` and
    `publish_state` may be called from any thread. The latest event of each
    sticky type is replayed to clients that connect mid-run and is also
    served as a JSON array from `/status.json`. Clients may send
    `{"type": "command", "command": "stop"}`, which is forwarded to the
    injected command handler when commands are allowed.
    """

    def __init__(
        self,
        config: UIServerConfig,
        logger: Optional[logging.Logger] = None,
        *,
        command_handler: Optional[CommandHandler] = None,
    ):
        self._config = config
        self._logger = logger or logging.getLogger("ui_server")
        self._command_handler = command_handler
        self._sticky_events = StickyEventStore()
        self._clients: set[ServerConnection] = set()
        self._index_html = Path(config.index_file).read_bytes()

        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown: Optional[asyncio.Event] = None
        self._ready = threading.Event()
        self._startup_error: Optional[Exception] = None

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._config.port

    @property
    def websocket_path(self) -> str:
        return self._config.websocket_path

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and self._startup_error is None

    def start(self, timeout_seconds: float = 5.0) -> None:
        if self.is_running:
            self._logger.warning("UI server is already running")
            return

        self._startup_error = None
        self._ready.clear()
        self._thread = threading.Thread(target=self._thread_main, daemon=True, name="ui-server")
        self._thread.start()

        if not self._ready.wait(timeout_seconds):
            raise RuntimeError(f"UI server did not start within {timeout_seconds:.1f}s")
        if self._startup_error is not None:
            raise RuntimeError(f"UI server startup failed: {self._startup_error}")

    def stop(self, timeout_seconds: float = 5.0) -> None:
        thread = self._thread
        if thread is None:
            return

        loop, shutdown = self._loop, self._shutdown
        if loop is not None and shutdown is not None and not loop.is_closed():
            loop.call_soon_threadsafe(shutdown.set)

        thread.join(timeout=timeout_seconds)
        if thread.is_alive():
            self._logger.error("UI server thread did not stop within %.1fs", timeout_seconds)
        self._thread = None

    def publish_state(self, state: str, *, message: Optional[str] = None, **payload: Any) -> None:
        if message:
            payload["message"] = message
        self.publish(EVENT_STATE_UPDATE, state=state, **payload)

    def publish(self, event_type: str, **payload: Any) -> None:
        message = make_event(event_type, **payload)
        self._sticky_events.remember(event_type, message)
        if self.is_running:
            self._submit(self._broadcast(message))

    def _submit(self, coroutine: Coroutine[Any, Any, None]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            coroutine.close()
            return
        try:
            future = asyncio.run_coroutine_threadsafe(coroutine, loop)
        except RuntimeError as error:
            coroutine.close()
            self._logger.debug("Dropping UI event, loop is shutting down: %s", error)
            return
        future.add_done_callback(self._log_failed_broadcast)

    def _log_failed_broadcast(self, future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.debug("Broadcast failed: %s", error)

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._shutdown = asyncio.Event()
        try:
            loop.run_until_complete(self._serve_until_stopped())
        except Exception as error:  # pragma: no cover - depends on host port availability
            self._startup_error = error
            self._logger.error("UI server failed: %s", error, exc_info=True)
            self._ready.set()
        finally:
            self._cancel_pending(loop)
            loop.close()
            self._loop = None
            self._shutdown = None

    def _cancel_pending(self, loop: asyncio.AbstractEventLoop) -> None:
        pending = asyncio.all_tasks(loop)
        if not pending:
            return
        for task in pending:
            task.cancel()
        results = loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
        for result in results:
            if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                self._logger.debug("Pending UI task failed during shutdown: %s", result)

    async def _serve_until_stopped(self) -> None:
        async with websockets.serve(
            self._handle_client,
            host=self._config.host,
            port=self._config.port,
            process_request=self._process_request,
            logger=self._logger,
        ):
            self._logger.info(
                "UI server running at %s (websocket: %s)",
                self._config.url,
                self._config.websocket_path,
            )
            self._ready.set()
            await self._shutdown.wait()
            await self._disconnect_all()

    async def _handle_client(self, websocket: ServerConnection) -> None:
        request = websocket.request
        if request is None or urlsplit(request.path).path != self._config.websocket_path:
            await websocket.close(code=1008, reason="Invalid websocket path")
            return

        self._clients.add(websocket)
        self._logger.info("Client connected: %s", websocket.remote_address)
        try:
            await websocket.send(
                make_event(EVENT_HELLO, state=STATE_IDLE, message="UI websocket connected")
            )
            for message in self._sticky_events.snapshot():
                await websocket.send(message)
            async for raw in websocket:
                await self._handle_client_message(websocket, raw)
        except websockets.exceptions.ConnectionClosed:
            self._logger.info("Client disconnected: %s", websocket.remote_address)
        finally:
            self._clients.discard(websocket)

    async def _handle_client_message(self, websocket: ServerConnection, raw: str | bytes) -> None:
        command = parse_client_command(raw)
        if command is None:
            self._logger.debug("Ignoring client message: %r", raw)
            return
        if not self._config.allow_commands or self._command_handler is None:
            await websocket.send(
                make_event(EVENT_ERROR, message=f"Command {command!r} is not enabled")
            )
            return

        self._logger.info("UI command received: %s", command)
        self._command_handler(command)

    async def _process_request(
        self,
        connection: Optional[ServerConnection],
        request: Request,
    ) -> Optional[Response]:
        del connection
        path = urlsplit(request.path).path
        if path == self._config.websocket_path:
            return None
        if path in (ROOT_PATH, INDEX_PATH):
            return _response(200, "OK", self._index_html, _HTML)
        if path == STATUS_PATH:
            return _response(200, "OK", self._sticky_events.as_json_array(), _JSON)
        if path == HEALTHZ_PATH:
            return _response(200, "OK", b"ok\n", _TEXT)
        return _response(404, "Not Found", b"not found\n", _TEXT)

    async def _disconnect_all(self) -> None:
        clients = tuple(self._clients)
        self._clients.clear()
        if clients:
            await asyncio.gather(
                *(client.close(code=1001, reason="Server shutting down") for client in clients),
                return_exceptions=True,
            )

    async def _broadcast(self, message: str) -> None:
        clients = tuple(self._clients)
        if not clients:
            return

        results = await asyncio.gather(
            *(client.send(message) for client in clients),
            return_exceptions=True,
        )
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                self._logger.warning("Failed to send message to client: %s", result)
                self._clients.discard(client)


def _response(status_code: int, reason_phrase: str, body: bytes, content_type: str) -> Response:
    headers = Headers()
    headers["Content-Type"] = content_type
    headers["Content-Length"] = str(len(body))
    headers["Cache-Control"] = "no-store"
    return Response(status_code, reason_phrase, headers, body)

import asyncio
import json
import tempfile
import unittest
from pathlib import Path

from websockets.datastructures import Headers
from websockets.http11 import Request

from server import UIServer, UIServerConfig


class _WebsocketStub:
    def __init__(self):
        self.sent: list[str] = []

    async def send(self, message: str) -> None:
        self.sent.append(message)


class UIServerTests(unittest.TestCase):
    def setUp(self) -> None:
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self.index_file = Path(temp_dir.name) / "index.html"
        self.index_file.write_text("<html>status</html>", encoding="utf-8")
        self.commands: list[str] = []
        self.server = self._server()

    def _server(self, *, allow_commands: bool = True, with_handler: bool = True) -> UIServer:
        return UIServer(
            UIServerConfig(
                enabled=True,
                index_file=str(self.index_file),
                allow_commands=allow_commands,
            ),
            command_handler=self.commands.append if with_handler else None,
        )

    def _request(self, path: str):
        return asyncio.run(self.server._process_request(None, Request(path, Headers())))

    def test_index_is_served_from_root(self) -> None:
        for path in ("/", "/index.html", "/?tab=stats"):
            with self.subTest(path=path):
                response = self._request(path)
                self.assertEqual(200, response.status_code)
                self.assertEqual(b"<html>status</html>", response.body)
                self.assertEqual("no-store", response.headers["Cache-Control"])

    def test_healthz(self) -> None:
        response = self._request("/healthz")
        self.assertEqual(200, response.status_code)
        self.assertEqual(b"ok\n", response.body)

    def test_websocket_path_is_left_to_handshake(self) -> None:
        self.assertIsNone(self._request("/ws"))

    def test_unknown_path_is_not_found(self) -> None:
        response = self._request("/assets/app.js")
        self.assertEqual(404, response.status_code)

    def test_status_json_reflects_latest_sticky_events(self) -> None:
        self.assertEqual([], json.loads(self._request("/status.json").body))

        self.server.publish("pomodoro", action="tick", remaining_seconds=10)
        self.server.publish("pomodoro", action="tick", remaining_seconds=9)
        self.server.publish_state("working", message="Working")
        self.server.publish("hello", state="idle")

        response = self._request("/status.json")
        self.assertEqual("application/json", response.headers["Content-Type"])
        events = json.loads(response.body)
        self.assertEqual(["pomodoro", "state_update"], [event["type"] for event in events])
        self.assertEqual(9, events[0]["remaining_seconds"])
        self.assertEqual("Working", events[1]["message"])
        self.assertFalse(self.server.is_running)

    def test_stop_command_is_forwarded_to_handler(self) -> None:
        websocket = _WebsocketStub()
        asyncio.run(
            self.server._handle_client_message(
                websocket,
                json.dumps({"type": "command", "command": "stop"}),
            )
        )

        self.assertEqual(["stop"], self.commands)
        self.assertEqual([], websocket.sent)

    def test_unknown_messages_are_ignored(self) -> None:
        websocket = _WebsocketStub()
        for raw in ("not json", '{"type": "command", "command": "reboot"}', '{"type": "ping"}'):
            asyncio.run(self.server._handle_client_message(websocket, raw))

        self.assertEqual([], self.commands)
        self.assertEqual([], websocket.sent)

    def test_disabled_commands_are_answered_with_error(self) -> None:
        server = self._server(allow_commands=False)
        websocket = _WebsocketStub()

        asyncio.run(
            server._handle_client_message(websocket, '{"type": "command", "command": "stop"}')
        )

        self.assertEqual([], self.commands)
        self.assertEqual("error", json.loads(websocket.sent[0])["type"])

    def test_stop_without_start_is_noop(self) -> None:
        self.server.stop()
        self.assertFalse(self.server.is_running)


if __name__ == "__main__":
    unittest.main()

"""Test fixtures including a mock DolphinDB server."""

from __future__ import annotations

import socket
import threading
import time

import pytest


class MockDolphinServer:
    """A minimal mock DolphinDB server that speaks the script API.

    Accepts connections, answers the connect handshake with a fixed
    session id, and replies to each script frame with ``OK`` or a
    pre-configured error message.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 0) -> None:
        self.host = host
        self.port = port
        self.session_id = b"7d3c1a9f"
        self.handshake_response: bytes | None = None
        self.chunk_size: int | None = None
        self.scripts: list[bytes] = []
        self.connections = 0
        self._sock: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._running = False
        self._errors: dict[bytes, str] = {}
        self._raw: dict[bytes, bytes | None] = {}
        self._delays: dict[bytes, float] = {}

    def set_error(self, script: str | bytes, message: str) -> None:
        """Reply to *script* with an error status line."""
        self._errors[_as_bytes(script)] = message

    def set_raw(self, script: str | bytes, data: bytes | None) -> None:
        """Reply to *script* with *data* verbatim; ``None`` drops the client."""
        self._raw[_as_bytes(script)] = data

    def set_delay(self, script: str | bytes, seconds: float) -> None:
        """Hold the reply to *script* for *seconds*."""
        self._delays[_as_bytes(script)] = seconds

    def start(self) -> int:
        """Start the mock server and return the port number."""
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind((self.host, self.port))
        self._sock.listen(5)
        self._sock.settimeout(1.0)
        self.port = self._sock.getsockname()[1]
        self._running = True
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()
        return self.port

    def stop(self) -> None:
        """Stop the mock server."""
        self._running = False
        if self._sock:
            self._sock.close()
        if self._thread:
            self._thread.join(timeout=3)

    def _serve(self) -> None:
        while self._running:
            try:
                client, addr = self._sock.accept()
            except (socket.timeout, OSError):
                continue
            self.connections += 1
            threading.Thread(
                target=self._handle_client, args=(client,), daemon=True
            ).start()

    def _send(self, client: socket.socket, data: bytes) -> None:
        if not self.chunk_size:
            client.sendall(data)
            return
        for i in range(0, len(data), self.chunk_size):
            client.sendall(data[i:i + self.chunk_size])

    def _handle_client(self, client: socket.socket) -> None:
        buf = bytearray()
        try:
            if self._read_until(client, buf, b"connect\n") is None:
                return
            if self.handshake_response is not None:
                self._send(client, self.handshake_response)
            else:
                self._send(client, self.session_id + b" 1 1\nOK\n")

            while self._running:
                header = self._read_until(client, buf, b"\n")
                if header is None:
                    break
                length = int(header.split(b" ")[2])
                while len(buf) < length:
                    chunk = client.recv(4096)
                    if not chunk:
                        return
                    buf.extend(chunk)
                body = bytes(buf[:length])
                del buf[:length]
                script = body[len(b"script\n"):]
                self.scripts.append(script)
                if script in self._delays:
                    time.sleep(self._delays[script])

                if script in self._raw:
                    data = self._raw[script]
                    if data is None:
                        break
                    self._send(client, data)
                elif script in self._errors:
                    self._send(client, self.session_id + b" 0 1\n"
                               + self._errors[script].encode() + b"\n")
                else:
                    self._send(client, self.session_id + b" 0 1\nOK\n")
        except OSError:
            pass
        finally:
            try:
                client.close()
            except OSError:
                pass

    @staticmethod
    def _read_until(client: socket.socket, buf: bytearray, marker: bytes) -> bytes | None:
        while marker not in buf:
            chunk = client.recv(4096)
            if not chunk:
                return None
            buf.extend(chunk)
        end = buf.index(marker) + len(marker)
        line = bytes(buf[:end - len(marker)])
        del buf[:end]
        return line


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode() if isinstance(value, str) else value


@pytest.fixture
def mock_server():
    """Fixture providing a running MockDolphinServer."""
    server = MockDolphinServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def mock_port(mock_server):
    """Fixture providing just the port of a running mock server."""
    return mock_server.port

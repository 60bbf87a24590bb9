"""Blocking socket connection to DolphinDB."""

from __future__ import annotations

import logging
import socket
import threading
import time

from ..exc import (
    AuthenticationError, ConnectionError as DConnError, HandshakeError,
    ProtocolError, ScriptError, SessionClosedError,
)
from ..protocol.constants import DEFAULT_HOST, DEFAULT_PORT, HANDSHAKE_TIMEOUT, RECV_SIZE
from ..protocol.framing import encode_script, login_script
from ..protocol.parser import Packet, ResponseParser
from .base import BaseConnection, check_credentials
from .handshake import build_handshake, handshake_complete, parse_handshake_response


log = logging.getLogger("dolphinc.connection")


class SyncConnection(BaseConnection):
    """Synchronous (blocking) session with a DolphinDB server.

    One request is in flight at a time; concurrent callers wait on an
    internal lock.  Server-side errors raise :class:`ScriptError` and
    leave the session usable.  Transport and protocol errors tear the
    session down; later calls raise :class:`SessionClosedError`.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        username: str | None = None,
        password: str | None = None,
        timeout: float | None = HANDSHAKE_TIMEOUT,
        read_timeout: float | None = None,
    ) -> None:
        check_credentials(username, password)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout
        self.read_timeout = read_timeout
        self._sock: socket.socket | None = None
        self._parser: ResponseParser | None = None
        self._session_id: bytes | None = None
        self._lock = threading.Lock()

    def open(self) -> None:
        """Connect, perform the handshake, and log in if configured."""
        if self._sock is not None:
            return
        try:
            sock = socket.create_connection(
                (self.host, self.port), timeout=self.timeout
            )
        except OSError as e:
            raise DConnError(f"Cannot connect to {self.host}:{self.port}: {e}") from e

        self._sock = sock
        try:
            self._session_id = self._handshake()
            self._parser = ResponseParser()
            sock.settimeout(self.read_timeout)
            log.debug("Connected to %s:%s (session=%s)",
                      self.host, self.port, self._session_id.decode('utf-8', 'replace'))
            if self.username is not None:
                self.login(self.username, self.password)
        except Exception:
            self.close()
            raise

    def _handshake(self) -> bytes:
        buf = bytearray()
        try:
            self._sock.sendall(build_handshake())
        except OSError as e:
            raise DConnError(f"Handshake with {self.host}:{self.port} failed: {e}") from e
        deadline = None if self.timeout is None else time.monotonic() + self.timeout
        while not handshake_complete(buf):
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise HandshakeError(
                        f"Timed out waiting for connect response from {self.host}:{self.port}"
                    )
                self._sock.settimeout(remaining)
            try:
                chunk = self._sock.recv(RECV_SIZE)
            except socket.timeout as e:
                raise HandshakeError(
                    f"Timed out waiting for connect response from {self.host}:{self.port}"
                ) from e
            except OSError as e:
                raise DConnError(f"Handshake with {self.host}:{self.port} failed: {e}") from e
            if not chunk:
                break
            buf.extend(chunk)
        return parse_handshake_response(bytes(buf))

    def close(self) -> None:
        """Close the socket; a call blocked in ``recv`` fails with ConnectionError."""
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            try:
                sock.close()
            except OSError:
                pass
        self._parser = None
        self._session_id = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    @property
    def session_id(self) -> bytes | None:
        """Session id assigned by the server, or ``None`` before open."""
        return self._session_id

    def _teardown(self, reason: BaseException) -> None:
        log.warning("Tearing down session to %s:%s: %s", self.host, self.port, reason)
        self.close()

    @staticmethod
    def _recv_packet(sock: socket.socket, parser: ResponseParser) -> Packet:
        """Read until the parser yields a packet."""
        packet = parser.next_packet()
        while packet is None:
            chunk = sock.recv(RECV_SIZE)
            if not chunk:
                raise DConnError("Connection closed by server")
            packet = parser.feed(chunk)
        return packet

    def _call(self, script: str | bytes) -> Packet:
        with self._lock:
            sock, parser, sid = self._sock, self._parser, self._session_id
            if sock is None or parser is None:
                raise SessionClosedError("Connection is not open")
            frame = encode_script(sid, script)
            try:
                sock.sendall(frame)
                return self._recv_packet(sock, parser)
            except (ProtocolError, DConnError) as e:
                self._teardown(e)
                raise
            except OSError as e:
                self._teardown(e)
                raise DConnError(f"Transport failure on {self.host}:{self.port}: {e}") from e
            except BaseException as e:
                # interrupted mid-exchange; the pending reply cannot be matched any more
                self._teardown(e)
                raise

    def run(self, script: str | bytes) -> None:
        """Execute *script* on the server.

        Returns ``None`` on success.  Raises :class:`ScriptError` with the
        server's message when the script fails.
        """
        packet = self._call(script)
        if not packet.ok:
            raise ScriptError(packet.error)

    def login(self, username: str, password: str) -> None:
        """Log in as *username*; credentials are kept on success.

        The credentials are embedded unescaped in a ``login("u","p")``
        script, so quote characters in either value corrupt the request.
        """
        packet = self._call(login_script(username, password))
        if not packet.ok:
            raise AuthenticationError(packet.error)
        self.username = username
        self.password = password
        log.debug("Logged in to %s:%s as %s", self.host, self.port, username)

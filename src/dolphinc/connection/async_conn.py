"""Asyncio connection to DolphinDB."""

from __future__ import annotations

import asyncio
import logging

from ..exc import (
    AuthenticationError, ConnectionError as DConnError, HandshakeError,
    ProtocolError, ScriptError, SessionClosedError,
)
from ..protocol.constants import DEFAULT_HOST, DEFAULT_PORT, HANDSHAKE_TIMEOUT, RECV_SIZE
from ..protocol.framing import encode_script, login_script
from ..protocol.parser import Packet, ResponseParser
from .base import AsyncBaseConnection, check_credentials
from .handshake import build_handshake, handshake_complete, parse_handshake_response


log = logging.getLogger("dolphinc.connection")


class AsyncConnection(AsyncBaseConnection):
    """Asynchronous session with a DolphinDB server using asyncio."""

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
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._parser: ResponseParser | None = None
        self._session_id: bytes | None = None
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        if self._writer is not None:
            return
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError) as e:
            raise DConnError(f"Cannot connect to {self.host}:{self.port}: {e}") from e

        try:
            self._session_id = await self._handshake()
            self._parser = ResponseParser()
            log.debug("Async connected to %s:%s (session=%s)",
                      self.host, self.port, self._session_id.decode('utf-8', 'replace'))
            if self.username is not None:
                await self.login(self.username, self.password)
        except asyncio.CancelledError:
            self._abort()
            raise
        except Exception:
            await self.close()
            raise

    async def _handshake(self) -> bytes:
        try:
            self._writer.write(build_handshake())
            await self._writer.drain()
        except OSError as e:
            raise DConnError(f"Handshake with {self.host}:{self.port} failed: {e}") from e
        loop = asyncio.get_running_loop()
        deadline = None if self.timeout is None else loop.time() + self.timeout
        buf = bytearray()
        while not handshake_complete(buf):
            remaining = None if deadline is None else deadline - loop.time()
            try:
                if remaining is not None and remaining <= 0:
                    raise asyncio.TimeoutError()
                chunk = await asyncio.wait_for(
                    self._reader.read(RECV_SIZE), timeout=remaining,
                )
            except asyncio.TimeoutError as e:
                raise HandshakeError(
                    f"Timed out waiting for connect response from {self.host}:{self.port}"
                ) from e
            except OSError as e:
                raise DConnError(f"Handshake with {self.host}:{self.port} failed: {e}") from e
            if not chunk:
                break
            buf.extend(chunk)
        return parse_handshake_response(bytes(buf))

    async def close(self) -> None:
        if self._writer is not None:
            try:
                self._writer.close()
                await self._writer.wait_closed()
            except OSError:
                pass
        self._abort()

    def _abort(self) -> None:
        """Drop the transport without waiting for it to finish closing."""
        if self._writer is not None:
            self._writer.close()
        self._writer = self._reader = None
        self._parser = None
        self._session_id = None

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    @property
    def session_id(self) -> bytes | None:
        return self._session_id

    async def _recv_packet(self, reader: asyncio.StreamReader,
                           parser: ResponseParser) -> Packet:
        packet = parser.next_packet()
        while packet is None:
            chunk = await asyncio.wait_for(reader.read(RECV_SIZE), timeout=self.read_timeout)
            if not chunk:
                raise DConnError("Connection closed by server")
            packet = parser.feed(chunk)
        return packet

    async def _call(self, script: str | bytes) -> Packet:
        async with self._lock:
            reader, writer, parser = self._reader, self._writer, self._parser
            if writer is None or parser is None:
                raise SessionClosedError("Connection is not open")
            frame = encode_script(self._session_id, script)
            try:
                writer.write(frame)
                await writer.drain()
                return await self._recv_packet(reader, parser)
            except (ProtocolError, DConnError) as e:
                log.warning("Tearing down session to %s:%s: %s", self.host, self.port, e)
                await self.close()
                raise
            except (OSError, asyncio.TimeoutError) as e:
                log.warning("Tearing down session to %s:%s: %s", self.host, self.port, e)
                await self.close()
                raise DConnError(f"Transport failure on {self.host}:{self.port}: {e}") from e
            except BaseException:
                # cancelled mid-exchange; the late reply must not reach the next call
                log.warning("Call cancelled; tearing down session to %s:%s", self.host, self.port)
                self._abort()
                raise

    async def run(self, script: str | bytes) -> None:
        """Execute *script* on the server; raise :class:`ScriptError` on failure."""
        packet = await self._call(script)
        if not packet.ok:
            raise ScriptError(packet.error)

    async def login(self, username: str, password: str) -> None:
        """Log in as *username* (credentials are not escaped)."""
        packet = await self._call(login_script(username, password))
        if not packet.ok:
            raise AuthenticationError(packet.error)
        self.username = username
        self.password = password
        log.debug("Logged in to %s:%s as %s", self.host, self.port, username)

"""Incremental response parser.

A response is a header line, a status line, and (for data-bearing
responses, which this client does not support) a binary payload::

    <session id> <count> <endian>\\n
    OK\\n                          (or an error message)

Bytes may arrive in arbitrary chunks.  :class:`ResponseParser` keeps
whatever has not yet formed a complete packet and resumes on the next
:meth:`ResponseParser.feed`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..exc import MalformedHeaderError, ProtocolError, UnsupportedPayloadError
from .constants import HEADER_TOKENS, NEWLINE, SEPARATOR, STATUS_OK


log = logging.getLogger("dolphinc.protocol")


@dataclass(frozen=True)
class Header:
    """Response header echoed by the server."""

    session_id: bytes
    count: int
    endian: bytes


@dataclass(frozen=True)
class Packet:
    """One decoded response: a header plus either success or an error."""

    header: Header
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_header(line: bytes) -> Header:
    """Split a header line into its three fields.

    Raises
    ------
    MalformedHeaderError
        If the line does not hold exactly three space-separated tokens,
        or the count is not a decimal integer.
    """
    tokens = line.split(SEPARATOR)
    if len(tokens) != HEADER_TOKENS:
        raise MalformedHeaderError(
            f"Expected {HEADER_TOKENS} header tokens, got {len(tokens)}: {line!r}"
        )
    sid, count, endian = tokens
    try:
        cnt = int(count)
    except ValueError:
        raise MalformedHeaderError(f"Invalid header count {count!r}") from None
    return Header(session_id=sid, count=cnt, endian=endian)


class ResponseParser:
    """Stateful decoder turning a byte stream into :class:`Packet` objects."""

    def __init__(self) -> None:
        self._buf = bytearray()
        self._corrupted = False

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet consumed by a packet."""
        return bytes(self._buf)

    @property
    def corrupted(self) -> bool:
        return self._corrupted

    def __len__(self) -> int:
        return len(self._buf)

    def reset(self) -> None:
        """Discard buffered bytes and clear the corrupted flag."""
        self._buf.clear()
        self._corrupted = False

    def feed(self, data: bytes) -> Packet | None:
        """Append *data* and return the next complete packet, if any."""
        if self._corrupted:
            raise ProtocolError("Parser state is corrupted; reconnect required")
        self._buf.extend(data)
        return self.next_packet()

    def next_packet(self) -> Packet | None:
        """Decode one packet from already-buffered bytes.

        Returns ``None`` (leaving the buffer untouched) when more bytes
        are needed.
        """
        if self._corrupted:
            raise ProtocolError("Parser state is corrupted; reconnect required")

        hdr_end = self._buf.find(NEWLINE)
        if hdr_end < 0:
            log.debug("Awaiting header line (%d bytes buffered)", len(self._buf))
            return None

        try:
            header = parse_header(bytes(self._buf[:hdr_end]))
        except MalformedHeaderError:
            self._corrupted = True
            raise

        status_end = self._buf.find(NEWLINE, hdr_end + 1)
        if status_end < 0:
            log.debug("Awaiting status line (%d bytes buffered)", len(self._buf))
            return None

        status = bytes(self._buf[hdr_end + 1:status_end])
        if status == STATUS_OK:
            if header.count != 0:
                self._corrupted = True
                raise UnsupportedPayloadError(
                    f"Response declares {header.count} result item(s); "
                    "only empty results are supported"
                )
            packet = Packet(header)
        else:
            packet = Packet(header, error=status.decode('utf-8', errors='replace'))

        del self._buf[:status_end + 1]
        return packet

"""Session handshake for the DolphinDB API.

The handshake works as follows:
1. Client sends ``"API 0 8\\nconnect\\n"``
2. Server responds with ``"<session id> <count> <endian>\\nOK\\n"``,
   possibly followed by further bytes that the client ignores.

The session id is the first token of the header line; it stamps every
later request on the same connection.
"""

from __future__ import annotations

from ..exc import HandshakeError
from ..protocol.constants import NEWLINE, SEPARATOR, STATUS_OK
from ..protocol.framing import encode_connect


def build_handshake() -> bytes:
    """Return the connect frame to send to the server."""
    return encode_connect()


def handshake_complete(data: bytes | bytearray) -> bool:
    """Whether *data* holds both a header line and a status line."""
    return data.count(NEWLINE) >= 2


def parse_handshake_response(data: bytes) -> bytes:
    """Extract the session id from the server's connect response.

    Parameters
    ----------
    data : bytes
        Raw bytes received after sending the connect frame.

    Returns
    -------
    bytes
        The session id assigned by the server.

    Raises
    ------
    HandshakeError
        If the response lacks a header line and an ``OK`` status line,
        or the header holds no session id.
    """
    parts = data.split(NEWLINE, 2)
    if len(parts) < 3:
        raise HandshakeError(f"Incomplete connect response: {data!r}")
    header, status, _ = parts
    if status != STATUS_OK:
        message = status.decode('utf-8', errors='replace')
        raise HandshakeError(f"Connect rejected by server: {message}")
    sid = header.split(SEPARATOR, 1)[0]
    if not sid:
        raise HandshakeError(f"Connect response has no session id: {data!r}")
    return sid

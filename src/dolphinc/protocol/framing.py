"""Request framing: connect and script frames."""

from __future__ import annotations

from ..exc import SerializationError
from .constants import API_TAG, CONNECT_FRAME, SCRIPT_COMMAND, SCRIPT_FLAGS, SEPARATOR


def _to_bytes(value: bytes | bytearray | str, what: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode('utf-8')
    raise SerializationError(
        f"{what} must be bytes or str, got {type(value).__name__}"
    )


def encode_connect() -> bytes:
    """Return the fixed frame that opens a session."""
    return CONNECT_FRAME


def encode_script(session_id: bytes | str, script: bytes | str) -> bytes:
    """Build a frame asking the server to execute *script*.

    Layout::

        API <sid> <len> / 0_1_4_2\\n
        script\\n
        <script bytes>

    ``<len>`` covers the command line plus the script body, i.e.
    ``len(script) + len(b"script\\n")``.
    """
    sid = _to_bytes(session_id, "session id")
    body = _to_bytes(script, "script")
    length = str(len(body) + len(SCRIPT_COMMAND)).encode('ascii')
    header = SEPARATOR.join((API_TAG, sid, length, SCRIPT_FLAGS)) + b"\n"
    return header + SCRIPT_COMMAND + body


def login_script(username: str, password: str) -> str:
    """Return the script text that logs in as *username*.

    The credentials are interpolated verbatim between double quotes.
    Nothing is escaped: a ``"`` in either value breaks the generated
    script and lets the caller inject arbitrary script text.
    """
    return f'login("{username}","{password}")'

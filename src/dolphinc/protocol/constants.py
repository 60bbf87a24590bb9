"""Wire protocol constants for the DolphinDB API."""

from __future__ import annotations

# ── Endpoint defaults ──────────────────────────────────────────────
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8848
HANDSHAKE_TIMEOUT = 5.0  # seconds
RECV_SIZE = 4096

# ── Request frames ─────────────────────────────────────────────────
API_TAG = b"API"
CONNECT_FRAME = b"API 0 8\nconnect\n"  # API version 0.8, `connect` command
SCRIPT_COMMAND = b"script\n"
SCRIPT_FLAGS = b"/ 0_1_4_2"

# ── Responses ──────────────────────────────────────────────────────
NEWLINE = b"\n"
SEPARATOR = b" "
STATUS_OK = b"OK"
HEADER_TOKENS = 3  # session id, count, endianness

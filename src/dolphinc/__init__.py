"""dolphinc — Python client for the DolphinDB script API.

Usage::

    from dolphinc import Engine, Session, ScriptError

    engine = Engine(host="127.0.0.1", port=8848,
                    username="admin", password="123456")

    with Session(engine) as session:
        session.run("t = table(1..10 as id)")
        try:
            session.run("undefinedFunc()")
        except ScriptError as e:
            print(e.server_message)
"""

from .protocol.framing import encode_connect, encode_script, login_script
from .protocol.parser import Header, Packet, ResponseParser
from .engine import Engine
from .session import Session, AsyncSession
from .config import engine_from_config
from .connection.sync_conn import SyncConnection
from .connection.async_conn import AsyncConnection
from .exc import (
    DolphinError, ConfigurationError, ConnectionError, SessionClosedError,
    HandshakeError, SerializationError, ProtocolError, MalformedHeaderError,
    UnsupportedPayloadError, ScriptError, AuthenticationError,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    'Engine', 'Session', 'AsyncSession', 'engine_from_config',
    # Protocol
    'encode_connect', 'encode_script', 'login_script',
    'Header', 'Packet', 'ResponseParser',
    # Connections
    'SyncConnection', 'AsyncConnection',
    # Exceptions
    'DolphinError', 'ConfigurationError', 'ConnectionError',
    'SessionClosedError', 'HandshakeError', 'SerializationError',
    'ProtocolError', 'MalformedHeaderError', 'UnsupportedPayloadError',
    'ScriptError', 'AuthenticationError',
]

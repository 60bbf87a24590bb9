"""Exception hierarchy for dolphinc."""


class DolphinError(Exception):
    """Base exception for all dolphinc errors."""


class ConfigurationError(DolphinError):
    """Invalid client configuration (raised before any network activity)."""


class ConnectionError(DolphinError):
    """Transport failure talking to the DolphinDB server."""


class SessionClosedError(ConnectionError):
    """The session was closed or torn down by an earlier fatal error."""


class HandshakeError(ConnectionError):
    """The initial connect exchange failed."""


class SerializationError(DolphinError):
    """Failed to encode a request frame."""


class ProtocolError(DolphinError):
    """The response byte stream can no longer be interpreted."""


class MalformedHeaderError(ProtocolError):
    """Response header line did not split into three tokens."""


class UnsupportedPayloadError(ProtocolError):
    """Successful response carried a data payload this client cannot decode."""


class ScriptError(DolphinError):
    """Error message returned by the server for a script."""

    def __init__(self, message: str) -> None:
        self.server_message = message
        super().__init__(f"server error: {message}")


class AuthenticationError(ScriptError):
    """Login rejected by the server."""

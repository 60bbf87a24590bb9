"""Abstract connection interface for the DolphinDB API."""

from __future__ import annotations

import abc
from typing import Any

from ..exc import ConfigurationError


def check_credentials(username: str | None, password: str | None) -> None:
    """Reject a username without a password, or vice versa."""
    if (username is None) != (password is None):
        missing = "password" if password is None else "username"
        raise ConfigurationError(
            f"Both username and password are required (missing {missing})"
        )


class BaseConnection(abc.ABC):
    """Abstract base for DolphinDB connections."""

    @abc.abstractmethod
    def open(self) -> None:
        """Establish the connection and perform the handshake."""

    @abc.abstractmethod
    def close(self) -> None:
        """Close the connection."""

    @abc.abstractmethod
    def run(self, script: str | bytes) -> None:
        """Execute *script* on the server.

        Parameters
        ----------
        script : str | bytes
            Script text to send for remote execution.
        """

    @abc.abstractmethod
    def login(self, username: str, password: str) -> None:
        """Authenticate the session."""

    @property
    @abc.abstractmethod
    def is_open(self) -> bool:
        """Whether the connection is currently open."""

    def __enter__(self) -> BaseConnection:
        self.open()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class AsyncBaseConnection(abc.ABC):
    """Abstract base for async DolphinDB connections."""

    @abc.abstractmethod
    async def open(self) -> None:
        """Establish the connection and perform the handshake."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Close the connection."""

    @abc.abstractmethod
    async def run(self, script: str | bytes) -> None:
        """Execute *script* on the server."""

    @abc.abstractmethod
    async def login(self, username: str, password: str) -> None:
        """Authenticate the session."""

    @property
    @abc.abstractmethod
    def is_open(self) -> bool:
        """Whether the connection is currently open."""

    async def __aenter__(self) -> AsyncBaseConnection:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

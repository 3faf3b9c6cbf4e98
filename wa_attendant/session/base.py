"""Abstract interfaces for the transport session and credential storage."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from wa_attendant.bus.events import TransportEvent


class BaseTransport(ABC):
    """
    One live connection to the messaging network.

    Implementations authenticate with ``connect``, then yield events until
    the connection ends. A transport is used for a single session; a new one
    is built for every reconnect.
    """

    @abstractmethod
    async def connect(self, credentials: dict[str, Any] | None) -> None:
        """
        Authenticate or resume a session.

        Args:
            credentials: Persisted credentials, or None for a fresh login.

        Raises:
            TransportUnavailable: If the network side cannot be reached.
        """
        pass

    @abstractmethod
    def events(self) -> AsyncIterator[TransportEvent]:
        """Iterate events until the connection ends."""
        pass

    @abstractmethod
    async def send_text(self, recipient: str, text: str) -> None:
        pass

    @abstractmethod
    async def send_presence(self, recipient: str, state: str) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection; ``events`` stops after this."""
        pass


class CredentialStore(ABC):
    """Durable blob store for session credentials."""

    @abstractmethod
    def load(self) -> dict[str, Any] | None:
        pass

    @abstractmethod
    def save(self, credentials: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def clear(self) -> bool:
        """Delete persisted credentials. Returns True if anything was removed."""
        pass

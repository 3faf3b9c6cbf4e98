"""Event types delivered by the transport session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

GROUP_SUFFIX = "@g.us"


class DisconnectReason(IntEnum):
    """Baileys disconnect status codes."""

    CONNECTION_CLOSED = 428
    CONNECTION_LOST = 408
    CONNECTION_REPLACED = 440
    TIMED_OUT = 408
    LOGGED_OUT = 401
    BAD_SESSION = 500
    RESTART_REQUIRED = 515
    MULTIDEVICE_MISMATCH = 411
    FORBIDDEN = 403
    UNAVAILABLE_SERVICE = 503


@dataclass
class InboundMessage:
    """One received WhatsApp message."""

    id: str
    sender: str
    from_me: bool = False
    content: dict[str, Any] | None = None

    @property
    def is_group(self) -> bool:
        return self.sender.endswith(GROUP_SUFFIX)

    @classmethod
    def from_wa_message(cls, raw: dict[str, Any]) -> InboundMessage:
        """Build from a Baileys ``WAMessage`` payload."""
        key = raw.get("key") if isinstance(raw.get("key"), dict) else {}
        content = raw.get("message")
        return cls(
            id=str(key.get("id") or ""),
            sender=str(key.get("remoteJid") or ""),
            from_me=bool(key.get("fromMe", False)),
            content=content if isinstance(content, dict) else None,
        )


@dataclass
class CredentialsUpdate:
    """New session credentials emitted by the transport."""

    credentials: dict[str, Any] = field(default_factory=dict)


@dataclass
class ConnectionUpdate:
    """Connection state change, with the disconnect status code on close."""

    state: str
    status_code: int | None = None

    @property
    def is_closed(self) -> bool:
        return self.state == "close"

    @property
    def is_logged_out(self) -> bool:
        return self.is_closed and self.status_code == DisconnectReason.LOGGED_OUT


@dataclass
class QrCode:
    """Pairing QR code emitted while waiting for a fresh login."""

    data: str = ""


TransportEvent = InboundMessage | CredentialsUpdate | ConnectionUpdate | QrCode

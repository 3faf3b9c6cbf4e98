"""Transport event types."""

from wa_attendant.bus.events import (
    ConnectionUpdate,
    CredentialsUpdate,
    DisconnectReason,
    InboundMessage,
    QrCode,
    TransportEvent,
)

__all__ = [
    "ConnectionUpdate",
    "CredentialsUpdate",
    "DisconnectReason",
    "InboundMessage",
    "QrCode",
    "TransportEvent",
]

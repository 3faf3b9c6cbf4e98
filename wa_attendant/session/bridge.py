"""WhatsApp transport backed by a Node.js Baileys bridge."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

from loguru import logger

from wa_attendant.bus.events import (
    ConnectionUpdate,
    CredentialsUpdate,
    InboundMessage,
    QrCode,
    TransportEvent,
)
from wa_attendant.errors import SessionNotConnected, TransportUnavailable
from wa_attendant.session.base import BaseTransport


def _status_code(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def decode_frame(raw: str | bytes) -> list[TransportEvent]:
    """
    Decode one bridge frame into transport events.

    Unknown or invalid frames decode to an empty list.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning(f"Invalid JSON from bridge: {str(raw)[:100]}")
        return []
    if not isinstance(data, dict):
        logger.warning(f"Unexpected bridge frame: {str(raw)[:100]}")
        return []

    msg_type = data.get("type")

    if msg_type == "messages":
        messages = data.get("messages")
        if not isinstance(messages, list):
            return []
        return [InboundMessage.from_wa_message(m) for m in messages if isinstance(m, dict)]

    if msg_type == "connection":
        return [
            ConnectionUpdate(
                state=str(data.get("connection") or ""),
                status_code=_status_code(data.get("statusCode")),
            )
        ]

    if msg_type == "creds":
        creds = data.get("creds")
        if not isinstance(creds, dict):
            logger.warning("Bridge sent credentials frame without a creds object")
            return []
        return [CredentialsUpdate(credentials=creds)]

    if msg_type == "qr":
        return [QrCode(data=str(data.get("qr") or ""))]

    if msg_type == "error":
        logger.error(f"WhatsApp bridge error: {data.get('error')}")
        return []

    logger.debug(f"Ignoring bridge frame type {msg_type!r}")
    return []


class BridgeTransport(BaseTransport):
    """
    Transport that talks to a Node.js bridge over WebSocket.

    The bridge uses @whiskeysockets/baileys to handle the WhatsApp Web
    protocol, including its own reconnect spacing. Credentials travel as an
    opaque JSON object in both directions.
    """

    def __init__(self, bridge_url: str, token: str = ""):
        self.bridge_url = bridge_url
        self.token = token
        self._ws = None

    async def connect(self, credentials: dict[str, Any] | None) -> None:
        import websockets

        logger.info(f"Connecting to WhatsApp bridge at {self.bridge_url}...")
        try:
            self._ws = await websockets.connect(self.bridge_url)
        except (OSError, websockets.WebSocketException) as e:
            raise TransportUnavailable(f"{self.bridge_url}: {e}") from e

        try:
            if self.token:
                await self._send({"type": "auth", "token": self.token})
                logger.debug("Sent bridge auth token")
            await self._send({"type": "resume", "creds": credentials})
        except (OSError, websockets.WebSocketException) as e:
            await self.close()
            raise TransportUnavailable(f"{self.bridge_url}: dropped during resume: {e}") from e

    async def events(self) -> AsyncIterator[TransportEvent]:
        import websockets

        if self._ws is None:
            return
        try:
            async for raw in self._ws:
                for event in decode_frame(raw):
                    yield event
        except websockets.ConnectionClosed as e:
            logger.warning(f"WhatsApp bridge connection closed: {e}")
        except (OSError, websockets.WebSocketException) as e:
            logger.warning(f"WhatsApp bridge connection error: {e}")

    async def send_text(self, recipient: str, text: str) -> None:
        await self._send({"type": "send", "to": recipient, "text": text})

    async def send_presence(self, recipient: str, state: str) -> None:
        await self._send({"type": "presence", "to": recipient, "state": state})

    async def close(self) -> None:
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()

    async def _send(self, payload: dict[str, Any]) -> None:
        if self._ws is None:
            raise SessionNotConnected("WhatsApp bridge not connected")
        await self._ws.send(json.dumps(payload))

"""Session lifecycle: credentials, connection state and reconnect decisions."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from loguru import logger

from wa_attendant.bus.events import (
    ConnectionUpdate,
    CredentialsUpdate,
    InboundMessage,
    QrCode,
)
from wa_attendant.errors import SessionNotConnected, TransportUnavailable
from wa_attendant.session.base import BaseTransport, CredentialStore

MessageHandler = Callable[[InboundMessage], Awaitable[Any]]
TransportFactory = Callable[[], BaseTransport]


class SessionState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class CloseAction(str, Enum):
    """What to do after the connection closes."""
    RESTART = "restart"
    STOP = "stop"


class SessionOutcome(str, Enum):
    """Why ``SessionManager.run`` returned."""
    STOPPED = "stopped"
    LOGGED_OUT = "logged_out"


def should_reconnect(update: ConnectionUpdate) -> bool:
    """A closed session is rebuilt unless the account was logged out."""
    return update.is_closed and not update.is_logged_out


class SessionManager:
    """
    Owns the transport session and its credentials.

    ``run`` drives the session: it calls ``start``, routes transport events
    to the handlers below, and calls ``start`` again after every close
    except a logout. Reconnects are not capped or spaced here; the bridge
    already spaces its own reconnect attempts.
    """

    def __init__(
        self,
        store: CredentialStore,
        transport_factory: TransportFactory,
        *,
        reconnect_delay: float = 5.0,
    ):
        self.store = store
        self.reconnect_delay = reconnect_delay
        self.credentials: dict[str, Any] | None = None
        self.state = SessionState.DISCONNECTED
        self.start_count = 0
        self._transport_factory = transport_factory
        self._transport: BaseTransport | None = None
        self._message_handler: MessageHandler | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._running = False

    def on_message(self, handler: MessageHandler) -> None:
        """Register the coroutine invoked for every inbound message."""
        self._message_handler = handler

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """
        Establish or resume a session using persisted credentials.

        Raises:
            TransportUnavailable: If the bridge cannot be reached.
        """
        self.credentials = self.store.load()
        if self.credentials is None:
            logger.info("No stored credentials; waiting for QR login")

        transport = self._transport_factory()
        await transport.connect(self.credentials)
        self._transport = transport
        self.start_count += 1

    def handle_credentials_update(self, update: CredentialsUpdate) -> None:
        """Persist new credentials before returning."""
        self.credentials = update.credentials
        self.store.save(update.credentials)

    def handle_connection_update(self, update: ConnectionUpdate) -> CloseAction | None:
        """Track connection state; on close, decide whether to restart."""
        if update.state == "open":
            self.state = SessionState.CONNECTED
            logger.info("WhatsApp connection open")
            return None
        if not update.is_closed:
            logger.debug(f"WhatsApp connection state: {update.state}")
            return None

        self.state = SessionState.DISCONNECTED
        if should_reconnect(update):
            logger.warning(
                f"WhatsApp connection closed (status {update.status_code}); reconnecting..."
            )
            return CloseAction.RESTART

        logger.error(
            "WhatsApp session logged out. Run `wa-attendant logout` and scan a new QR code."
        )
        return CloseAction.STOP

    async def run(self) -> SessionOutcome:
        """Keep a session alive until logout or ``stop``."""
        self._running = True
        try:
            while self._running:
                try:
                    await self.start()
                except TransportUnavailable as e:
                    logger.warning(f"WhatsApp bridge unavailable: {e}")
                    if self._running:
                        logger.info(f"Reconnecting in {self.reconnect_delay:g} seconds...")
                        await asyncio.sleep(self.reconnect_delay)
                    continue

                action = await self._pump()
                if action is CloseAction.STOP:
                    return SessionOutcome.LOGGED_OUT
            return SessionOutcome.STOPPED
        finally:
            self._running = False
            await self._drain_tasks()
            await self._close_transport()

    async def stop(self) -> None:
        """Stop the session loop and close the transport."""
        self._running = False
        await self._close_transport()

    async def send_text(self, recipient: str, text: str) -> None:
        await self._require_transport().send_text(recipient, text)

    async def send_presence(self, recipient: str, state: str) -> None:
        await self._require_transport().send_presence(recipient, state)

    async def _pump(self) -> CloseAction:
        """Route events from the current transport until it closes."""
        transport = self._require_transport()
        async for event in transport.events():
            if isinstance(event, CredentialsUpdate):
                self.handle_credentials_update(event)
            elif isinstance(event, ConnectionUpdate):
                action = self.handle_connection_update(event)
                if action is not None:
                    await self._close_transport()
                    return action
            elif isinstance(event, InboundMessage):
                self._dispatch(event)
            elif isinstance(event, QrCode):
                logger.info("Scan the QR code in the bridge terminal to link WhatsApp")

        # Stream ended without a close event: the bridge socket dropped.
        self.state = SessionState.DISCONNECTED
        await self._close_transport()
        if self._running:
            logger.warning("WhatsApp bridge stream ended; reconnecting...")
        return CloseAction.RESTART

    def _dispatch(self, message: InboundMessage) -> None:
        if self._message_handler is None:
            logger.debug(f"No message handler registered; dropping {message.id}")
            return
        task = asyncio.create_task(self._message_handler(message))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Message handler failed: {exc!r}")

    async def _drain_tasks(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _close_transport(self) -> None:
        if self._transport is not None:
            transport, self._transport = self._transport, None
            await transport.close()

    def _require_transport(self) -> BaseTransport:
        if self._transport is None:
            raise SessionNotConnected("No open WhatsApp session")
        return self._transport

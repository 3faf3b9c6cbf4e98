"""Inbound message pipeline: filter, gate, pace, generate, deliver."""

from __future__ import annotations

import asyncio
import random
from enum import Enum
from typing import Protocol

from loguru import logger

from wa_attendant.bus.events import InboundMessage
from wa_attendant.pipeline.gate import AdmissionGate
from wa_attendant.pipeline.text import extract_text, split_message
from wa_attendant.prompts import APOLOGY_REPLY


class Messenger(Protocol):
    async def send_text(self, recipient: str, text: str) -> None: ...

    async def send_presence(self, recipient: str, state: str) -> None: ...


class ReplyBackend(Protocol):
    async def generate(self, question: str) -> str: ...


class Disposition(str, Enum):
    """Outcome of handling one inbound message."""
    NO_CONTENT = "no_content"
    HISTORICAL = "historical"
    FROM_ME = "from_me"
    GROUP = "group"
    NO_TEXT = "no_text"
    BUSY = "busy"
    REPLIED = "replied"
    FAILED = "failed"


class MessagePipeline:
    """
    Turns eligible inbound messages into paced, chunked replies.

    Filters and admission run before the first await, so two messages from
    one sender dispatched back to back never both reach the backend.
    """

    def __init__(
        self,
        messenger: Messenger,
        backend: ReplyBackend,
        gate: AdmissionGate,
        *,
        history_prefix: str = "BAE5",
        segment_limit: int = 600,
        min_delay: float = 3.0,
        max_delay: float = 7.0,
    ):
        self.messenger = messenger
        self.backend = backend
        self.gate = gate
        self.history_prefix = history_prefix
        self.segment_limit = segment_limit
        self.min_delay = min_delay
        self.max_delay = max_delay

    def screen(self, message: InboundMessage) -> tuple[Disposition | None, str]:
        """Apply the skip filters in order; returns (skip reason, extracted text)."""
        if not message.content:
            return Disposition.NO_CONTENT, ""
        if self.history_prefix and message.id.startswith(self.history_prefix):
            return Disposition.HISTORICAL, ""
        if message.from_me:
            return Disposition.FROM_ME, ""
        if message.is_group:
            return Disposition.GROUP, ""
        text = extract_text(message.content)
        if not text:
            return Disposition.NO_TEXT, ""
        return None, text

    async def handle(self, message: InboundMessage) -> Disposition:
        skip, text = self.screen(message)
        if skip is not None:
            logger.debug(f"Skipping message {message.id} from {message.sender}: {skip.value}")
            return skip

        sender = message.sender
        if not self.gate.try_admit(sender):
            logger.debug(f"Skipping message {message.id}: {sender} already pending")
            return Disposition.BUSY

        try:
            count = await self._reply(sender, text)
            logger.info(f"Replied to {sender} in {count} segment(s)")
            return Disposition.REPLIED
        except Exception as e:
            logger.error(f"Error replying to {sender}: {e!r}")
            await self._apologize(sender)
            return Disposition.FAILED
        finally:
            self.gate.release(sender)

    def pacing_delay(self) -> float:
        return random.uniform(self.min_delay, self.max_delay)

    async def _reply(self, sender: str, text: str) -> int:
        await asyncio.sleep(self.pacing_delay())
        await self.messenger.send_presence(sender, "composing")

        reply = await self.backend.generate(text)
        segments = split_message(reply, self.segment_limit)
        for segment in segments:
            await self.messenger.send_text(sender, segment)
        return len(segments)

    async def _apologize(self, sender: str) -> None:
        try:
            await self.messenger.send_text(sender, APOLOGY_REPLY)
        except Exception as e:
            logger.error(f"Could not send apology to {sender}: {e!r}")

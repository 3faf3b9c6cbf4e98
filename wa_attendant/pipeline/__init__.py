"""Inbound message pipeline."""

from wa_attendant.pipeline.gate import AdmissionGate
from wa_attendant.pipeline.responder import Disposition, MessagePipeline
from wa_attendant.pipeline.text import extract_text, normalize_reply, split_message

__all__ = [
    "AdmissionGate",
    "Disposition",
    "MessagePipeline",
    "extract_text",
    "normalize_reply",
    "split_message",
]

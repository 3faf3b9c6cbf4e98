"""Transport session lifecycle."""

from wa_attendant.session.base import BaseTransport, CredentialStore
from wa_attendant.session.bridge import BridgeTransport
from wa_attendant.session.manager import SessionManager, SessionOutcome, should_reconnect
from wa_attendant.session.store import FileCredentialStore

__all__ = [
    "BaseTransport",
    "BridgeTransport",
    "CredentialStore",
    "FileCredentialStore",
    "SessionManager",
    "SessionOutcome",
    "should_reconnect",
]

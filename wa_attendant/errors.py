"""Exception types raised across wa-attendant."""


class AttendantError(Exception):
    """Base class for wa-attendant errors."""


class ConfigError(AttendantError):
    """Raised when configuration is missing or invalid at startup."""

    def __init__(self, cause: str, fix: str | None = None):
        super().__init__(cause)
        self.cause = cause
        self.fix = fix


class SessionNotConnected(AttendantError):
    """Raised when a command is issued without an open transport session."""


class TransportUnavailable(AttendantError):
    """Raised when the transport cannot be reached at all."""

"""wa-attendant - WhatsApp auto-responder backed by Gemini."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wa-attendant")
except PackageNotFoundError:
    __version__ = "0.1.0"

__logo__ = "💬"
__brand__ = "wa-attendant"

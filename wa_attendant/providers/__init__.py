"""Reply generation backends."""

from wa_attendant.providers.gemini import GeminiClient

__all__ = ["GeminiClient"]

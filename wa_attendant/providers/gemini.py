"""Reply generation using the Gemini generateContent API."""

from typing import Any

import httpx
from loguru import logger

from wa_attendant.pipeline.text import normalize_reply
from wa_attendant.prompts import FALLBACK_REPLY, SYSTEM_PROMPT, USER_LABEL


class GenerationError(Exception):
    """Raised internally when a Gemini response carries no usable text."""

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


def _first_text(data: Any) -> str:
    """Pull ``candidates[0].content.parts[0].text`` out of a response body."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise GenerationError("Gemini response has no candidate text", data) from e
    if not isinstance(text, str) or not text.strip():
        raise GenerationError("Gemini response has empty candidate text", data)
    return text


class GeminiClient:
    """
    Single-shot reply generator.

    Every call sends the fixed system prompt followed by the user's text as
    one user turn. Failures never propagate: callers always get a string.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-pro",
        api_base: str = "https://generativelanguage.googleapis.com/v1",
        timeout: float = 15.0,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = f"{api_base.rstrip('/')}/models/{model}:generateContent"
        self.timeout = timeout
        self.system_prompt = system_prompt

    def build_payload(self, question: str) -> dict[str, Any]:
        prompt = f"{self.system_prompt}\n{USER_LABEL}{question}"
        return {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}

    async def generate(self, question: str) -> str:
        """
        Generate a reply for ``question``.

        Args:
            question: Text sent by the user.

        Returns:
            Normalized reply text, or the fallback reply on any failure.
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.api_url,
                    params={"key": self.api_key},
                    json=self.build_payload(question),
                    timeout=self.timeout,
                )
                response.raise_for_status()
                return normalize_reply(_first_text(response.json()))

        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini error {e.response.status_code}: {_response_detail(e.response)}")
        except GenerationError as e:
            logger.error(f"Gemini error: {e}: {e.payload}")
        except Exception as e:
            logger.error(f"Gemini request failed: {type(e).__name__}: {e}")
        return FALLBACK_REPLY


def _response_detail(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text

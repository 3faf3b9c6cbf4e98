import asyncio

import httpx

from wa_attendant.prompts import FALLBACK_REPLY, SYSTEM_PROMPT
from wa_attendant.providers.gemini import GeminiClient

API_URL = "https://generativelanguage.googleapis.com/v1/models/gemini-pro:generateContent"


def _response(status_code: int, payload=None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("POST", API_URL)
    if text is not None:
        return httpx.Response(status_code, text=text, request=request)
    return httpx.Response(status_code, json=payload, request=request)


class _DummyClient:
    def __init__(self, captured: dict, result):
        self.captured = captured
        self.result = result

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url: str, params: dict, json: dict, timeout: float):
        self.captured["url"] = url
        self.captured["params"] = params
        self.captured["json"] = json
        self.captured["timeout"] = timeout
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _patch_client(monkeypatch, result) -> dict:
    captured: dict[str, object] = {}
    monkeypatch.setattr(
        "wa_attendant.providers.gemini.httpx.AsyncClient",
        lambda: _DummyClient(captured, result),
    )
    return captured


def _candidate(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


def test_generate_builds_request_and_normalizes_reply(monkeypatch):
    captured = _patch_client(
        monkeypatch, _response(200, _candidate("  Olá!\n\n\nComo posso ajudar?  \n"))
    )

    client = GeminiClient(api_key="gm-test")
    reply = asyncio.run(client.generate("Oi"))

    assert reply == "Olá!\nComo posso ajudar?"
    assert captured["url"] == API_URL
    assert captured["params"] == {"key": "gm-test"}
    assert captured["timeout"] == 15.0
    assert captured["json"] == {
        "contents": [{"role": "user", "parts": [{"text": f"{SYSTEM_PROMPT}\nUsuário: Oi"}]}]
    }


def test_generate_uses_configured_model_and_base(monkeypatch):
    captured = _patch_client(monkeypatch, _response(200, _candidate("ok")))

    client = GeminiClient(
        api_key="k",
        model="gemini-1.5-flash",
        api_base="https://proxy.local/v1beta/",
        timeout=3.0,
        system_prompt="Seja breve.",
    )
    assert asyncio.run(client.generate("teste")) == "ok"
    assert captured["url"] == "https://proxy.local/v1beta/models/gemini-1.5-flash:generateContent"
    assert captured["timeout"] == 3.0
    assert captured["json"]["contents"][0]["parts"][0]["text"] == "Seja breve.\nUsuário: teste"


def test_generate_returns_fallback_on_timeout(monkeypatch):
    _patch_client(monkeypatch, httpx.ReadTimeout("timed out"))

    reply = asyncio.run(GeminiClient(api_key="k").generate("Oi"))

    assert reply == FALLBACK_REPLY


def test_generate_returns_fallback_on_network_error(monkeypatch):
    _patch_client(monkeypatch, httpx.ConnectError("connection refused"))

    assert asyncio.run(GeminiClient(api_key="k").generate("Oi")) == FALLBACK_REPLY


def test_generate_returns_fallback_on_server_error(monkeypatch):
    _patch_client(
        monkeypatch,
        _response(500, {"error": {"code": 500, "message": "Internal error", "status": "INTERNAL"}}),
    )

    assert asyncio.run(GeminiClient(api_key="k").generate("Oi")) == FALLBACK_REPLY


def test_generate_logs_backend_payload_on_error(monkeypatch):
    from loguru import logger

    _patch_client(monkeypatch, _response(503, {"error": {"message": "overloaded"}}))
    messages: list[str] = []
    sink_id = logger.add(lambda m: messages.append(str(m)), level="ERROR")
    try:
        asyncio.run(GeminiClient(api_key="k").generate("Oi"))
    finally:
        logger.remove(sink_id)

    assert any("503" in m and "overloaded" in m for m in messages)


def test_generate_returns_fallback_on_malformed_body(monkeypatch):
    for result in (
        _response(200, {}),
        _response(200, {"candidates": []}),
        _response(200, {"candidates": [{"content": {"parts": [{"text": "   "}]}}]}),
        _response(200, text="<html>not json</html>"),
    ):
        _patch_client(monkeypatch, result)
        assert asyncio.run(GeminiClient(api_key="k").generate("Oi")) == FALLBACK_REPLY

import asyncio
from typing import Any

import pytest

from wa_attendant.bus.events import (
    ConnectionUpdate,
    CredentialsUpdate,
    DisconnectReason,
    InboundMessage,
    QrCode,
)
from wa_attendant.errors import SessionNotConnected, TransportUnavailable
from wa_attendant.session.base import BaseTransport, CredentialStore
from wa_attendant.session.manager import (
    CloseAction,
    SessionManager,
    SessionOutcome,
    SessionState,
    should_reconnect,
)

_real_sleep = asyncio.sleep


class _MemoryStore(CredentialStore):
    def __init__(self, initial: dict[str, Any] | None = None):
        self.data = initial
        self.saved: list[dict[str, Any]] = []

    def load(self) -> dict[str, Any] | None:
        return self.data

    def save(self, credentials: dict[str, Any]) -> None:
        self.saved.append(credentials)
        self.data = credentials

    def clear(self) -> bool:
        removed = self.data is not None
        self.data = None
        return removed


class _FakeTransport(BaseTransport):
    def __init__(self, events: list[Any] | None = None, *, fail_connect: bool = False, block: bool = False):
        self._events = events or []
        self.fail_connect = fail_connect
        self.block = block
        self.connected_with: list[dict[str, Any] | None] = []
        self.sent: list[tuple[str, str, str]] = []
        self.closed = False
        self._closed_event = asyncio.Event()

    async def connect(self, credentials: dict[str, Any] | None) -> None:
        if self.fail_connect:
            raise TransportUnavailable("bridge unavailable")
        self.connected_with.append(credentials)

    async def events(self):
        for event in self._events:
            if self.closed:
                return
            yield event
        if self.block:
            await self._closed_event.wait()

    async def send_text(self, recipient: str, text: str) -> None:
        self.sent.append(("text", recipient, text))

    async def send_presence(self, recipient: str, state: str) -> None:
        self.sent.append(("presence", recipient, state))

    async def close(self) -> None:
        self.closed = True
        self._closed_event.set()


class _Factory:
    def __init__(self, transports: list[_FakeTransport]):
        self.transports = transports
        self.calls = 0

    def __call__(self) -> _FakeTransport:
        if self.calls >= len(self.transports):
            raise AssertionError("unexpected reconnect")
        transport = self.transports[self.calls]
        self.calls += 1
        return transport


def _close(status_code: int | None) -> ConnectionUpdate:
    return ConnectionUpdate(state="close", status_code=status_code)


def test_should_reconnect_only_for_non_logout_close():
    assert should_reconnect(_close(DisconnectReason.CONNECTION_LOST))
    assert should_reconnect(_close(DisconnectReason.RESTART_REQUIRED))
    assert should_reconnect(_close(None))
    assert not should_reconnect(_close(DisconnectReason.LOGGED_OUT))
    assert not should_reconnect(ConnectionUpdate(state="open"))


def test_logged_out_close_stops_without_reauthenticating():
    transport = _FakeTransport([ConnectionUpdate(state="open"), _close(401)])
    factory = _Factory([transport])
    manager = SessionManager(_MemoryStore({"me": "bot"}), factory)

    outcome = asyncio.run(manager.run())

    assert outcome is SessionOutcome.LOGGED_OUT
    assert factory.calls == 1
    assert manager.start_count == 1
    assert transport.closed
    assert manager.state is SessionState.DISCONNECTED
    assert not manager.is_running


def test_transient_close_restarts_session_with_stored_credentials():
    first = _FakeTransport([ConnectionUpdate(state="open"), _close(DisconnectReason.CONNECTION_CLOSED)])
    second = _FakeTransport([ConnectionUpdate(state="open"), _close(DisconnectReason.LOGGED_OUT)])
    factory = _Factory([first, second])
    manager = SessionManager(_MemoryStore({"me": "bot"}), factory)

    outcome = asyncio.run(manager.run())

    assert outcome is SessionOutcome.LOGGED_OUT
    assert factory.calls == 2
    assert first.closed and second.closed
    assert first.connected_with == [{"me": "bot"}]
    assert second.connected_with == [{"me": "bot"}]


def test_close_without_cause_and_dropped_stream_both_restart():
    transports = [
        _FakeTransport([_close(None)]),
        _FakeTransport([ConnectionUpdate(state="open")]),  # stream ends with no close event
        _FakeTransport([_close(401)]),
    ]
    factory = _Factory(transports)
    manager = SessionManager(_MemoryStore(), factory)

    assert asyncio.run(manager.run()) is SessionOutcome.LOGGED_OUT
    assert factory.calls == 3
    assert transports[0].connected_with == [None]


def test_credentials_update_is_persisted_before_handler_returns():
    store = _MemoryStore()
    manager = SessionManager(store, _Factory([]))

    manager.handle_credentials_update(CredentialsUpdate(credentials={"noiseKey": "abc"}))

    assert store.saved == [{"noiseKey": "abc"}]
    assert manager.credentials == {"noiseKey": "abc"}


def test_updated_credentials_are_used_on_reconnect():
    store = _MemoryStore()
    first = _FakeTransport(
        [
            QrCode(data="2@abc"),
            CredentialsUpdate(credentials={"me": "5511@s.whatsapp.net", "v": 1}),
            CredentialsUpdate(credentials={"me": "5511@s.whatsapp.net", "v": 2}),
            _close(DisconnectReason.RESTART_REQUIRED),
        ]
    )
    second = _FakeTransport([_close(DisconnectReason.LOGGED_OUT)])
    manager = SessionManager(store, _Factory([first, second]))

    asyncio.run(manager.run())

    assert [c["v"] for c in store.saved] == [1, 2]
    assert first.connected_with == [None]
    assert second.connected_with == [{"me": "5511@s.whatsapp.net", "v": 2}]


def test_unreachable_bridge_waits_before_retrying(monkeypatch):
    sleep_calls: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleep_calls.append(seconds)
        await _real_sleep(0)

    monkeypatch.setattr("wa_attendant.session.manager.asyncio.sleep", fake_sleep)

    factory = _Factory([_FakeTransport(fail_connect=True), _FakeTransport([_close(401)])])
    manager = SessionManager(_MemoryStore(), factory, reconnect_delay=5.0)

    assert asyncio.run(manager.run()) is SessionOutcome.LOGGED_OUT
    assert factory.calls == 2
    assert sleep_calls == [5.0]
    assert manager.start_count == 1


def test_inbound_messages_are_dispatched_to_handler():
    message = InboundMessage(id="M1", sender="a@s.whatsapp.net", content={"conversation": "Oi"})
    transport = _FakeTransport([message, _close(401)])
    manager = SessionManager(_MemoryStore(), _Factory([transport]))
    handled: list[InboundMessage] = []

    async def handler(msg: InboundMessage) -> None:
        handled.append(msg)

    manager.on_message(handler)
    asyncio.run(manager.run())

    assert handled == [message]


def test_handler_can_send_through_current_session():
    message = InboundMessage(id="M1", sender="a@s.whatsapp.net", content={"conversation": "Oi"})
    transport = _FakeTransport([message], block=True)
    manager = SessionManager(_MemoryStore(), _Factory([transport]))
    done = asyncio.Event()

    async def handler(msg: InboundMessage) -> None:
        await manager.send_presence(msg.sender, "composing")
        await manager.send_text(msg.sender, "Olá")
        done.set()

    manager.on_message(handler)

    async def run_case() -> SessionOutcome:
        task = asyncio.create_task(manager.run())
        await asyncio.wait_for(done.wait(), timeout=1.0)
        await manager.stop()
        return await asyncio.wait_for(task, timeout=1.0)

    assert asyncio.run(run_case()) is SessionOutcome.STOPPED
    assert transport.sent == [
        ("presence", "a@s.whatsapp.net", "composing"),
        ("text", "a@s.whatsapp.net", "Olá"),
    ]
    assert transport.closed


def test_failing_handler_does_not_stop_session():
    messages = [
        InboundMessage(id=f"M{i}", sender="a@s.whatsapp.net", content={"conversation": "Oi"})
        for i in range(2)
    ]
    transport = _FakeTransport([*messages, _close(401)])
    manager = SessionManager(_MemoryStore(), _Factory([transport]))
    seen: list[str] = []

    async def handler(msg: InboundMessage) -> None:
        seen.append(msg.id)
        raise RuntimeError("boom")

    manager.on_message(handler)

    assert asyncio.run(manager.run()) is SessionOutcome.LOGGED_OUT
    assert seen == ["M0", "M1"]


def test_commands_without_session_raise():
    manager = SessionManager(_MemoryStore(), _Factory([]))

    with pytest.raises(SessionNotConnected):
        asyncio.run(manager.send_text("a@s.whatsapp.net", "Oi"))


def test_connection_update_decisions():
    manager = SessionManager(_MemoryStore(), _Factory([]))

    assert manager.handle_connection_update(ConnectionUpdate(state="connecting")) is None
    assert manager.handle_connection_update(ConnectionUpdate(state="open")) is None
    assert manager.state is SessionState.CONNECTED
    assert manager.handle_connection_update(_close(408)) is CloseAction.RESTART
    assert manager.state is SessionState.DISCONNECTED
    assert manager.handle_connection_update(_close(401)) is CloseAction.STOP

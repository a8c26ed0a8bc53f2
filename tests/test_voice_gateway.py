# tests/test_voice_gateway.py
import asyncio
from types import SimpleNamespace

import pytest

from salescrew.config import Settings
from salescrew.exceptions import MissingCredentialsError
from salescrew.services.voice_gateway import OpenAIRealtimeGateway, OpenAIRealtimeHandle, VoiceCallbacks
from salescrew.utils.audio import encode_frame


class FakeConnection:
    """Async-iterable stand-in for a realtime connection."""

    def __init__(self, events, fail: Exception = None):
        self.events = events
        self.fail = fail
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for event in self.events:
            yield event
        if self.fail is not None:
            raise self.fail

    async def close(self):
        self.closed = True


def recording_callbacks(log):
    return VoiceCallbacks(
        on_audio=lambda pcm: log.append(("audio", pcm)),
        on_input_transcript=lambda text: log.append(("user", text)),
        on_output_transcript=lambda text: log.append(("ai", text)),
        on_turn_complete=lambda: log.append(("done",)),
        on_error=lambda e: log.append(("error", str(e))),
        on_close=lambda: log.append(("close",)),
    )


def test_events_dispatch_to_callbacks() -> None:
    events = [
        SimpleNamespace(type="session.created"),
        SimpleNamespace(type="response.audio.delta", delta=encode_frame(b"\x01\x00")),
        SimpleNamespace(type="response.audio_transcript.delta", delta="Hello"),
        SimpleNamespace(type="conversation.item.input_audio_transcription.completed", transcript="Hi"),
        SimpleNamespace(type="response.done"),
    ]
    log = []

    async def scenario():
        handle = OpenAIRealtimeHandle(FakeConnection(events), recording_callbacks(log))
        handle.start_reader()
        await handle._reader

    asyncio.run(scenario())

    assert log == [("audio", b"\x01\x00"), ("ai", "Hello"), ("user", "Hi"), ("done",), ("close",)]


def test_remote_error_event_and_broken_stream() -> None:
    events = [SimpleNamespace(type="error", error=SimpleNamespace(message="invalid audio"))]
    log = []

    async def scenario():
        handle = OpenAIRealtimeHandle(FakeConnection(events, fail=ConnectionError("dropped")), recording_callbacks(log))
        handle.start_reader()
        await handle._reader

    asyncio.run(scenario())

    assert log == [("error", "invalid audio"), ("error", "dropped")]


def test_local_close_is_silent() -> None:
    log = []

    async def scenario():
        connection = FakeConnection([])
        handle = OpenAIRealtimeHandle(connection, recording_callbacks(log))
        await handle.close()
        assert connection.closed

    asyncio.run(scenario())
    assert log == []


def test_session_config_push_to_talk() -> None:
    gateway = OpenAIRealtimeGateway("sk-test", server_vad=False)
    config = gateway.session_config("be Jane")

    assert config["instructions"] == "be Jane"
    assert config["input_audio_format"] == config["output_audio_format"] == "pcm16"
    assert config["turn_detection"] is None
    assert OpenAIRealtimeGateway("sk-test").session_config("x")["turn_detection"] == {"type": "server_vad"}


def test_gateway_requires_openai_key() -> None:
    with pytest.raises(MissingCredentialsError):
        OpenAIRealtimeGateway.from_settings(Settings())


class FakeSetupConnection(FakeConnection):
    """Connection whose session.update call fails."""

    def __init__(self, fail: Exception):
        super().__init__([])
        self.session = SimpleNamespace(update=self._update)
        self.setup_error = fail

    async def _update(self, session):
        raise self.setup_error


class FakeRealtimeClient:
    def __init__(self, connection):
        self.connection = connection
        self.closed = False
        self.beta = SimpleNamespace(realtime=SimpleNamespace(connect=self._connect))

    def _connect(self, model):
        return SimpleNamespace(enter=self._enter)

    async def _enter(self):
        return self.connection

    async def close(self):
        self.closed = True


class FakeClientGateway(OpenAIRealtimeGateway):
    def __init__(self, client):
        super().__init__("sk-test")
        self.client = client

    def _make_client(self):
        return self.client


def test_setup_failure_closes_connection_and_client() -> None:
    connection = FakeSetupConnection(ConnectionError("bad session config"))
    client = FakeRealtimeClient(connection)
    log = []

    with pytest.raises(RuntimeError, match="bad session config"):
        asyncio.run(FakeClientGateway(client).open_voice_session("be Jane", recording_callbacks(log)))

    assert connection.closed
    assert client.closed
    assert log == []


def test_handle_close_releases_client() -> None:
    async def scenario():
        connection = FakeConnection([])
        client = FakeRealtimeClient(connection)
        handle = OpenAIRealtimeHandle(connection, recording_callbacks([]), client=client)
        await handle.close()
        return connection, client

    connection, client = asyncio.run(scenario())

    assert connection.closed
    assert client.closed

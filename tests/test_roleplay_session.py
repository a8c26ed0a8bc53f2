# tests/test_roleplay_session.py
import asyncio
from typing import List, Optional

import numpy as np
import pytest

from salescrew.agents.coach_agent import CoachAgent
from salescrew.agents.roleplay_agent import RolePlaySession, submit_recording
from salescrew.models.roleplay import SessionState
from salescrew.services.llm_gateway import MOCK_FEEDBACK, MockLLMGateway
from salescrew.services.voice_gateway import VoiceCallbacks, VoiceGateway, VoiceSessionHandle
from salescrew.utils.audio import FRAME_SIZE, BufferedAudioBackend, PlaybackScheduler, float_to_pcm16


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeHandle(VoiceSessionHandle):
    """Answers every finished user turn with a canned prospect reply."""

    def __init__(self, callbacks: VoiceCallbacks, user_text: str = "Hi Jane", reply: str = "Not interested."):
        self.callbacks = callbacks
        self.user_text = user_text
        self.reply = reply
        self.sent: List[bytes] = []
        self.closed = False

    async def send_audio(self, pcm: bytes) -> None:
        self.sent.append(pcm)

    async def end_user_turn(self) -> None:
        self.callbacks.emit("on_input_transcript", self.user_text)
        for word in self.reply.split(" "):
            self.callbacks.emit("on_output_transcript", word + " ")
        self.callbacks.emit("on_audio", float_to_pcm16(np.zeros(2400)))
        self.callbacks.emit("on_turn_complete")

    async def close(self) -> None:
        self.closed = True


class FakeVoiceGateway(VoiceGateway):
    input_sample_rate = 16000
    output_sample_rate = 24000

    def __init__(self, fail: Optional[Exception] = None):
        self.fail = fail
        self.instruction: Optional[str] = None
        self.handle: Optional[FakeHandle] = None

    async def open_voice_session(self, system_instruction, callbacks):
        if self.fail is not None:
            raise self.fail
        self.instruction = system_instruction
        self.handle = FakeHandle(callbacks)
        callbacks.emit("on_open")
        return self.handle


class BrokenBackend(BufferedAudioBackend):
    def stop_capture(self) -> None:
        raise RuntimeError("microphone already gone")


def make_session(lead, backend=None, gateway=None, coach_gateway=None, clock=None):
    clock = clock or FakeClock()
    gateway = gateway or FakeVoiceGateway()
    coach_gateway = coach_gateway or MockLLMGateway()
    session = RolePlaySession(
        gateway,
        backend or BufferedAudioBackend(),
        CoachAgent(coach_gateway),
        lead,
        scheduler=PlaybackScheduler(24000, clock=clock),
        clock=clock,
    )
    return session, gateway, coach_gateway


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def test_start_opens_session_and_captures(company_factory) -> None:
    async def scenario():
        session, gateway, _ = make_session(company_factory())

        assert await session.start()
        assert session.state == SessionState.ACTIVE
        assert session.audio.capturing
        assert "AI Digital Twin of Jane Doe" in gateway.instruction
        assert not await session.start()
        await session.teardown()

    asyncio.run(scenario())


def test_turn_then_user_stop_produces_feedback(company_factory) -> None:
    async def scenario():
        session, gateway, coach_gateway = make_session(company_factory())
        await session.start()

        replied = await submit_recording(session, session.audio, np.zeros(FRAME_SIZE * 2), 16000)

        assert replied
        assert len(gateway.handle.sent) == 2
        assert [(e.speaker, e.text) for e in session.transcript.entries] == [
            ("user", "Hi Jane"),
            ("ai", "Not interested."),
        ]

        feedback = await session.stop()

        assert feedback == MOCK_FEEDBACK
        assert coach_gateway.call_count == 1
        assert session.state == SessionState.IDLE
        assert gateway.handle.closed
        assert not session.audio.capturing
        assert not session.audio.input_open
        assert not session.audio.output_open
        with pytest.raises(RuntimeError):
            session.transcript.append("user", "too late")

    asyncio.run(scenario())


def test_user_stop_with_empty_transcript_skips_feedback(company_factory) -> None:
    async def scenario():
        session, _, coach_gateway = make_session(company_factory())
        await session.start()

        assert await session.stop() is None
        assert coach_gateway.call_count == 0
        assert session.state == SessionState.IDLE

    asyncio.run(scenario())


def test_remote_close_ends_without_feedback(company_factory) -> None:
    async def scenario():
        session, gateway, coach_gateway = make_session(company_factory())
        await session.start()
        await submit_recording(session, session.audio, np.zeros(FRAME_SIZE), 16000)

        gateway.handle.callbacks.emit("on_close")
        await settle()

        assert session.state == SessionState.IDLE
        assert session.feedback is None
        assert coach_gateway.call_count == 0
        assert gateway.handle.closed

    asyncio.run(scenario())


def test_remote_error_is_recorded(company_factory) -> None:
    async def scenario():
        session, gateway, _ = make_session(company_factory())
        await session.start()

        gateway.handle.callbacks.emit("on_error", RuntimeError("socket reset"))
        await settle()

        assert session.state == SessionState.IDLE
        assert str(session.last_error) == "socket reset"

    asyncio.run(scenario())


def test_teardown_never_generates_feedback(company_factory) -> None:
    async def scenario():
        session, gateway, coach_gateway = make_session(company_factory())
        await session.start()
        await submit_recording(session, session.audio, np.zeros(FRAME_SIZE), 16000)

        await session.teardown()

        assert session.state == SessionState.IDLE
        assert session.feedback is None
        assert coach_gateway.call_count == 0
        assert gateway.handle.closed
        # Idle sessions tear down quietly
        await session.teardown()

    asyncio.run(scenario())


class SlowCoachGateway:
    """Feedback gateway that answers only once released."""

    def __init__(self):
        self.started: Optional[asyncio.Event] = None
        self.release: Optional[asyncio.Event] = None

    async def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.started.set()
        await self.release.wait()
        return "late feedback"


def test_teardown_during_feedback_discards_late_result(company_factory) -> None:
    async def scenario():
        coach_gateway = SlowCoachGateway()
        coach_gateway.started = asyncio.Event()
        coach_gateway.release = asyncio.Event()
        session, _, _ = make_session(company_factory(), coach_gateway=coach_gateway)
        await session.start()
        await submit_recording(session, session.audio, np.zeros(FRAME_SIZE), 16000)

        stopping = asyncio.ensure_future(session.stop(user_initiated=True))
        await coach_gateway.started.wait()
        assert session.state == SessionState.FEEDBACK_PENDING

        await session.teardown()
        assert session.state == SessionState.IDLE

        coach_gateway.release.set()
        assert await stopping is None
        assert session.feedback is None
        assert session.state == SessionState.IDLE

    asyncio.run(scenario())


def test_release_continues_past_failing_step(company_factory) -> None:
    async def scenario():
        session, gateway, _ = make_session(company_factory(), backend=BrokenBackend())
        await session.start()

        await session.stop()

        assert session.state == SessionState.IDLE
        assert not session.audio.input_open
        assert not session.audio.output_open
        assert gateway.handle.closed

    asyncio.run(scenario())


def test_open_failure_returns_to_idle(company_factory) -> None:
    async def scenario():
        gateway = FakeVoiceGateway(fail=RuntimeError("no network"))
        session, _, _ = make_session(company_factory(), gateway=gateway)

        with pytest.raises(RuntimeError):
            await session.start()
        assert session.state == SessionState.IDLE
        assert str(session.last_error) == "no network"
        # A fresh attempt is allowed afterwards
        gateway.fail = None
        assert await session.start()
        await session.teardown()

    asyncio.run(scenario())


def test_playback_is_scheduled_back_to_back(company_factory) -> None:
    async def scenario():
        clock = FakeClock(100.0)
        session, gateway, _ = make_session(company_factory(), clock=clock)
        await session.start()
        clip = float_to_pcm16(np.zeros(2400))

        gateway.handle.callbacks.emit("on_audio", clip)
        gateway.handle.callbacks.emit("on_audio", clip)

        starts = [start for start, _ in session.audio.playback]
        assert starts == pytest.approx([100.0, 100.1])
        assert session.is_ai_speaking
        clock.now = 100.3
        assert not session.is_ai_speaking
        await session.teardown()
        assert session.audio.playback == []

    asyncio.run(scenario())


def test_duration_uses_session_clock(company_factory) -> None:
    async def scenario():
        clock = FakeClock(10.0)
        session, _, _ = make_session(company_factory(), clock=clock)
        await session.start()
        clock.now = 75.0
        await session.stop()
        clock.now = 500.0
        assert session.duration_seconds == 65

    asyncio.run(scenario())


def test_submit_recording_ignored_when_idle(company_factory) -> None:
    async def scenario():
        session, _, _ = make_session(company_factory())
        assert not await submit_recording(session, session.audio, np.zeros(FRAME_SIZE), 16000)

    asyncio.run(scenario())

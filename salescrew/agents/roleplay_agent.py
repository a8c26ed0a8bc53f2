"""Role-play session - a voice call against an AI twin of a CRM contact."""

import asyncio
import logging
import time
from typing import Callable, List, Optional

import numpy as np

from ..models.leads import Company, UserCriteria
from ..models.roleplay import SessionState, Speaker, Transcript
from ..prompts.builder import build_persona_instruction
from ..services.voice_gateway import VoiceCallbacks, VoiceGateway, VoiceSessionHandle
from ..utils.audio import AudioBackend, BufferedAudioBackend, PlaybackScheduler, pcm16_to_float
from .coach_agent import CoachAgent

logger = logging.getLogger(__name__)


class RolePlaySession:
    """
    State machine for one practice call.

    Idle -> Active on start. Any stop moves through Ending, which releases
    every audio resource, back to Idle. A user-initiated stop with a
    non-empty transcript passes through FeedbackPending first. Teardown
    always ends without feedback.
    """

    def __init__(
        self,
        voice_gateway: VoiceGateway,
        audio_backend: AudioBackend,
        coach: CoachAgent,
        lead: Company,
        criteria: Optional[UserCriteria] = None,
        scheduler: Optional[PlaybackScheduler] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.voice_gateway = voice_gateway
        self.audio = audio_backend
        self.coach = coach
        self.lead = lead
        self.criteria = criteria
        self.scheduler = scheduler or PlaybackScheduler(voice_gateway.output_sample_rate)
        self.clock = clock

        self.state = SessionState.IDLE
        self.transcript = Transcript()
        self.feedback: Optional[str] = None
        self.last_error: Optional[Exception] = None

        self._handle: Optional[VoiceSessionHandle] = None
        self._outgoing: Optional[asyncio.Queue] = None
        self._sender: Optional[asyncio.Task] = None
        self._pending_stop: Optional[asyncio.Task] = None
        self._teardowns = 0
        self._turn_done: Optional[asyncio.Event] = None
        self._input_buffer: List[str] = []
        self._output_buffer: List[str] = []
        self._started_at: Optional[float] = None
        self._ended_at: Optional[float] = None

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def is_ai_speaking(self) -> bool:
        return self.is_active and self.scheduler.next_start_time > self.clock()

    @property
    def duration_seconds(self) -> int:
        if self._started_at is None:
            return 0
        end = self._ended_at if self._ended_at is not None else self.clock()
        return int(end - self._started_at)

    async def start(self) -> bool:
        """
        Open the voice session and start capturing audio.

        Returns:
            False when a session is already running
        """
        if self.state != SessionState.IDLE:
            return False

        self.transcript = Transcript()
        self.feedback = None
        self.last_error = None
        self._input_buffer = []
        self._output_buffer = []
        self.scheduler.reset()
        self._outgoing = asyncio.Queue()
        self._turn_done = asyncio.Event()
        self._started_at = self.clock()
        self._ended_at = None
        self.state = SessionState.ACTIVE

        instruction = build_persona_instruction(self.lead, self.criteria)
        callbacks = VoiceCallbacks(
            on_open=self._on_open,
            on_audio=self._on_audio,
            on_input_transcript=self._on_input_transcript,
            on_output_transcript=self._on_output_transcript,
            on_turn_complete=self._on_turn_complete,
            on_error=self._on_remote_error,
            on_close=self._on_remote_close,
        )

        logger.info(f"[RolePlay] Starting session with {self.lead.contact.name} ({self.lead.company_name})")
        try:
            self._handle = await self.voice_gateway.open_voice_session(instruction, callbacks)
        except Exception as e:
            logger.error(f"[RolePlay] Could not open voice session: {e}")
            self.last_error = e
            await self.stop(user_initiated=False)
            raise

        self._sender = asyncio.create_task(self._send_frames())
        return True

    async def stop(self, user_initiated: bool = True) -> Optional[str]:
        """
        End the session.

        Feedback is generated only for a user-initiated stop with something
        in the transcript.

        Returns:
            Feedback text, or None when none was generated
        """
        if self.state != SessionState.ACTIVE:
            return self.feedback

        self.state = SessionState.ENDING
        self._ended_at = self.clock()
        await self._release_resources()
        self.transcript.close()

        if user_initiated and self.transcript:
            self.state = SessionState.FEEDBACK_PENDING
            teardowns = self._teardowns
            feedback = await self.coach.execute(self.transcript.entries, self.criteria, self.lead)
            if teardowns != self._teardowns:
                logger.info("[RolePlay] Session torn down while feedback was pending; discarding it")
                return None
            self.feedback = feedback

        self.state = SessionState.IDLE
        logger.info(f"[RolePlay] Session ended after {self.duration_seconds}s, {len(self.transcript)} turns")
        return self.feedback

    async def teardown(self) -> None:
        """Unconditional end without feedback, whatever the current state."""
        if self.state == SessionState.IDLE and self._handle is None:
            return
        self._teardowns += 1
        self.feedback = None
        self.state = SessionState.ENDING
        if self._ended_at is None:
            self._ended_at = self.clock()
        await self._release_resources()
        self.transcript.close()
        self.state = SessionState.IDLE

    async def end_user_turn(self, timeout: Optional[float] = 30.0) -> bool:
        """
        Finish the user's turn and wait for the prospect's reply.

        Returns:
            True when the reply completed before the timeout
        """
        if not self.is_active or self._handle is None:
            return False
        await self._outgoing.join()
        self._turn_done.clear()
        await self._handle.end_user_turn()
        return await self.wait_for_turn(timeout)

    async def wait_for_turn(self, timeout: Optional[float] = 30.0) -> bool:
        if self._turn_done is None:
            return False
        try:
            await asyncio.wait_for(self._turn_done.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # Resource release

    async def _release_resources(self) -> None:
        """Release everything; each step is guarded so one failure cannot block the rest."""
        steps = [
            ("microphone stream", self.audio.stop_capture),
            ("frame processor", self.audio.disconnect_processor),
            ("input audio context", self.audio.close_input),
            ("output audio context", self.audio.close_output),
            ("queued playback", self.audio.stop_playback),
        ]
        for name, release in steps:
            try:
                release()
            except Exception as e:
                logger.warning(f"[RolePlay] Failed to release {name}: {e}")

        if self._sender is not None and self._sender is not asyncio.current_task():
            self._sender.cancel()
        self._sender = None

        handle, self._handle = self._handle, None
        if handle is not None:
            try:
                await handle.close()
            except Exception as e:
                logger.warning(f"[RolePlay] Failed to close voice session: {e}")

        self.scheduler.reset()
        if self._turn_done is not None:
            self._turn_done.set()

    # Outgoing audio

    def _enqueue_frame(self, pcm: bytes) -> None:
        if self.is_active and self._outgoing is not None:
            self._outgoing.put_nowait(pcm)

    async def _send_frames(self) -> None:
        while True:
            pcm = await self._outgoing.get()
            try:
                if self._handle is not None:
                    await self._handle.send_audio(pcm)
            except Exception as e:
                logger.error(f"[RolePlay] Failed to stream audio: {e}")
                self._outgoing.task_done()
                self._schedule_stop(e)
                return
            self._outgoing.task_done()

    def _schedule_stop(self, error: Optional[Exception] = None) -> None:
        if error is not None:
            self.last_error = error
        if self.is_active and self._pending_stop is None:
            self._pending_stop = asyncio.ensure_future(self.stop(user_initiated=False))
            self._pending_stop.add_done_callback(self._clear_pending_stop)

    def _clear_pending_stop(self, _task) -> None:
        self._pending_stop = None

    # Voice callbacks

    def _on_open(self) -> None:
        logger.info("[RolePlay] Live session opened")
        try:
            self.audio.start_capture(on_frame=self._enqueue_frame, on_error=self._on_capture_error)
        except Exception as e:
            logger.error(f"[RolePlay] Microphone access error: {e}")
            self._schedule_stop(e)

    def _on_capture_error(self, error: Exception) -> None:
        logger.error(f"[RolePlay] Capture error: {error}")
        self._schedule_stop(error)

    def _on_audio(self, pcm: bytes) -> None:
        if not self.is_active:
            return
        num_samples = len(pcm16_to_float(pcm))
        start_time = self.scheduler.schedule(num_samples)
        self.audio.play(pcm, start_time)

    def _on_input_transcript(self, text: str) -> None:
        if self.is_active:
            self._input_buffer.append(text)

    def _on_output_transcript(self, text: str) -> None:
        if self.is_active:
            self._output_buffer.append(text)

    def _flush(self, speaker: Speaker, buffer: List[str]) -> None:
        text = "".join(buffer).strip()
        buffer.clear()
        if text:
            self.transcript.append(speaker, text)

    def _on_turn_complete(self) -> None:
        if not self.is_active:
            return
        self._flush("user", self._input_buffer)
        self._flush("ai", self._output_buffer)
        if self._turn_done is not None:
            self._turn_done.set()

    def _on_remote_error(self, error: Exception) -> None:
        logger.error(f"[RolePlay] Live session error: {error}")
        self._schedule_stop(error)

    def _on_remote_close(self) -> None:
        logger.info("[RolePlay] Live session closed")
        self._schedule_stop()


async def submit_recording(
    session: RolePlaySession,
    backend: BufferedAudioBackend,
    samples: np.ndarray,
    sample_rate: int,
    timeout: Optional[float] = 30.0
) -> bool:
    """
    Send one recorded user turn through the session and wait for the reply.

    Must run on the session's event loop; captured frames go onto its queue.

    Returns:
        True when the prospect's reply completed before the timeout
    """
    if not session.is_active:
        return False
    frames = backend.push_capture(samples, sample_rate)
    logger.info(f"[RolePlay] Submitted {frames} frames of user audio")
    if not frames:
        return False
    return await session.end_user_turn(timeout)

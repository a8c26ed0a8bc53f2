"""Real-time voice conversation gateway."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from openai import AsyncOpenAI

from ..config import Settings
from ..exceptions import MissingCredentialsError
from ..utils.audio import INPUT_SAMPLE_RATE, OUTPUT_SAMPLE_RATE, decode_frame, encode_frame

logger = logging.getLogger(__name__)


class VoiceCallbacks:
    """Event hooks a voice session reports to. Every hook is optional."""

    def __init__(
        self,
        on_open: Optional[Callable[[], None]] = None,
        on_audio: Optional[Callable[[bytes], None]] = None,
        on_input_transcript: Optional[Callable[[str], None]] = None,
        on_output_transcript: Optional[Callable[[str], None]] = None,
        on_turn_complete: Optional[Callable[[], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self.on_open = on_open
        self.on_audio = on_audio
        self.on_input_transcript = on_input_transcript
        self.on_output_transcript = on_output_transcript
        self.on_turn_complete = on_turn_complete
        self.on_error = on_error
        self.on_close = on_close

    def emit(self, name: str, *args) -> None:
        hook = getattr(self, name)
        if hook is not None:
            hook(*args)


class VoiceSessionHandle(ABC):
    """An open conversation with the remote voice endpoint."""

    @abstractmethod
    async def send_audio(self, pcm: bytes) -> None:
        """Stream one PCM16 frame of microphone audio."""

    @abstractmethod
    async def end_user_turn(self) -> None:
        """Mark the buffered user audio as a finished turn and ask for a reply."""

    @abstractmethod
    async def close(self) -> None:
        pass


class VoiceGateway(ABC):
    """Opens voice sessions; provider details stay behind this interface."""

    input_sample_rate = INPUT_SAMPLE_RATE
    output_sample_rate = OUTPUT_SAMPLE_RATE

    @abstractmethod
    async def open_voice_session(self, system_instruction: str, callbacks: VoiceCallbacks) -> VoiceSessionHandle:
        pass


class OpenAIRealtimeHandle(VoiceSessionHandle):

    def __init__(self, connection, callbacks: VoiceCallbacks, client: Optional[AsyncOpenAI] = None):
        self.connection = connection
        self.client = client
        self.callbacks = callbacks
        self._reader: Optional[asyncio.Task] = None
        self._closed = False

    def start_reader(self) -> None:
        self._reader = asyncio.create_task(self._read_events())

    async def _read_events(self) -> None:
        try:
            async for event in self.connection:
                self._dispatch(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._closed:
                logger.error(f"[Voice] Session error: {e}")
                self.callbacks.emit("on_error", e)
            return
        if not self._closed:
            logger.info("[Voice] Session closed by remote")
            self.callbacks.emit("on_close")

    def _dispatch(self, event) -> None:
        if event.type == "response.audio.delta":
            self.callbacks.emit("on_audio", decode_frame(event.delta))
        elif event.type == "response.audio_transcript.delta":
            self.callbacks.emit("on_output_transcript", event.delta)
        elif event.type == "conversation.item.input_audio_transcription.completed":
            self.callbacks.emit("on_input_transcript", event.transcript)
        elif event.type == "response.done":
            self.callbacks.emit("on_turn_complete")
        elif event.type == "error":
            logger.error(f"[Voice] Remote error: {event.error.message}")
            self.callbacks.emit("on_error", RuntimeError(event.error.message))

    async def send_audio(self, pcm: bytes) -> None:
        await self.connection.input_audio_buffer.append(audio=encode_frame(pcm))

    async def end_user_turn(self) -> None:
        await self.connection.input_audio_buffer.commit()
        await self.connection.response.create()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._reader is not None and self._reader is not asyncio.current_task():
            self._reader.cancel()
        try:
            await self.connection.close()
        finally:
            if self.client is not None:
                await self.client.close()


class OpenAIRealtimeGateway(VoiceGateway):
    """Voice sessions over the OpenAI Realtime API."""

    input_sample_rate = 24000
    output_sample_rate = 24000

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-realtime-preview",
        voice: str = "alloy",
        server_vad: bool = True
    ):
        """
        Initialize the gateway.

        Args:
            api_key: OpenAI API key
            model: Realtime model identifier
            voice: Voice used for the prospect
            server_vad: Let the server detect turn ends; disable for push-to-talk
        """
        if not api_key:
            raise MissingCredentialsError("OPENAI_API_KEY is required for voice role-play")
        self.api_key = api_key
        self.model = model
        self.voice = voice
        self.server_vad = server_vad

    @classmethod
    def from_settings(cls, settings: Settings, server_vad: bool = True) -> "OpenAIRealtimeGateway":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.voice_model,
            voice=settings.voice_name,
            server_vad=server_vad,
        )

    def session_config(self, system_instruction: str) -> dict:
        return {
            "modalities": ["audio", "text"],
            "instructions": system_instruction,
            "voice": self.voice,
            "input_audio_format": "pcm16",
            "output_audio_format": "pcm16",
            "input_audio_transcription": {"model": "whisper-1"},
            "turn_detection": {"type": "server_vad"} if self.server_vad else None,
        }

    def _make_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=self.api_key)

    async def open_voice_session(self, system_instruction, callbacks):
        client = self._make_client()
        logger.info(f"[Voice] Connecting to {self.model}")
        try:
            connection = await client.beta.realtime.connect(model=self.model).enter()
        except Exception as e:
            await client.close()
            raise RuntimeError(f"Could not open voice session: {e}") from e

        try:
            await connection.session.update(session=self.session_config(system_instruction))
            # Prospect opens the call with its greeting
            await connection.response.create()
        except Exception as e:
            logger.error(f"[Voice] Session setup failed: {e}")
            try:
                await connection.close()
            finally:
                await client.close()
            raise RuntimeError(f"Could not open voice session: {e}") from e

        handle = OpenAIRealtimeHandle(connection, callbacks, client=client)
        handle.start_reader()
        callbacks.emit("on_open")
        return handle

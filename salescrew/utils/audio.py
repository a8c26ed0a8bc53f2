"""PCM16 audio plumbing for voice role-play sessions."""

import base64
import io
import logging
import time
import wave
from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

INPUT_SAMPLE_RATE = 16000
OUTPUT_SAMPLE_RATE = 24000
FRAME_SIZE = 4096


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Convert float samples in [-1, 1] to little-endian 16-bit PCM bytes."""
    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * 32767).astype("<i2").tobytes()


def pcm16_to_float(data: bytes) -> np.ndarray:
    """Convert 16-bit PCM bytes back to float32 samples in [-1, 1]."""
    if not data:
        return np.zeros(0, dtype=np.float32)
    return np.frombuffer(data, dtype="<i2").astype(np.float32) / 32768.0


def encode_frame(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_frame(payload: str) -> bytes:
    return base64.b64decode(payload)


def chunk_frames(samples: np.ndarray, frame_size: int = FRAME_SIZE) -> Iterator[np.ndarray]:
    """
    Split captured samples into fixed-size frames.

    The trailing partial frame is zero-padded so every frame has the same size.
    """
    samples = np.asarray(samples, dtype=np.float32)
    for start in range(0, len(samples), frame_size):
        frame = samples[start:start + frame_size]
        if len(frame) < frame_size:
            frame = np.pad(frame, (0, frame_size - len(frame)))
        yield frame


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear-interpolation resampling, good enough for speech."""
    samples = np.asarray(samples, dtype=np.float32)
    if source_rate == target_rate or len(samples) == 0:
        return samples
    duration = len(samples) / source_rate
    target_len = max(1, int(round(duration * target_rate)))
    source_x = np.linspace(0.0, duration, num=len(samples), endpoint=False)
    target_x = np.linspace(0.0, duration, num=target_len, endpoint=False)
    return np.interp(target_x, source_x, samples).astype(np.float32)


def read_wav(data: bytes) -> tuple:
    """
    Return (float samples, sample rate) from WAV bytes, mixed down to mono.

    Raises:
        ValueError: the bytes are not a readable 16-bit WAV file
    """
    try:
        with wave.open(io.BytesIO(data), "rb") as wav:
            rate = wav.getframerate()
            channels = wav.getnchannels()
            width = wav.getsampwidth()
            raw = wav.readframes(wav.getnframes())
    except (wave.Error, EOFError) as e:
        raise ValueError(f"Not a valid WAV recording: {e}") from e
    if width != 2:
        raise ValueError(f"Only 16-bit WAV input is supported (got {width * 8}-bit)")
    samples = pcm16_to_float(raw)
    if channels > 1:
        samples = samples.reshape(-1, channels).mean(axis=1)
    return samples, rate


def write_wav(pcm: bytes, sample_rate: int = OUTPUT_SAMPLE_RATE) -> bytes:
    """Wrap mono PCM16 bytes in a WAV container."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


class PlaybackScheduler:
    """
    Schedules decoded clips back-to-back on a playback timeline.

    Each clip starts at max(now, end of the previous clip) so clips never
    overlap and never leave a gap while audio is queued.
    """

    def __init__(self, sample_rate: int = OUTPUT_SAMPLE_RATE, clock: Callable[[], float] = time.monotonic):
        self.sample_rate = sample_rate
        self.clock = clock
        self.next_start_time = 0.0

    def schedule(self, num_samples: int) -> float:
        """Reserve a slot for a clip and return its start time."""
        start = max(self.clock(), self.next_start_time)
        self.next_start_time = start + num_samples / self.sample_rate
        return start

    def reset(self) -> None:
        self.next_start_time = 0.0


class AudioBackend(ABC):
    """Owns the microphone input and the speaker output of a session."""

    @abstractmethod
    def start_capture(self, on_frame: Callable[[bytes], None], on_error: Callable[[Exception], None]) -> None:
        """Begin delivering fixed-size PCM16 frames to ``on_frame``."""

    @abstractmethod
    def play(self, pcm: bytes, start_time: float) -> None:
        """Queue a PCM16 clip to start at ``start_time``."""

    @abstractmethod
    def stop_capture(self) -> None:
        """Stop the input stream."""

    @abstractmethod
    def disconnect_processor(self) -> None:
        """Detach the frame processor from the input stream."""

    @abstractmethod
    def close_input(self) -> None:
        """Release the input audio context."""

    @abstractmethod
    def close_output(self) -> None:
        """Release the output audio context."""

    @abstractmethod
    def stop_playback(self) -> None:
        """Stop and drop any queued clips."""


class BufferedAudioBackend(AudioBackend):
    """
    Audio backend for request/response front ends.

    Frames pushed with ``push_capture`` are forwarded to the session, and
    scheduled playback is collected so the caller can render it as one clip.
    """

    def __init__(self, capture_rate: int = INPUT_SAMPLE_RATE):
        self.capture_rate = capture_rate
        self._on_frame: Optional[Callable[[bytes], None]] = None
        self._on_error: Optional[Callable[[Exception], None]] = None
        self.playback: List[tuple] = []
        self.capturing = False
        self.input_open = False
        self.output_open = False

    def start_capture(self, on_frame, on_error) -> None:
        self._on_frame = on_frame
        self._on_error = on_error
        self.capturing = True
        self.input_open = True
        self.output_open = True

    def push_capture(self, samples: np.ndarray, sample_rate: int = INPUT_SAMPLE_RATE) -> int:
        """Feed recorded samples through the session as frames; returns the frame count."""
        if not self.capturing or self._on_frame is None:
            return 0
        if sample_rate != self.capture_rate:
            samples = resample(samples, sample_rate, self.capture_rate)
        count = 0
        for frame in chunk_frames(samples):
            try:
                self._on_frame(float_to_pcm16(frame))
            except Exception as e:
                logger.error(f"[Audio] Capture error: {e}")
                if self._on_error:
                    self._on_error(e)
                break
            count += 1
        return count

    def play(self, pcm: bytes, start_time: float) -> None:
        if self.output_open:
            self.playback.append((start_time, pcm))

    def drain_playback(self) -> bytes:
        """Return queued clips in start order as one PCM16 stream and clear the queue."""
        clips = sorted(self.playback, key=lambda item: item[0])
        self.playback = []
        return b"".join(pcm for _, pcm in clips)

    def stop_capture(self) -> None:
        self.capturing = False

    def disconnect_processor(self) -> None:
        self._on_frame = None

    def close_input(self) -> None:
        self.input_open = False

    def close_output(self) -> None:
        self.output_open = False

    def stop_playback(self) -> None:
        self.playback = []

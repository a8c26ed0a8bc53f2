"""Role-play session state and transcript models."""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, PrivateAttr

Speaker = Literal["user", "ai"]


class SessionState(str, Enum):
    """Lifecycle of a voice role-play session."""

    IDLE = "idle"
    ACTIVE = "active"
    ENDING = "ending"
    FEEDBACK_PENDING = "feedback_pending"


class TranscriptEntry(BaseModel):
    """One completed turn of the conversation."""

    speaker: Speaker
    text: str


class Transcript(BaseModel):
    """Append-only conversation log, frozen once the session ends."""

    entries: List[TranscriptEntry] = Field(default_factory=list)
    _closed: bool = PrivateAttr(default=False)

    def append(self, speaker: Speaker, text: str) -> None:
        if self._closed:
            raise RuntimeError("Transcript is closed")
        self.entries.append(TranscriptEntry(speaker=speaker, text=text))

    def close(self) -> None:
        self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self.entries)

    def __bool__(self) -> bool:
        return bool(self.entries)


class RolePlayRecord(BaseModel):
    """Stored outcome of a finished role-play session."""

    lead_id: str
    transcript: List[TranscriptEntry] = Field(default_factory=list)
    feedback: Optional[str] = None
    duration_seconds: int = 0
    created_at: datetime = Field(default_factory=datetime.now)

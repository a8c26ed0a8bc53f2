"""Prompt templates and builders."""

from .templates import (
    COACH_SYSTEM_PROMPT,
    FEEDBACK_APOLOGY,
    PERSONAL_EMAIL_DOMAINS,
)
from .builder import (
    build_prompt,
    build_persona_instruction,
    build_feedback_prompt,
    format_transcript,
)

__all__ = [
    "COACH_SYSTEM_PROMPT",
    "FEEDBACK_APOLOGY",
    "PERSONAL_EMAIL_DOMAINS",
    "build_prompt",
    "build_persona_instruction",
    "build_feedback_prompt",
    "format_transcript",
]

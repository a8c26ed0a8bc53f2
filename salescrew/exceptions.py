"""Error types raised by the lead generation pipeline."""

from typing import Optional


class LeadGenerationError(Exception):
    """Base class for terminal lead generation failures."""


class FormatError(LeadGenerationError):
    """The model returned text that could not be parsed as the expected JSON."""

    def __init__(self, message: Optional[str] = None, raw_text: str = ""):
        super().__init__(
            message
            or "Failed to generate leads. The AI returned an invalid format. Please try again."
        )
        self.raw_text = raw_text


class GatewayError(LeadGenerationError):
    """The upstream LLM call failed and no credential is left to try."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class MissingCredentialsError(LeadGenerationError):
    """No API credential is configured for a required upstream service."""


class VerifierError(Exception):
    """The email verification service could not be reached or answered badly.

    Never leaves the email validator; it is mapped to an ``unknown`` result.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


__all__ = [
    "LeadGenerationError",
    "FormatError",
    "GatewayError",
    "MissingCredentialsError",
    "VerifierError",
]

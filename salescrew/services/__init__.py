"""External service integrations and persistence."""

from .llm_gateway import LLMGateway, MockLLMGateway
from .email_verifier import RapidApiEmailVerifier, MockEmailVerifier, VerifierResponse
from .email_validator import EmailValidator, is_valid_format, infer_email_pattern
from .store import RecordStore, LocalStore
from .crm_service import promote_to_crm, summarize_selection, summarize_search
from .voice_gateway import VoiceGateway, VoiceCallbacks, VoiceSessionHandle, OpenAIRealtimeGateway

__all__ = [
    "LLMGateway",
    "MockLLMGateway",
    "RapidApiEmailVerifier",
    "MockEmailVerifier",
    "VerifierResponse",
    "EmailValidator",
    "is_valid_format",
    "infer_email_pattern",
    "RecordStore",
    "LocalStore",
    "promote_to_crm",
    "summarize_selection",
    "summarize_search",
    "VoiceGateway",
    "VoiceCallbacks",
    "VoiceSessionHandle",
    "OpenAIRealtimeGateway",
]

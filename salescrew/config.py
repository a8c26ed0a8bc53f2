"""Application settings loaded from the environment."""

import os
from typing import Callable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Values shipped in example .env files that mean "not configured"
PLACEHOLDER_VALUES = {
    "",
    "your_rapidapi_key_here",
    "your_perplexity_api_key_here",
    "your_openai_api_key_here",
    "your_supabase_key_here",
}


class Settings(BaseModel):
    """Runtime configuration for services and the UI."""

    perplexity_api_key: Optional[str] = Field(None, description="Primary LLM credential")
    perplexity_fallback_key: Optional[str] = Field(None, description="Secondary LLM credential")
    perplexity_model: str = Field("sonar-pro", description="Chat model used for lead research")
    perplexity_base_url: str = Field("https://api.perplexity.ai")

    rapidapi_key: Optional[str] = Field(None, description="Email verification API key")
    rapidapi_host: str = Field("validect-email-verification-v1.p.rapidapi.com")

    openai_api_key: Optional[str] = Field(None, description="Realtime voice credential")
    voice_model: str = Field("gpt-4o-realtime-preview")
    voice_name: str = Field("alloy")

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    storage_path: Optional[str] = Field(None, description="Local JSON store location")

    log_level: str = Field("INFO")

    @property
    def has_llm_credentials(self) -> bool:
        return bool(self.perplexity_api_key or self.perplexity_fallback_key)

    @property
    def has_verifier(self) -> bool:
        return bool(self.rapidapi_key)

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if value in PLACEHOLDER_VALUES:
        return None
    return value


def load_settings(getter: Optional[Callable[[str], Optional[str]]] = None) -> Settings:
    """
    Build Settings from a key lookup.

    Args:
        getter: Function mapping an env var name to its value. Defaults to
            os.getenv after loading a local .env file.

    Returns:
        Settings with placeholder values treated as unset
    """
    if getter is None:
        load_dotenv()
        getter = os.getenv

    def read(key: str) -> Optional[str]:
        return _clean(getter(key))

    values = {
        "perplexity_api_key": read("PERPLEXITY_API_KEY"),
        "perplexity_fallback_key": read("PERPLEXITY_FALLBACK_KEY"),
        "rapidapi_key": read("RAPIDAPI_KEY"),
        "openai_api_key": read("OPENAI_API_KEY"),
        "supabase_url": read("SUPABASE_URL"),
        "supabase_key": read("SUPABASE_KEY"),
        "storage_path": read("SALESCREW_STORAGE_PATH"),
    }
    optional_defaults = {
        "perplexity_model": "PERPLEXITY_MODEL",
        "perplexity_base_url": "PERPLEXITY_BASE_URL",
        "rapidapi_host": "RAPIDAPI_HOST",
        "voice_model": "VOICE_MODEL",
        "voice_name": "VOICE_NAME",
        "log_level": "LOG_LEVEL",
    }
    for field_name, env_key in optional_defaults.items():
        value = read(env_key)
        if value:
            values[field_name] = value

    return Settings(**values)

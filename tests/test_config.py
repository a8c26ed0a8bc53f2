# tests/test_config.py
from salescrew.config import load_settings


def test_placeholders_count_as_unset() -> None:
    env = {
        "PERPLEXITY_API_KEY": "your_perplexity_api_key_here",
        "PERPLEXITY_FALLBACK_KEY": " pplx-2 ",
        "RAPIDAPI_KEY": "",
        "PERPLEXITY_MODEL": "sonar",
    }
    settings = load_settings(getter=env.get)

    assert settings.perplexity_api_key is None
    assert settings.perplexity_fallback_key == "pplx-2"
    assert settings.perplexity_model == "sonar"
    assert settings.has_llm_credentials
    assert not settings.has_verifier
    assert not settings.has_supabase


def test_defaults_apply_when_unset() -> None:
    settings = load_settings(getter=lambda key: None)

    assert settings.perplexity_model == "sonar-pro"
    assert settings.voice_model == "gpt-4o-realtime-preview"
    assert settings.log_level == "INFO"
    assert not settings.has_llm_credentials

"""Sidebar component for system configuration."""

import os

import streamlit as st
from dotenv import load_dotenv

from ..config import Settings, load_settings

# Load environment variables from .env file
load_dotenv()


def get_secret(key: str, default: str = "") -> str:
    """Get a secret from st.secrets (Streamlit Cloud) or os.environ (.env file)."""
    # First try st.secrets (for Streamlit Cloud deployment)
    try:
        if hasattr(st, 'secrets') and key in st.secrets:
            return st.secrets[key]
    except Exception:
        pass

    # Fall back to environment variables (for local development)
    return os.getenv(key, default)


def render_sidebar(base_settings: Settings) -> dict:
    """
    Render the sidebar with API configuration options.

    Args:
        base_settings: Settings loaded from secrets / environment

    Returns:
        dict with the effective Settings and the mock-mode flag
    """
    with st.sidebar:
        st.header("System Config")

        st.subheader("API Keys")

        perplexity_key = st.text_input(
            "Perplexity API Key",
            type="password",
            value=st.session_state.get("perplexity_api_key", base_settings.perplexity_api_key or ""),
            key="perplexity_key_input",
            help="Required for lead research and call feedback (auto-loaded from .env if present)"
        )

        fallback_key = st.text_input(
            "Perplexity Fallback Key",
            type="password",
            value=st.session_state.get("perplexity_fallback_key", base_settings.perplexity_fallback_key or ""),
            key="perplexity_fallback_input",
            help="Used once when the primary key is rejected or rate limited"
        )

        rapidapi_key = st.text_input(
            "RapidAPI Key",
            type="password",
            value=st.session_state.get("rapidapi_key", base_settings.rapidapi_key or ""),
            key="rapidapi_key_input",
            help="Email verification. Without it, emails get a format-only check"
        )

        openai_key = st.text_input(
            "OpenAI API Key",
            type="password",
            value=st.session_state.get("openai_api_key", base_settings.openai_api_key or ""),
            key="openai_key_input",
            help="Required for voice role-play"
        )

        # Store keys in session state
        for name, value in [
            ("perplexity_api_key", perplexity_key),
            ("perplexity_fallback_key", fallback_key),
            ("rapidapi_key", rapidapi_key),
            ("openai_api_key", openai_key),
        ]:
            if value:
                st.session_state[name] = value

        st.divider()

        st.subheader("Model Selection")

        model_options = ["sonar-pro", "sonar", "sonar-reasoning-pro"]
        default_model = base_settings.perplexity_model
        if default_model not in model_options:
            model_options.insert(0, default_model)
        perplexity_model = st.selectbox(
            "Research Model",
            options=model_options,
            index=model_options.index(default_model),
            key="perplexity_model_select",
            help="Perplexity model used for lead research"
        )

        st.divider()

        # Mode toggle
        use_mock = st.toggle(
            "Use Mock Data",
            value=st.session_state.get("use_mock", not base_settings.has_llm_credentials),
            key="use_mock_toggle",
            help="Enable for UI testing without API calls"
        )
        st.session_state["use_mock"] = use_mock

        if use_mock:
            st.info("Mock mode: Using sample data for testing")
        elif not (perplexity_key or fallback_key):
            st.warning("Enter a Perplexity API key to use live mode")

        if base_settings.has_supabase:
            st.caption("Storage: Supabase")
        else:
            st.caption("Storage: local file")

        st.divider()

        # Reset button
        if st.button("Clear Session State", type="secondary", use_container_width=True):
            keep = {"perplexity_api_key", "perplexity_fallback_key", "rapidapi_key", "openai_api_key"}
            for key in list(st.session_state.keys()):
                if key not in keep:
                    del st.session_state[key]
            st.rerun()

    settings = base_settings.model_copy(update={
        "perplexity_api_key": perplexity_key or None,
        "perplexity_fallback_key": fallback_key or None,
        "rapidapi_key": rapidapi_key or None,
        "openai_api_key": openai_key or None,
        "perplexity_model": perplexity_model,
    })

    return {
        "settings": settings,
        "use_mock": use_mock
    }


def load_app_settings() -> Settings:
    """Settings with st.secrets taking priority over the environment."""
    return load_settings(getter=lambda key: get_secret(key) or None)

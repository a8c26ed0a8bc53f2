"""Sales Crew - AI lead generation, email validation and sales call practice."""

import asyncio
import logging
import sys
import time

import streamlit as st

from salescrew.agents import LeadGenerationAgent
from salescrew.config import Settings
from salescrew.exceptions import FormatError, GatewayError, MissingCredentialsError
from salescrew.models.leads import UserCriteria
from salescrew.services import (
    EmailValidator,
    LLMGateway,
    LocalStore,
    MockEmailVerifier,
    MockLLMGateway,
    RapidApiEmailVerifier,
    RecordStore,
    summarize_search,
)
from salescrew.services.supabase_store import SupabaseStore
from salescrew.ui import (
    load_app_settings,
    render_crm_board,
    render_lead_input,
    render_research_results,
    render_role_play,
    render_sidebar,
)
from salescrew.utils import dedupe_names

logger = logging.getLogger("salescrew")


# Page configuration
st.set_page_config(
    page_title="Sales Crew",
    page_icon="🤝",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Custom CSS for better styling
st.markdown("""
<style>
    .stTabs [data-baseweb="tab-list"] {
        gap: 24px;
    }
    .stTabs [data-baseweb="tab"] {
        height: 50px;
        padding-left: 20px;
        padding-right: 20px;
    }
    .main .block-container {
        padding-top: 2rem;
    }
</style>
""", unsafe_allow_html=True)


def configure_logging(level: str):
    """Log to stdout so messages show up in the Streamlit server console."""
    logging.basicConfig(
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def initialize_session_state():
    """Initialize session state variables."""
    defaults = {
        "is_processing": False,
        "processing_status": "",
        "companies": [],
        "generation_ledger": None,
        "search_id": None,
        "shown_company_names": [],
        "role_play_session": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def get_store(settings: Settings) -> RecordStore:
    """One store per browser session: Supabase when configured, else a local file."""
    store = st.session_state.get("store")
    if store is not None:
        return store

    if settings.has_supabase:
        try:
            store = SupabaseStore.from_settings(settings)
            logger.info("[Store] Using Supabase")
        except Exception as e:
            logger.error(f"[Store] Could not connect to Supabase, using local file: {e}")
    if store is None:
        store = LocalStore(settings.storage_path)
        logger.info(f"[Store] Using local file {store.storage_path}")

    st.session_state["store"] = store
    return store


def update_progress(message: str):
    """Update processing status in session state."""
    st.session_state["processing_status"] = message
    logger.info(f"[Pipeline] {message}")


def build_pipeline(settings: Settings, store: RecordStore, use_mock: bool) -> LeadGenerationAgent:
    """Wire the gateway, verifier and validator for one generation run."""
    if use_mock:
        gateway = MockLLMGateway()
        verifier = MockEmailVerifier()
    else:
        gateway = LLMGateway.from_settings(settings)
        verifier = None
        if settings.has_verifier:
            verifier = RapidApiEmailVerifier(settings.rapidapi_key, host=settings.rapidapi_host)
        else:
            logger.warning("[Pipeline] No RapidAPI key; emails get heuristic checks only")

    validator = EmailValidator(store=store, verifier=verifier)
    return LeadGenerationAgent(gateway, validator, on_progress=update_progress)


def run_generation_pipeline(criteria: UserCriteria, settings: Settings, store: RecordStore, use_mock: bool):
    """Generate, validate and score leads, then persist the search."""
    st.session_state["is_processing"] = True
    update_progress("Initializing lead research...")
    logger.info(f"[Pipeline] Starting generation - Mode: {'MOCK' if use_mock else 'LIVE'}")

    started = time.monotonic()
    try:
        agent = build_pipeline(settings, store, use_mock)

        # Never re-suggest excluded companies or ones already shown this session
        excluded = dedupe_names(
            store.get_excluded_company_names() + st.session_state.get("shown_company_names", [])
        )

        companies, ledger = asyncio.run(agent.execute_with_ledger(
            criteria,
            excluded_company_names=excluded,
            geolocation_hint=st.session_state.get("geolocation_hint") or None
        ))

        st.session_state["companies"] = companies
        st.session_state["generation_ledger"] = ledger
        st.session_state["shown_company_names"] = dedupe_names(
            st.session_state.get("shown_company_names", []) + [c.company_name for c in companies]
        )

        search = store.save_search(criteria)
        st.session_state["search_id"] = search.id
        if not store.save_companies(search.id, companies):
            logger.warning("[Pipeline] Companies were not saved")
        store.save_search_analytics(
            summarize_search(companies, time.monotonic() - started, search_id=search.id)
        )

        update_progress(
            f"Done! {len(companies)} companies, "
            f"{ledger.final_attempt.valid_count if ledger.final_attempt else 0} verified emails."
        )

    except MissingCredentialsError as e:
        st.error(f"{e}. Enter a key in the sidebar or enable mock mode.")
        update_progress(f"Error: {e}")
    except FormatError as e:
        logger.error(f"[Pipeline] {e}")
        st.error("The research model returned an unexpected format. Please try again.")
        update_progress(f"Error: {e}")
    except GatewayError as e:
        logger.error(f"[Pipeline] {e}")
        st.error(f"Lead research failed: {e}")
        update_progress(f"Error: {e}")
    except Exception as e:
        logger.exception(f"[Pipeline] Unexpected error: {e}")
        st.error(f"Lead generation failed: {e}")
        update_progress(f"Error: {e}")

    finally:
        st.session_state["is_processing"] = False


def main():
    """Main application entry point."""
    base_settings = load_app_settings()
    configure_logging(base_settings.log_level)
    initialize_session_state()

    # Title
    st.title("🤝 Sales Crew")
    st.caption("Find qualified leads, verify their emails and practice the call")

    # Render sidebar
    config = render_sidebar(base_settings)
    settings: Settings = config["settings"]
    use_mock: bool = config["use_mock"]

    store = get_store(settings)

    # Check if generation should start (from session state flag)
    if st.session_state.get("should_generate", False):
        st.session_state["should_generate"] = False
        criteria = st.session_state.get("generation_criteria")
        if criteria is not None:
            with st.spinner("Researching companies..."):
                run_generation_pipeline(criteria, settings, store, use_mock)

    tab1, tab2, tab3, tab4 = st.tabs(["Lead Input", "Research Results", "CRM", "Role-Play"])

    with tab1:
        render_lead_input(store)

    with tab2:
        render_research_results(store)

    with tab3:
        render_crm_board(store)

    with tab4:
        render_role_play(store, settings, use_mock)


if __name__ == "__main__":
    main()

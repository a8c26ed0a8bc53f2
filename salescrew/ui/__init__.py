"""Streamlit UI components."""

from .sidebar import render_sidebar, load_app_settings
from .lead_input import render_lead_input
from .research_results import render_research_results, generate_csv
from .crm_board import render_crm_board
from .role_play import render_role_play, teardown_session

__all__ = [
    "render_sidebar",
    "load_app_settings",
    "render_lead_input",
    "render_research_results",
    "generate_csv",
    "render_crm_board",
    "render_role_play",
    "teardown_session",
]

"""Lead Input tab - Product context and search parameters."""

import streamlit as st
from typing import Optional

from ..models.leads import UserCriteria
from ..services.store import RecordStore

# (field, label, help, multiline)
CRITERIA_FIELDS = [
    ("product_name", "Product Name", "What you are selling", False),
    ("product_description", "Product Description", "What the product does and for whom", True),
    ("target_audience", "Target Audience / ICP", "e.g., Heads of Sales at B2B SaaS companies", True),
    ("company_size", "Ideal Company Size", "e.g., 50-500 employees, Series A-C", False),
    ("industry", "Industry", "e.g., Fintech, Logistics", False),
    ("geography", "Geography / Market Region", "e.g., US, DACH, Global", False),
    ("price_range", "Price Range or Ticket Size", "e.g., $10k-$50k ACV", False),
    ("value_proposition", "Value Proposition", "The outcome you promise", True),
    ("competitive_edge", "Competitive Edge / USP", "Why you and not a competitor", True),
    ("keywords", "Keywords to match", "Comma-separated keywords", False),
]


def render_lead_input(store: Optional[RecordStore] = None) -> UserCriteria:
    """
    Render the Lead Input tab with product context and the generate button.

    Args:
        store: Record store for the exclusion list

    Returns:
        UserCriteria built from the current form values
    """
    st.header("Lead Input")

    st.subheader("Your Product")

    values = {}
    col1, col2 = st.columns(2)
    for i, (field, label, help_text, multiline) in enumerate(CRITERIA_FIELDS):
        with (col1 if i % 2 == 0 else col2):
            widget = st.text_area if multiline else st.text_input
            kwargs = {"height": 100} if multiline else {}
            values[field] = widget(
                label,
                value=st.session_state.get(f"criteria_{field}", ""),
                key=f"criteria_{field}_input",
                help=help_text,
                **kwargs
            )
            st.session_state[f"criteria_{field}"] = values[field]

    criteria = UserCriteria(**values)

    geolocation_hint = st.text_input(
        "Your Location (optional)",
        value=st.session_state.get("geolocation_hint", ""),
        key="geolocation_hint_input",
        help="Helps prioritize companies in your market"
    )
    st.session_state["geolocation_hint"] = geolocation_hint

    st.divider()

    if store is not None:
        render_exclusion_list(store)
        st.divider()

    # Start button
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        generate_clicked = st.button(
            "GENERATE LEADS",
            type="primary",
            use_container_width=True,
            disabled=st.session_state.get("is_processing", False),
            key="generate_leads_button"
        )

    if generate_clicked:
        if not criteria.product_name and not criteria.product_description:
            st.warning("Describe your product (name or description) before generating leads.")
        else:
            st.session_state["generation_criteria"] = criteria
            st.session_state["should_generate"] = True
            st.toast("Researching companies...", icon="🔎")
            st.rerun()

    return criteria


def render_exclusion_list(store: RecordStore):
    """Companies that should never be suggested again."""
    excluded = store.get_excluded_companies()

    with st.expander(f"Excluded Companies ({len(excluded)})"):
        col1, col2 = st.columns([3, 1])
        with col1:
            new_name = st.text_input("Company name", key="exclude_company_name")
        with col2:
            st.write("")
            if st.button("Exclude", key="exclude_company_button") and new_name.strip():
                store.add_excluded_company(new_name.strip(), reason="Added manually")
                st.rerun()

        if not excluded:
            st.caption("No excluded companies yet.")
        for company in excluded:
            col1, col2 = st.columns([4, 1])
            with col1:
                st.write(company.company_name)
                if company.reason:
                    st.caption(company.reason)
            with col2:
                if st.button("Remove", key=f"remove_excluded_{company.id}"):
                    store.remove_excluded_company(company.id)
                    st.rerun()

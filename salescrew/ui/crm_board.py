"""CRM tab - Track promoted leads through the sales pipeline."""

import streamlit as st
import pandas as pd
from typing import List

from ..models.leads import CrmLead, LEAD_STATUSES
from ..services.store import RecordStore
from .research_results import VALIDATION_BADGES, get_quality_color


def render_crm_board(store: RecordStore):
    """Render the CRM tab with pipeline metrics and per-lead controls."""
    st.header("CRM")

    leads = store.get_crm_leads()
    if not leads:
        st.info("No leads in your CRM yet. Select companies in Research Results and add them.")
        return

    render_pipeline_metrics(leads)

    st.divider()

    col1, col2 = st.columns([2, 1])
    with col1:
        status_filter = st.multiselect(
            "Stage",
            options=list(LEAD_STATUSES),
            default=list(LEAD_STATUSES),
            key="crm_status_filter"
        )
    with col2:
        search_query = st.text_input(
            "Search",
            placeholder="Company or contact...",
            key="crm_search"
        )

    visible = filter_crm_leads(leads, status_filter, search_query)
    st.caption(f"Showing {len(visible)} of {len(leads)} leads")

    for lead in visible:
        quality = lead.quality_score or 0
        with st.expander(
            f"{get_quality_color(quality)} {lead.company_name} - {lead.contact.name} - {lead.status}",
            expanded=False
        ):
            render_lead_controls(store, lead)


def render_pipeline_metrics(leads: List[CrmLead]):
    """Lead counts per stage plus outreach totals."""
    counts = pd.Series([lead.status for lead in leads]).value_counts()

    columns = st.columns(len(LEAD_STATUSES) + 2)
    for column, status in zip(columns, LEAD_STATUSES):
        with column:
            st.metric(status, int(counts.get(status, 0)))
    with columns[-2]:
        st.metric("Emails Sent", sum(1 for lead in leads if lead.email_sent))
    with columns[-1]:
        st.metric("Replies", sum(1 for lead in leads if lead.reply_received))


def filter_crm_leads(leads: List[CrmLead], statuses: List[str], search_query: str = "") -> List[CrmLead]:
    """Keep leads in the given stages whose company or contact matches the query."""
    query = search_query.strip().lower()
    filtered = [lead for lead in leads if lead.status in statuses]
    if query:
        filtered = [
            lead for lead in filtered
            if query in lead.company_name.lower() or query in lead.contact.name.lower()
        ]
    return filtered


def render_lead_controls(store: RecordStore, lead: CrmLead):
    """Stage, outreach toggles, notes and actions for one lead."""
    col1, col2 = st.columns(2)

    with col1:
        st.write(f"**{lead.contact.name}** - {lead.contact.title}")
        st.write(f"**Email:** {lead.email or 'N/A'} ({VALIDATION_BADGES[lead.contact.validation_status]})")
        st.write(f"**Website:** {lead.website or 'N/A'}")
        st.write(f"**Last contacted:** {lead.last_contacted or 'Never'}")

    with col2:
        status = st.selectbox(
            "Stage",
            options=list(LEAD_STATUSES),
            index=LEAD_STATUSES.index(lead.status),
            key=f"crm_stage_{lead.id}"
        )
        email_sent = st.checkbox("Email sent", value=lead.email_sent, key=f"crm_sent_{lead.id}")
        reply_received = st.checkbox("Reply received", value=lead.reply_received, key=f"crm_reply_{lead.id}")

    notes = st.text_area("Notes", value=lead.notes, height=80, key=f"crm_notes_{lead.id}")

    updated = lead.apply_update(
        status=status,
        email_sent=email_sent,
        reply_received=reply_received,
        notes=notes
    )
    if updated != lead:
        if store.update_crm_lead(updated):
            st.rerun()
        else:
            st.error("Could not save changes to this lead.")

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("📞 Practice call", key=f"crm_practice_{lead.id}", use_container_width=True):
            st.session_state["role_play_lead_id"] = lead.id
            st.session_state["role_play_lead_select"] = lead.id
            st.toast(f"Open the Role-Play tab to call {lead.contact.name or lead.company_name}")
    with col2:
        if st.button("🚫 Exclude company", key=f"crm_exclude_{lead.id}", use_container_width=True):
            store.add_excluded_company(lead.company_name, lead.website, reason="Excluded from CRM")
            st.toast(f"{lead.company_name} excluded from future searches")
    with col3:
        if st.button("🗑️ Delete", key=f"crm_delete_{lead.id}", use_container_width=True):
            store.delete_crm_lead(lead.id)
            st.rerun()

"""Research Results tab - Generated leads, validation and CRM promotion."""

import streamlit as st
import pandas as pd
from typing import List, Optional

from ..models.generation_state import GenerationLedger
from ..models.leads import Company
from ..services.crm_service import needs_validation_warning, promote_to_crm, summarize_selection
from ..services.store import RecordStore
from ..utils.scoring import (
    filter_leads_by_quality_range,
    get_quality_score_label,
    sort_leads_by_quality,
)
from ..utils.url_utils import normalize_url

VALIDATION_BADGES = {
    "valid": "✅ Valid",
    "soft-fail": "⚠️ Risky",
    "invalid": "❌ Invalid",
    "unknown": "❔ Unknown",
}


def get_quality_color(score: int) -> str:
    """Return color based on quality score."""
    if score >= 80:
        return "🟢"
    elif score >= 60:
        return "🟡"
    elif score >= 40:
        return "🟠"
    else:
        return "🔴"


def render_research_results(store: RecordStore, companies: Optional[List[Company]] = None):
    """
    Render generated companies with filters, selection and CRM promotion.

    Args:
        store: Record store for CRM leads and exclusions
        companies: Companies to display (defaults to the last run in session state)
    """
    st.header("Research Results")

    if companies is None:
        companies = st.session_state.get("companies", [])

    # Processing status
    if st.session_state.get("is_processing", False):
        st.status(st.session_state.get("processing_status", "Processing..."), state="running")
        return

    if not companies:
        st.info("No leads yet. Describe your product in Lead Input and generate leads!")
        return

    ledger: Optional[GenerationLedger] = st.session_state.get("generation_ledger")

    # Summary metrics
    valid_count = sum(1 for c in companies if c.contact.validation_status == "valid")
    avg_quality = sum(c.quality_score or 0 for c in companies) / len(companies)

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Companies", len(companies))
    with col2:
        st.metric("Valid Emails", valid_count)
    with col3:
        st.metric("Avg Quality", f"{avg_quality:.0f}")
    with col4:
        st.download_button(
            label="📥 Download CSV",
            data=generate_csv(companies),
            file_name="salescrew_leads.csv",
            mime="text/csv",
            type="secondary"
        )

    if ledger is not None:
        attempts = ledger.llm_calls
        if ledger.met_yield_target:
            st.caption(f"Reached {ledger.yield_target}+ valid emails in {attempts} attempt(s).")
        else:
            st.warning(
                f"Only {valid_count} verified emails after {attempts} attempts. "
                "Review contacts before reaching out."
            )

    st.divider()

    # Filter controls
    col1, col2 = st.columns([2, 1])
    with col1:
        statuses = st.multiselect(
            "Email status",
            options=list(VALIDATION_BADGES.keys()),
            default=st.session_state.get("status_filter", list(VALIDATION_BADGES.keys())),
            format_func=lambda s: VALIDATION_BADGES[s],
            key="status_filter_select"
        )
        st.session_state["status_filter"] = statuses
    with col2:
        min_quality = st.slider("Minimum quality", 0, 100, 0, step=10, key="min_quality_slider")

    filtered = [c for c in companies if c.contact.validation_status in statuses]
    filtered = sort_leads_by_quality(filter_leads_by_quality_range(filtered, min_quality, 100))

    if not filtered:
        st.info("No companies match the current filters.")
        return

    # Results table with selection
    table_data = []
    for company in filtered:
        quality = company.quality_score or 0
        table_data.append({
            "Select": False,
            "Company": company.company_name,
            "Industry": company.industry,
            "Contact": f"{company.contact.name} ({company.contact.title})",
            "Email": company.email,
            "Email Status": VALIDATION_BADGES[company.contact.validation_status],
            "Likely to Buy": company.likely_to_buy,
            "Quality": f"{get_quality_color(quality)} {quality} {get_quality_score_label(quality)}",
        })

    edited = st.data_editor(
        pd.DataFrame(table_data),
        use_container_width=True,
        hide_index=True,
        disabled=[col for col in table_data[0] if col != "Select"],
        key="results_editor"
    )
    selected = [filtered[i] for i, row in edited.iterrows() if row["Select"]]

    render_promotion_controls(store, selected)

    st.divider()

    # Detailed view per company
    st.subheader("Lead Details")
    for i, company in enumerate(filtered):
        quality = company.quality_score or 0
        with st.expander(
            f"{get_quality_color(quality)} {company.company_name} - Quality: {quality} - "
            f"{VALIDATION_BADGES[company.contact.validation_status]}",
            expanded=False
        ):
            render_company_detail(store, company, i)


def render_promotion_controls(store: RecordStore, selected: List[Company]):
    """Add-to-CRM button with a warning for unverified contacts."""
    if not selected:
        st.caption("Select companies to add them to your CRM.")
        return

    if needs_validation_warning(selected):
        buckets = summarize_selection(selected)
        st.warning(
            f"{len(buckets['valid'])} of {len(selected)} selected contacts have verified emails "
            f"({len(buckets['soft-fail'])} risky, {len(buckets['invalid'])} invalid, "
            f"{len(buckets['unknown'])} unknown)."
        )

    if st.button(f"Add {len(selected)} to CRM", type="primary", key="add_to_crm_button"):
        new_leads, skipped = promote_to_crm(selected, store.get_crm_leads())
        if new_leads:
            store.save_crm_leads(new_leads)
            search_id = st.session_state.get("search_id")
            if search_id:
                store.increment_leads_added_to_crm(search_id, len(new_leads))
        message = f"Added {len(new_leads)} leads to CRM"
        if skipped:
            message += f" ({len(skipped)} already tracked)"
        st.success(message)


def render_company_detail(store: RecordStore, company: Company, index: int):
    """Render detailed view for a single company."""
    col1, col2 = st.columns(2)

    with col1:
        st.markdown("**Company Info**")
        if company.website:
            url = normalize_url(company.website)
            st.write(f"**Website:** [{company.website}]({url})")
        else:
            st.write("**Website:** N/A")
        st.write(f"**Industry:** {company.industry or 'unknown'}")
        st.write(f"**Why they fit:** {company.reason_for_fit}")
        st.progress(company.confidence_score / 100, text=f"Confidence: {company.confidence_score}/100")

    with col2:
        st.markdown("**Contact**")
        st.write(f"**{company.contact.name}** - {company.contact.title}")
        if company.contact.department:
            st.caption(company.contact.department)
        st.write(f"**Email:** {company.email or 'N/A'}")
        st.write(f"**Status:** {VALIDATION_BADGES[company.contact.validation_status]}")
        st.write(f"**Likely to buy:** {company.likely_to_buy}")

    st.divider()

    st.markdown("**Subject Lines**")
    for subject in company.pitch.subject_lines:
        if subject:
            st.code(subject, language=None)

    tab_short, tab_medium, tab_long = st.tabs(["Short", "Medium", "Long"])
    with tab_short:
        st.text_area("Short Email", value=company.pitch.email_short, height=150, key=f"short_{index}")
    with tab_medium:
        st.text_area("Medium Email", value=company.pitch.email_medium, height=200, key=f"medium_{index}")
    with tab_long:
        st.text_area("Long Email", value=company.pitch.email_long, height=250, key=f"long_{index}")

    if st.button("Never suggest this company again", key=f"exclude_{index}"):
        store.add_excluded_company(company.company_name, company.website, reason="Excluded from results")
        st.toast(f"{company.company_name} excluded from future searches")


def generate_csv(companies: List[Company]) -> str:
    """Generate CSV data from companies."""
    data = []
    for company in companies:
        subjects = company.pitch.subject_lines
        data.append({
            "Company Name": company.company_name,
            "Website": company.website,
            "Industry": company.industry,
            "Reason for Fit": company.reason_for_fit,
            "Confidence Score": company.confidence_score,
            "Likely to Buy": company.likely_to_buy,
            "Quality Score": company.quality_score if company.quality_score is not None else "",
            "Contact Name": company.contact.name,
            "Contact Title": company.contact.title,
            "Department": company.contact.department,
            "Email": company.email,
            "Email Status": company.contact.validation_status,
            "Subject Line 1": subjects[0],
            "Subject Line 2": subjects[1],
            "Subject Line 3": subjects[2],
            "Short Email": company.pitch.email_short,
            "Medium Email": company.pitch.email_medium,
            "Long Email": company.pitch.email_long,
        })

    df = pd.DataFrame(data)
    return df.to_csv(index=False)

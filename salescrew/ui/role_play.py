"""Role-Play tab - Practice a sales call against an AI twin of a CRM contact."""

import logging
from typing import List, Optional

import streamlit as st

from ..agents.coach_agent import CoachAgent
from ..agents.roleplay_agent import RolePlaySession, submit_recording
from ..config import Settings
from ..exceptions import MissingCredentialsError
from ..models.leads import CrmLead, UserCriteria
from ..models.roleplay import RolePlayRecord
from ..services.llm_gateway import LLMGateway, MockLLMGateway
from ..services.store import RecordStore
from ..services.voice_gateway import OpenAIRealtimeGateway
from ..utils.audio import BufferedAudioBackend, read_wav, write_wav
from ..utils.background import BackgroundLoop

logger = logging.getLogger(__name__)

REPLY_TIMEOUT_SECONDS = 30.0


def _get_loop() -> BackgroundLoop:
    loop = st.session_state.get("role_play_loop")
    if loop is None or not loop.is_running:
        loop = BackgroundLoop()
        st.session_state["role_play_loop"] = loop
    return loop


def _current_session() -> Optional[RolePlaySession]:
    return st.session_state.get("role_play_session")


def build_coach(settings: Settings, use_mock: bool) -> CoachAgent:
    """Coach backed by the research gateway, or canned feedback in mock mode."""
    if use_mock or not settings.has_llm_credentials:
        return CoachAgent(MockLLMGateway())
    return CoachAgent(LLMGateway.from_settings(settings))


def teardown_session():
    """End any running session without feedback and drop it from session state."""
    session = _current_session()
    if session is not None:
        _get_loop().run(session.teardown())
    st.session_state["role_play_session"] = None
    st.session_state["role_play_backend"] = None
    st.session_state["role_play_reply_audio"] = None


def render_role_play(store: RecordStore, settings: Settings, use_mock: bool = False):
    """
    Render the Role-Play tab.

    Args:
        store: Record store for CRM leads and saved sessions
        settings: Effective settings (OpenAI key for voice, LLM keys for feedback)
        use_mock: Use canned coach feedback instead of the live model
    """
    st.header("Role-Play")
    st.caption("Practice your pitch on a voice call with an AI version of your contact")

    leads = store.get_crm_leads()
    if not leads:
        st.info("Add leads to your CRM first, then practice calling them here.")
        return

    lead = select_lead(leads)
    session = _current_session()

    # Switching leads ends the running call without feedback
    if session is not None and session.lead.id != lead.id:
        teardown_session()
        session = None

    if not settings.openai_api_key:
        st.warning("Enter an OpenAI API key in the sidebar to start a voice session.")
        render_past_sessions(store, lead)
        return

    if session is not None and session.is_active:
        render_active_call(store, session)
    else:
        render_call_start(settings, use_mock, lead, session)

    st.divider()
    render_past_sessions(store, lead)


def select_lead(leads: List[CrmLead]) -> CrmLead:
    """Lead picker that defaults to the lead chosen from the CRM board."""
    by_id = {lead.id: lead for lead in leads}
    ids = list(by_id)
    current = st.session_state.get("role_play_lead_select")
    if current is not None and current not in by_id:
        del st.session_state["role_play_lead_select"]
        current = None
    preferred = st.session_state.get("role_play_lead_id")
    index = ids.index(preferred) if current is None and preferred in by_id else 0

    def label(lead_id: str) -> str:
        lead = by_id[lead_id]
        return f"{lead.contact.name or 'Unknown contact'} - {lead.contact.title} at {lead.company_name}"

    lead_id = st.selectbox(
        "Who are you calling?",
        options=ids,
        index=index,
        format_func=label,
        key="role_play_lead_select"
    )
    st.session_state["role_play_lead_id"] = lead_id
    return by_id[lead_id]


def render_call_start(settings: Settings, use_mock: bool, lead: CrmLead, session: Optional[RolePlaySession]):
    """Start button, plus the feedback and transcript of the last finished call."""
    if session is not None and session.last_error is not None and not session.feedback:
        st.error(f"The call ended unexpectedly: {session.last_error}")

    if st.button("📞 Start Call", type="primary", key="role_play_start"):
        start_call(settings, use_mock, lead)
        st.rerun()

    if session is not None and session.feedback:
        st.subheader("Feedback")
        st.markdown(session.feedback)
    if session is not None and session.transcript:
        with st.expander("Transcript", expanded=False):
            render_transcript(session)


def start_call(settings: Settings, use_mock: bool, lead: CrmLead):
    criteria: Optional[UserCriteria] = st.session_state.get("generation_criteria")
    try:
        # Push-to-talk: the UI marks each turn end itself
        gateway = OpenAIRealtimeGateway.from_settings(settings, server_vad=False)
    except MissingCredentialsError as e:
        st.error(str(e))
        return

    backend = BufferedAudioBackend(capture_rate=gateway.input_sample_rate)
    session = RolePlaySession(gateway, backend, build_coach(settings, use_mock), lead, criteria)

    loop = _get_loop()
    try:
        with st.spinner(f"Dialing {lead.contact.name or lead.company_name}..."):
            loop.run(session.start())
            loop.run(session.wait_for_turn(REPLY_TIMEOUT_SECONDS))
    except Exception as e:
        logger.error(f"[RolePlay] Failed to start call: {e}")
        st.error(f"Could not start the call: {e}")
        return

    st.session_state["role_play_session"] = session
    st.session_state["role_play_backend"] = backend
    st.session_state["role_play_turn"] = 0
    _stash_reply(session, backend)


def _stash_reply(session: RolePlaySession, backend: BufferedAudioBackend):
    pcm = backend.drain_playback()
    st.session_state["role_play_reply_audio"] = (
        write_wav(pcm, session.voice_gateway.output_sample_rate) if pcm else None
    )


def render_active_call(store: RecordStore, session: RolePlaySession):
    """The live call: prospect audio, the user's recorder and the hang-up button."""
    backend: BufferedAudioBackend = st.session_state["role_play_backend"]

    st.success(f"On a call with {session.lead.contact.name or session.lead.company_name}")

    reply_audio = st.session_state.get("role_play_reply_audio")
    if reply_audio:
        st.audio(reply_audio, format="audio/wav", autoplay=True)

    turn = st.session_state.get("role_play_turn", 0)
    recording = st.audio_input("Your turn - record your reply", key=f"role_play_input_{turn}")
    if recording is not None:
        try:
            samples, sample_rate = read_wav(recording.getvalue())
        except ValueError as e:
            st.error(f"Could not read the recording: {e}")
        else:
            with st.spinner("Waiting for the prospect..."):
                replied = _get_loop().run(
                    submit_recording(session, backend, samples, sample_rate, REPLY_TIMEOUT_SECONDS)
                )
            if not replied and session.is_active:
                st.warning("The prospect did not answer in time. Try again.")
            _stash_reply(session, backend)
            st.session_state["role_play_turn"] = turn + 1
            st.rerun()

    if session.transcript:
        with st.expander("Live transcript", expanded=True):
            render_transcript(session)

    if st.button("🛑 End Call & Get Feedback", type="primary", key="role_play_stop"):
        end_call(store, session)
        st.rerun()


def end_call(store: RecordStore, session: RolePlaySession):
    with st.spinner("Generating your feedback report..."):
        feedback = _get_loop().run(session.stop(user_initiated=True))

    st.session_state["role_play_reply_audio"] = None
    if session.transcript:
        record = RolePlayRecord(
            lead_id=session.lead.id,
            transcript=list(session.transcript.entries),
            feedback=feedback,
            duration_seconds=session.duration_seconds
        )
        if not store.save_role_play_session(record):
            st.warning("Feedback generated, but the session could not be saved.")


def render_transcript(session: RolePlaySession):
    for entry in session.transcript.entries:
        speaker = "You" if entry.speaker == "user" else (session.lead.contact.name or "Prospect")
        st.markdown(f"**{speaker}:** {entry.text}")


def render_past_sessions(store: RecordStore, lead: CrmLead):
    """Saved calls for the selected lead, newest first."""
    sessions = store.get_role_play_sessions(lead.id)
    if not sessions:
        return

    st.subheader(f"Past Sessions ({len(sessions)})")
    for record in sessions:
        minutes, seconds = divmod(record.duration_seconds, 60)
        with st.expander(
            f"{record.created_at.strftime('%Y-%m-%d %H:%M')} - {minutes}m {seconds}s, "
            f"{len(record.transcript)} turns"
        ):
            if record.feedback:
                st.markdown(record.feedback)
            for entry in record.transcript:
                speaker = "You" if entry.speaker == "user" else "Prospect"
                st.markdown(f"**{speaker}:** {entry.text}")

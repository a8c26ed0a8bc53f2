"""AI agents for lead generation, coaching and role-play."""

from .base_agent import BaseAgent
from .lead_agent import LeadGenerationAgent, generate_leads_and_pitches, parse_companies
from .coach_agent import CoachAgent
from .roleplay_agent import RolePlaySession, submit_recording

__all__ = [
    "BaseAgent",
    "LeadGenerationAgent",
    "generate_leads_and_pitches",
    "parse_companies",
    "CoachAgent",
    "RolePlaySession",
    "submit_recording",
]

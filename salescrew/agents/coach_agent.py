"""Coach Agent - Post-call feedback on a role-play transcript."""

import logging
from typing import Callable, Optional, Sequence

from ..models.leads import Company, UserCriteria
from ..models.roleplay import TranscriptEntry
from ..prompts.builder import build_feedback_prompt
from ..prompts.templates import COACH_SYSTEM_PROMPT, FEEDBACK_APOLOGY
from .base_agent import BaseAgent

logger = logging.getLogger(__name__)


class CoachAgent(BaseAgent):
    """Turns a finished sales call into a Markdown feedback report."""
    
    def __init__(self, gateway, on_progress: Optional[Callable[[str], None]] = None):
        super().__init__(on_progress)
        self.gateway = gateway
    
    async def execute(
        self,
        transcript: Sequence[TranscriptEntry],
        criteria: Optional[UserCriteria],
        lead: Company,
        **kwargs
    ) -> str:
        """
        Generate feedback for a transcript.
        
        Never raises: any failure returns a fixed apology so the session
        can still finish.
        """
        self.report_progress("Generating your feedback report...")
        prompt = build_feedback_prompt(transcript, criteria, lead)
        try:
            feedback = await self.gateway.invoke(prompt, COACH_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"[Coach] Error generating feedback: {e}")
            return FEEDBACK_APOLOGY
        return feedback or FEEDBACK_APOLOGY

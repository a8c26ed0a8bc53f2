"""Chat-completions gateway with primary/fallback credential failover."""

import json
import logging
from typing import Dict, List, Optional, Sequence

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from ..config import Settings
from ..exceptions import GatewayError, MissingCredentialsError

logger = logging.getLogger(__name__)

# Auth, quota and malformed-request failures are worth one try on the other key
FAILOVER_STATUSES = frozenset({400, 401, 403, 429})


class LLMGateway:
    """
    Service wrapper for the Perplexity chat API via the OpenAI SDK.
    
    A call is attempted with the primary key. When that fails with a
    failover status and a fallback key is configured, the call is repeated
    once with the fallback key. There is no backoff and no further retry.
    """
    
    BASE_URL = "https://api.perplexity.ai"
    
    def __init__(
        self,
        api_key: Optional[str],
        fallback_api_key: Optional[str] = None,
        model: str = "sonar-pro",
        base_url: str = BASE_URL,
        temperature: float = 0.7,
        max_tokens: int = 4000
    ):
        """
        Initialize the gateway.
        
        Args:
            api_key: Primary API key
            fallback_api_key: Secondary API key used once on failover
            model: Model identifier
            base_url: API root
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
        """
        if not api_key:
            if not fallback_api_key:
                raise MissingCredentialsError(
                    "No Perplexity API key configured. Set PERPLEXITY_API_KEY or PERPLEXITY_FALLBACK_KEY."
                )
            api_key, fallback_api_key = fallback_api_key, None
        self.api_key = api_key
        self.fallback_api_key = fallback_api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._clients: Dict[str, AsyncOpenAI] = {}
    
    @classmethod
    def from_settings(cls, settings: Settings) -> "LLMGateway":
        return cls(
            api_key=settings.perplexity_api_key,
            fallback_api_key=settings.perplexity_fallback_key,
            model=settings.perplexity_model,
            base_url=settings.perplexity_base_url,
        )
    
    def _client(self, api_key: str) -> AsyncOpenAI:
        """Lazy-initialize one client per credential."""
        if api_key not in self._clients:
            self._clients[api_key] = AsyncOpenAI(
                api_key=api_key,
                base_url=self.base_url,
                max_retries=0
            )
        return self._clients[api_key]
    
    def _scrub(self, text: str) -> str:
        """Remove API keys from error text before it is logged or raised."""
        for key in (self.api_key, self.fallback_api_key):
            if key:
                text = text.replace(key, "***API_KEY***")
        return text
    
    @staticmethod
    def build_messages(prompt: str, system_prompt: Optional[str] = None) -> List[Dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages
    
    async def _call(self, api_key: str, messages: List[Dict[str, str]]) -> str:
        response = await self._client(api_key).chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
    
    def _gateway_error(self, error: Exception) -> GatewayError:
        if isinstance(error, APIStatusError):
            body = self._scrub(error.response.text or "")
            message = self._scrub(f"Perplexity API error: {error.status_code} {body}".strip())
            return GatewayError(message, status=error.status_code, body=body)
        return GatewayError(self._scrub(f"Perplexity API error: {error}"))
    
    async def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Send one prompt and return the raw model text.
        
        Raises:
            GatewayError: both credentials failed, or the failure was not a
                failover status
        """
        messages = self.build_messages(prompt, system_prompt)
        logger.info(f"[LLM] Calling {self.model} ({len(prompt)} prompt chars)")
        
        try:
            content = await self._call(self.api_key, messages)
        except APIStatusError as e:
            logger.error(f"[LLM] Primary key failed: {e.status_code} {self._scrub(e.response.text or '')}")
            if e.status_code not in FAILOVER_STATUSES or not self.fallback_api_key:
                raise self._gateway_error(e) from None
            logger.info("[LLM] Attempting fallback API key...")
            try:
                content = await self._call(self.fallback_api_key, messages)
            except (APIStatusError, APIConnectionError, OpenAIError) as fallback_error:
                logger.error(f"[LLM] Fallback key failed: {self._scrub(str(fallback_error))}")
                raise self._gateway_error(fallback_error) from None
        except (APIConnectionError, OpenAIError) as e:
            logger.error(f"[LLM] Request failed: {self._scrub(str(e))}")
            raise self._gateway_error(e) from None
        
        logger.info(f"[LLM] Got response: {len(content)} chars")
        return content


def _sample_companies() -> List[dict]:
    companies = [
        ("Northwind Analytics", "northwindanalytics.com", "Data Analytics", "Priya Raman", "VP of Sales", "Sales", "priya.raman", "High", 91),
        ("Brightline Logistics", "brightlinelogistics.com", "Logistics", "Marcus Hale", "Head of Operations", "Operations", "marcus.hale", "High", 87),
        ("Copperleaf Health", "copperleafhealth.io", "Healthcare IT", "Dana Whitfield", "Director of IT", "Technology", "dwhitfield", "Medium", 78),
        ("Summit Ridge Software", "summitridgesoftware.com", "SaaS", "Leo Marchetti", "CEO", "Executive", "leo", "High", 84),
        ("Harborview Retail Group", "harborviewretail.com", "Retail", "Anika Shah", "VP of Marketing", "Marketing", "anika.shah", "Medium", 72),
        ("Greenfield Energy Partners", "greenfieldenergy.com", "Energy", "Tom Becker", "Director of Procurement", "Procurement", "tbecker", "Low", 58),
        ("Atlas Fintech", "atlasfintech.co", "Financial Services", "Sofia Alvarez", "Head of Growth", "Growth", "sofia.alvarez", "Medium", 76),
        ("Bluepeak Manufacturing", "bluepeakmfg.com", "Manufacturing", "Ken Okafor", "COO", "Operations", "ken.okafor", "Low", 55),
        ("Lumen Learning Labs", "lumenlearninglabs.org", "EdTech", "Rachel Kim", "Founder", "Executive", "rachel", "Medium", 69),
        ("Crestline Security", "crestlinesecurity.com", "Cybersecurity", "Omar Haddad", "CISO", "Security", "ohaddad", "High", 88),
    ]
    result = []
    for name, domain, industry, contact, title, dept, local, likelihood, confidence in companies:
        result.append({
            "company": name,
            "website": f"https://{domain}",
            "industry": industry,
            "reason_for_fit": f"{name} is scaling its {dept.lower()} team and matches the target profile.",
            "confidence_score": confidence,
            "likely_to_buy": likelihood,
            "contact": {
                "name": contact,
                "title": title,
                "department": dept,
                "validated_email": f"{local}@{domain}",
                "validation_status": "unknown",
            },
            "pitch": {
                "subject_lines": [
                    f"Quick idea for {name}",
                    f"{contact.split()[0]}, saving your team hours each week",
                    f"How teams like {name} cut manual work",
                ],
                "email_short": f"Hi {contact.split()[0]}, we help {industry.lower()} teams move faster. Worth a 15 minute chat?",
                "email_medium": f"Hi {contact.split()[0]}, I noticed {name} has been growing quickly. We help {industry.lower()} companies remove manual work from their pipeline so teams can focus on customers. Would a short call next week make sense?",
                "email_long": f"Hi {contact.split()[0]}, congratulations on the recent momentum at {name}. Teams at this stage usually hit a wall with manual processes. We built our product for exactly that moment, and customers typically see results within the first month. I would love to share how and hear what your priorities are this quarter.",
            },
        })
    return result


class MockLLMGateway:
    """
    Gateway stand-in for running the app without API keys.
    
    Returns queued responses in order when given, otherwise a canned set of
    ten companies. Every prompt is recorded for inspection.
    """
    
    def __init__(self, responses: Optional[Sequence[str]] = None):
        self.responses = list(responses or [])
        self.prompts: List[str] = []
        self.system_prompts: List[Optional[str]] = []
    
    @property
    def call_count(self) -> int:
        return len(self.prompts)
    
    async def invoke(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        self.system_prompts.append(system_prompt)
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        if system_prompt:
            return MOCK_FEEDBACK
        return json.dumps({"companies": _sample_companies()})


MOCK_FEEDBACK = """1.  **Overall Summary:** A solid discovery call with a clear opening.
2.  **Key Strengths:**
    - Introduced the product quickly
    - Asked about current priorities
3.  **Areas for Improvement:**
    - Quantify the value before discussing price
    - Confirm next steps before hanging up
4.  **A "Golden Rephrase":** Instead of "Can I tell you about our product?", try "Would it help to see how teams like yours cut this work in half?\""""

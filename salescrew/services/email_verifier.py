"""RapidAPI email verification client."""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from ..exceptions import VerifierError

logger = logging.getLogger(__name__)


class VerifierResponse(BaseModel):
    """Raw verdict from the verification provider."""

    status: str = "unknown"
    reason: Optional[str] = None


class RapidApiEmailVerifier:
    """Service wrapper for the Validect email verification API on RapidAPI."""
    
    DEFAULT_HOST = "validect-email-verification-v1.p.rapidapi.com"
    
    def __init__(
        self,
        api_key: str,
        host: str = DEFAULT_HOST,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0
    ):
        """
        Initialize the verifier.
        
        Args:
            api_key: RapidAPI key
            host: RapidAPI host of the verification service
            client: Shared async client; a short-lived one is used per call when omitted
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("RapidAPI key is required")
        self.api_key = api_key
        self.host = host
        self.timeout = timeout
        self._client = client
    
    @property
    def url(self) -> str:
        return f"https://{self.host}/v1/verify"
    
    async def _get(self, email: str) -> httpx.Response:
        headers = {
            "x-rapidapi-host": self.host,
            "x-rapidapi-key": self.api_key,
        }
        params = {"email": email}
        if self._client is not None:
            return await self._client.get(self.url, params=params, headers=headers)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(self.url, params=params, headers=headers)
    
    async def verify(self, email: str) -> VerifierResponse:
        """
        Ask the provider about one address.
        
        Raises:
            VerifierError: transport failure, non-2xx status or a body that
                is not a JSON object
        """
        try:
            response = await self._get(email)
        except httpx.HTTPError as e:
            raise VerifierError(f"Verification request failed: {type(e).__name__}") from e
        
        if not response.is_success:
            logger.error(f"[Verifier] API error: {response.status_code} {response.text[:200]}")
            raise VerifierError(f"API error: {response.status_code}", status=response.status_code)
        
        try:
            payload = response.json()
        except ValueError as e:
            raise VerifierError("Verification response was not JSON") from e
        if not isinstance(payload, dict):
            raise VerifierError("Verification response had an unexpected shape")
        
        status = payload.get("status")
        reason = payload.get("reason")
        return VerifierResponse(
            status=str(status) if status is not None else "unknown",
            reason=str(reason) if reason else None,
        )


class MockEmailVerifier:
    """Verifier stand-in for mock mode and tests; records every address it sees."""
    
    def __init__(self, statuses: Optional[dict] = None, default: str = "valid"):
        self.statuses = {k.lower(): v for k, v in (statuses or {}).items()}
        self.default = default
        self.calls = []
    
    async def verify(self, email: str) -> VerifierResponse:
        self.calls.append(email)
        status = self.statuses.get(email.lower(), self.default)
        if isinstance(status, Exception):
            raise status
        return VerifierResponse(status=status)

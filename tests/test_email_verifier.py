# tests/test_email_verifier.py
import asyncio

import httpx
import pytest
import respx
from httpx import Response

from salescrew.exceptions import VerifierError
from salescrew.services.email_verifier import MockEmailVerifier, RapidApiEmailVerifier

HOST = "validect-email-verification-v1.p.rapidapi.com"
URL = f"https://{HOST}/v1/verify"


@respx.mock
def test_verify_sends_rapidapi_headers_and_email_param() -> None:
    route = respx.get(URL).mock(return_value=Response(200, json={"status": "valid", "reason": "accepted"}))

    result = asyncio.run(RapidApiEmailVerifier("rk-1").verify("jane@acme.com"))

    assert result.status == "valid"
    assert result.reason == "accepted"
    request = route.calls.last.request
    assert request.headers["x-rapidapi-key"] == "rk-1"
    assert request.headers["x-rapidapi-host"] == HOST
    assert request.url.params["email"] == "jane@acme.com"


@respx.mock
def test_missing_status_is_unknown() -> None:
    respx.get(URL).mock(return_value=Response(200, json={}))
    assert asyncio.run(RapidApiEmailVerifier("rk-1").verify("jane@acme.com")).status == "unknown"


@pytest.mark.parametrize(
    "response",
    [
        Response(500, text="boom"),
        Response(429, json={"message": "quota"}),
        Response(200, text="not json"),
        Response(200, json=["a", "list"]),
    ],
)
@respx.mock
def test_bad_responses_raise_verifier_error(response: Response) -> None:
    respx.get(URL).mock(return_value=response)
    with pytest.raises(VerifierError):
        asyncio.run(RapidApiEmailVerifier("rk-1").verify("jane@acme.com"))


@respx.mock
def test_transport_failure_raises_verifier_error() -> None:
    respx.get(URL).mock(side_effect=httpx.ConnectTimeout("timed out"))
    with pytest.raises(VerifierError):
        asyncio.run(RapidApiEmailVerifier("rk-1").verify("jane@acme.com"))


def test_requires_key() -> None:
    with pytest.raises(ValueError):
        RapidApiEmailVerifier("")


def test_mock_verifier_statuses() -> None:
    verifier = MockEmailVerifier({"Risky@Acme.com": "risky", "down@acme.com": VerifierError("down")})

    assert asyncio.run(verifier.verify("risky@acme.com")).status == "risky"
    assert asyncio.run(verifier.verify("other@acme.com")).status == "valid"
    with pytest.raises(VerifierError):
        asyncio.run(verifier.verify("down@acme.com"))
    assert verifier.calls == ["risky@acme.com", "other@acme.com", "down@acme.com"]

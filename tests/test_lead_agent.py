# tests/test_lead_agent.py
import asyncio
import json

import pytest

from salescrew.agents.lead_agent import (
    LeadGenerationAgent,
    generate_leads_and_pitches,
    parse_companies,
    strip_code_fences,
)
from salescrew.exceptions import FormatError, GatewayError
from salescrew.services.email_validator import EmailValidator
from salescrew.services.email_verifier import MockEmailVerifier
from salescrew.services.llm_gateway import MockLLMGateway

from conftest import companies_payload, make_company


def emails(prefix: str, count: int):
    return [f"{prefix}{i}@corp{i}.com" for i in range(count)]


def verifier_for(valid, invalid) -> MockEmailVerifier:
    statuses = {email: "valid" for email in valid}
    statuses.update({email: "invalid" for email in invalid})
    return MockEmailVerifier(statuses, default="invalid")


def run(agent: LeadGenerationAgent, criteria, **kwargs):
    return asyncio.run(agent.execute_with_ledger(criteria, **kwargs))


def test_single_call_when_first_attempt_meets_target(criteria, store) -> None:
    good, bad = emails("good", 6), emails("bad", 4)
    gateway = MockLLMGateway([companies_payload(good + bad)])
    agent = LeadGenerationAgent(gateway, EmailValidator(store, verifier_for(good, bad)))

    companies, ledger = run(agent, criteria)

    assert gateway.call_count == 1
    assert len(companies) == 10
    assert sum(c.contact.validation_status == "valid" for c in companies) == 6
    assert ledger.llm_calls == 1
    assert ledger.met_yield_target
    assert all(c.quality_score is not None for c in companies)


class GatedVerifier(MockEmailVerifier):
    """Answers only once every expected address is being verified at the same time."""

    def __init__(self, expected: int):
        super().__init__()
        self.expected = expected
        self.in_flight = 0
        self.peak = 0
        self.all_in = None

    async def verify(self, email: str):
        if self.all_in is None:
            self.all_in = asyncio.Event()
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        if self.in_flight == self.expected:
            self.all_in.set()
        await asyncio.wait_for(self.all_in.wait(), timeout=2)
        self.in_flight -= 1
        return await super().verify(email)


def test_attempt_validates_every_email_concurrently(criteria, store) -> None:
    addresses = emails("lead", 6)
    verifier = GatedVerifier(expected=len(addresses))
    agent = LeadGenerationAgent(MockLLMGateway([companies_payload(addresses)]), EmailValidator(store, verifier))

    companies, ledger = run(agent, criteria)

    assert len(companies) == 6
    assert verifier.peak == len(addresses)
    assert sorted(verifier.calls) == sorted(addresses)
    assert ledger.attempts[0].valid_count == 6


def test_retry_feeds_rejected_emails_and_returns_second_attempt(criteria, store) -> None:
    first_good, first_bad = emails("first", 3), emails("reject", 7)
    second_good, second_bad = emails("second", 7), emails("late", 3)
    gateway = MockLLMGateway([
        companies_payload(first_good + first_bad),
        companies_payload(second_good + second_bad),
    ])
    verifier = verifier_for(first_good + second_good, first_bad + second_bad)
    agent = LeadGenerationAgent(gateway, EmailValidator(store, verifier))

    companies, ledger = run(agent, criteria)

    assert gateway.call_count == 2
    assert "already failed verification" not in gateway.prompts[0]
    for email in first_bad:
        assert email in gateway.prompts[1]
    for email in first_good:
        assert email not in gateway.prompts[1]
    assert {c.email for c in companies} == set(second_good + second_bad)
    assert [a.valid_count for a in ledger.attempts] == [3, 7]
    assert ledger.attempts[1].rejected_emails_in == first_bad


def test_stops_after_three_attempts_and_returns_last(criteria, store) -> None:
    batches = [emails(f"try{n}_", 10) for n in range(3)]
    valid = [batch[0] for batch in batches]
    gateway = MockLLMGateway([companies_payload(batch) for batch in batches])
    agent = LeadGenerationAgent(gateway, EmailValidator(store, verifier_for(valid, [])))

    companies, ledger = run(agent, criteria)

    assert gateway.call_count == 3
    assert {c.email for c in companies} == set(batches[2])
    assert not ledger.met_yield_target
    # Only the previous attempt's rejections are carried forward
    assert batches[1][1] in gateway.prompts[2]
    assert batches[0][1] not in gateway.prompts[2]


def test_excluded_companies_reach_every_prompt(criteria, store) -> None:
    gateway = MockLLMGateway([companies_payload(emails("x", 10))] * 3)
    agent = LeadGenerationAgent(gateway, EmailValidator(store, MockEmailVerifier(default="invalid")))

    run(agent, criteria, excluded_company_names=["Initech"])

    assert gateway.call_count == 3
    assert all("Initech" in prompt for prompt in gateway.prompts)


def test_missing_email_is_unknown_and_not_validated(criteria, store) -> None:
    payload = json.dumps({"companies": [make_company(email=None).to_json_dict()]})
    verifier = MockEmailVerifier()
    agent = LeadGenerationAgent(MockLLMGateway([payload]), EmailValidator(store, verifier), max_attempts=1)

    companies, _ = run(agent, criteria)

    assert companies[0].contact.validation_status == "unknown"
    assert companies[0].pitch.subject_lines == ["", "", ""]


def test_parse_keeps_exactly_three_subject_lines() -> None:
    text = json.dumps({"companies": [
        {"company": "Many", "pitch": {"subject_lines": ["A", "", "B", "C", "D"]}},
        {"company": "One", "pitch": {"subject_lines": "Only one"}},
    ]})

    many, one = parse_companies(text)

    assert many.pitch.subject_lines == ["A", "B", "C"]
    assert one.pitch.subject_lines == ["Only one", "", ""]
    assert verifier.calls == []


def test_duplicate_emails_validated_once(criteria, store) -> None:
    payload = companies_payload(["same@acme.com", "Same@Acme.com"])
    verifier = MockEmailVerifier()
    agent = LeadGenerationAgent(MockLLMGateway([payload]), EmailValidator(store, verifier), max_attempts=1)

    companies, _ = run(agent, criteria)

    assert len(verifier.calls) == 1
    assert [c.contact.validation_status for c in companies] == ["valid", "valid"]


def test_non_json_output_raises_format_error(criteria, store) -> None:
    gateway = MockLLMGateway(["I need more information about your product."])
    agent = LeadGenerationAgent(gateway, EmailValidator(store))

    with pytest.raises(FormatError):
        run(agent, criteria)
    assert gateway.call_count == 1


def test_gateway_error_propagates(criteria, store) -> None:
    gateway = MockLLMGateway([GatewayError("Perplexity API error: 401", status=401)])
    agent = LeadGenerationAgent(gateway, EmailValidator(store))

    with pytest.raises(GatewayError):
        run(agent, criteria)


def test_progress_messages_reported(criteria, store) -> None:
    messages = []
    agent = LeadGenerationAgent(
        MockLLMGateway(),
        EmailValidator(store, MockEmailVerifier()),
        on_progress=messages.append,
    )

    run(agent, criteria)

    assert messages[0] == "Attempt 1/3: researching companies..."
    assert messages[-1] == "Generation complete: 10 companies"


def test_public_entry_point(criteria, store) -> None:
    companies = asyncio.run(generate_leads_and_pitches(
        criteria,
        gateway=MockLLMGateway(),
        validator=EmailValidator(store, MockEmailVerifier()),
    ))
    assert len(companies) == 10


def test_parse_fenced_json() -> None:
    text = "```json\n" + companies_payload(["a@acme.com"]) + "\n```"
    assert strip_code_fences(text).startswith("{")
    assert [c.email for c in parse_companies(text)] == ["a@acme.com"]


def test_parse_bare_array_and_missing_key() -> None:
    bare = json.dumps([make_company(name="Solo").to_json_dict()])
    assert [c.company_name for c in parse_companies(bare)] == ["Solo"]
    assert parse_companies("{}") == []
    assert parse_companies('{"companies": []}') == []


def test_parse_drops_bad_entries() -> None:
    text = json.dumps({"companies": [
        "not an object",
        {"company": "Odd", "confidence_score": "n/a", "likely_to_buy": "very high", "contact": None},
    ]})
    companies = parse_companies(text)

    assert len(companies) == 1
    assert companies[0].confidence_score == 0
    assert companies[0].likely_to_buy == "unknown"
    assert companies[0].contact.validation_status == "unknown"


@pytest.mark.parametrize("text", ["", "not json", "42", '"text"', '{"companies": "none"}'])
def test_parse_rejects_other_shapes(text: str) -> None:
    with pytest.raises(FormatError):
        parse_companies(text)

# tests/conftest.py
import json
import sys
from pathlib import Path
from typing import Optional

import pytest

# Ensure project root importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from salescrew.models.leads import Company, UserCriteria
from salescrew.services.store import LocalStore


@pytest.fixture
def store(tmp_path: Path) -> LocalStore:
    """A LocalStore backed by a throwaway JSON file."""
    return LocalStore(tmp_path / "store.json")


@pytest.fixture
def criteria() -> UserCriteria:
    return UserCriteria(
        product_name="PipelinePilot",
        product_description="Automates CRM data entry for sales teams",
        target_audience="Heads of Sales at B2B SaaS companies",
        geography="United States",
        value_proposition="Reps get five hours a week back",
    )


def make_company(
    name: str = "Acme Corp",
    email: Optional[str] = "jane.doe@acme.com",
    status: str = "unknown",
    confidence: int = 80,
    likely_to_buy: str = "High",
    industry: str = "SaaS",
) -> Company:
    return Company.model_validate({
        "company": name,
        "website": f"{name.split()[0].lower()}.com",
        "industry": industry,
        "reason_for_fit": "Growing sales team",
        "confidence_score": confidence,
        "likely_to_buy": likely_to_buy,
        "contact": {
            "name": "Jane Doe",
            "title": "VP Sales",
            "department": "Sales",
            "validated_email": email or "",
            "validation_status": status,
        },
        "pitch": {
            "subject_lines": ["One", "Two", "Three"],
            "email_short": "Short",
            "email_medium": "Medium",
            "email_long": "Long",
        },
    })


def companies_payload(emails) -> str:
    """Model output listing one company per address."""
    companies = [
        make_company(name=f"Company {i}", email=email).to_json_dict()
        for i, email in enumerate(emails)
    ]
    return json.dumps({"companies": companies})


@pytest.fixture
def company_factory():
    return make_company

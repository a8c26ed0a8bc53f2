# tests/test_store.py
from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

from salescrew.models.history import SearchAnalytics
from salescrew.models.leads import CrmLead
from salescrew.models.roleplay import RolePlayRecord, TranscriptEntry
from salescrew.models.validation import DomainPattern, ValidationRecord, utcnow
from salescrew.services.store import (
    LocalStore,
    company_from_row,
    company_to_row,
    crm_lead_from_row,
    crm_lead_to_row,
)
from salescrew.services.supabase_store import SupabaseStore
from salescrew.utils.scoring import apply_quality_scores


def test_data_survives_reopening(tmp_path, criteria, company_factory) -> None:
    path = tmp_path / "store.json"
    store = LocalStore(path)
    search = store.save_search(criteria)
    assert store.save_companies(search.id, [company_factory(name="Acme Corp", status="valid")])
    store.add_excluded_company("Globex", reason="Competitor")

    reopened = LocalStore(path)

    assert reopened.get_recent_searches()[0].criteria == criteria
    companies = reopened.get_companies_for_search(search.id)
    assert [c.company_name for c in companies] == ["Acme Corp"]
    assert companies[0].contact.validation_status == "valid"
    assert reopened.get_excluded_company_names() == ["Globex"]


def test_company_and_lead_round_trip_field_by_field(tmp_path, criteria, company_factory) -> None:
    company = apply_quality_scores([company_factory(name="Acme Corp", status="valid")])[0]
    lead = CrmLead.from_company(company).apply_update(
        status="Meeting", email_sent=True, notes="Call Tuesday", today=date(2024, 5, 1)
    )
    assert company.quality_score is not None

    assert company_from_row(company_to_row(company, search_id="s1")) == company
    assert crm_lead_from_row(crm_lead_to_row(lead)) == lead

    path = tmp_path / "store.json"
    store = LocalStore(path)
    search = store.save_search(criteria)
    store.save_companies(search.id, [company])
    store.save_crm_leads([lead])

    reopened = LocalStore(path)
    assert reopened.get_companies_for_search(search.id) == [company]
    assert reopened.get_crm_leads() == [lead]


def test_supabase_company_round_trip(company_factory) -> None:
    company = apply_quality_scores([company_factory(status="soft-fail", likely_to_buy="Medium")])[0]
    client = MagicMock()
    store = SupabaseStore(client)

    assert store.save_companies("s1", [company])
    rows = client.table.return_value.insert.call_args.args[0]
    client.table.return_value.select.return_value.eq.return_value.execute.return_value.data = rows

    assert store.get_companies_for_search("s1") == [company]


def test_corrupt_file_starts_empty(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    store = LocalStore(path)

    assert store.get_crm_leads() == []
    assert store.table_counts()["crm_leads"] == 0


def test_validation_cache_honours_expiry(store) -> None:
    now = utcnow()
    store.upsert_validation(ValidationRecord(
        email="jane@acme.com", status="valid", method="api", confidence=95,
        domain="acme.com", validated_at=now, expires_at=now + timedelta(days=30),
    ))

    assert store.get_validation("JANE@acme.com").status == "valid"
    assert store.get_validation("jane@acme.com", now=now + timedelta(days=31)) is None
    assert store.list_validation_statuses() == ["valid"]


def test_domain_pattern_round_trip(store) -> None:
    store.upsert_domain_pattern(DomainPattern(domain="Acme.com", common_pattern="firstname.lastname"))
    assert store.get_domain_pattern("acme.com").common_pattern == "firstname.lastname"


def test_crm_update_and_delete(store, company_factory) -> None:
    lead = CrmLead.from_company(company_factory())
    store.save_crm_leads([lead])

    updated = lead.apply_update(status="Contacted", email_sent=True, today=date(2024, 5, 1))
    assert store.update_crm_lead(updated)
    saved = store.get_crm_leads()[0]
    assert (saved.status, saved.email_sent, saved.last_contacted) == ("Contacted", True, "2024-05-01")

    assert store.delete_crm_lead(lead.id)
    assert not store.delete_crm_lead(lead.id)
    assert store.get_crm_leads() == []


def test_exclusions_are_case_insensitive_and_unique(store) -> None:
    assert store.add_excluded_company("Acme Corp")
    assert store.add_excluded_company("acme corp")
    assert not store.add_excluded_company("  ")

    assert store.is_company_excluded("ACME CORP")
    excluded = store.get_excluded_companies()
    assert len(excluded) == 1
    assert store.remove_excluded_company(excluded[0].id)
    assert not store.is_company_excluded("Acme Corp")


def test_exclusion_check_tolerates_suffixes_and_typos(store) -> None:
    store.add_excluded_company("Acme Corporation")

    assert store.is_company_excluded("Acme, Inc.")
    assert store.is_company_excluded("Acmee Corp")
    assert not store.is_company_excluded("Umbrella Health")
    assert not store.is_company_excluded("")
    # A near-duplicate is not stored twice
    assert store.add_excluded_company("ACME Corp")
    assert len(store.get_excluded_companies()) == 1


def test_analytics_crm_counter(store) -> None:
    store.save_search_analytics(SearchAnalytics(search_id="s1", leads_generated=10))

    assert store.increment_leads_added_to_crm("s1", 3)
    assert store.increment_leads_added_to_crm("s1", 2)
    assert not store.increment_leads_added_to_crm("missing", 1)
    assert store.get_search_analytics("s1").leads_added_to_crm == 5


def test_role_play_sessions_newest_first(store) -> None:
    older = RolePlayRecord(lead_id="l1", feedback="old", created_at=datetime.now() - timedelta(hours=1))
    newer = RolePlayRecord(
        lead_id="l1",
        transcript=[TranscriptEntry(speaker="user", text="Hi")],
        feedback="new",
    )
    store.save_role_play_session(older)
    store.save_role_play_session(newer)
    store.save_role_play_session(RolePlayRecord(lead_id="other"))

    sessions = store.get_role_play_sessions("l1")
    assert [s.feedback for s in sessions] == ["new", "old"]
    assert sessions[0].transcript[0].text == "Hi"


def test_supabase_read_failures_are_empty() -> None:
    client = MagicMock()
    client.table.return_value.select.return_value.eq.return_value.gt.return_value.limit.return_value \
        .execute.side_effect = RuntimeError("connection refused")

    store = SupabaseStore(client)

    assert store.get_validation("jane@acme.com") is None


def test_supabase_upsert_uses_conflict_key() -> None:
    client = MagicMock()
    store = SupabaseStore(client)
    now = utcnow()

    store.upsert_validation(ValidationRecord(
        email="jane@acme.com", status="valid", method="api", confidence=95,
        validated_at=now, expires_at=now + timedelta(days=30),
    ))

    client.table.assert_called_with("email_validations")
    row = client.table.return_value.upsert.call_args.args[0]
    assert row["email"] == "jane@acme.com"
    assert row["validation_status"] == "valid"
    assert client.table.return_value.upsert.call_args.kwargs == {"on_conflict": "email"}


def test_supabase_write_failure_reports_false(company_factory) -> None:
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.side_effect = RuntimeError("down")

    assert SupabaseStore(client).save_companies("s1", [company_factory()]) is False

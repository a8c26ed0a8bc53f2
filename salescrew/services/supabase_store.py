"""Supabase-backed record store."""

import logging
from typing import Any, List, Optional

from supabase import Client, create_client

from ..config import Settings
from ..models.history import ExcludedCompany, SearchAnalytics, UserSearch
from ..models.roleplay import RolePlayRecord
from ..models.validation import utcnow
from .store import (
    RecordStore,
    company_from_row,
    company_to_row,
    crm_lead_from_row,
    crm_lead_to_row,
    history_to_row,
    pattern_from_row,
    pattern_to_row,
    search_from_row,
    search_to_row,
    validation_from_row,
    validation_to_row,
)

logger = logging.getLogger(__name__)


class SupabaseStore(RecordStore):
    """
    Record store over the hosted Postgres tables.

    Reads that fail are logged and treated as empty; writes that fail are
    logged and reported through their boolean result.
    """

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseStore":
        if not settings.has_supabase:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY are required")
        return cls(create_client(settings.supabase_url, settings.supabase_key))

    def _rows(self, query: Any, context: str) -> List[dict]:
        try:
            return query.execute().data or []
        except Exception as e:
            logger.error(f"[Supabase] Error {context}: {e}")
            return []

    def _write(self, query: Any, context: str) -> bool:
        try:
            query.execute()
            return True
        except Exception as e:
            logger.error(f"[Supabase] Error {context}: {e}")
            return False

    # Email validation cache

    def get_validation(self, email, now=None):
        now = now or utcnow()
        rows = self._rows(
            self.client.table("email_validations")
            .select("*")
            .eq("email", email.lower())
            .gt("expires_at", now.isoformat())
            .limit(1),
            "checking cached validation",
        )
        return validation_from_row(rows[0]) if rows else None

    def upsert_validation(self, record):
        self._write(
            self.client.table("email_validations").upsert(validation_to_row(record), on_conflict="email"),
            "saving validation to cache",
        )

    def append_validation_history(self, entry):
        self._write(
            self.client.table("email_validation_history").insert(history_to_row(entry)),
            "appending validation history",
        )

    def list_validation_statuses(self):
        rows = self._rows(
            self.client.table("email_validations").select("validation_status"),
            "fetching validation statistics",
        )
        return [row["validation_status"] for row in rows]

    def get_domain_pattern(self, domain):
        rows = self._rows(
            self.client.table("email_domain_patterns").select("*").eq("domain", domain.lower()).limit(1),
            "fetching domain pattern",
        )
        return pattern_from_row(rows[0]) if rows else None

    def upsert_domain_pattern(self, pattern):
        self._write(
            self.client.table("email_domain_patterns").upsert(pattern_to_row(pattern), on_conflict="domain"),
            "saving domain pattern",
        )

    # Searches and generated companies

    def save_search(self, criteria):
        search = UserSearch(criteria=criteria)
        self._write(self.client.table("user_searches").insert(search_to_row(search)), "saving search")
        return search

    def get_recent_searches(self, limit=10):
        rows = self._rows(
            self.client.table("user_searches").select("*").order("created_at", desc=True).limit(limit),
            "fetching searches",
        )
        return [search_from_row(row) for row in rows]

    def save_companies(self, search_id, companies):
        if not companies:
            return True
        rows = [company_to_row(c, search_id) for c in companies]
        return self._write(self.client.table("companies").insert(rows), "saving companies")

    def get_companies_for_search(self, search_id):
        rows = self._rows(
            self.client.table("companies").select("*").eq("search_id", search_id),
            "fetching companies",
        )
        return [company_from_row(row) for row in rows]

    def save_search_analytics(self, analytics):
        return self._write(
            self.client.table("search_analytics").insert(analytics.model_dump(mode="json")),
            "recording search analytics",
        )

    def get_search_analytics(self, search_id):
        rows = self._rows(
            self.client.table("search_analytics")
            .select("*")
            .eq("search_id", search_id)
            .order("created_at", desc=True)
            .limit(1),
            "fetching search analytics",
        )
        return SearchAnalytics.model_validate(rows[0]) if rows else None

    def increment_leads_added_to_crm(self, search_id, count):
        current = self.get_search_analytics(search_id)
        if current is None:
            return False
        return self._write(
            self.client.table("search_analytics")
            .update({"leads_added_to_crm": current.leads_added_to_crm + count})
            .eq("search_id", search_id),
            "updating conversion metrics",
        )

    # CRM

    def save_crm_leads(self, leads):
        if not leads:
            return True
        rows = [crm_lead_to_row(lead) for lead in leads]
        return self._write(self.client.table("crm_leads").insert(rows), "saving CRM leads")

    def get_crm_leads(self):
        rows = self._rows(
            self.client.table("crm_leads").select("*").order("created_at", desc=True),
            "fetching CRM leads",
        )
        return [crm_lead_from_row(row) for row in rows]

    def update_crm_lead(self, lead):
        row = crm_lead_to_row(lead)
        row["updated_at"] = utcnow().isoformat()
        return self._write(
            self.client.table("crm_leads").update(row).eq("id", lead.id),
            "updating CRM lead",
        )

    def delete_crm_lead(self, lead_id):
        return self._write(
            self.client.table("crm_leads").delete().eq("id", lead_id),
            "deleting CRM lead",
        )

    # Exclusions

    def add_excluded_company(self, company_name, website="", reason=""):
        company_name = (company_name or "").strip()
        if not company_name:
            return False
        record = ExcludedCompany(company_name=company_name, website=website, reason=reason)
        return self._write(
            self.client.table("excluded_companies").upsert(
                record.model_dump(mode="json"),
                on_conflict="company_name",
                ignore_duplicates=True,
            ),
            "adding excluded company",
        )

    def get_excluded_companies(self):
        rows = self._rows(
            self.client.table("excluded_companies").select("*").order("excluded_at", desc=True),
            "fetching excluded companies",
        )
        return [ExcludedCompany.model_validate(row) for row in rows]

    def remove_excluded_company(self, company_id):
        return self._write(
            self.client.table("excluded_companies").delete().eq("id", company_id),
            "removing excluded company",
        )

    def is_company_excluded(self, company_name):
        target = (company_name or "").strip()
        if not target:
            return False
        rows = self._rows(
            self.client.table("excluded_companies").select("id").ilike("company_name", target).limit(1),
            "checking excluded company",
        )
        return bool(rows)

    # Role-play

    def save_role_play_session(self, record):
        return self._write(
            self.client.table("role_play_sessions").insert(record.model_dump(mode="json")),
            "saving role-play session",
        )

    def get_role_play_sessions(self, lead_id):
        rows = self._rows(
            self.client.table("role_play_sessions")
            .select("*")
            .eq("lead_id", lead_id)
            .order("created_at", desc=True),
            "fetching role-play sessions",
        )
        return [RolePlayRecord.model_validate(row) for row in rows]

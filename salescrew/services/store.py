"""Persistence boundary: record store interface, row mappers and a local JSON store."""

import functools
import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.history import ExcludedCompany, SearchAnalytics, UserSearch
from ..models.leads import Company, CrmLead, UserCriteria
from ..models.roleplay import RolePlayRecord
from ..models.validation import (
    DomainPattern,
    ValidationHistoryEntry,
    ValidationRecord,
    utcnow,
)
from ..utils.fuzzy_matcher import find_best_match

logger = logging.getLogger(__name__)


def _locked(method):
    """Serialize access to the in-memory document across threads."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


# ---------------------------------------------------------------------------
# Row mappers (database column names <-> models)
# ---------------------------------------------------------------------------

def company_to_row(company: Company, search_id: Optional[str] = None) -> Dict[str, Any]:
    row = {
        "company_name": company.company_name,
        "website": company.website,
        "industry": company.industry,
        "reason_for_fit": company.reason_for_fit,
        "confidence_score": company.confidence_score,
        "likely_to_buy": company.likely_to_buy,
        "contact_data": company.contact.model_dump(mode="json"),
        "pitch_data": company.pitch.model_dump(mode="json"),
        "quality_score": company.quality_score,
    }
    if search_id is not None:
        row["search_id"] = search_id
    return row


def company_from_row(row: Dict[str, Any]) -> Company:
    return Company(
        company_name=row.get("company_name"),
        website=row.get("website"),
        industry=row.get("industry"),
        reason_for_fit=row.get("reason_for_fit"),
        confidence_score=row.get("confidence_score"),
        likely_to_buy=row.get("likely_to_buy"),
        contact=row.get("contact_data") or {},
        pitch=row.get("pitch_data") or {},
        quality_score=row.get("quality_score"),
    )


def crm_lead_to_row(lead: CrmLead) -> Dict[str, Any]:
    row = company_to_row(lead)
    row.update({
        "id": lead.id,
        "status": lead.status,
        "last_contacted": lead.last_contacted,
        "email_sent": lead.email_sent,
        "reply_received": lead.reply_received,
        "notes": lead.notes,
    })
    return row


def crm_lead_from_row(row: Dict[str, Any]) -> CrmLead:
    company = company_from_row(row)
    return CrmLead(
        **company.model_dump(),
        id=row["id"],
        status=row.get("status") or "New",
        last_contacted=row.get("last_contacted") or None,
        email_sent=bool(row.get("email_sent")),
        reply_received=bool(row.get("reply_received")),
        notes=row.get("notes") or "",
    )


def validation_to_row(record: ValidationRecord) -> Dict[str, Any]:
    return {
        "email": record.email,
        "validation_status": record.status,
        "validation_method": record.method,
        "confidence_score": record.confidence,
        "domain": record.domain,
        "error_message": record.message,
        "validated_at": record.validated_at.isoformat(),
        "expires_at": record.expires_at.isoformat(),
    }


def validation_from_row(row: Dict[str, Any]) -> ValidationRecord:
    return ValidationRecord(
        email=row["email"],
        status=row["validation_status"],
        method=row["validation_method"],
        confidence=row["confidence_score"],
        domain=row.get("domain") or "",
        message=row.get("error_message"),
        validated_at=row["validated_at"],
        expires_at=row["expires_at"],
    )


def history_to_row(entry: ValidationHistoryEntry) -> Dict[str, Any]:
    return {
        "email": entry.email,
        "validation_status": entry.status,
        "validation_method": entry.method,
        "api_response": {"message": entry.message} if entry.message else None,
        "validated_at": entry.validated_at.isoformat(),
    }


def pattern_to_row(pattern: DomainPattern) -> Dict[str, Any]:
    return pattern.model_dump(mode="json")


def pattern_from_row(row: Dict[str, Any]) -> DomainPattern:
    return DomainPattern.model_validate(row)


def search_to_row(search: UserSearch) -> Dict[str, Any]:
    row = {"id": search.id, "created_at": search.created_at.isoformat()}
    row.update(search.criteria.model_dump())
    return row


def search_from_row(row: Dict[str, Any]) -> UserSearch:
    criteria = UserCriteria(**{
        name: row.get(name) for name in UserCriteria.model_fields
    })
    return UserSearch(id=row["id"], criteria=criteria, created_at=row["created_at"])


# ---------------------------------------------------------------------------
# Store interface
# ---------------------------------------------------------------------------

class RecordStore(ABC):
    """
    Storage contract used by the validator, the pipeline UI and the CRM.

    Keys follow the record definitions: validations by lowercased email,
    domain patterns by domain, CRM leads by id.
    """

    # Email validation cache

    @abstractmethod
    def get_validation(self, email: str, now: Optional[datetime] = None) -> Optional[ValidationRecord]:
        """Return the cached record for an address, or None when missing or expired."""

    @abstractmethod
    def upsert_validation(self, record: ValidationRecord) -> None:
        pass

    @abstractmethod
    def append_validation_history(self, entry: ValidationHistoryEntry) -> None:
        pass

    @abstractmethod
    def list_validation_statuses(self) -> List[str]:
        """Status of every cached record, expired ones included."""

    @abstractmethod
    def get_domain_pattern(self, domain: str) -> Optional[DomainPattern]:
        pass

    @abstractmethod
    def upsert_domain_pattern(self, pattern: DomainPattern) -> None:
        pass

    # Searches and generated companies

    @abstractmethod
    def save_search(self, criteria: UserCriteria) -> UserSearch:
        pass

    @abstractmethod
    def get_recent_searches(self, limit: int = 10) -> List[UserSearch]:
        pass

    @abstractmethod
    def save_companies(self, search_id: str, companies: List[Company]) -> bool:
        pass

    @abstractmethod
    def get_companies_for_search(self, search_id: str) -> List[Company]:
        pass

    @abstractmethod
    def save_search_analytics(self, analytics: SearchAnalytics) -> bool:
        pass

    @abstractmethod
    def get_search_analytics(self, search_id: str) -> Optional[SearchAnalytics]:
        pass

    @abstractmethod
    def increment_leads_added_to_crm(self, search_id: str, count: int) -> bool:
        pass

    # CRM

    @abstractmethod
    def save_crm_leads(self, leads: List[CrmLead]) -> bool:
        pass

    @abstractmethod
    def get_crm_leads(self) -> List[CrmLead]:
        pass

    @abstractmethod
    def update_crm_lead(self, lead: CrmLead) -> bool:
        pass

    @abstractmethod
    def delete_crm_lead(self, lead_id: str) -> bool:
        pass

    # Exclusions

    @abstractmethod
    def add_excluded_company(self, company_name: str, website: str = "", reason: str = "") -> bool:
        pass

    @abstractmethod
    def get_excluded_companies(self) -> List[ExcludedCompany]:
        pass

    @abstractmethod
    def remove_excluded_company(self, company_id: str) -> bool:
        pass

    def get_excluded_company_names(self) -> List[str]:
        return [c.company_name for c in self.get_excluded_companies()]

    def is_company_excluded(self, company_name: str) -> bool:
        """Fuzzy match against the exclusion list (suffixes and case ignored, small typos tolerated)."""
        if not (company_name or "").strip():
            return False
        match, _ = find_best_match(company_name, self.get_excluded_company_names())
        return match is not None

    # Role-play

    @abstractmethod
    def save_role_play_session(self, record: RolePlayRecord) -> bool:
        pass

    @abstractmethod
    def get_role_play_sessions(self, lead_id: str) -> List[RolePlayRecord]:
        pass


# ---------------------------------------------------------------------------
# Local JSON store
# ---------------------------------------------------------------------------

class LocalStore(RecordStore):
    """
    File-based store for running without a hosted database.

    All tables live in one JSON document that is rewritten after every
    change (temp file, then rename).
    """

    # Default storage locations
    PRIMARY_STORAGE_DIR = Path.home() / ".salescrew"
    FALLBACK_STORAGE_DIR = Path("./data")
    STORE_FILENAME = "salescrew_store.json"

    TABLES = {
        "email_validations": dict,
        "email_validation_history": list,
        "email_domain_patterns": dict,
        "user_searches": list,
        "companies": list,
        "search_analytics": list,
        "crm_leads": list,
        "excluded_companies": list,
        "role_play_sessions": list,
    }

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            path: JSON file location; defaults to ~/.salescrew with ./data fallback
        """
        self._storage_path: Optional[Path] = Path(path) if path else None
        self._data: Optional[Dict[str, Any]] = None
        self._lock = threading.RLock()

    @property
    def storage_path(self) -> Path:
        """Get the path to the store file, creating directory if needed."""
        if self._storage_path is not None:
            return self._storage_path

        # Try primary location first (home directory)
        try:
            self.PRIMARY_STORAGE_DIR.mkdir(parents=True, exist_ok=True)
            self._storage_path = self.PRIMARY_STORAGE_DIR / self.STORE_FILENAME
            return self._storage_path
        except (PermissionError, OSError):
            pass

        # Fall back to app directory
        try:
            self.FALLBACK_STORAGE_DIR.mkdir(parents=True, exist_ok=True)
            self._storage_path = self.FALLBACK_STORAGE_DIR / self.STORE_FILENAME
            return self._storage_path
        except (PermissionError, OSError):
            # Last resort: current directory
            self._storage_path = Path(self.STORE_FILENAME)
            return self._storage_path

    @property
    def data(self) -> Dict[str, Any]:
        """Load the document from disk on first access."""
        if self._data is not None:
            return self._data

        data: Dict[str, Any] = {}
        path = self.storage_path
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"[Store] Could not load {path}: {e}. Starting empty.")
                data = {}

        for table, factory in self.TABLES.items():
            if not isinstance(data.get(table), factory):
                data[table] = factory()
        self._data = data
        return self._data

    @_locked
    def _flush(self) -> bool:
        path = self.storage_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = path.with_suffix(".tmp")
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(self.data, f, indent=2, default=str)
            temp_path.replace(path)
            return True
        except OSError as e:
            logger.error(f"[Store] Error saving {path}: {e}")
            return False

    # Email validation cache

    @_locked
    def get_validation(self, email, now=None):
        row = self.data["email_validations"].get(email.lower())
        if not row:
            return None
        record = validation_from_row(row)
        if record.is_expired(now or utcnow()):
            return None
        return record

    @_locked
    def upsert_validation(self, record):
        self.data["email_validations"][record.email] = validation_to_row(record)
        self._flush()

    @_locked
    def append_validation_history(self, entry):
        self.data["email_validation_history"].append(history_to_row(entry))
        self._flush()

    @_locked
    def list_validation_statuses(self):
        return [row["validation_status"] for row in self.data["email_validations"].values()]

    @_locked
    def get_domain_pattern(self, domain):
        row = self.data["email_domain_patterns"].get(domain.lower())
        return pattern_from_row(row) if row else None

    @_locked
    def upsert_domain_pattern(self, pattern):
        self.data["email_domain_patterns"][pattern.domain.lower()] = pattern_to_row(pattern)
        self._flush()

    # Searches and generated companies

    @_locked
    def save_search(self, criteria):
        search = UserSearch(criteria=criteria)
        self.data["user_searches"].append(search_to_row(search))
        self._flush()
        return search

    @_locked
    def get_recent_searches(self, limit=10):
        searches = [search_from_row(row) for row in self.data["user_searches"]]
        searches.sort(key=lambda s: s.created_at, reverse=True)
        return searches[:limit]

    @_locked
    def save_companies(self, search_id, companies):
        self.data["companies"].extend(company_to_row(c, search_id) for c in companies)
        return self._flush()

    @_locked
    def get_companies_for_search(self, search_id):
        return [
            company_from_row(row)
            for row in self.data["companies"]
            if row.get("search_id") == search_id
        ]

    @_locked
    def save_search_analytics(self, analytics):
        self.data["search_analytics"].append(analytics.model_dump(mode="json"))
        return self._flush()

    @_locked
    def get_search_analytics(self, search_id):
        for row in reversed(self.data["search_analytics"]):
            if row.get("search_id") == search_id:
                return SearchAnalytics.model_validate(row)
        return None

    @_locked
    def increment_leads_added_to_crm(self, search_id, count):
        for row in reversed(self.data["search_analytics"]):
            if row.get("search_id") == search_id:
                row["leads_added_to_crm"] = row.get("leads_added_to_crm", 0) + count
                return self._flush()
        return False

    # CRM

    @_locked
    def save_crm_leads(self, leads):
        self.data["crm_leads"].extend(crm_lead_to_row(lead) for lead in leads)
        return self._flush()

    @_locked
    def get_crm_leads(self):
        return [crm_lead_from_row(row) for row in self.data["crm_leads"]]

    @_locked
    def update_crm_lead(self, lead):
        rows = self.data["crm_leads"]
        for i, row in enumerate(rows):
            if row.get("id") == lead.id:
                rows[i] = crm_lead_to_row(lead)
                return self._flush()
        return False

    @_locked
    def delete_crm_lead(self, lead_id):
        rows = self.data["crm_leads"]
        remaining = [row for row in rows if row.get("id") != lead_id]
        if len(remaining) == len(rows):
            return False
        self.data["crm_leads"] = remaining
        return self._flush()

    # Exclusions

    @_locked
    def add_excluded_company(self, company_name, website="", reason=""):
        company_name = (company_name or "").strip()
        if not company_name:
            return False
        if self.is_company_excluded(company_name):
            return True
        record = ExcludedCompany(company_name=company_name, website=website, reason=reason)
        self.data["excluded_companies"].append(record.model_dump(mode="json"))
        return self._flush()

    @_locked
    def get_excluded_companies(self):
        companies = [ExcludedCompany.model_validate(row) for row in self.data["excluded_companies"]]
        companies.sort(key=lambda c: c.excluded_at, reverse=True)
        return companies

    @_locked
    def remove_excluded_company(self, company_id):
        rows = self.data["excluded_companies"]
        remaining = [row for row in rows if row.get("id") != company_id]
        if len(remaining) == len(rows):
            return False
        self.data["excluded_companies"] = remaining
        return self._flush()

    # Role-play

    @_locked
    def save_role_play_session(self, record):
        self.data["role_play_sessions"].append(record.model_dump(mode="json"))
        return self._flush()

    @_locked
    def get_role_play_sessions(self, lead_id):
        sessions = [
            RolePlayRecord.model_validate(row)
            for row in self.data["role_play_sessions"]
            if row.get("lead_id") == lead_id
        ]
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return sessions

    # Diagnostics

    @_locked
    def table_counts(self) -> Dict[str, int]:
        return {table: len(self.data[table]) for table in self.TABLES}

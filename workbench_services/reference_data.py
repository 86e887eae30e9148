"""
Reference data collaborator (``workbench_services.reference_data``).

Companies, accounts and categories are owned by another system.  The
workbench only asks whether an identifier exists, at the submit tier, and
only when a provider is configured.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

from workbench_modules.entries.models import Entry, EntryKind

UNKNOWN_COMPANY = "Unknown company"
UNKNOWN_ACCOUNT = "Unknown account for this company"
UNKNOWN_CATEGORY = "Unknown category for this kind of entry"


@runtime_checkable
class ReferenceDataProvider(Protocol):
    """Existence checks against externally owned reference data."""

    def company_exists(self, company_id: str) -> bool: ...

    def account_exists(self, company_id: str, account_id: str) -> bool: ...

    def category_exists(self, kind: EntryKind, category_id: str) -> bool: ...


class StaticReferenceData:
    """In-memory reference data, for tests and demos."""

    def __init__(
        self,
        companies: Iterable[str] = (),
        accounts: Mapping[str, Iterable[str]] | None = None,
        categories: Mapping[EntryKind | str, Iterable[str]] | None = None,
    ):
        self._companies = frozenset(companies)
        self._accounts = {
            company: frozenset(ids) for company, ids in (accounts or {}).items()
        }
        self._categories = {
            EntryKind(kind): frozenset(ids) for kind, ids in (categories or {}).items()
        }

    def company_exists(self, company_id: str) -> bool:
        return company_id in self._companies

    def account_exists(self, company_id: str, account_id: str) -> bool:
        return account_id in self._accounts.get(company_id, frozenset())

    def category_exists(self, kind: EntryKind, category_id: str) -> bool:
        return category_id in self._categories.get(EntryKind(kind), frozenset())


def check_reference_data(entry: Entry, provider: ReferenceDataProvider) -> dict[str, str]:
    """Field errors for identifiers the provider does not know.

    Blank identifiers are left to the gate's required-field checks.
    """
    errors: dict[str, str] = {}
    if entry.company_id and not provider.company_exists(entry.company_id):
        errors["company_id"] = UNKNOWN_COMPANY
    elif (
        entry.company_id
        and entry.account_id
        and not provider.account_exists(entry.company_id, entry.account_id)
    ):
        errors["account_id"] = UNKNOWN_ACCOUNT
    if (
        entry.kind != EntryKind.TRANSFER
        and entry.category_id
        and not provider.category_exists(entry.kind, entry.category_id)
    ):
        errors["category_id"] = UNKNOWN_CATEGORY
    return errors

"""
Workbench configuration schema.

Frozen dataclasses describing one deployment's workflow policy.  YAML
documents are parsed into these types by ``workbench_config.loader``; no
other component reads configuration files.

Key distinction:
  WorkbenchConfig      = parsed, validated runtime artifact (frozen)
  defaults/*.yaml      = human-authored source
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping

# ---------------------------------------------------------------------------
# Posting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PostingPolicy:
    """Who may post an approved entry, and whether unposting is allowed."""

    post_roles: tuple[str, ...] = ("preparer", "approver")
    allow_unpost: bool = True


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationPolicy:
    """Deployment-specific tightening of the field validation tiers."""

    require_note_for_no_booking: bool = False
    min_amount: Decimal = Decimal("0.01")


# ---------------------------------------------------------------------------
# Booking search
# ---------------------------------------------------------------------------


def _default_status_weights() -> Mapping[str, int]:
    return MappingProxyType({"Delivered": 3, "Closed": 2})


@dataclass(frozen=True)
class BookingSearchPolicy:
    """Ranking parameters for interactive booking search."""

    status_weights: Mapping[str, int] = field(default_factory=_default_status_weights)
    default_status_weight: int = 1
    proximity_threshold_days: int = 1
    default_date_filter: str | None = None

    def weight_for(self, status: str) -> int:
        return self.status_weights.get(status, self.default_status_weight)


# ---------------------------------------------------------------------------
# RFP
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RfpPolicy:
    """Presentation of derived RFP fields."""

    currency_label: str = "Pesos"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    url: str = "sqlite:///:memory:"
    echo: bool = False


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkbenchConfig:
    """The complete, validated workbench configuration."""

    posting: PostingPolicy = field(default_factory=PostingPolicy)
    validation: ValidationPolicy = field(default_factory=ValidationPolicy)
    booking_search: BookingSearchPolicy = field(default_factory=BookingSearchPolicy)
    rfp: RfpPolicy = field(default_factory=RfpPolicy)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    checksum: str = ""

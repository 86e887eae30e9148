"""
Configuration Loader (``workbench_config.loader``).

Responsibility
--------------
Loads YAML configuration documents and parses them into the typed
``workbench_config.schema`` dataclasses.  Runtime callers go through
``workbench_config.get_active_config()``; tests call ``parse_config``
directly with inline dicts.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown sections or keys are rejected, never silently ignored.
* Every invalid value raises ``ConfigurationError`` naming the dotted key.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid structure or value  -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from workbench_config.schema import (
    BookingSearchPolicy,
    DatabaseConfig,
    PostingPolicy,
    RfpPolicy,
    ValidationPolicy,
    WorkbenchConfig,
)
from workbench_kernel.exceptions import ConfigurationError

VALID_ROLES = frozenset({"preparer", "approver"})
VALID_DATE_FILTERS = frozenset({"today", "yesterday", "last_7_days"})

_SECTION_KEYS: dict[str, frozenset[str]] = {
    "posting": frozenset({"post_roles", "allow_unpost"}),
    "validation": frozenset({"require_note_for_no_booking", "min_amount"}),
    "booking_search": frozenset({
        "status_weights",
        "default_status_weight",
        "proximity_threshold_days",
        "default_date_filter",
    }),
    "rfp": frozenset({"currency_label"}),
    "database": frozenset({"url", "echo"}),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top-level YAML must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Value coercion helpers
# ---------------------------------------------------------------------------


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    raw = data.get(name)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(name, "section must be a mapping")
    unknown = set(raw) - _SECTION_KEYS[name]
    if unknown:
        raise ConfigurationError(
            f"{name}.{sorted(unknown)[0]}", "unknown configuration key"
        )
    return raw


def _bool(section: dict[str, Any], key: str, default: bool, prefix: str) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"{prefix}.{key}", f"expected true/false, got {value!r}")
    return value


def _int(
    section: dict[str, Any], key: str, default: int, prefix: str, minimum: int = 0
) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{prefix}.{key}", f"expected an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(f"{prefix}.{key}", f"must be >= {minimum}")
    return value


# ---------------------------------------------------------------------------
# Section parsers
# ---------------------------------------------------------------------------


def parse_posting(section: dict[str, Any]) -> PostingPolicy:
    """Parse the ``posting`` section."""
    roles_raw = section.get("post_roles", list(PostingPolicy.post_roles))
    if not isinstance(roles_raw, (list, tuple)) or not roles_raw:
        raise ConfigurationError("posting.post_roles", "must be a non-empty list")
    roles: list[str] = []
    for role in roles_raw:
        if role not in VALID_ROLES:
            raise ConfigurationError("posting.post_roles", f"unknown role {role!r}")
        if role not in roles:
            roles.append(role)
    return PostingPolicy(
        post_roles=tuple(roles),
        allow_unpost=_bool(section, "allow_unpost", True, "posting"),
    )


def parse_validation(section: dict[str, Any]) -> ValidationPolicy:
    """Parse the ``validation`` section."""
    raw_min = section.get("min_amount", "0.01")
    try:
        min_amount = Decimal(str(raw_min))
    except InvalidOperation:
        raise ConfigurationError(
            "validation.min_amount", f"not a decimal: {raw_min!r}"
        ) from None
    if not min_amount.is_finite() or min_amount <= 0:
        raise ConfigurationError("validation.min_amount", "must be greater than zero")
    return ValidationPolicy(
        require_note_for_no_booking=_bool(
            section, "require_note_for_no_booking", False, "validation"
        ),
        min_amount=min_amount,
    )


def parse_booking_search(section: dict[str, Any]) -> BookingSearchPolicy:
    """Parse the ``booking_search`` section."""
    weights_raw = section.get("status_weights", {"Delivered": 3, "Closed": 2})
    if not isinstance(weights_raw, dict):
        raise ConfigurationError("booking_search.status_weights", "must be a mapping")
    weights: dict[str, int] = {}
    for status, weight in weights_raw.items():
        if isinstance(weight, bool) or not isinstance(weight, int) or weight < 0:
            raise ConfigurationError(
                f"booking_search.status_weights.{status}",
                f"expected a non-negative integer, got {weight!r}",
            )
        weights[str(status)] = weight

    date_filter = section.get("default_date_filter")
    if date_filter is not None and date_filter not in VALID_DATE_FILTERS:
        raise ConfigurationError(
            "booking_search.default_date_filter",
            f"must be one of {sorted(VALID_DATE_FILTERS)} or null",
        )

    return BookingSearchPolicy(
        status_weights=MappingProxyType(weights),
        default_status_weight=_int(
            section, "default_status_weight", 1, "booking_search"
        ),
        proximity_threshold_days=_int(
            section, "proximity_threshold_days", 1, "booking_search"
        ),
        default_date_filter=date_filter,
    )


def parse_rfp(section: dict[str, Any]) -> RfpPolicy:
    """Parse the ``rfp`` section."""
    label = section.get("currency_label", "Pesos")
    if not isinstance(label, str) or not label.strip():
        raise ConfigurationError("rfp.currency_label", "must be a non-empty string")
    return RfpPolicy(currency_label=label.strip())


def parse_database(section: dict[str, Any]) -> DatabaseConfig:
    """Parse the ``database`` section."""
    url = section.get("url", DatabaseConfig.url)
    if not isinstance(url, str) or not url:
        raise ConfigurationError("database.url", "must be a non-empty string")
    return DatabaseConfig(url=url, echo=_bool(section, "echo", False, "database"))


def parse_config(data: dict[str, Any]) -> WorkbenchConfig:
    """
    Parse a complete configuration document.

    Missing sections take their schema defaults.

    Raises:
        ConfigurationError: on unknown sections or invalid values.
    """
    unknown = set(data) - set(_SECTION_KEYS)
    if unknown:
        raise ConfigurationError(sorted(unknown)[0], "unknown configuration section")

    return WorkbenchConfig(
        posting=parse_posting(_section(data, "posting")),
        validation=parse_validation(_section(data, "validation")),
        booking_search=parse_booking_search(_section(data, "booking_search")),
        rfp=parse_rfp(_section(data, "rfp")),
        database=parse_database(_section(data, "database")),
        checksum=compute_checksum(data),
    )


def load_config(path: Path | str) -> WorkbenchConfig:
    """Load and parse a configuration file."""
    return parse_config(load_yaml_file(Path(path)))

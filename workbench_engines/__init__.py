"""
Workbench Engines - pure calculation layer.

Engines here have ZERO I/O: no database, no clock reads, no config files.
They are called by ``workbench_modules`` and ``workbench_services`` with
explicit inputs (snapshots, today's date, policies) and return values.

Engines MUST NOT import workbench_services, ORM models or registries;
module DTO types (``models.py``) and workflows are allowed.

Engines:
- gate: validation & permission gate for entry transitions
- booking_matching: booking search filters and candidate ranking
- amount_words: amount rendered in words for payment requests
"""

from workbench_engines.amount_words import amount_to_words, integer_to_words
from workbench_engines.booking_matching import (
    DEFAULT_RANKING_POLICY,
    RankingPolicy,
    compare_candidates,
    filter_candidates,
    rank_candidates,
    search_candidates,
)
from workbench_engines.gate import (
    DEFAULT_GATE_POLICY,
    GateDenial,
    GatePolicy,
    GateResult,
    allowed_targets,
    evaluate,
    locked_fields,
    validate_rfp_submission,
)

__all__ = [
    "amount_to_words",
    "integer_to_words",
    "DEFAULT_RANKING_POLICY",
    "RankingPolicy",
    "compare_candidates",
    "filter_candidates",
    "rank_candidates",
    "search_candidates",
    "DEFAULT_GATE_POLICY",
    "GateDenial",
    "GatePolicy",
    "GateResult",
    "allowed_targets",
    "evaluate",
    "locked_fields",
    "validate_rfp_submission",
]

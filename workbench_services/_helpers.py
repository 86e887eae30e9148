"""
Shared helpers for workbench services.

Transaction finishing for outcome-returning methods, and translation of
the loaded ``WorkbenchConfig`` into the policy objects the engines take.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from workbench_config.schema import WorkbenchConfig
from workbench_engines.booking_matching import RankingPolicy
from workbench_engines.gate import GatePolicy
from workbench_kernel.domain.outcomes import WorkbenchOutcome


def commit_or_rollback(session: Session, outcome: WorkbenchOutcome) -> None:
    """Commit on success, rollback otherwise."""
    if outcome.is_success:
        session.commit()
    else:
        session.rollback()


def gate_policy_from_config(config: WorkbenchConfig) -> GatePolicy:
    return GatePolicy(
        post_roles=config.posting.post_roles,
        require_note_for_no_booking=config.validation.require_note_for_no_booking,
        min_amount=config.validation.min_amount,
    )


def ranking_policy_from_config(config: WorkbenchConfig) -> RankingPolicy:
    search = config.booking_search
    return RankingPolicy(
        status_weights=search.status_weights,
        default_status_weight=search.default_status_weight,
        proximity_threshold_days=search.proximity_threshold_days,
    )

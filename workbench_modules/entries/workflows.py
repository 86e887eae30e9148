"""Entry Workflows.

State machine for an entry's approval lifecycle.  Each transition names
the roles that may request it and the validation tier the gate applies.
"""

from workbench_kernel.domain.workflow import Guard, Transition, ValidationTier, Workflow
from workbench_kernel.logging_config import get_logger

logger = get_logger("modules.entries.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

AMOUNT_PRESENT = Guard(
    name="amount_present",
    description="Amount is greater than zero",
)

SUBMIT_FIELDS_COMPLETE = Guard(
    name="submit_fields_complete",
    description="Company, account, category, payee present and booking verified or marked no-booking",
)

REASON_GIVEN = Guard(
    name="reason_given",
    description="A non-empty rejection reason is supplied",
)

logger.info(
    "entry_workflow_guards_defined",
    extra={
        "guards": [
            AMOUNT_PRESENT.name,
            SUBMIT_FIELDS_COMPLETE.name,
            REASON_GIVEN.name,
        ],
    },
)

PREPARER = "preparer"
APPROVER = "approver"


# -----------------------------------------------------------------------------
# Entry Workflow
# -----------------------------------------------------------------------------

ENTRY_WORKFLOW = Workflow(
    name="entry",
    description="Entry approval lifecycle",
    initial_state="draft",
    states=(
        "draft",
        "pending",
        "approved",
        "rejected",
        "posted",
    ),
    transitions=(
        Transition(
            "draft", "draft", action="save_draft",
            guard=AMOUNT_PRESENT,
            permitted_roles=(PREPARER,),
            tier=ValidationTier.DRAFT,
        ),
        Transition(
            "draft", "pending", action="submit_for_approval",
            guard=SUBMIT_FIELDS_COMPLETE,
            permitted_roles=(PREPARER,),
            tier=ValidationTier.SUBMIT,
        ),
        Transition(
            "pending", "approved", action="approve",
            guard=SUBMIT_FIELDS_COMPLETE,
            permitted_roles=(APPROVER,),
            tier=ValidationTier.SUBMIT,
        ),
        Transition(
            "pending", "rejected", action="reject",
            guard=REASON_GIVEN,
            permitted_roles=(APPROVER,),
            tier=ValidationTier.REASON,
        ),
        Transition(
            "rejected", "draft", action="resubmit",
            guard=AMOUNT_PRESENT,
            permitted_roles=(PREPARER,),
            tier=ValidationTier.DRAFT,
        ),
        # Roles are replaced by the configured posting.post_roles
        Transition(
            "approved", "posted", action="post",
            guard=SUBMIT_FIELDS_COMPLETE,
            permitted_roles=(PREPARER, APPROVER),
            tier=ValidationTier.SUBMIT,
        ),
        Transition(
            "posted", "draft", action="unpost",
            administrative=True,
        ),
    ),
    terminal_states=("posted",),
)

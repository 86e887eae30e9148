"""Request-for-Payment Workflows.

State machine for the RFP attached to an expense entry.  ``approve`` is
fired only by the external payment-posting step and ``reopen`` only by the
entry service when the owning entry is rejected; neither can be requested
through an ordinary RFP transition.
"""

from workbench_kernel.domain.workflow import Guard, Transition, ValidationTier, Workflow
from workbench_kernel.logging_config import get_logger

logger = get_logger("modules.rfp.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

SUBMISSION_COMPLETE = Guard(
    name="submission_complete",
    description="Payee, amount, at least one attachment, and a booking or justification",
)

PAYMENT_POSTED = Guard(
    name="payment_posted",
    description="The external payment-posting step approved the request",
)

logger.info(
    "rfp_workflow_guards_defined",
    extra={"guards": [SUBMISSION_COMPLETE.name, PAYMENT_POSTED.name]},
)


# -----------------------------------------------------------------------------
# RFP Workflow
# -----------------------------------------------------------------------------

RFP_WORKFLOW = Workflow(
    name="rfp",
    description="Request-for-payment lifecycle",
    initial_state="draft",
    states=(
        "draft",
        "submitted",
        "approved",
        "cancelled",
    ),
    transitions=(
        Transition(
            "draft", "draft", action="save",
            permitted_roles=("preparer",),
            tier=ValidationTier.DRAFT,
        ),
        Transition(
            "draft", "submitted", action="submit",
            guard=SUBMISSION_COMPLETE,
            permitted_roles=("preparer",),
            tier=ValidationTier.SUBMIT,
        ),
        Transition(
            "draft", "cancelled", action="cancel",
            permitted_roles=("preparer",),
        ),
        Transition(
            "submitted", "approved", action="approve",
            guard=PAYMENT_POSTED,
            external=True,
        ),
        Transition(
            "submitted", "draft", action="reopen",
            administrative=True,
        ),
    ),
    terminal_states=("approved", "cancelled"),
)

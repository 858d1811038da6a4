"""Supervisor/planner and the automation policy it applies."""

from leadflow.planning.models import (
    DraftQuoteInputs,
    Plan,
    ProposeScheduleInputs,
    QualifyLeadInputs,
    RecordLeadInputs,
    RequestReviewInputs,
    RespondMissedCallInputs,
    Step,
    StepInputs,
)
from leadflow.planning.planner import plan, plan_id_for
from leadflow.planning.policy import TIER_DEFAULTS, Policy, load_policy, normalize_phone

__all__ = [
    "TIER_DEFAULTS",
    "DraftQuoteInputs",
    "Plan",
    "Policy",
    "ProposeScheduleInputs",
    "QualifyLeadInputs",
    "RecordLeadInputs",
    "RequestReviewInputs",
    "RespondMissedCallInputs",
    "Step",
    "StepInputs",
    "load_policy",
    "normalize_phone",
    "plan",
    "plan_id_for",
]

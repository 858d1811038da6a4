"""Domain types, records, payloads, and errors for the orchestration engine."""

from leadflow.domain.errors import (
    ActionAlreadyResolvedError,
    ActionNotFoundError,
    AgentError,
    DuplicateEventError,
    EventValidationError,
    ExternalToolError,
    InvalidTransitionError,
    LeadflowError,
    PersistenceError,
    StepExecutionError,
)
from leadflow.domain.models import (
    Conversation,
    Event,
    EventReceipt,
    Job,
    Lead,
    Message,
    PendingAction,
)
from leadflow.domain.payloads import (
    ActionPayload,
    EventPayload,
    InboundEvent,
    InboundSmsPayload,
    JobCompletedPayload,
    MissedCallPayload,
    ScheduleJobPayload,
    SendQuotePayload,
    SendSmsPayload,
    WebLeadPayload,
    parse_event_payload,
    parse_event_type,
)
from leadflow.domain.types import (
    ActionType,
    AgentName,
    ApprovalStatus,
    ConversationStatus,
    EventStatus,
    EventType,
    JobStatus,
    LeadStatus,
    MessageRole,
    PlanState,
    PolicyTier,
    StepAction,
    StepState,
)

__all__ = [
    "ActionAlreadyResolvedError",
    "ActionNotFoundError",
    "ActionPayload",
    "ActionType",
    "AgentError",
    "AgentName",
    "ApprovalStatus",
    "Conversation",
    "ConversationStatus",
    "DuplicateEventError",
    "Event",
    "EventPayload",
    "EventReceipt",
    "EventStatus",
    "EventType",
    "EventValidationError",
    "ExternalToolError",
    "InboundEvent",
    "InboundSmsPayload",
    "InvalidTransitionError",
    "Job",
    "JobCompletedPayload",
    "JobStatus",
    "Lead",
    "LeadStatus",
    "LeadflowError",
    "Message",
    "MessageRole",
    "MissedCallPayload",
    "PendingAction",
    "PersistenceError",
    "PlanState",
    "PolicyTier",
    "ScheduleJobPayload",
    "SendQuotePayload",
    "SendSmsPayload",
    "StepAction",
    "StepExecutionError",
    "StepState",
    "WebLeadPayload",
    "parse_event_payload",
    "parse_event_type",
]

"""Domain enumerations for the lead orchestration engine."""

from enum import StrEnum


class EventType(StrEnum):
    """Kinds of inbound events the engine accepts."""

    MISSED_CALL = "missed_call"
    INBOUND_SMS = "inbound_sms"
    WEB_LEAD = "web_lead"
    JOB_COMPLETED = "job_completed"


class EventStatus(StrEnum):
    """Processing status shared by events and their receipts."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_EVENT_STATUSES: frozenset[EventStatus] = frozenset(
    {EventStatus.COMPLETED, EventStatus.FAILED}
)


class ConversationStatus(StrEnum):
    """Lifecycle of a customer conversation."""

    ACTIVE = "active"
    QUALIFIED = "qualified"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    LOST = "lost"


class MessageRole(StrEnum):
    """Author of a conversation message."""

    SYSTEM = "system"
    CUSTOMER = "customer"
    AI = "ai"


class AgentName(StrEnum):
    """Agents a plan step can be dispatched to."""

    INTAKE = "intake"
    QUOTE = "quote"
    SCHEDULE = "schedule"
    REVIEWS = "reviews"


class StepAction(StrEnum):
    """Concrete actions a plan step performs."""

    RESPOND_MISSED_CALL = "respond_missed_call"
    RECORD_LEAD = "record_lead"
    QUALIFY_LEAD = "qualify_lead"
    DRAFT_QUOTE = "draft_quote"
    PROPOSE_SCHEDULE = "propose_schedule"
    REQUEST_REVIEW = "request_review"


class ActionType(StrEnum):
    """Side effects that can be held for operator approval."""

    SEND_SMS = "send_sms"
    SEND_QUOTE = "send_quote"
    SCHEDULE_JOB = "schedule_job"


class ApprovalStatus(StrEnum):
    """Resolution status of a pending action."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class JobStatus(StrEnum):
    """Lifecycle of a scheduled job."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LeadStatus(StrEnum):
    """Status of a lead mirrored from the field service system."""

    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"


class StepState(StrEnum):
    """Execution states of a single plan step."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SUSPENDED = "suspended"


class PlanState(StrEnum):
    """Execution states of a plan as a whole."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SUSPENDED = "suspended"


class PolicyTier(StrEnum):
    """Automation presets by business size."""

    OWNER_OPERATOR = "owner_operator"
    SMB = "smb"
    COMMERCIAL = "commercial"

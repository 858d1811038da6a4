"""Tool facade: every side effect the engine performs goes through here."""

from dataclasses import dataclass

from leadflow.audit.logger import AuditLogger
from leadflow.tools.approvals import ApprovalLedger
from leadflow.tools.comms import (
    CommsTool,
    HttpSmsProvider,
    LoggingSmsProvider,
    SendSmsResult,
    SmsProvider,
)
from leadflow.tools.fsm import (
    FsmClient,
    FsmTool,
    HttpFsmClient,
    InMemoryFsm,
    JobRequest,
    LeadRequest,
    generate_slots,
)
from leadflow.tools.metrics import MetricsRecorder


@dataclass(frozen=True)
class ToolFacade:
    """Bundle of tools handed to the step runner and the approval path."""

    comms: CommsTool
    fsm: FsmTool
    approvals: ApprovalLedger
    audit: AuditLogger
    metrics: MetricsRecorder


__all__ = [
    "ApprovalLedger",
    "CommsTool",
    "FsmClient",
    "FsmTool",
    "HttpFsmClient",
    "HttpSmsProvider",
    "InMemoryFsm",
    "JobRequest",
    "LeadRequest",
    "LoggingSmsProvider",
    "MetricsRecorder",
    "SendSmsResult",
    "SmsProvider",
    "ToolFacade",
    "generate_slots",
]

from .status import TicketStatus, status_from_wire
from .ticket import (
    CancelTicketPayload,
    CreateTicketPayload,
    MaintenancePriority,
    OperatorActionPayload,
    Ticket,
)
from .history import (
    AddAttachmentPayload,
    AddRemarkPayload,
    EventType,
    MaintenanceAttachment,
    MaintenanceEvent,
    MaintenanceRemark,
)
from .upload import PendingAttachment, UploadBatchResult, UploadOutcome
from .timeline import AttachmentItem, EventItem, RemarkItem, TimelineItem

__all__ = [
    "TicketStatus",
    "status_from_wire",
    "CancelTicketPayload",
    "CreateTicketPayload",
    "MaintenancePriority",
    "OperatorActionPayload",
    "Ticket",
    "AddAttachmentPayload",
    "AddRemarkPayload",
    "EventType",
    "MaintenanceAttachment",
    "MaintenanceEvent",
    "MaintenanceRemark",
    "PendingAttachment",
    "UploadBatchResult",
    "UploadOutcome",
    "AttachmentItem",
    "EventItem",
    "RemarkItem",
    "TimelineItem",
]

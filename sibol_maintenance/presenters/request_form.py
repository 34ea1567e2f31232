from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from sibol_maintenance.core.errors import ActionValidationError, MissingActorError
from sibol_maintenance.presenters.notice import Notice, NoticeKind
from sibol_maintenance.schemas import (
    CreateTicketPayload,
    MaintenancePriority,
    PendingAttachment,
    Ticket,
    UploadBatchResult,
    UploadOutcome,
)
from sibol_maintenance.services.maintenance_client import MaintenanceClient
from sibol_maintenance.services.uploads import AttachmentUploader
from sibol_maintenance.utils.files import guess_mime_type
from sibol_maintenance.utils.time import today_iso


@dataclass
class SubmitResult:
    ticket: Ticket
    uploads: UploadBatchResult
    notice: Notice


class RequestForm:
    """New maintenance request: title, details, priority, due date and photos."""

    def __init__(self, client: MaintenanceClient, uploader: AttachmentUploader, actor_id: int | None) -> None:
        self.client = client
        self.uploader = uploader
        self.actor_id = actor_id
        self.title = ""
        self.details = ""
        self.priority: str | None = None
        self.due_date: str | None = None
        self.priorities: list[MaintenancePriority] = []
        self.attachments: list[PendingAttachment] = []

    def load_priorities(self) -> list[MaintenancePriority]:
        self.priorities = self.client.list_priorities()
        if self.priority is None and self.priorities:
            self.priority = self.priorities[0].priority
        return self.priorities

    def add_attachment(
        self, uri: str, name: str, mime_type: str | None = None, size: int | None = None
    ) -> PendingAttachment:
        attachment = PendingAttachment(
            uri=uri, name=name, mime_type=mime_type or guess_mime_type(name, "image/jpeg"), size=size
        )
        self.attachments.append(attachment)
        return attachment

    def remove_attachment(self, key: str) -> None:
        self.attachments = [attachment for attachment in self.attachments if attachment.key != key]

    def validate(self) -> int:
        if not self.title.strip():
            raise ActionValidationError("Please enter a request")
        if not self.details.strip():
            raise ActionValidationError("Please enter a description")
        if not self.priority:
            raise ActionValidationError("Please select a priority")
        if self.actor_id is None:
            raise MissingActorError()
        return self.actor_id

    def submit(self) -> SubmitResult:
        actor_id = self.validate()
        payload = CreateTicketPayload(
            title=self.title,
            details=self.details.strip(),
            priority=self.priority,
            created_by=actor_id,
            due_date=self.due_date or today_iso(),
        )
        ticket = self.client.create_ticket(payload)
        uploads = self.uploader.run_batch(ticket.request_id, actor_id, self.attachments)
        if uploads.failed:
            logger.warning(
                "Ticket {ticket_id} created with {failed} failed attachment(s): {errors}",
                ticket_id=ticket.request_id,
                failed=uploads.failed,
                errors=uploads.errors,
            )

        self.attachments = []
        return SubmitResult(ticket=ticket, uploads=uploads, notice=self._notice_for(uploads))

    @staticmethod
    def _notice_for(uploads: UploadBatchResult) -> Notice:
        outcome = uploads.outcome
        if outcome is UploadOutcome.EMPTY:
            return Notice(kind=NoticeKind.SUCCESS, title="Success", message="Maintenance request created successfully")
        if outcome is UploadOutcome.SUCCESS:
            return Notice(
                kind=NoticeKind.SUCCESS,
                title="Success",
                message="Maintenance request created with all attachments",
            )
        message = (
            f"Ticket created. {len(uploads.succeeded)} of {uploads.total} attachments uploaded successfully."
        )
        if outcome is UploadOutcome.PARTIAL:
            return Notice(kind=NoticeKind.INFO, title="Partial Success", message=message)
        return Notice(kind=NoticeKind.ERROR, title="Attachments failed", message=message)

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from sibol_maintenance.core.errors import ActionValidationError, MissingActorError
from sibol_maintenance.presenters.notice import Notice, NoticeKind
from sibol_maintenance.schemas import (
    MaintenanceRemark,
    PendingAttachment,
    Ticket,
    UploadBatchResult,
    UploadOutcome,
)
from sibol_maintenance.services.lifecycle import can_comment
from sibol_maintenance.services.maintenance_client import MaintenanceClient
from sibol_maintenance.services.uploads import AttachmentUploader
from sibol_maintenance.utils.files import guess_mime_type

ROLE_NAMES = {
    1: "Admin",
    2: "Barangay_staff",
    3: "Operator",
    4: "Household",
}


def role_name_for(role: int | str | None, default: str = "Operator") -> str:
    """Legacy user_role label sent along with a remark."""
    if isinstance(role, int):
        return ROLE_NAMES.get(role, default)
    return role or default


@dataclass
class SendResult:
    remark: MaintenanceRemark | None
    uploads: UploadBatchResult
    notice: Notice | None


class CommentComposer:
    """Remark text plus staged attachments for one ticket's conversation."""

    def __init__(
        self,
        ticket: Ticket,
        *,
        client: MaintenanceClient,
        uploader: AttachmentUploader,
        viewer_id: int | None,
        viewer_role: int | str | None = "Operator",
        read_only: bool | None = None,
    ) -> None:
        self.ticket = ticket
        self.client = client
        self.uploader = uploader
        self.viewer_id = viewer_id
        self.viewer_role = role_name_for(viewer_role)
        self.read_only = not can_comment(ticket) if read_only is None else read_only
        self.text = ""
        self.pending: list[PendingAttachment] = []
        self.sending = False
        self.closed = False

    @property
    def can_send(self) -> bool:
        if self.read_only or self.sending or self.viewer_id is None:
            return False
        return bool(self.text.strip() or self.pending)

    def stage(self, uri: str, name: str, mime_type: str | None = None, size: int | None = None) -> PendingAttachment:
        if self.read_only:
            raise ActionValidationError("This ticket is view-only")
        attachment = PendingAttachment(
            uri=uri, name=name, mime_type=mime_type or guess_mime_type(name, "image/jpeg"), size=size
        )
        self.pending.append(attachment)
        return attachment

    def remove(self, key: str) -> bool:
        before = len(self.pending)
        self.pending = [attachment for attachment in self.pending if attachment.key != key]
        return len(self.pending) != before

    async def send_async(self) -> SendResult:
        """Upload staged attachments, then post the remark text.

        Attachment failures are reported in the result and do not stop the
        remark from being posted. Remark failures propagate, leaving the text
        and any attachments that did not upload staged for a retry.
        """
        if self.read_only:
            raise ActionValidationError("This ticket is view-only")
        if self.viewer_id is None:
            raise MissingActorError()
        text = self.text.strip()
        attachments = list(self.pending)
        if not text and not attachments:
            raise ActionValidationError("Please enter a remark or add an attachment")

        ticket_id = self.ticket.request_id
        self.sending = True
        try:
            uploads = await self.uploader.upload_batch(ticket_id, self.viewer_id, attachments)
            # a retry after a failed remark must not upload these again
            uploaded = set(uploads.succeeded)
            self.pending = [attachment for attachment in self.pending if attachment.name not in uploaded]
            remark = None
            if text:
                remark = await asyncio.to_thread(
                    self.client.add_remark, ticket_id, text, self.viewer_id, self.viewer_role
                )
        finally:
            self.sending = False

        self.text = ""
        self.pending = []
        notice = self._notice_for(uploads)
        if self.closed and notice is not None:
            logger.debug("Composer for ticket {ticket_id} closed; dropping notice", ticket_id=ticket_id)
            notice = None
        return SendResult(remark=remark, uploads=uploads, notice=notice)

    def send(self) -> SendResult:
        return asyncio.run(self.send_async())

    def close(self) -> None:
        # in-flight work keeps running; only its notice is dropped
        self.closed = True

    @staticmethod
    def _notice_for(uploads: UploadBatchResult) -> Notice | None:
        if uploads.outcome in (UploadOutcome.EMPTY, UploadOutcome.SUCCESS):
            return None
        return Notice(
            kind=NoticeKind.ERROR if uploads.outcome is UploadOutcome.FAILURE else NoticeKind.INFO,
            title="Warning",
            message=f"{uploads.failed} attachment(s) failed to upload.",
        )

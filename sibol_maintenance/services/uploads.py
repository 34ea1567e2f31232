from __future__ import annotations

import asyncio
from typing import Sequence

from loguru import logger

from sibol_maintenance.core.errors import MissingActorError
from sibol_maintenance.schemas import AddAttachmentPayload, PendingAttachment, UploadBatchResult
from sibol_maintenance.services.maintenance_client import MaintenanceClient


class AttachmentUploader:
    """Uploads staged attachments and registers them against a ticket.

    Every attachment is an independent upload-then-register operation. A
    batch runs them all concurrently and waits for every one to settle; a
    failure is counted, never retried, and never rolls back the others.
    """

    def __init__(self, client: MaintenanceClient) -> None:
        self.client = client

    async def upload_batch(
        self,
        ticket_id: int,
        actor_id: int | None,
        attachments: Sequence[PendingAttachment],
    ) -> UploadBatchResult:
        if actor_id is None:
            raise MissingActorError()
        if not attachments:
            return UploadBatchResult()

        logger.info(
            "Uploading {count} attachment(s) to ticket {ticket_id}",
            count=len(attachments),
            ticket_id=ticket_id,
        )
        results = await asyncio.gather(
            *(self._upload_one(ticket_id, actor_id, attachment) for attachment in attachments),
            return_exceptions=True,
        )

        batch = UploadBatchResult()
        for attachment, result in zip(attachments, results):
            if isinstance(result, BaseException):
                batch.failed += 1
                batch.errors.append(f"{attachment.name}: {result}")
                logger.warning(
                    "Attachment {name} failed for ticket {ticket_id}: {error}",
                    name=attachment.name,
                    ticket_id=ticket_id,
                    error=result,
                )
            else:
                batch.succeeded.append(result)

        logger.info(
            "Ticket {ticket_id} upload batch finished: {ok} ok, {failed} failed",
            ticket_id=ticket_id,
            ok=len(batch.succeeded),
            failed=batch.failed,
        )
        return batch

    def run_batch(
        self,
        ticket_id: int,
        actor_id: int | None,
        attachments: Sequence[PendingAttachment],
    ) -> UploadBatchResult:
        """Blocking entry point for callers without a running event loop."""
        return asyncio.run(self.upload_batch(ticket_id, actor_id, attachments))

    async def _upload_one(self, ticket_id: int, actor_id: int, attachment: PendingAttachment) -> str:
        remote_path = await asyncio.to_thread(
            self.client.upload_file,
            attachment.uri,
            attachment.name,
            attachment.mime_type,
        )
        payload = AddAttachmentPayload(
            uploaded_by=actor_id,
            file_path=remote_path,
            file_name=attachment.name,
            file_type=attachment.mime_type,
            file_size=attachment.size,
        )
        await asyncio.to_thread(self.client.add_attachment, ticket_id, payload)
        return attachment.name

from __future__ import annotations

from typing import Sequence

from loguru import logger

from sibol_maintenance.core.errors import ActionValidationError, MissingActorError
from sibol_maintenance.presenters.composer import role_name_for
from sibol_maintenance.presenters.notice import Notice, NoticeKind
from sibol_maintenance.schemas import PendingAttachment, Ticket, TicketStatus, TimelineItem, UploadOutcome
from sibol_maintenance.services.cancellation import cutoff_for
from sibol_maintenance.services.lifecycle import (
    ActorRole,
    TicketAction,
    allowed_actions,
    can_comment,
    ensure_allowed,
    is_view_only,
)
from sibol_maintenance.services.ticket_store import TicketStore
from sibol_maintenance.services.timeline import EMPTY_TIMELINE_MESSAGE
from sibol_maintenance.services.uploads import AttachmentUploader
from sibol_maintenance.utils.time import format_date, format_full_stamp, format_time_only


class TicketCardPresenter:
    def __init__(
        self,
        ticket: Ticket,
        *,
        store: TicketStore,
        uploader: AttachmentUploader,
        viewer_id: int | None = None,
        viewer_role: int | str | None = "Operator",
    ) -> None:
        self.ticket = ticket
        self.store = store
        self.uploader = uploader
        self.viewer_id = viewer_id if viewer_id is not None else store.actor_id
        self.viewer_role = role_name_for(viewer_role)
        self._timeline: tuple[TimelineItem, ...] | None = None

    @property
    def title(self) -> str:
        return self.ticket.display_title

    @property
    def status(self) -> TicketStatus:
        return self.ticket.status

    @property
    def display_status(self) -> str:
        return self.status.display_label

    @property
    def can_comment(self) -> bool:
        return can_comment(self.status)

    @property
    def is_view_only(self) -> bool:
        return is_view_only(self.status)

    @property
    def available_actions(self) -> list[TicketAction]:
        return allowed_actions(self.status, ActorRole.OPERATOR)

    @property
    def cutoff(self) -> str | None:
        return cutoff_for(self.ticket)

    @property
    def date_assigned(self) -> str:
        return format_date(self.ticket.request_date)

    @property
    def due_date(self) -> str:
        return format_date(self.ticket.due_date)

    @property
    def completed_at(self) -> str:
        return format_full_stamp(self.ticket.completed_at)

    @staticmethod
    def time_label(item: TimelineItem) -> str:
        return format_time_only(item.timestamp or item.created_at)

    def timeline(self, *, reload: bool = False) -> tuple[TimelineItem, ...]:
        if self._timeline is None or reload:
            self._timeline = self.store.cancellations.load_timeline(self.ticket, self.viewer_id)
        return self._timeline

    def empty_message(self) -> str | None:
        return EMPTY_TIMELINE_MESSAGE if not self.timeline() else None

    def mark_done(self, remarks: str, attachments: Sequence[PendingAttachment]) -> Notice:
        """Upload completion photos, add the remark and submit for verification."""
        if self.viewer_id is None:
            raise MissingActorError()
        # the store's copy may be newer than the one this card was built from
        self.ticket = self.store.require(self.ticket.request_id)
        ensure_allowed(self.ticket, TicketAction.MARK_FOR_VERIFICATION)
        if not attachments:
            raise ActionValidationError("Please add at least one attachment")

        ticket_id = self.ticket.request_id
        batch = self.uploader.run_batch(ticket_id, self.viewer_id, attachments)
        if batch.outcome is UploadOutcome.FAILURE:
            logger.warning("No completion photos reached ticket {ticket_id}; not submitting", ticket_id=ticket_id)
            return Notice(
                kind=NoticeKind.ERROR,
                title="Upload failed",
                message=f"None of the {batch.total} photos could be uploaded. The request was not submitted.",
            )

        if remarks.strip():
            self.store.client.add_remark(ticket_id, remarks.strip(), self.viewer_id, self.viewer_role)
        self.store.submit_for_verification(ticket_id)
        self._refresh_from_store()

        if batch.outcome is UploadOutcome.PARTIAL:
            return Notice(
                kind=NoticeKind.INFO,
                title="Partial Success",
                message=f"Marked for verification: {batch.summary('photos')}",
            )
        return Notice(
            kind=NoticeKind.SUCCESS,
            title="Success",
            message=f"Marked for verification ({batch.total} photo(s))",
        )

    def request_cancel(self, reason: str) -> Notice:
        self.store.submit_cancel_request(self.ticket.request_id, reason)
        self._refresh_from_store()
        return Notice(kind=NoticeKind.SUCCESS, title="Success", message="Cancellation requested")

    def _refresh_from_store(self) -> None:
        latest = self.store.get(self.ticket.request_id)
        if latest is not None:
            self.ticket = latest
        self._timeline = None

from __future__ import annotations

from loguru import logger

from sibol_maintenance.core.errors import ActionValidationError, MissingActorError
from sibol_maintenance.schemas import (
    MaintenanceAttachment,
    MaintenanceEvent,
    MaintenanceRemark,
    Ticket,
    TicketStatus,
    TimelineItem,
)
from sibol_maintenance.services.lifecycle import TicketAction, ensure_allowed
from sibol_maintenance.services.maintenance_client import MaintenanceClient
from sibol_maintenance.services.timeline import compose_timeline


def cutoff_for(ticket: Ticket) -> str | None:
    """The point-in-time boundary for a ticket's history, if it has one.

    Only a cancelled ticket with an approval timestamp is snapshotted.
    A rejected cancellation goes back to Pending and carries no cutoff.
    """
    if ticket.status is TicketStatus.CANCELED and ticket.cancel_approved_at:
        return ticket.cancel_approved_at
    return None


class CancellationManager:
    def __init__(self, client: MaintenanceClient) -> None:
        self.client = client

    def request_cancellation(self, ticket: Ticket, actor_id: int | None, reason: str | None) -> Ticket:
        cleaned = (reason or "").strip()
        if not cleaned:
            raise ActionValidationError("Please add a reason for cancellation")
        if actor_id is None:
            raise MissingActorError()
        ensure_allowed(ticket, TicketAction.REQUEST_CANCELLATION, reason=cleaned)

        updated = self.client.cancel_ticket(ticket.request_id, actor_id, cleaned)
        logger.info(
            "Cancellation request submitted for ticket {ticket_id} by {actor_id}",
            ticket_id=ticket.request_id,
            actor_id=actor_id,
        )
        return updated

    def load_remarks(self, ticket: Ticket) -> list[MaintenanceRemark]:
        return self.client.list_remarks(ticket.request_id, before=cutoff_for(ticket))

    def load_attachments(self, ticket: Ticket) -> list[MaintenanceAttachment]:
        return self.client.list_attachments(ticket.request_id, before=cutoff_for(ticket))

    def load_events(self, ticket: Ticket) -> list[MaintenanceEvent]:
        return self.client.list_events(ticket.request_id, before=cutoff_for(ticket))

    def load_timeline(self, ticket: Ticket, viewer_id: int | None) -> tuple[TimelineItem, ...]:
        cutoff = cutoff_for(ticket)
        if cutoff:
            logger.debug(
                "Loading ticket {ticket_id} history as of {cutoff}",
                ticket_id=ticket.request_id,
                cutoff=cutoff,
            )
        # All three lists must be in hand before anything is ordered.
        events = self.load_events(ticket)
        remarks = self.load_remarks(ticket)
        attachments = self.load_attachments(ticket)
        return compose_timeline(events, remarks, attachments, viewer_id=viewer_id, cutoff=cutoff)

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from sibol_maintenance.core.errors import ActionValidationError, MaintenanceError, MissingActorError
from sibol_maintenance.schemas import Ticket, TicketStatus
from sibol_maintenance.services.cancellation import CancellationManager
from sibol_maintenance.services.lifecycle import (
    TicketAction,
    ensure_allowed,
    partition_by_status,
    tickets_for_tab,
)
from sibol_maintenance.services.maintenance_client import MaintenanceClient

_CANCEL_FIELDS = ("cancel_log_id", "cancel_log_reason", "cancel_requested_at", "cancel_approved_at")


@dataclass(frozen=True)
class StoreError:
    message: str
    exception: Exception


def _dedupe_one(tickets: Iterable[Ticket]) -> dict[int, Ticket]:
    unique: dict[int, Ticket] = {}
    for ticket in tickets:
        # last seen wins, but the first-seen position is kept
        unique[ticket.request_id] = ticket
    return unique


def _with_cancel_fields(primary: Ticket, other: Ticket) -> Ticket:
    missing = {
        field: getattr(other, field)
        for field in _CANCEL_FIELDS
        if getattr(primary, field) is None and getattr(other, field) is not None
    }
    return primary.model_copy(update=missing) if missing else primary


def dedupe_tickets(assigned: Iterable[Ticket], cancelled_history: Iterable[Ticket]) -> list[Ticket]:
    """Merge the assigned list with the cancelled-history list by Request_Id.

    Duplicates inside a list resolve to the last occurrence. Across lists the
    cancelled-history copy wins, and any cancel log fields it lacks are
    filled from the assigned copy.
    """
    merged = _dedupe_one(assigned)
    for request_id, ticket in _dedupe_one(cancelled_history).items():
        existing = merged.get(request_id)
        merged[request_id] = _with_cancel_fields(ticket, existing) if existing else ticket
    return list(merged.values())


class TicketStore:
    """The operator's ticket list. All mutations re-fetch; nothing is patched locally."""

    def __init__(
        self,
        client: MaintenanceClient,
        *,
        actor_id: int | None = None,
        cancellations: CancellationManager | None = None,
    ) -> None:
        self.client = client
        self.actor_id = actor_id
        self.cancellations = cancellations or CancellationManager(client)
        self.tickets: list[Ticket] = []
        self.buckets: dict[TicketStatus, list[Ticket]] = partition_by_status([])
        self.error: StoreError | None = None
        self.stale = False
        self.loading = False

    # -- reads ----------------------------------------------------------------

    def refresh(self, actor_id: int | None = None) -> bool:
        """Re-fetch both lists. On failure the previous tickets stay visible."""
        if actor_id is not None:
            self.actor_id = actor_id
        actor = self._require_actor()

        self.loading = True
        try:
            assigned = self.client.list_assigned_tickets(actor)
            cancelled = self.client.list_cancelled_history(actor)
        except MaintenanceError as exc:
            self.error = StoreError(message=str(exc) or "Failed to load maintenance tickets", exception=exc)
            self.stale = bool(self.tickets)
            logger.warning("Ticket refresh failed for actor {actor_id}: {error}", actor_id=actor, error=exc)
            return False
        finally:
            self.loading = False

        self.tickets = dedupe_tickets(assigned, cancelled)
        self.buckets = partition_by_status(self.tickets)
        self.error = None
        self.stale = False
        logger.debug("Loaded {count} ticket(s) for actor {actor_id}", count=len(self.tickets), actor_id=actor)
        return True

    def get(self, ticket_id: int) -> Ticket | None:
        for ticket in self.tickets:
            if ticket.request_id == ticket_id:
                return ticket
        return None

    def require(self, ticket_id: int) -> Ticket:
        """The loaded copy of a ticket. Actions are checked against this copy."""
        ticket = self.get(ticket_id)
        if ticket is None:
            raise ActionValidationError(f"Ticket {ticket_id} is not loaded; refresh and try again")
        return ticket

    def bucket(self, status: TicketStatus) -> list[Ticket]:
        return list(self.buckets.get(status, []))

    def tab(self, name: str) -> list[Ticket]:
        return tickets_for_tab(self.buckets, name)

    @property
    def requested_tickets(self) -> list[Ticket]:
        return self.bucket(TicketStatus.REQUESTED)

    @property
    def pending_tickets(self) -> list[Ticket]:
        return self.bucket(TicketStatus.PENDING)

    @property
    def for_review_tickets(self) -> list[Ticket]:
        return self.bucket(TicketStatus.FOR_REVIEW)

    @property
    def cancel_requested_tickets(self) -> list[Ticket]:
        return self.bucket(TicketStatus.CANCEL_REQUESTED)

    @property
    def done_tickets(self) -> list[Ticket]:
        return self.bucket(TicketStatus.DONE)

    @property
    def canceled_tickets(self) -> list[Ticket]:
        return self.bucket(TicketStatus.CANCELED)

    # -- actions --------------------------------------------------------------

    def accept(self, ticket_id: int) -> None:
        actor = self._require_actor()
        ticket = self.require(ticket_id)
        ensure_allowed(ticket, TicketAction.ACCEPT)
        self.client.mark_ongoing(ticket_id, actor)
        self.refresh()

    def submit_for_verification(self, ticket_id: int) -> None:
        actor = self._require_actor()
        ticket = self.require(ticket_id)
        ensure_allowed(ticket, TicketAction.MARK_FOR_VERIFICATION)
        self.client.mark_for_verification(ticket_id, actor)
        self.refresh()

    def submit_cancel_request(self, ticket_id: int, reason: str) -> None:
        if not (reason or "").strip():
            raise ActionValidationError("Please add a reason for cancellation")
        actor = self._require_actor()
        ticket = self.require(ticket_id)
        self.cancellations.request_cancellation(ticket, actor, reason)
        self.refresh()

    def _require_actor(self) -> int:
        if self.actor_id is None:
            raise MissingActorError()
        return self.actor_id

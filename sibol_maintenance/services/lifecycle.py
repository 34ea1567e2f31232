from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from sibol_maintenance.core.errors import ActionValidationError, TransitionNotAllowedError
from sibol_maintenance.schemas import Ticket, TicketStatus


class ActorRole(str, Enum):
    OPERATOR = "operator"
    STAFF = "staff"


class TicketAction(str, Enum):
    ACCEPT = "accept"
    MARK_FOR_VERIFICATION = "mark_for_verification"
    REQUEST_CANCELLATION = "request_cancellation"
    REJECT_VERIFICATION = "reject_verification"
    APPROVE_VERIFICATION = "approve_verification"
    APPROVE_CANCELLATION = "approve_cancellation"
    REJECT_CANCELLATION = "reject_cancellation"


@dataclass(frozen=True)
class Transition:
    source: TicketStatus
    action: TicketAction
    target: TicketStatus
    role: ActorRole
    requires_reason: bool = False
    sets_cutoff: bool = False


TRANSITIONS: tuple[Transition, ...] = (
    Transition(TicketStatus.REQUESTED, TicketAction.ACCEPT, TicketStatus.PENDING, ActorRole.STAFF),
    Transition(TicketStatus.PENDING, TicketAction.MARK_FOR_VERIFICATION, TicketStatus.FOR_REVIEW, ActorRole.OPERATOR),
    Transition(
        TicketStatus.PENDING,
        TicketAction.REQUEST_CANCELLATION,
        TicketStatus.CANCEL_REQUESTED,
        ActorRole.OPERATOR,
        requires_reason=True,
    ),
    Transition(TicketStatus.FOR_REVIEW, TicketAction.REJECT_VERIFICATION, TicketStatus.PENDING, ActorRole.STAFF),
    Transition(TicketStatus.FOR_REVIEW, TicketAction.APPROVE_VERIFICATION, TicketStatus.DONE, ActorRole.STAFF),
    Transition(
        TicketStatus.CANCEL_REQUESTED,
        TicketAction.APPROVE_CANCELLATION,
        TicketStatus.CANCELED,
        ActorRole.STAFF,
        sets_cutoff=True,
    ),
    Transition(TicketStatus.CANCEL_REQUESTED, TicketAction.REJECT_CANCELLATION, TicketStatus.PENDING, ActorRole.STAFF),
)

_TABLE: dict[tuple[TicketStatus, TicketAction], Transition] = {(t.source, t.action): t for t in TRANSITIONS}

COMMENTABLE = frozenset({TicketStatus.PENDING, TicketStatus.FOR_REVIEW})
VIEW_ONLY = frozenset({TicketStatus.DONE, TicketStatus.CANCELED, TicketStatus.REQUESTED})
TERMINAL = frozenset({TicketStatus.DONE, TicketStatus.CANCELED})

# Operator screen tabs; cancel requests are listed together with cancelled tickets.
OPERATOR_TABS: dict[str, tuple[TicketStatus, ...]] = {
    "Pending": (TicketStatus.PENDING,),
    "For review": (TicketStatus.FOR_REVIEW,),
    "Done": (TicketStatus.DONE,),
    "Canceled": (TicketStatus.CANCEL_REQUESTED, TicketStatus.CANCELED),
}


def _status(value: Ticket | TicketStatus) -> TicketStatus:
    return value.status if isinstance(value, Ticket) else value


def find_transition(status: Ticket | TicketStatus, action: TicketAction) -> Transition | None:
    return _TABLE.get((_status(status), action))


def next_status(status: Ticket | TicketStatus, action: TicketAction) -> TicketStatus:
    current = _status(status)
    transition = _TABLE.get((current, action))
    if transition is None:
        raise TransitionNotAllowedError(current, action)
    return transition.target


def ensure_allowed(
    status: Ticket | TicketStatus,
    action: TicketAction,
    *,
    reason: str | None = None,
) -> Transition:
    """Validate an action before any request is made.

    Raises TransitionNotAllowedError when the table has no such edge, and
    ActionValidationError when the edge needs a reason and none was given.
    """
    current = _status(status)
    transition = _TABLE.get((current, action))
    if transition is None:
        raise TransitionNotAllowedError(current, action)
    if transition.requires_reason and not (reason or "").strip():
        raise ActionValidationError("Please add a reason for cancellation")
    return transition


def allowed_actions(status: Ticket | TicketStatus, role: ActorRole | None = None) -> list[TicketAction]:
    current = _status(status)
    return [
        t.action
        for t in TRANSITIONS
        if t.source == current and (role is None or t.role == role)
    ]


def can_comment(status: Ticket | TicketStatus) -> bool:
    return _status(status) in COMMENTABLE


def is_view_only(status: Ticket | TicketStatus) -> bool:
    return _status(status) in VIEW_ONLY


def is_terminal(status: Ticket | TicketStatus) -> bool:
    return _status(status) in TERMINAL


def partition_by_status(tickets: Iterable[Ticket]) -> dict[TicketStatus, list[Ticket]]:
    buckets: dict[TicketStatus, list[Ticket]] = {status: [] for status in TicketStatus}
    for ticket in tickets:
        buckets[ticket.status].append(ticket)
    return buckets


def tickets_for_tab(buckets: dict[TicketStatus, list[Ticket]], tab: str) -> list[Ticket]:
    try:
        statuses = OPERATOR_TABS[tab]
    except KeyError:
        raise ValueError(f"Unknown tab: {tab}") from None
    return [ticket for status in statuses for ticket in buckets.get(status, [])]

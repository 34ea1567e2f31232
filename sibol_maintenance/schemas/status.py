from __future__ import annotations

from enum import Enum

from loguru import logger


class TicketStatus(str, Enum):
    REQUESTED = "Requested"
    PENDING = "Pending"
    FOR_REVIEW = "For review"
    CANCEL_REQUESTED = "Cancel Requested"
    DONE = "Done"
    CANCELED = "Canceled"

    @property
    def display_label(self) -> str:
        return DISPLAY_LABELS[self]

    @property
    def wire_value(self) -> str:
        return CLIENT_TO_WIRE[self]


DISPLAY_LABELS: dict[TicketStatus, str] = {
    TicketStatus.REQUESTED: "Requested",
    TicketStatus.PENDING: "Pending",
    TicketStatus.FOR_REVIEW: "For Verification",
    TicketStatus.CANCEL_REQUESTED: "Cancel Requested",
    TicketStatus.DONE: "Completed",
    TicketStatus.CANCELED: "Cancelled",
}

WIRE_TO_CLIENT: dict[str, TicketStatus] = {
    "Requested": TicketStatus.REQUESTED,
    "On-going": TicketStatus.PENDING,
    "For Verification": TicketStatus.FOR_REVIEW,
    "Cancel Requested": TicketStatus.CANCEL_REQUESTED,
    "Completed": TicketStatus.DONE,
    "Cancelled": TicketStatus.CANCELED,
}

CLIENT_TO_WIRE: dict[TicketStatus, str] = {client: wire for wire, client in WIRE_TO_CLIENT.items()}

# Anything the backend sends that is not in the tables above lands here.
DEFAULT_STATUS = TicketStatus.PENDING


def status_from_wire(value: str | TicketStatus | None) -> TicketStatus:
    """Map a wire status string to a TicketStatus.

    Only the backend values in WIRE_TO_CLIENT are recognised, case-sensitively.
    Client labels such as "Done" are not wire values and, like unknown, empty
    and missing values, map to DEFAULT_STATUS (Pending) with a warning.
    """
    if isinstance(value, TicketStatus):
        return value
    if value is not None:
        mapped = WIRE_TO_CLIENT.get(value)
        if mapped is not None:
            return mapped
    logger.warning(
        "Unmapped ticket status {value!r}; defaulting to {default}",
        value=value,
        default=DEFAULT_STATUS.value,
    )
    return DEFAULT_STATUS

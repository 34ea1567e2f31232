from __future__ import annotations

import re
from datetime import datetime
from typing import Iterable

from loguru import logger

from sibol_maintenance.core.config import get_settings
from sibol_maintenance.core.errors import TimelineTimestampError
from sibol_maintenance.schemas import (
    AttachmentItem,
    EventItem,
    EventType,
    MaintenanceAttachment,
    MaintenanceEvent,
    MaintenanceRemark,
    RemarkItem,
    TimelineItem,
)
from sibol_maintenance.utils.files import is_likely_image
from sibol_maintenance.utils.time import parse_timestamp

EMPTY_TIMELINE_MESSAGE = "No history yet"

KIND_RANK = {"event": 0, "remark": 1, "attachment": 2}

EVENT_TITLES: dict[str, str] = {
    EventType.REQUESTED.value: "Requested",
    EventType.ACCEPTED.value: "Accepted",
    EventType.REASSIGNED.value: "Reassigned",
    EventType.FOR_VERIFICATION.value: "For Verification",
    EventType.CANCEL_REQUESTED.value: "Cancel Requested",
    EventType.CANCELLED.value: "Cancelled",
    EventType.COMPLETED.value: "Completed",
    EventType.DELETED.value: "Deleted",
}

BARANGAY_ROLE_IDS = {1, 2}
OPERATOR_ROLE_ID = 3

_STAFF_SUFFIX = re.compile(r"_staff", re.IGNORECASE)


def event_title(event_type: str) -> str:
    known = EVENT_TITLES.get(event_type)
    if known:
        return known
    return event_type.lower().replace("_", " ").title()


def normalize_role_name(role: str | None) -> str:
    if not role:
        return ""
    return _STAFF_SUFFIX.sub("", role).strip()


def format_actor(name: str | None, role_name: str | None = None) -> str:
    display = (name or "").strip() or "Unknown"
    role = normalize_role_name(role_name)
    return f"{display} ({role})" if role else display


def role_tag(role_id: int | None, role_name: str | None = None, legacy_role: str | None = None) -> str:
    if role_id in BARANGAY_ROLE_IDS:
        return "Barangay"
    if role_id == OPERATOR_ROLE_ID:
        return "Operator"
    text = str(role_name or legacy_role or "").lower()
    if "admin" in text or "barangay" in text or "staff" in text:
        return "Barangay"
    if "operator" in text:
        return "Operator"
    return "User"


def remark_sender_label(remark: MaintenanceRemark, viewer_id: int | None = None) -> str:
    name = (remark.created_by_name or "").strip()
    if not name:
        name = "You" if viewer_id is not None and remark.created_by == viewer_id else "Unknown"
    tag = role_tag(remark.created_by_role_id, remark.created_by_role_name, remark.user_role)
    return f"{name} ({tag})"


def attachment_sender_label(attachment: MaintenanceAttachment) -> str:
    name = (attachment.uploader_name or "").strip() or "Unknown"
    tag = role_tag(attachment.uploader_role_id, attachment.uploader_role_name, attachment.uploader_role)
    return f"{name} ({tag})"


def describe_event(item: EventItem) -> str:
    if item.to_display:
        return f"{item.title} by {item.actor_display} to {item.to_display}"
    return f"{item.title} by {item.actor_display}"


def _event_item(event: MaintenanceEvent, timestamp: datetime | None) -> EventItem:
    to_display = None
    if event.event_type == EventType.REASSIGNED.value and event.to_actor_name:
        to_display = format_actor(event.to_actor_name, event.to_actor_role_name)

    # Notes carry the cancellation reason; other event types keep them internal.
    reason = None
    if event.event_type == EventType.CANCEL_REQUESTED.value:
        reason = (event.notes or "").strip() or None

    return EventItem(
        key=f"e-{event.event_id}",
        created_at=event.created_at,
        timestamp=timestamp,
        event_id=event.event_id,
        event_type=event.event_type,
        title=event_title(event.event_type),
        actor_display=format_actor(event.actor_name, event.actor_role_name),
        to_display=to_display,
        reason=reason,
    )


def _remark_item(remark: MaintenanceRemark, timestamp: datetime | None, viewer_id: int | None) -> RemarkItem:
    return RemarkItem(
        key=f"r-{remark.remark_id}",
        created_at=remark.created_at,
        timestamp=timestamp,
        remark=remark,
        sender_label=remark_sender_label(remark, viewer_id),
        is_mine=viewer_id is not None and remark.created_by == viewer_id,
    )


def _attachment_item(
    attachment: MaintenanceAttachment, timestamp: datetime | None, viewer_id: int | None
) -> AttachmentItem:
    return AttachmentItem(
        key=f"a-{attachment.attachment_id}",
        created_at=attachment.uploaded_at,
        timestamp=timestamp,
        attachment=attachment,
        sender_label=attachment_sender_label(attachment),
        is_mine=viewer_id is not None and attachment.uploaded_by == viewer_id,
        is_image=is_likely_image(attachment.file_name or attachment.file_path, attachment.file_type),
    )


def compose_timeline(
    events: Iterable[MaintenanceEvent] = (),
    remarks: Iterable[MaintenanceRemark] = (),
    attachments: Iterable[MaintenanceAttachment] = (),
    *,
    viewer_id: int | None = None,
    cutoff: str | datetime | None = None,
    strict: bool | None = None,
) -> tuple[TimelineItem, ...]:
    """Merge events, remarks and attachments into one ordered timeline.

    Items are sorted ascending by timestamp; ties keep events before remarks
    before attachments, then input order. With a cutoff, anything stamped
    later than the cutoff is dropped even if the server returned it.

    A record whose timestamp cannot be parsed raises TimelineTimestampError
    in strict mode. Otherwise it is logged and placed at the end, or dropped
    when a cutoff is active since it cannot be shown to precede it.
    """
    if strict is None:
        strict = get_settings().timeline_strict

    boundary = None
    if cutoff is not None:
        boundary = parse_timestamp(cutoff)
        if boundary is None:
            raise TimelineTimestampError("cutoff", cutoff)

    rows: list[tuple[tuple, TimelineItem]] = []

    def _admit(key: str, raw: str) -> tuple[bool, datetime | None]:
        moment = parse_timestamp(raw)
        if moment is None:
            if strict:
                raise TimelineTimestampError(key, raw)
            logger.error("Timeline record {key} has unparsable timestamp {raw!r}", key=key, raw=raw)
            return boundary is None, None
        if boundary is not None and moment > boundary:
            return False, moment
        return True, moment

    def _sort_key(moment: datetime | None, kind: str, index: int) -> tuple:
        if moment is None:
            return (1, KIND_RANK[kind], index)
        return (0, moment, KIND_RANK[kind], index)

    for index, event in enumerate(events):
        keep, moment = _admit(f"e-{event.event_id}", event.created_at)
        if keep:
            rows.append((_sort_key(moment, "event", index), _event_item(event, moment)))

    for index, remark in enumerate(remarks):
        keep, moment = _admit(f"r-{remark.remark_id}", remark.created_at)
        if keep:
            rows.append((_sort_key(moment, "remark", index), _remark_item(remark, moment, viewer_id)))

    for index, attachment in enumerate(attachments):
        keep, moment = _admit(f"a-{attachment.attachment_id}", attachment.uploaded_at)
        if keep:
            rows.append((_sort_key(moment, "attachment", index), _attachment_item(attachment, moment, viewer_id)))

    rows.sort(key=lambda row: row[0])
    return tuple(item for _, item in rows)

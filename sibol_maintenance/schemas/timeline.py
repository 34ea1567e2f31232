from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from sibol_maintenance.utils.files import guess_file_name

from .history import MaintenanceAttachment, MaintenanceRemark


class _TimelineEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    created_at: str
    timestamp: datetime | None = None


class EventItem(_TimelineEntry):
    kind: Literal["event"] = "event"
    event_id: int
    event_type: str
    title: str
    actor_display: str
    to_display: str | None = None
    reason: str | None = None


class RemarkItem(_TimelineEntry):
    kind: Literal["remark"] = "remark"
    remark: MaintenanceRemark
    sender_label: str
    is_mine: bool = False

    @property
    def text(self) -> str:
        return self.remark.remark_text


class AttachmentItem(_TimelineEntry):
    kind: Literal["attachment"] = "attachment"
    attachment: MaintenanceAttachment
    sender_label: str
    is_mine: bool = False
    is_image: bool = False

    @property
    def url(self) -> str:
        return self.attachment.file_path

    @property
    def display_name(self) -> str:
        return self.attachment.file_name or guess_file_name(self.attachment.file_path)


TimelineItem = Annotated[Union[EventItem, RemarkItem, AttachmentItem], Field(discriminator="kind")]

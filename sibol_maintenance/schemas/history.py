from __future__ import annotations

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, Field

from .ticket import WireModel


class EventType(str, Enum):
    REQUESTED = "REQUESTED"
    ACCEPTED = "ACCEPTED"
    REASSIGNED = "REASSIGNED"
    FOR_VERIFICATION = "FOR_VERIFICATION"
    CANCEL_REQUESTED = "CANCEL_REQUESTED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    DELETED = "DELETED"


def _as_text(value: object) -> str:
    if value is None:
        return ""
    return str(value)


# MySQL datetime or ISO string, kept verbatim; parsed when the timeline is built.
WireTimestamp = Annotated[str, BeforeValidator(_as_text)]


class MaintenanceRemark(WireModel):
    remark_id: int = Field(alias="Remark_Id")
    request_id: int = Field(alias="Request_Id")
    remark_text: str = Field(default="", alias="Remark_text")
    created_by: int | None = Field(default=None, alias="Created_by")
    user_role: str | None = Field(default=None, alias="User_role")
    created_at: WireTimestamp = Field(default="", alias="Created_at")
    created_by_name: str | None = Field(default=None, alias="CreatedByName")
    created_by_role_id: int | None = Field(default=None, alias="CreatedByRoleId")
    created_by_role_name: str | None = Field(default=None, alias="CreatedByRoleName")


class MaintenanceAttachment(WireModel):
    attachment_id: int = Field(alias="Attachment_Id")
    request_id: int = Field(alias="Request_Id")
    uploaded_by: int | None = Field(default=None, alias="Uploaded_by")
    file_path: str = Field(alias="File_path")
    file_name: str = Field(default="", alias="File_name")
    file_type: str | None = Field(default=None, alias="File_type")
    file_size: int | None = Field(default=None, alias="File_size")
    uploaded_at: WireTimestamp = Field(default="", alias="Uploaded_at")
    uploader_name: str | None = Field(default=None, alias="UploaderName")
    uploader_role: str | None = Field(default=None, alias="UploaderRole")
    uploader_role_id: int | None = Field(default=None, alias="UploaderRoleId")
    uploader_role_name: str | None = Field(default=None, alias="UploaderRoleName")


class MaintenanceEvent(WireModel):
    event_id: int = Field(alias="Event_Id")
    request_id: int = Field(alias="Request_Id")
    event_type: str = Field(alias="Event_type")
    actor_account_id: int | None = Field(default=None, alias="Actor_Account_Id")
    actor_name: str | None = Field(default=None, alias="ActorName")
    actor_role_id: int | None = Field(default=None, alias="ActorRoleId")
    actor_role_name: str | None = Field(default=None, alias="ActorRoleName")
    notes: str | None = Field(default=None, alias="Notes")
    created_at: WireTimestamp = Field(default="", alias="Created_At")
    to_actor_account_id: int | None = Field(default=None, alias="ToActorAccountId")
    to_actor_name: str | None = Field(default=None, alias="ToActorName")
    to_actor_role_name: str | None = Field(default=None, alias="ToActorRoleName")


class AddRemarkPayload(BaseModel):
    remark_text: str
    created_by: int
    user_role: str | None = None


class AddAttachmentPayload(BaseModel):
    uploaded_by: int
    file_path: str
    file_name: str
    file_type: str | None = None
    file_size: int | None = None

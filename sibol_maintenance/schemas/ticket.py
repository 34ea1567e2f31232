from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .status import TicketStatus, status_from_wire


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class MaintenancePriority(WireModel):
    priority_id: int = Field(alias="Priority_id")
    priority: str = Field(alias="Priority")


class Ticket(WireModel):
    request_id: int = Field(alias="Request_Id")
    title: str = Field(default="", alias="Title")
    details: str | None = Field(default=None, alias="Details")
    priority: str | None = Field(default=None, alias="Priority")
    priority_id: int | None = Field(default=None, alias="Priority_Id")
    raw_status: str | None = Field(default=None, alias="Status")
    main_stat_id: int | None = Field(default=None, alias="Main_stat_id")
    created_by: int | None = Field(default=None, alias="Created_by")
    assigned_to: int | None = Field(default=None, alias="Assigned_to")
    assigned_operator_name: str | None = Field(default=None, alias="AssignedOperatorName")
    request_date: str | None = Field(default=None, alias="Request_date")
    due_date: str | None = Field(default=None, alias="Due_date")
    completed_at: str | None = Field(default=None, alias="Completed_at")
    attachment: str | None = Field(default=None, alias="Attachment")
    remarks: str | None = Field(default=None, alias="Remarks")

    cancel_log_id: int | None = Field(default=None, alias="CancelLogId")
    cancel_log_reason: str | None = Field(default=None, alias="CancelLogReason")
    cancel_requested_at: str | None = Field(default=None, alias="CancelRequestedAt")
    cancel_approved_at: str | None = Field(default=None, alias="CancelApprovedAt")

    @field_validator(
        "request_date",
        "due_date",
        "completed_at",
        "cancel_requested_at",
        "cancel_approved_at",
        mode="before",
    )
    @classmethod
    def _stringify_timestamp(cls, value: object) -> str | None:
        if value is None or value == "":
            return None
        return str(value)

    @property
    def status(self) -> TicketStatus:
        return status_from_wire(self.raw_status)

    @property
    def display_title(self) -> str:
        return self.title or "Untitled"


class CreateTicketPayload(BaseModel):
    title: str
    details: str | None = None
    priority: str | None = None
    created_by: int
    due_date: str | None = None
    attachment: str | None = None

    @field_validator("title")
    @classmethod
    def _title_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Please enter a request")
        return value.strip()


class OperatorActionPayload(BaseModel):
    operator_account_id: int


class CancelTicketPayload(BaseModel):
    actor_account_id: int
    reason: str

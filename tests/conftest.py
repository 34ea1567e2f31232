from __future__ import annotations

import json
import threading
from typing import Any

import pytest

from sibol_maintenance.core.config import get_settings
from sibol_maintenance.core.errors import ApiError
from sibol_maintenance.schemas import (
    AddAttachmentPayload,
    CreateTicketPayload,
    MaintenanceAttachment,
    MaintenanceEvent,
    MaintenancePriority,
    MaintenanceRemark,
    Ticket,
)


@pytest.fixture(autouse=True)
def _test_settings(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("SERVER_TIMEZONE", "UTC")
    monkeypatch.setenv("DISPLAY_TIMEZONE", "UTC")
    monkeypatch.setenv("MAINTENANCE_API_BASE", "http://api.test")
    monkeypatch.delenv("TIMELINE_STRICT_TIMESTAMPS", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_ticket(request_id: int, status: str | None = "On-going", **fields: Any) -> Ticket:
    data = {"Request_Id": request_id, "Title": f"Ticket {request_id}", "Status": status}
    data.update(fields)
    return Ticket.model_validate(data)


def make_event(event_id: int, event_type: str, created_at: str, **fields: Any) -> MaintenanceEvent:
    data = {
        "Event_Id": event_id,
        "Request_Id": fields.pop("Request_Id", 7),
        "Event_type": event_type,
        "Created_At": created_at,
        "ActorName": "Maria Santos",
        "ActorRoleName": "Barangay_staff",
    }
    data.update(fields)
    return MaintenanceEvent.model_validate(data)


def make_remark(remark_id: int, text: str, created_at: str, **fields: Any) -> MaintenanceRemark:
    data = {
        "Remark_Id": remark_id,
        "Request_Id": fields.pop("Request_Id", 7),
        "Remark_text": text,
        "Created_at": created_at,
        "Created_by": 10,
    }
    data.update(fields)
    return MaintenanceRemark.model_validate(data)


def make_attachment(attachment_id: int, created_at: str, **fields: Any) -> MaintenanceAttachment:
    data = {
        "Attachment_Id": attachment_id,
        "Request_Id": fields.pop("Request_Id", 7),
        "File_path": f"https://res.cloudinary.com/demo/image/upload/v1/photo_{attachment_id}.jpg",
        "File_name": f"photo_{attachment_id}.jpg",
        "File_type": "image/jpeg",
        "Uploaded_at": created_at,
        "Uploaded_by": 10,
    }
    data.update(fields)
    return MaintenanceAttachment.model_validate(data)


class FakeMaintenanceClient:
    """Records every call; returns canned data shaped like the real client's."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.assigned: list[Ticket] = []
        self.cancelled_history: list[Ticket] = []
        self.events: list[MaintenanceEvent] = []
        self.remarks: list[MaintenanceRemark] = []
        self.attachments: list[MaintenanceAttachment] = []
        self.priorities: list[MaintenancePriority] = []
        self.failing_uploads: set[str] = set()
        self.list_error: Exception | None = None
        self.remark_error: Exception | None = None
        self.on_mark_for_verification = None
        self._next_id = 100
        self._lock = threading.Lock()

    def _record(self, *call: Any) -> None:
        with self._lock:
            self.calls.append(call)

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    def list_priorities(self) -> list[MaintenancePriority]:
        self._record("list_priorities")
        return list(self.priorities)

    def create_ticket(self, payload: CreateTicketPayload) -> Ticket:
        self._record("create_ticket", payload)
        return make_ticket(501, "Requested", Title=payload.title, Created_by=payload.created_by)

    def list_assigned_tickets(self, actor_id: int) -> list[Ticket]:
        self._record("list_assigned_tickets", actor_id)
        if self.list_error is not None:
            raise self.list_error
        return list(self.assigned)

    def list_cancelled_history(self, actor_id: int) -> list[Ticket]:
        self._record("list_cancelled_history", actor_id)
        if self.list_error is not None:
            raise self.list_error
        return list(self.cancelled_history)

    def mark_ongoing(self, ticket_id: int, actor_id: int) -> None:
        self._record("mark_ongoing", ticket_id, actor_id)

    def mark_for_verification(self, ticket_id: int, actor_id: int) -> None:
        self._record("mark_for_verification", ticket_id, actor_id)
        if self.on_mark_for_verification is not None:
            self.on_mark_for_verification(ticket_id)

    def cancel_ticket(self, ticket_id: int, actor_id: int, reason: str) -> None:
        self._record("cancel_ticket", ticket_id, actor_id, reason)

    def list_events(self, ticket_id: int, before: str | None = None) -> list[MaintenanceEvent]:
        self._record("list_events", ticket_id, before)
        return list(self.events)

    def list_remarks(self, ticket_id: int, before: str | None = None) -> list[MaintenanceRemark]:
        self._record("list_remarks", ticket_id, before)
        return list(self.remarks)

    def list_attachments(self, ticket_id: int, before: str | None = None) -> list[MaintenanceAttachment]:
        self._record("list_attachments", ticket_id, before)
        return list(self.attachments)

    def add_remark(self, ticket_id: int, text: str, actor_id: int, user_role: str | None = None) -> MaintenanceRemark:
        self._record("add_remark", ticket_id, text, actor_id, user_role)
        if self.remark_error is not None:
            raise self.remark_error
        return make_remark(900, text, "2026-01-05 21:31:16", Request_Id=ticket_id, Created_by=actor_id)

    def upload_file(self, uri: str, name: str, mime_type: str) -> str:
        self._record("upload_file", name)
        if name in self.failing_uploads:
            raise ApiError(f"upload of {name} rejected", status_code=500)
        return f"https://res.cloudinary.com/demo/image/upload/{name}"

    def add_attachment(self, ticket_id: int, payload: AddAttachmentPayload) -> MaintenanceAttachment:
        self._record("add_attachment", ticket_id, payload.file_name)
        with self._lock:
            self._next_id += 1
            attachment_id = self._next_id
        return make_attachment(attachment_id, "2026-01-05 21:31:16", Request_Id=ticket_id, File_name=payload.file_name)


@pytest.fixture
def fake_client() -> FakeMaintenanceClient:
    return FakeMaintenanceClient()


class FakeResponse:
    def __init__(self, status_code: int = 200, json_body: Any = None, text: str | None = None, reason: str = "OK"):
        self.status_code = status_code
        self._json = json_body
        self.reason = reason
        if text is None:
            text = json.dumps(json_body) if json_body is not None else ""
        self.text = text
        self.content = text.encode("utf-8")

    def json(self) -> Any:
        if self._json is None:
            raise ValueError("No JSON body")
        return self._json


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise AssertionError(f"Unexpected request {method} {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

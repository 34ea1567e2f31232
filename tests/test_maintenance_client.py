import threading

import pytest
import requests
from tenacity import wait_none

from conftest import FakeResponse, FakeSession
from sibol_maintenance.core.errors import ApiConnectionError, ApiError, ApiTimeoutError
from sibol_maintenance.schemas import AddAttachmentPayload, CreateTicketPayload, TicketStatus
from sibol_maintenance.services.maintenance_client import MaintenanceClient, get_maintenance_client

TICKET = {"Request_Id": 42, "Title": "Shredder jammed", "Status": "On-going"}


def _client(session, **kwargs):
    return MaintenanceClient(
        base_url="http://api.test/",
        session=session,
        read_retries=3,
        retry_wait=wait_none(),
        **kwargs,
    )


def test_list_assigned_tickets_sends_filter_and_headers():
    session = FakeSession(FakeResponse(json_body=[TICKET]))
    client = _client(session, token_provider=lambda: "abc123")

    tickets = client.list_assigned_tickets(10)

    sent = session.requests[0]
    assert sent["method"] == "GET"
    assert sent["url"] == "http://api.test/api/maintenance"
    assert sent["params"] == {"assigned_to": 10}
    assert sent["headers"]["Authorization"] == "Bearer abc123"
    assert sent["headers"]["x-client-type"] == "mobile"
    assert tickets[0].request_id == 42
    assert tickets[0].status is TicketStatus.PENDING


def test_no_authorization_header_without_token():
    session = FakeSession(FakeResponse(json_body=[]))
    _client(session, token_provider=lambda: None).list_priorities()
    assert "Authorization" not in session.requests[0]["headers"]


def test_status_filter_uses_wire_value():
    session = FakeSession(FakeResponse(json_body=[]))
    _client(session).list_tickets_by_status(10, TicketStatus.FOR_REVIEW)
    assert session.requests[0]["params"] == {"created_by": 10, "status": "For Verification"}


def test_cancelled_history_endpoint():
    session = FakeSession(FakeResponse(json_body={"data": [dict(TICKET, Status="Cancelled")]}))
    tickets = _client(session).list_cancelled_history(10)
    assert session.requests[0]["url"].endswith("/api/maintenance/operator-cancelled-history")
    assert session.requests[0]["params"] == {"operator_account_id": 10}
    assert tickets[0].status is TicketStatus.CANCELED


def test_child_reads_pass_before_only_when_set():
    session = FakeSession(FakeResponse(json_body=[]), FakeResponse(json_body=[]))
    client = _client(session)

    client.list_remarks(7, before="2026-01-06 14:30:00")
    client.list_events(7)

    assert session.requests[0]["url"] == "http://api.test/api/maintenance/7/remarks"
    assert session.requests[0]["params"] == {"before": "2026-01-06 14:30:00"}
    assert session.requests[1]["url"] == "http://api.test/api/maintenance/7/events"
    assert session.requests[1]["params"] is None


def test_transitions_use_put_with_actor_body():
    session = FakeSession(
        FakeResponse(json_body=TICKET),
        FakeResponse(json_body=dict(TICKET, Status="For Verification")),
        FakeResponse(json_body=dict(TICKET, Status="Cancel Requested")),
    )
    client = _client(session)

    client.mark_ongoing(42, 10)
    updated = client.mark_for_verification(42, 10)
    client.cancel_ticket(42, 10, "no parts")

    assert [(r["method"], r["url"]) for r in session.requests] == [
        ("PUT", "http://api.test/api/maintenance/42/ongoing"),
        ("PUT", "http://api.test/api/maintenance/42/for-verification"),
        ("PUT", "http://api.test/api/maintenance/42/cancel"),
    ]
    assert session.requests[1]["json"] == {"operator_account_id": 10}
    assert session.requests[2]["json"] == {"actor_account_id": 10, "reason": "no parts"}
    assert updated.status is TicketStatus.FOR_REVIEW


def test_create_ticket_and_add_remark_bodies():
    session = FakeSession(
        FakeResponse(json_body=TICKET),
        FakeResponse(json_body={"Remark_Id": 1, "Request_Id": 42, "Remark_text": "done"}),
    )
    client = _client(session)

    client.create_ticket(CreateTicketPayload(title=" Shredder jammed ", priority="Urgent", created_by=10))
    remark = client.add_remark(42, "done", 10, "Operator")

    assert session.requests[0]["json"] == {"title": "Shredder jammed", "priority": "Urgent", "created_by": 10}
    assert session.requests[1]["json"] == {"remark_text": "done", "created_by": 10, "user_role": "Operator"}
    assert remark.remark_text == "done"


def test_upload_file_then_register(tmp_path):
    photo = tmp_path / "pump.jpg"
    photo.write_bytes(b"\xff\xd8fake")
    session = FakeSession(
        FakeResponse(json_body={"filepath": "https://cdn.test/pump.jpg"}),
        FakeResponse(json_body={"Attachment_Id": 5, "Request_Id": 42, "File_path": "https://cdn.test/pump.jpg"}),
    )
    client = _client(session)

    remote = client.upload_file(photo.as_uri(), "pump.jpg", "image/jpeg")
    client.add_attachment(
        42, AddAttachmentPayload(uploaded_by=10, file_path=remote, file_name="pump.jpg", file_type="image/jpeg")
    )

    assert remote == "https://cdn.test/pump.jpg"
    assert session.requests[0]["url"] == "http://api.test/api/upload"
    assert session.requests[0]["files"]["file"][0] == "pump.jpg"
    assert session.requests[1]["json"]["file_path"] == remote


def test_upload_without_filepath_is_an_error(tmp_path):
    photo = tmp_path / "pump.jpg"
    photo.write_bytes(b"x")
    session = FakeSession(FakeResponse(json_body={"ok": True}))
    with pytest.raises(ApiError):
        _client(session).upload_file(str(photo), "pump.jpg", "image/jpeg")


def test_http_error_carries_server_message():
    session = FakeSession(FakeResponse(status_code=403, json_body={"message": "Not your ticket"}, reason="Forbidden"))

    with pytest.raises(ApiError) as excinfo:
        _client(session).get_ticket(42)

    assert excinfo.value.message == "Not your ticket"
    assert excinfo.value.status_code == 403
    assert excinfo.value.is_auth_error
    assert len(session.requests) == 1


def test_reads_retry_on_connection_errors():
    session = FakeSession(
        requests.ConnectionError("reset"),
        requests.ConnectionError("reset"),
        FakeResponse(json_body=[TICKET]),
    )
    tickets = _client(session).list_assigned_tickets(10)
    assert len(session.requests) == 3
    assert tickets[0].request_id == 42


def test_reads_give_up_after_configured_attempts():
    session = FakeSession(*(requests.ConnectionError("down") for _ in range(3)))
    with pytest.raises(ApiConnectionError):
        _client(session).list_events(7)
    assert len(session.requests) == 3


def test_mutations_are_never_retried():
    session = FakeSession(requests.ConnectionError("reset"), FakeResponse(json_body=TICKET))
    with pytest.raises(ApiConnectionError):
        _client(session).mark_for_verification(42, 10)
    assert len(session.requests) == 1


def test_timeout_maps_to_friendly_error():
    session = FakeSession(requests.Timeout("slow"))
    with pytest.raises(ApiTimeoutError, match="timed out"):
        _client(session).cancel_ticket(42, 10, "no parts")


def test_invalid_json_and_unexpected_shapes():
    session = FakeSession(
        FakeResponse(text="<html>oops</html>"),
        FakeResponse(json_body={"unexpected": "object"}),
    )
    client = _client(session)
    with pytest.raises(ApiError, match="invalid JSON"):
        client.get_ticket(42)
    with pytest.raises(ApiError):
        client.list_remarks(42)


def test_factory_builds_client_from_settings():
    get_maintenance_client.cache_clear()
    client = get_maintenance_client()
    assert client is get_maintenance_client()
    assert client.base_url == "http://api.test"
    assert client.timeout == 15.0
    get_maintenance_client.cache_clear()


def test_default_sessions_are_per_thread():
    client = MaintenanceClient(base_url="http://api.test")
    seen = []
    worker = threading.Thread(target=lambda: seen.append(client.session))
    worker.start()
    worker.join()

    assert client.session is client.session
    assert isinstance(seen[0], requests.Session)
    assert seen[0] is not client.session


def test_injected_session_is_shared_across_threads():
    session = FakeSession()
    client = _client(session)
    seen = []
    worker = threading.Thread(target=lambda: seen.append(client.session))
    worker.start()
    worker.join()
    assert seen == [session]

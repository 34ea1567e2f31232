from __future__ import annotations

import threading
from functools import lru_cache
from typing import Any, Callable, Iterable, TypeVar

import requests
from loguru import logger
from pydantic import BaseModel, ValidationError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from sibol_maintenance.core.config import get_settings
from sibol_maintenance.core.errors import ApiConnectionError, ApiError, ApiTimeoutError
from sibol_maintenance.core.logging import setup_logging
from sibol_maintenance.schemas import (
    AddAttachmentPayload,
    AddRemarkPayload,
    CancelTicketPayload,
    CreateTicketPayload,
    MaintenanceAttachment,
    MaintenanceEvent,
    MaintenancePriority,
    MaintenanceRemark,
    OperatorActionPayload,
    Ticket,
    TicketStatus,
)
from sibol_maintenance.utils.files import local_path_from_uri

ModelT = TypeVar("ModelT", bound=BaseModel)
TokenProvider = Callable[[], "str | None"]

MAINTENANCE_PATH = "/api/maintenance"
UPLOAD_PATH = "/api/upload"


class MaintenanceClient:
    """Typed access to the maintenance REST endpoints.

    Reads (GET) are retried on connection failures only; mutations are sent
    exactly once. HTTP error responses are raised as ApiError and are never
    retried. An injected session is used from every thread, so it must be
    safe to share.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        session: requests.Session | None = None,
        token_provider: TokenProvider | None = None,
        timeout: float | None = None,
        read_retries: int | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        # Uploads run on worker threads; without an injected session each
        # thread gets its own requests.Session.
        self._shared_session = session
        self._local = threading.local()
        self.token_provider = token_provider
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self.read_retries = max(1, read_retries if read_retries is not None else settings.http_read_retries)
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self.client_type = settings.client_type

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    # -- priorities / tickets -------------------------------------------------

    def list_priorities(self) -> list[MaintenancePriority]:
        data = self._get(f"{MAINTENANCE_PATH}/priorities")
        return self._parse_list(MaintenancePriority, data)

    def create_ticket(self, payload: CreateTicketPayload) -> Ticket:
        data = self._send("POST", MAINTENANCE_PATH, json=payload.model_dump(exclude_none=True))
        ticket = self._parse_one(Ticket, data)
        logger.info("Created maintenance ticket id={ticket_id}", ticket_id=ticket.request_id)
        return ticket

    def get_ticket(self, ticket_id: int) -> Ticket:
        data = self._get(f"{MAINTENANCE_PATH}/{ticket_id}")
        return self._parse_one(Ticket, data)

    def list_tickets(
        self,
        *,
        assigned_to: int | None = None,
        created_by: int | None = None,
        status: TicketStatus | str | None = None,
    ) -> list[Ticket]:
        if isinstance(status, TicketStatus):
            status = status.wire_value
        params = {"assigned_to": assigned_to, "created_by": created_by, "status": status}
        data = self._get(MAINTENANCE_PATH, params=params)
        return self._parse_list(Ticket, data)

    def list_assigned_tickets(self, actor_id: int) -> list[Ticket]:
        return self.list_tickets(assigned_to=actor_id)

    def list_tickets_by_status(self, actor_id: int, status: TicketStatus | str) -> list[Ticket]:
        return self.list_tickets(created_by=actor_id, status=status)

    def list_cancelled_history(self, actor_id: int) -> list[Ticket]:
        data = self._get(
            f"{MAINTENANCE_PATH}/operator-cancelled-history",
            params={"operator_account_id": actor_id},
        )
        return self._parse_list(Ticket, data)

    # -- transitions ----------------------------------------------------------

    def mark_ongoing(self, ticket_id: int, actor_id: int) -> Ticket:
        body = OperatorActionPayload(operator_account_id=actor_id).model_dump()
        data = self._send("PUT", f"{MAINTENANCE_PATH}/{ticket_id}/ongoing", json=body)
        logger.info("Ticket {ticket_id} marked on-going by {actor_id}", ticket_id=ticket_id, actor_id=actor_id)
        return self._parse_one(Ticket, data)

    def mark_for_verification(self, ticket_id: int, actor_id: int) -> Ticket:
        body = OperatorActionPayload(operator_account_id=actor_id).model_dump()
        data = self._send("PUT", f"{MAINTENANCE_PATH}/{ticket_id}/for-verification", json=body)
        logger.info(
            "Ticket {ticket_id} submitted for verification by {actor_id}",
            ticket_id=ticket_id,
            actor_id=actor_id,
        )
        return self._parse_one(Ticket, data)

    def cancel_ticket(self, ticket_id: int, actor_id: int, reason: str) -> Ticket:
        body = CancelTicketPayload(actor_account_id=actor_id, reason=reason).model_dump()
        data = self._send("PUT", f"{MAINTENANCE_PATH}/{ticket_id}/cancel", json=body)
        logger.info("Cancellation requested for ticket {ticket_id}", ticket_id=ticket_id)
        return self._parse_one(Ticket, data)

    # -- remarks / attachments / events --------------------------------------

    def list_remarks(self, ticket_id: int, before: str | None = None) -> list[MaintenanceRemark]:
        data = self._get(f"{MAINTENANCE_PATH}/{ticket_id}/remarks", params={"before": before})
        return self._parse_list(MaintenanceRemark, data)

    def add_remark(
        self,
        ticket_id: int,
        text: str,
        actor_id: int,
        user_role: str | None = None,
    ) -> MaintenanceRemark:
        body = AddRemarkPayload(remark_text=text, created_by=actor_id, user_role=user_role)
        data = self._send(
            "POST",
            f"{MAINTENANCE_PATH}/{ticket_id}/remarks",
            json=body.model_dump(exclude_none=True),
        )
        return self._parse_one(MaintenanceRemark, data)

    def list_attachments(self, ticket_id: int, before: str | None = None) -> list[MaintenanceAttachment]:
        data = self._get(f"{MAINTENANCE_PATH}/{ticket_id}/attachments", params={"before": before})
        return self._parse_list(MaintenanceAttachment, data)

    def add_attachment(self, ticket_id: int, payload: AddAttachmentPayload) -> MaintenanceAttachment:
        data = self._send(
            "POST",
            f"{MAINTENANCE_PATH}/{ticket_id}/attachments",
            json=payload.model_dump(exclude_none=True),
        )
        return self._parse_one(MaintenanceAttachment, data)

    def list_events(self, ticket_id: int, before: str | None = None) -> list[MaintenanceEvent]:
        data = self._get(f"{MAINTENANCE_PATH}/{ticket_id}/events", params={"before": before})
        return self._parse_list(MaintenanceEvent, data)

    def upload_file(self, uri: str, name: str, mime_type: str) -> str:
        """Send a local file to remote storage and return its remote path."""
        path = local_path_from_uri(uri)
        with path.open("rb") as handle:
            data = self._send("POST", UPLOAD_PATH, files={"file": (name, handle, mime_type)})
        filepath = data.get("filepath") if isinstance(data, dict) else None
        if not filepath:
            raise ApiError("Upload response did not include a file path", payload=data, method="POST", path=UPLOAD_PATH)
        logger.debug("Uploaded {name} to {filepath}", name=name, filepath=filepath)
        return filepath

    # -- transport ------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json", "x-client-type": self.client_type}
        token = self.token_provider() if self.token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        retrying = Retrying(
            stop=stop_after_attempt(self.read_retries),
            wait=self.retry_wait,
            retry=retry_if_exception_type(ApiConnectionError),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self._send("GET", path, params=params)
        return None

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        files: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        query = {key: value for key, value in (params or {}).items() if value is not None}
        logger.debug("{method} {url} params={params}", method=method, url=url, params=query)
        try:
            response = self.session.request(
                method,
                url,
                params=query or None,
                json=json,
                files=files,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            logger.warning("{method} {path} timed out", method=method, path=path)
            raise ApiTimeoutError(method=method, path=path) from exc
        except requests.ConnectionError as exc:
            logger.warning("{method} {path} could not connect: {error}", method=method, path=path, error=exc)
            raise ApiConnectionError(method=method, path=path) from exc

        if response.status_code >= 400:
            raise self._error_from(response, method=method, path=path)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(
                "Server returned an invalid JSON response",
                status_code=response.status_code,
                payload=response.text,
                method=method,
                path=path,
            ) from exc

    @staticmethod
    def _error_from(response: requests.Response, *, method: str, path: str) -> ApiError:
        try:
            payload = response.json()
        except ValueError:
            payload = response.text
        message = None
        if isinstance(payload, dict):
            message = payload.get("message") or payload.get("error")
        if not message:
            message = payload if isinstance(payload, str) and payload else response.reason or "Request failed"
        logger.warning(
            "{method} {path} failed status={status} message={message}",
            method=method,
            path=path,
            status=response.status_code,
            message=message,
        )
        return ApiError(str(message), status_code=response.status_code, payload=payload, method=method, path=path)

    @staticmethod
    def _unwrap(data: Any) -> Any:
        if isinstance(data, dict):
            for key in ("data", "ticket", "remark", "attachment"):
                if key in data and isinstance(data[key], (dict, list)):
                    return data[key]
        return data

    def _parse_one(self, model: type[ModelT], data: Any) -> ModelT:
        body = self._unwrap(data)
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            raise ApiError(f"Unexpected {model.__name__} response", payload=data) from exc

    def _parse_list(self, model: type[ModelT], data: Any) -> list[ModelT]:
        body = self._unwrap(data)
        if body is None:
            return []
        if not isinstance(body, list):
            raise ApiError(f"Expected a list of {model.__name__}", payload=data)
        try:
            return [model.model_validate(item) for item in self._iter_items(body)]
        except ValidationError as exc:
            raise ApiError(f"Unexpected {model.__name__} response", payload=data) from exc

    @staticmethod
    def _iter_items(items: Iterable[Any]) -> Iterable[Any]:
        for item in items:
            if item is not None:
                yield item


@lru_cache
def get_maintenance_client() -> MaintenanceClient:
    settings = get_settings()
    setup_logging(settings.logging)
    return MaintenanceClient()

from __future__ import annotations

from typing import Any


class MaintenanceError(Exception):
    """Base class for every error raised by the maintenance client."""


class ActionValidationError(MaintenanceError, ValueError):
    """Rejected locally; no request was sent."""


class TransitionNotAllowedError(ActionValidationError):
    def __init__(self, status: Any, action: Any) -> None:
        self.status = status
        self.action = action
        status_label = getattr(status, "value", status)
        action_label = getattr(action, "value", action)
        super().__init__(f"Action '{action_label}' is not allowed while the ticket is '{status_label}'")


class MissingActorError(MaintenanceError, RuntimeError):
    def __init__(self, message: str = "User not found. Please sign in again.") -> None:
        super().__init__(message)


class ApiError(MaintenanceError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
        method: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.method = method
        self.path = path

    @property
    def is_auth_error(self) -> bool:
        return self.status_code in (401, 403)

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (HTTP {self.status_code})"


class ApiTimeoutError(ApiError):
    def __init__(self, *, method: str | None = None, path: str | None = None) -> None:
        super().__init__(
            "Request timed out. Please try again (or upload a smaller image).",
            method=method,
            path=path,
        )


class ApiConnectionError(ApiError):
    def __init__(self, *, method: str | None = None, path: str | None = None) -> None:
        super().__init__(
            "Cannot connect to server. Please check your network.",
            method=method,
            path=path,
        )


class TimelineTimestampError(MaintenanceError, ValueError):
    def __init__(self, key: str, value: Any) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Timeline record {key} has an unparsable timestamp: {value!r}")

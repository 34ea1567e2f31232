from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from sibol_maintenance.core.errors import (
    ActionValidationError,
    ApiError,
    MaintenanceError,
    MissingActorError,
)


class NoticeKind(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


class Notice(BaseModel):
    kind: NoticeKind
    title: str
    message: str
    inline: bool = False
    dismissible: bool = True


def notice_for_error(exc: MaintenanceError) -> Notice:
    """Validation and fatal errors block inline; transport errors are dismissible alerts."""
    if isinstance(exc, MissingActorError):
        return Notice(kind=NoticeKind.ERROR, title="Error", message=str(exc), inline=True, dismissible=False)
    if isinstance(exc, ActionValidationError):
        return Notice(kind=NoticeKind.ERROR, title="Check your input", message=str(exc), inline=True, dismissible=False)
    if isinstance(exc, ApiError):
        return Notice(kind=NoticeKind.ERROR, title="Error", message=exc.message)
    return Notice(kind=NoticeKind.ERROR, title="Error", message=str(exc) or "Something went wrong")

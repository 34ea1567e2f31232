from __future__ import annotations

from enum import Enum

from nanoid import generate
from pydantic import BaseModel, Field, field_validator


class PendingAttachment(BaseModel):
    """A locally staged file waiting to be uploaded against a ticket."""

    key: str = Field(default_factory=lambda: f"att_{generate(size=10)}")
    uri: str
    name: str
    mime_type: str = "image/jpeg"
    size: int | None = None

    @field_validator("uri", "name")
    @classmethod
    def _ensure_not_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("uri and name are required")
        return value.strip()


class UploadOutcome(str, Enum):
    EMPTY = "empty"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


class UploadBatchResult(BaseModel):
    succeeded: list[str] = Field(default_factory=list)
    failed: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + self.failed

    @property
    def outcome(self) -> UploadOutcome:
        if self.total == 0:
            return UploadOutcome.EMPTY
        if self.failed == 0:
            return UploadOutcome.SUCCESS
        if self.succeeded:
            return UploadOutcome.PARTIAL
        return UploadOutcome.FAILURE

    def summary(self, noun: str = "attachments") -> str:
        return f"{len(self.succeeded)} of {self.total} {noun} uploaded"

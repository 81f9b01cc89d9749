from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Literal, Optional

from pydantic import BaseModel, model_validator

SortOrder = Literal["asc", "desc"]


def strip_text(value):
    """Trim surrounding whitespace so length limits apply to the stored text."""

    return value.strip() if isinstance(value, str) else value


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store every timestamp as naive UTC."""

    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class DeletionResult(BaseModel):
    id: int
    outcome: Literal["deleted", "deactivated"]
    detail: str


class MessageResponse(BaseModel):
    detail: str


class PartialUpdate(BaseModel):
    """Body for PUT endpoints: only fields present in the request are applied."""

    required_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_null_required(self):
        for name in self.required_fields:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.dict(exclude_unset=True)

"""Shared base model for backend view-models (camelCase on the wire)."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Accepts camelCase JSON from the backend, exposes snake_case attributes.

    ``to_wire()`` produces the camelCase payload the backend expects, leaving
    out unset optional fields.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Pagination(WireModel):
    page: int = 1
    limit: int = 10
    total: int = 0
    total_pages: int = Field(default=0)
    # the claims endpoint reports "pages" instead of "totalPages"
    pages: Optional[int] = None

    @property
    def page_count(self) -> int:
        return self.total_pages or self.pages or 0

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    @property
    def has_prev(self) -> bool:
        return self.page > 1

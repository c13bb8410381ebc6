"""Pagination options shared by data index list queries."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class Pagination(BaseModel):
    offset: Optional[int] = Field(default=None, ge=0)
    limit: Optional[int] = Field(default=None, ge=0)
    order: Optional[SortOrder] = None
    sort_field: Optional[str] = None

    @field_validator("order", mode="before")
    @classmethod
    def upper_case_order(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.upper()
        return value

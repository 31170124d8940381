"""Pydantic schemas for categories."""

from uuid import UUID

from pydantic import Field

from courseforge.shared.schemas import SUCCESS_CODE, CamelModel


class CategoryResponse(CamelModel):
    """Schema for category responses."""

    id: UUID = Field(..., description="Category ID")
    name: str = Field(..., description="Category name")


class CategoryListResult(CamelModel):
    """All categories, alphabetical."""

    code: int = SUCCESS_CODE
    categories: list[CategoryResponse] = Field(default_factory=list)

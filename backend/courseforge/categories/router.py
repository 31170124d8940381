"""Categories API router."""

from fastapi import APIRouter

from courseforge.auth import CurrentAuth
from courseforge.categories.schemas import CategoryListResult, CategoryResponse
from courseforge.categories.service import list_categories


router = APIRouter(prefix="/api/v1/categories", tags=["categories"])


@router.get("")
async def get_categories(auth: CurrentAuth) -> CategoryListResult:
    """List the categories a course can be filed under."""
    categories = await list_categories(auth.session)
    return CategoryListResult(categories=[CategoryResponse.model_validate(c) for c in categories])

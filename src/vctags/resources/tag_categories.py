"""Tag category resource wrapper."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast
from urllib.parse import quote

from ..errors import APIError, QueryError
from .base import Resource
from .tag_categories_types import Category, CategoryResponse

if TYPE_CHECKING:  # pragma: no cover
    from ..context import Context

CATEGORY_PATH = "/rest/com/vmware/cis/tagging/category"


class TagCategories(Resource):
    """Tag category operations."""

    def list_ids(self, ctx: "Context") -> list[str]:
        """Fetch the identifiers of every tag category."""
        operation = "list tag categories"
        try:
            response = self._get(CATEGORY_PATH, ctx=ctx, operation=operation)
        except APIError as exc:
            raise QueryError(str(exc)) from exc
        if not isinstance(response, list) or not all(isinstance(item, str) for item in response):
            raise QueryError(f"{operation}: response missing expected category id list")
        return response

    def get(self, category_id: str, ctx: "Context") -> CategoryResponse:
        """Fetch a single tag category by ID."""
        operation = f"get tag category {category_id}"
        try:
            response = self._get(f"{CATEGORY_PATH}/id:{quote(category_id, safe=':')}", ctx=ctx, operation=operation)
        except APIError as exc:
            raise QueryError(str(exc)) from exc
        if not isinstance(response, dict):
            raise QueryError(f"{operation}: response missing expected category")
        return cast(CategoryResponse, response)

    def list(self, ctx: "Context") -> list[Category]:
        """Fetch every tag category as ``(id, name)`` pairs.

        Raises
        ------
        QueryError
            If any request fails or a category lacks an id or name.
        """
        categories: list[Category] = []
        for category_id in self.list_ids(ctx):
            detail = self.get(category_id, ctx)
            name = detail.get("name")
            if not isinstance(name, str):
                raise QueryError(f"get tag category {category_id}: response missing category name")
            categories.append(Category(detail.get("id") or category_id, name))
        return categories

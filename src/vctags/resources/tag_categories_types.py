"""Types for the tag_categories resource."""

from __future__ import annotations

from typing import NamedTuple, TypedDict
from typing_extensions import ReadOnly


class CategoryResponse(TypedDict, total=False):
    """Readonly category dict returned by the CIS tagging endpoint."""
    id: ReadOnly[str]
    name: ReadOnly[str]
    description: ReadOnly[str]
    cardinality: ReadOnly[str]
    associable_types: ReadOnly[list[str]]
    used_by: ReadOnly[list[str]]


class Category(NamedTuple):
    """The part of a category the cache needs."""
    id: str
    name: str


__all__ = ["Category", "CategoryResponse"]

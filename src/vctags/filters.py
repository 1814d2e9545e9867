"""Tag category selection."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .resources.tag_categories_types import Category


def filter_categories(categories: Iterable[Category], allowlist: Optional[Sequence[str]] = None) -> list[Category]:
    """Return the categories whose name is in ``allowlist``.

    An empty or missing allow-list selects every category. Names are matched
    exactly and the input order is preserved.
    """
    if not allowlist:
        return list(categories)
    wanted = set(allowlist)
    return [category for category in categories if category.name in wanted]


__all__ = ["filter_categories"]

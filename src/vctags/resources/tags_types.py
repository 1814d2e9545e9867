"""Types for the tags resource.

Only the ``(category_id, name)`` shape of a tag is kept once attached tags
have been resolved.
"""

from __future__ import annotations

from typing import NamedTuple, TypedDict
from typing_extensions import ReadOnly


class TagResponse(TypedDict, total=False):
    """Readonly tag dict returned by the CIS tagging endpoint."""
    id: ReadOnly[str]
    name: ReadOnly[str]
    category_id: ReadOnly[str]
    description: ReadOnly[str]
    used_by: ReadOnly[list[str]]


class ObjectIdResponse(TypedDict, total=False):
    type: ReadOnly[str]
    id: ReadOnly[str]


class TagAssociationResponse(TypedDict, total=False):
    """One entry of ``list-attached-tags-on-objects``."""
    object_id: ReadOnly[ObjectIdResponse]
    tag_ids: ReadOnly[list[str]]


class AttachedLabel(NamedTuple):
    category_id: str
    name: str


class AttachedLabelSet(NamedTuple):
    """Tags attached to one managed object."""
    object_id: str
    labels: list[AttachedLabel]


__all__ = [
    "AttachedLabel",
    "AttachedLabelSet",
    "ObjectIdResponse",
    "TagAssociationResponse",
    "TagResponse",
]

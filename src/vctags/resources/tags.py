"""Tag resource wrapper."""

from __future__ import annotations

from typing import Sequence, TYPE_CHECKING, cast
from urllib.parse import quote

from ..errors import APIError, NotFoundError, QueryError
from ..utils import unique_in_order
from .base import Resource
from .inventory_types import ObjectRef
from .tags_types import AttachedLabel, AttachedLabelSet, TagResponse

if TYPE_CHECKING:  # pragma: no cover
    from ..context import Context

TAG_PATH = "/rest/com/vmware/cis/tagging/tag"
ASSOCIATION_PATH = "/rest/com/vmware/cis/tagging/tag-association"


class Tags(Resource):
    """Tag and tag association operations."""

    def get(self, tag_id: str, ctx: "Context") -> TagResponse:
        """Fetch a single tag by ID.

        Raises
        ------
        NotFoundError
            If the tag was deleted on the server.
        QueryError
            For any other failure or a malformed response.
        """
        operation = f"get tag {tag_id}"
        try:
            response = self._get(f"{TAG_PATH}/id:{quote(tag_id, safe=':')}", ctx=ctx, operation=operation)
        except NotFoundError:
            raise
        except APIError as exc:
            raise QueryError(str(exc)) from exc
        if not isinstance(response, dict):
            raise QueryError(f"{operation}: response missing expected tag")
        return cast(TagResponse, response)

    def list_attached(self, refs: Sequence[ObjectRef], ctx: "Context") -> list[AttachedLabelSet]:
        """Return the tags attached to each of ``refs``.

        All objects are queried in one batch call; each distinct tag is then
        resolved once to its name and category.

        Parameters
        ----------
        refs
            Managed objects to query.
        ctx
            Cancellation context bounding every request.

        Returns
        -------
        list[AttachedLabelSet]
            One entry per object reported by the server.
        """
        if not refs:
            return []

        operation = "list attached tags on objects"
        try:
            response = self._post(
                ASSOCIATION_PATH,
                ctx=ctx,
                operation=operation,
                params={"~action": "list-attached-tags-on-objects"},
                json={"object_ids": [ref.as_payload() for ref in refs]},
            )
        except APIError as exc:
            raise QueryError(str(exc)) from exc
        if not isinstance(response, list):
            raise QueryError(f"{operation}: response missing expected association list")

        associations: list[tuple[str, list[str]]] = []
        for entry in response:
            object_id = entry.get("object_id") if isinstance(entry, dict) else None
            moid = object_id.get("id") if isinstance(object_id, dict) else None
            tag_ids = entry.get("tag_ids") if isinstance(entry, dict) else None
            if not isinstance(moid, str) or not isinstance(tag_ids, list):
                self._logger.warning("Skipping malformed tag association: %s", entry)
                continue
            associations.append((moid, [tag_id for tag_id in tag_ids if isinstance(tag_id, str)]))

        resolved: dict[str, AttachedLabel] = {}
        for tag_id in unique_in_order(tag_id for _, tag_ids in associations for tag_id in tag_ids):
            try:
                tag = self.get(tag_id, ctx)
            except NotFoundError:
                # deleted between the association listing and this lookup
                self._logger.debug("Tag %s vanished during refresh", tag_id)
                continue
            name = tag.get("name")
            category_id = tag.get("category_id")
            if not isinstance(name, str) or not isinstance(category_id, str):
                raise QueryError(f"get tag {tag_id}: response missing tag name or category")
            resolved[tag_id] = AttachedLabel(category_id, name)

        return [
            AttachedLabelSet(moid, [resolved[tag_id] for tag_id in tag_ids if tag_id in resolved])
            for moid, tag_ids in associations
        ]

"""One full refresh of the vSphere tag mapping."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from .context import Context
from .errors import QueryError
from .filters import filter_categories
from .resources import TagCategories, Tags, VirtualMachines
from .resources.tag_categories_types import Category
from .resources.tags_types import AttachedLabelSet
from .sessions import SessionManager

logger = logging.getLogger(__name__)

LabelMap = dict[str, dict[str, str]]


def build_label_map(attached: Iterable[AttachedLabelSet], categories: Sequence[Category]) -> LabelMap:
    """Resolve attached tags to ``{moid: {category name: tag name}}``.

    Tags in categories outside ``categories`` are ignored, and objects left
    without any tag are omitted.
    """
    names = {category.id: category.name for category in categories}
    labels: LabelMap = {}
    for label_set in attached:
        mtags = {names[label.category_id]: label.name for label in label_set.labels if label.category_id in names}
        if mtags:
            labels[label_set.object_id] = mtags
    return labels


class RefreshPipeline:
    """Fetches categories, inventory and attached tags into a new LabelMap."""

    def __init__(self, sessions: SessionManager, categories: Optional[Sequence[str]] = None) -> None:
        self.sessions = sessions
        self.categories = list(categories or [])

    def run(self, ctx: Context) -> LabelMap:
        """Build a fresh LabelMap; nothing is published here.

        Raises
        ------
        SessionError
            If a session cannot be opened.
        QueryError
            If a category, inventory or tag query fails.
        CancelledError, DeadlineExceededError
            If ``ctx`` ends before the cycle completes.
        """
        self.sessions.ensure_sessions(ctx)
        tagging = self.sessions.tagging
        management = self.sessions.management

        try:
            categories = filter_categories(TagCategories(tagging).list(ctx), self.categories)
        except QueryError:
            # most likely an expired tagging session; log in again next cycle
            self.sessions.drop_tagging()
            raise
        logger.debug("Got %d vSphere tag categories", len(categories))

        refs = VirtualMachines(management).list(ctx)
        logger.debug("Got %d virtual machines", len(refs))

        attached = Tags(tagging).list_attached(refs, ctx)
        labels = build_label_map(attached, categories)
        logger.debug("Built tag map for %d of %d virtual machines", len(labels), len(attached))
        return labels


__all__ = ["LabelMap", "RefreshPipeline", "build_label_map"]

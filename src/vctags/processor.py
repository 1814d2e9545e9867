"""Processor adding vSphere tags to incoming metrics."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .cache import TagCache
from .client import VCenter
from .config import SAMPLE_CONFIG, Config
from .context import Context
from .lineproto import Metric


class VcTagsProcessor:
    """Streaming processor enriching metrics with their object's vSphere tags.

    Lifecycle mirrors a telegraf streaming processor: :meth:`init` validates
    the configuration, :meth:`start` launches the cache refresh thread,
    :meth:`add` is called once per metric and :meth:`stop` shuts down.
    """

    def __init__(self, config: Config, *, client: Optional[VCenter] = None) -> None:
        self.config = config
        self.cache: Optional[TagCache] = None
        self._client = client
        self._logger = logging.getLogger(__name__)
        self._ctx: Optional[Context] = None
        self._thread: Optional[threading.Thread] = None

    def init(self) -> None:
        """Parse the endpoint and build the tag cache.

        Raises
        ------
        ConfigError
            If the vCenter URL or credentials are invalid.
        """
        endpoint = self.config.endpoint()
        self.cache = TagCache(endpoint, self.config.timeout, client=self._client)
        self.cache.set_category_filter(self.config.vsphere_categories)

    def start(self) -> None:
        """Start the cache refresh loop on a background thread."""
        if self.cache is None:
            self.init()
        self._ctx = Context().with_cancel()
        self._thread = threading.Thread(
            target=self.cache.run,
            args=(self._ctx, self.config.cache_interval),
            name="vctags-cache",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cancel the refresh loop and wait for it to finish."""
        if self._ctx is not None:
            self._ctx.cancel()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                self._logger.warning("vSphere tags cache did not stop within %s seconds", timeout)
        self._thread = None
        self._ctx = None

    def add(self, metric: Metric) -> Metric:
        """Add the cached vSphere tags of the metric's object to it."""
        moid = metric.get_tag(self.config.metric_moid_tag)
        if moid is None:
            if self.config.debug:
                self._logger.debug(
                    "metric with name %s did not have %s tag", metric.name, self.config.metric_moid_tag
                )
            return metric

        tags, found = self.cache.get(moid) if self.cache is not None else (None, False)
        if found:
            for category, tag in tags.items():
                metric.add_tag(category, tag)
                if self.config.debug:
                    self._logger.debug(
                        "enriched metric for %s = %s with tag %s", self.config.metric_moid_tag, moid, category
                    )
        return metric

    @staticmethod
    def sample_config() -> str:
        return SAMPLE_CONFIG

    @staticmethod
    def description() -> str:
        return "Adds vSphere object's tags to incoming metrics"


__all__ = ["VcTagsProcessor"]

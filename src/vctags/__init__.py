"""Public package surface for vctags, a vSphere tags enrichment processor."""

__version__ = "0.3.0"

from .cache import CacheState, TagCache
from .config import Config, Endpoint, parse_url
from .context import Context
from .processor import VcTagsProcessor

__all__ = [
    "CacheState",
    "Config",
    "Context",
    "Endpoint",
    "TagCache",
    "VcTagsProcessor",
    "__version__",
    "parse_url",
]

"""Resource module exports."""

from .inventory import VirtualMachines
from .tag_categories import TagCategories
from .tags import Tags

__all__ = [
    "TagCategories",
    "Tags",
    "VirtualMachines",
]

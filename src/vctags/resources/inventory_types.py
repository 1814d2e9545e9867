"""Types for the inventory resource."""

from __future__ import annotations

from typing import NamedTuple, TypedDict
from typing_extensions import ReadOnly


class VMSummaryResponse(TypedDict, total=False):
    """Readonly VM summary returned by ``GET /api/vcenter/vm``."""
    vm: ReadOnly[str]
    name: ReadOnly[str]
    power_state: ReadOnly[str]
    cpu_count: ReadOnly[int]
    memory_size_MiB: ReadOnly[int]


class HostSummaryResponse(TypedDict, total=False):
    """Readonly host summary returned by ``GET /api/vcenter/host``."""
    host: ReadOnly[str]
    name: ReadOnly[str]
    connection_state: ReadOnly[str]


class ObjectRef(NamedTuple):
    """Reference to a managed object, e.g. ``("VirtualMachine", "vm-100")``."""
    type: str
    id: str

    def as_payload(self) -> dict[str, str]:
        return {"type": self.type, "id": self.id}


__all__ = ["HostSummaryResponse", "ObjectRef", "VMSummaryResponse"]

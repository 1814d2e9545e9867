"""Inventory resource wrapper."""

from __future__ import annotations

from typing import Any, Optional, TYPE_CHECKING

from ..errors import APIError, QueryError
from ..utils import unique_in_order
from .base import Resource
from .inventory_types import ObjectRef

if TYPE_CHECKING:  # pragma: no cover
    from ..context import Context

# Returned by the automation API when a list query matches more than its cap
TOO_MANY_RESULTS = "UNABLE_TO_ALLOCATE_RESOURCE"


class VirtualMachines(Resource):
    """Virtual machine inventory operations."""

    OBJECT_TYPE = "VirtualMachine"

    def list(self, ctx: "Context") -> list[ObjectRef]:
        """List every virtual machine visible to the session.

        The unfiltered query is capped server side (4000 VMs). When the
        vCenter refuses it, the inventory is fetched one host at a time
        instead.

        Returns
        -------
        list[ObjectRef]
            One reference per VM, in the order the server returned them.

        Raises
        ------
        QueryError
            If the request fails or the response is not a VM list.
        """
        operation = "list virtual machines"
        try:
            response = self._get("/api/vcenter/vm", ctx=ctx, operation=operation)
        except APIError as exc:
            if exc.error_type != TOO_MANY_RESULTS:
                raise QueryError(str(exc)) from exc
            self._logger.info("Too many virtual machines for one query, listing them per host")
            return self._list_per_host(ctx)
        return self._refs(response, operation)

    def _list_per_host(self, ctx: "Context") -> list[ObjectRef]:
        refs: list[ObjectRef] = []
        for host_id in self.list_hosts(ctx):
            operation = f"list virtual machines on host {host_id}"
            try:
                response = self._get("/api/vcenter/vm", ctx=ctx, operation=operation, params={"hosts": host_id})
            except APIError as exc:
                raise QueryError(str(exc)) from exc
            refs.extend(self._refs(response, operation))
        return unique_in_order(refs)

    def list_hosts(self, ctx: "Context") -> list[str]:
        """Return the ids of every ESXi host visible to the session."""
        operation = "list hosts"
        try:
            response = self._get("/api/vcenter/host", ctx=ctx, operation=operation)
        except APIError as exc:
            raise QueryError(str(exc)) from exc
        if not isinstance(response, list):
            raise QueryError(f"{operation}: response missing expected host list")
        hosts = [entry.get("host") for entry in response if isinstance(entry, dict)]
        return unique_in_order([host for host in hosts if isinstance(host, str) and host])

    def _refs(self, response: Optional[Any], operation: str) -> list[ObjectRef]:
        if not isinstance(response, list):
            raise QueryError(f"{operation}: response missing expected vm list")

        refs: list[ObjectRef] = []
        for vm in response:
            vm_id = vm.get("vm") if isinstance(vm, dict) else None
            if isinstance(vm_id, str) and vm_id:
                refs.append(ObjectRef(self.OBJECT_TYPE, vm_id))
            else:
                self._logger.warning("Skipping VM entry without an id: %s", vm)
        return unique_in_order(refs)

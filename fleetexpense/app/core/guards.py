"""
Ownership guard for multi-tenant access control.

Every truck, trip and child record belongs to exactly one owner. A record
that is missing and a record owned by someone else are reported the same way.
"""

from typing import Any, Optional

from fleetexpense.app.core.exceptions import ResourceNotFoundError


class OwnershipGuard:
    """
    Validates that a fetched record exists and belongs to the acting owner.
    
    Usage:
        ownership_guard = OwnershipGuard()
        
        truck = await repo.fetch_truck(truck_id)
        ownership_guard.enforce(truck, owner_id, "Truck", truck_id)
    """
    
    def enforce(
        self,
        record: Optional[Any],
        owner_id: int,
        resource_name: str = "Resource",
        resource_id: Any = None
    ):
        """
        Return the record if the owner may access it.
        
        Raises:
            ResourceNotFoundError: record is None or owned by another user
        """
        if record is None or getattr(record, "owner_id", None) != owner_id:
            raise ResourceNotFoundError(resource_name, resource_id)
        return record


ownership_guard = OwnershipGuard()

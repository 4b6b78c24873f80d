"""
Audit logging service for authentication events and owner actions.

Entries are written after the action they describe has been committed,
in their own small transaction.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from fleetexpense.app.core.observability import correlation_id_var
from fleetexpense.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    USER_CREATED = "USER_CREATED"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    TOKEN_REVOKED = "TOKEN_REVOKED"

    # Trucks
    TRUCK_CREATED = "TRUCK_CREATED"
    TRUCK_UPDATED = "TRUCK_UPDATED"
    TRUCK_DELETED = "TRUCK_DELETED"

    # Drivers
    DRIVER_CREATED = "DRIVER_CREATED"
    DRIVER_UPDATED = "DRIVER_UPDATED"
    DRIVER_DELETED = "DRIVER_DELETED"

    # Trips
    TRIP_CREATED = "TRIP_CREATED"
    TRIP_UPDATED = "TRIP_UPDATED"
    TRIP_DELETED = "TRIP_DELETED"
    TRIP_TOTAL_RECOMPUTED = "TRIP_TOTAL_RECOMPUTED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Record an owner action.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of the acting owner
        actor_username: Username of the acting owner
        resource_type: "truck", "driver" or "trip" for resource events
        resource_id: ID of the truck, driver or trip
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        meta_data=metadata,
        correlation_id=correlation_id_var.get(),
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_auth_event(
    db: AsyncSession,
    action: str,
    user_id: Optional[int],
    username: Optional[str],
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Record a login success or failure, or a logout."""
    return await log_event(
        db=db,
        action=action,
        actor_id=user_id,
        actor_username=username,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    actor_id: Optional[int] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[int] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit entries with optional filtering, newest first.
    """
    query = select(AuditLog)

    if actor_id is not None:
        query = query.where(AuditLog.actor_id == actor_id)
    if action:
        query = query.where(AuditLog.action == action)
    if resource_type:
        query = query.where(AuditLog.resource_type == resource_type)
    if resource_id is not None:
        query = query.where(AuditLog.resource_id == resource_id)

    query = query.order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())

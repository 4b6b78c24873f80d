"""
Truck API Endpoints.

Owners register and manage their trucks with strict ownership enforcement.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from fleetexpense.app.db.session import get_db
from fleetexpense.app.models.truck import Truck
from fleetexpense.app.schemas.truck import (
    TruckCreate, TruckUpdate, TruckResponse, TruckListResponse, TruckStats
)
from fleetexpense.app.core.dependencies import get_current_user
from fleetexpense.app.core.exceptions import ConflictError
from fleetexpense.app.core.guards import ownership_guard
from fleetexpense.app.services.analytics import AnalyticsService
from fleetexpense.app.services.audit import log_event, AuditAction
from fleetexpense.app.services.trip_repository import TripRepository

router = APIRouter(prefix="/trucks", tags=["Trucks"])


async def _ensure_number_free(db: AsyncSession, owner_id: int, truck_number: str, exclude_id: int = None):
    query = select(Truck.id).where(Truck.owner_id == owner_id, Truck.truck_number == truck_number)
    if exclude_id is not None:
        query = query.where(Truck.id != exclude_id)
    if (await db.execute(query)).first():
        raise ConflictError(
            f"Truck number {truck_number} is already registered",
            details={"truck_number": truck_number}
        )


async def _commit_truck(db: AsyncSession, truck: Truck):
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same number
        await db.rollback()
        raise ConflictError(
            f"Truck number {truck.truck_number} is already registered",
            details={"truck_number": truck.truck_number}
        )
    await db.refresh(truck)


@router.post("", response_model=TruckResponse, status_code=status.HTTP_201_CREATED)
async def create_truck(
    truck_data: TruckCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new truck for the authenticated owner.

    The truck number must be unique among the owner's trucks.
    """
    owner_id = current_user["user_id"]
    await _ensure_number_free(db, owner_id, truck_data.truck_number)

    truck = Truck(owner_id=owner_id, **truck_data.model_dump())
    db.add(truck)
    await _commit_truck(db, truck)

    await log_event(
        db=db,
        action=AuditAction.TRUCK_CREATED,
        actor_id=owner_id,
        actor_username=current_user.get("sub"),
        resource_type="truck",
        resource_id=truck.id,
        metadata={"truck_number": truck.truck_number}
    )

    return TruckResponse.model_validate(truck)


@router.get("", response_model=TruckListResponse)
async def list_trucks(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List all trucks owned by the authenticated user, newest first.
    """
    result = await db.execute(
        select(Truck)
        .where(Truck.owner_id == current_user["user_id"])
        .order_by(Truck.created_at.desc(), Truck.id.desc())
    )
    trucks = result.scalars().all()

    return TruckListResponse(
        trucks=[TruckResponse.model_validate(truck) for truck in trucks],
        total=len(trucks)
    )


@router.get("/{truck_id}", response_model=TruckResponse)
async def get_truck(
    truck_id: int = Path(..., description="Truck ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get details of a specific truck.
    """
    owner_id = current_user["user_id"]
    truck = await TripRepository(db, owner_id).fetch_truck(truck_id)
    ownership_guard.enforce(truck, owner_id, "Truck", truck_id)

    return TruckResponse.model_validate(truck)


@router.patch("/{truck_id}", response_model=TruckResponse)
async def update_truck(
    truck_id: int = Path(..., description="Truck ID"),
    truck_data: TruckUpdate = ...,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Update truck details. Only provided fields change.
    """
    owner_id = current_user["user_id"]
    truck = await TripRepository(db, owner_id).fetch_truck(truck_id)
    ownership_guard.enforce(truck, owner_id, "Truck", truck_id)

    update_data = truck_data.model_dump(exclude_unset=True, exclude_none=True)
    if "truck_number" in update_data:
        await _ensure_number_free(db, owner_id, update_data["truck_number"], exclude_id=truck.id)

    for field, value in update_data.items():
        setattr(truck, field, value)
    await _commit_truck(db, truck)

    await log_event(
        db=db,
        action=AuditAction.TRUCK_UPDATED,
        actor_id=owner_id,
        actor_username=current_user.get("sub"),
        resource_type="truck",
        resource_id=truck.id,
        metadata={"updated_fields": list(update_data.keys())}
    )

    return TruckResponse.model_validate(truck)


@router.delete("/{truck_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_truck(
    truck_id: int = Path(..., description="Truck ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a truck together with its trips and their cost records.
    """
    owner_id = current_user["user_id"]
    truck = await TripRepository(db, owner_id).fetch_truck(truck_id)
    ownership_guard.enforce(truck, owner_id, "Truck", truck_id)

    await db.delete(truck)
    await db.commit()

    await log_event(
        db=db,
        action=AuditAction.TRUCK_DELETED,
        actor_id=owner_id,
        actor_username=current_user.get("sub"),
        resource_type="truck",
        resource_id=truck_id
    )


@router.get("/{truck_id}/stats", response_model=TruckStats)
async def get_truck_stats(
    truck_id: int = Path(..., description="Truck ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Trip count, total and average cost for one truck.
    """
    owner_id = current_user["user_id"]
    truck = await TripRepository(db, owner_id).fetch_truck(truck_id)
    ownership_guard.enforce(truck, owner_id, "Truck", truck_id)

    return await AnalyticsService.get_truck_stats(db, owner_id, truck_id)

"""
Driver API Endpoints.

Owners keep their driver roster here. Trips reference drivers by id;
removing a driver leaves the trips in place, unassigned.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fleetexpense.app.db.session import get_db
from fleetexpense.app.models.driver import Driver
from fleetexpense.app.schemas.driver import (
    DriverCreate, DriverUpdate, DriverResponse, DriverListResponse, DriverStats
)
from fleetexpense.app.core.dependencies import get_current_user
from fleetexpense.app.core.guards import ownership_guard
from fleetexpense.app.services.analytics import AnalyticsService
from fleetexpense.app.services.audit import log_event, AuditAction
from fleetexpense.app.services.trip_repository import TripRepository

router = APIRouter(prefix="/drivers", tags=["Drivers"])


async def _owned_driver(db: AsyncSession, owner_id: int, driver_id: int) -> Driver:
    driver = await TripRepository(db, owner_id).fetch_driver(driver_id)
    return ownership_guard.enforce(driver, owner_id, "Driver", driver_id)


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Add a driver to the authenticated owner's roster.
    """
    owner_id = current_user["user_id"]
    driver = Driver(owner_id=owner_id, **driver_data.model_dump())
    db.add(driver)
    await db.commit()
    await db.refresh(driver)

    await log_event(
        db=db,
        action=AuditAction.DRIVER_CREATED,
        actor_id=owner_id,
        actor_username=current_user.get("sub"),
        resource_type="driver",
        resource_id=driver.id,
        metadata={"name": driver.name}
    )

    return DriverResponse.model_validate(driver)


@router.get("", response_model=DriverListResponse)
async def list_drivers(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List the authenticated owner's drivers, newest first.
    """
    result = await db.execute(
        select(Driver)
        .where(Driver.owner_id == current_user["user_id"])
        .order_by(Driver.created_at.desc(), Driver.id.desc())
    )
    drivers = result.scalars().all()

    return DriverListResponse(
        drivers=[DriverResponse.model_validate(driver) for driver in drivers],
        total=len(drivers)
    )


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return DriverResponse.model_validate(await _owned_driver(db, current_user["user_id"], driver_id))


@router.patch("/{driver_id}", response_model=DriverResponse)
async def update_driver(
    driver_id: int = Path(..., description="Driver ID"),
    driver_data: DriverUpdate = ...,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Update driver details. Only provided fields change.
    """
    owner_id = current_user["user_id"]
    driver = await _owned_driver(db, owner_id, driver_id)

    update_data = driver_data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in update_data.items():
        setattr(driver, field, value)
    await db.commit()
    await db.refresh(driver)

    await log_event(
        db=db,
        action=AuditAction.DRIVER_UPDATED,
        actor_id=owner_id,
        actor_username=current_user.get("sub"),
        resource_type="driver",
        resource_id=driver.id,
        metadata={"updated_fields": list(update_data.keys())}
    )

    return DriverResponse.model_validate(driver)


@router.delete("/{driver_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Remove a driver. Their trips are kept with no driver assigned.
    """
    owner_id = current_user["user_id"]
    driver = await _owned_driver(db, owner_id, driver_id)

    await db.delete(driver)
    await db.commit()

    await log_event(
        db=db,
        action=AuditAction.DRIVER_DELETED,
        actor_id=owner_id,
        actor_username=current_user.get("sub"),
        resource_type="driver",
        resource_id=driver_id
    )


@router.get("/{driver_id}/stats", response_model=DriverStats)
async def get_driver_stats(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Trip count, total and average cost of the trips this driver drove.
    """
    owner_id = current_user["user_id"]
    await _owned_driver(db, owner_id, driver_id)

    return await AnalyticsService.get_driver_stats(db, owner_id, driver_id)

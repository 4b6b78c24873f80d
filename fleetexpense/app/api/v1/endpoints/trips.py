"""
Trip API Endpoints.

Trips, their diesel purchases and cost events. Every write goes through
the aggregation engine, which recomputes and stores the trip total in
the same transaction.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from fleetexpense.app.db.session import get_db
from fleetexpense.app.core.dependencies import get_current_user
from fleetexpense.app.domain.costing.aggregation import TripCostAggregator
from fleetexpense.app.schemas.analytics import OwnerOverviewStats
from fleetexpense.app.schemas.trip import (
    TripCreate, TripUpdate, TripResponse, TripListResponse, CostBreakdownResponse,
    DieselPurchaseCreate, DieselPurchaseUpdate,
    CostEventCreate, CostEventUpdate,
)
from fleetexpense.app.services.analytics import AnalyticsService
from fleetexpense.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/trips", tags=["Trips"])


def get_aggregator(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> TripCostAggregator:
    """Aggregation engine scoped to the authenticated owner."""
    return TripCostAggregator(db, owner_id=current_user["user_id"])


async def _audit(db: AsyncSession, current_user: dict, action: str, trip_id: int, **metadata):
    await log_event(
        db=db,
        action=action,
        actor_id=current_user["user_id"],
        actor_username=current_user.get("sub"),
        resource_type="trip",
        resource_id=trip_id,
        metadata=metadata or None
    )


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    current_user: dict = Depends(get_current_user),
    aggregator: TripCostAggregator = Depends(get_aggregator),
    db: AsyncSession = Depends(get_db)
):
    """
    Log a trip with its diesel purchases and itemized charges.

    The truck must belong to the caller. The returned ``total_cost`` already
    includes every purchase, direct cost field and positive charge.
    """
    trip = await aggregator.create_trip(trip_data)
    await _audit(db, current_user, AuditAction.TRIP_CREATED, trip.id, total_cost=str(trip.total_cost))
    return TripResponse.model_validate(trip)


@router.get("", response_model=TripListResponse)
async def list_trips(
    truck_id: Optional[int] = Query(None, description="Only trips of this truck"),
    driver_id: Optional[int] = Query(None, description="Only trips of this driver"),
    aggregator: TripCostAggregator = Depends(get_aggregator)
):
    """
    List the caller's trips, newest trip date first.
    """
    trips = await aggregator.list_trips(truck_id=truck_id, driver_id=driver_id)
    return TripListResponse(
        trips=[TripResponse.model_validate(trip) for trip in trips],
        total=len(trips)
    )


@router.get("/stats", response_model=OwnerOverviewStats)
async def get_trip_stats(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Dashboard totals across all of the caller's trips.
    """
    return await AnalyticsService.get_owner_overview(db, current_user["user_id"])


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: int = Path(..., description="Trip ID"),
    aggregator: TripCostAggregator = Depends(get_aggregator)
):
    """
    Get a trip with its diesel purchases and cost events.
    """
    return TripResponse.model_validate(await aggregator.get_trip(trip_id))


@router.patch("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: int = Path(..., description="Trip ID"),
    trip_data: TripUpdate = ...,
    current_user: dict = Depends(get_current_user),
    aggregator: TripCostAggregator = Depends(get_aggregator),
    db: AsyncSession = Depends(get_db)
):
    """
    Update trip details or direct cost fields; the total is recomputed.
    """
    trip = await aggregator.update_trip(trip_id, trip_data)
    await _audit(
        db, current_user, AuditAction.TRIP_UPDATED, trip.id,
        updated_fields=list(trip_data.model_dump(exclude_unset=True).keys())
    )
    return TripResponse.model_validate(trip)


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    aggregator: TripCostAggregator = Depends(get_aggregator),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a trip with all of its diesel purchases and cost events.
    """
    await aggregator.delete_trip(trip_id)
    await _audit(db, current_user, AuditAction.TRIP_DELETED, trip_id)


@router.post("/{trip_id}/recompute", response_model=TripResponse)
async def recompute_trip_total(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    aggregator: TripCostAggregator = Depends(get_aggregator),
    db: AsyncSession = Depends(get_db)
):
    """
    Re-derive the stored total from the trip's current records.

    Safe to repeat; used to repair a total left stale by concurrent edits.
    """
    trip = await aggregator.recompute_and_persist(trip_id)
    await _audit(db, current_user, AuditAction.TRIP_TOTAL_RECOMPUTED, trip.id, total_cost=str(trip.total_cost))
    return TripResponse.model_validate(trip)


@router.get("/{trip_id}/breakdown", response_model=CostBreakdownResponse)
async def get_cost_breakdown(
    trip_id: int = Path(..., description="Trip ID"),
    aggregator: TripCostAggregator = Depends(get_aggregator)
):
    """
    Per-category cost components, compared against the stored total.
    """
    breakdown = await aggregator.cost_breakdown(trip_id)
    trip = await aggregator.get_trip(trip_id)
    return CostBreakdownResponse(
        trip_id=trip_id,
        stored_total_cost=trip.total_cost,
        in_sync=trip.total_cost == breakdown.total_cost,
        **breakdown.model_dump()
    )


# Diesel purchases

@router.post("/{trip_id}/diesel-purchases", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def add_diesel_purchase(
    trip_id: int = Path(..., description="Trip ID"),
    purchase: DieselPurchaseCreate = ...,
    aggregator: TripCostAggregator = Depends(get_aggregator)
):
    """
    Record a diesel purchase; returns the trip with its new total.
    """
    return TripResponse.model_validate(await aggregator.add_diesel_purchase(trip_id, purchase))


@router.patch("/{trip_id}/diesel-purchases/{purchase_id}", response_model=TripResponse)
async def update_diesel_purchase(
    trip_id: int = Path(..., description="Trip ID"),
    purchase_id: int = Path(..., description="Diesel purchase ID"),
    purchase: DieselPurchaseUpdate = ...,
    aggregator: TripCostAggregator = Depends(get_aggregator)
):
    """
    Edit a diesel purchase; returns the trip with its new total.
    """
    return TripResponse.model_validate(
        await aggregator.update_diesel_purchase(trip_id, purchase_id, purchase)
    )


@router.delete("/{trip_id}/diesel-purchases/{purchase_id}", response_model=TripResponse)
async def delete_diesel_purchase(
    trip_id: int = Path(..., description="Trip ID"),
    purchase_id: int = Path(..., description="Diesel purchase ID"),
    aggregator: TripCostAggregator = Depends(get_aggregator)
):
    """
    Remove a diesel purchase; returns the trip with its new total.
    """
    return TripResponse.model_validate(await aggregator.delete_diesel_purchase(trip_id, purchase_id))


# Cost events

@router.post("/{trip_id}/events", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def add_cost_event(
    trip_id: int = Path(..., description="Trip ID"),
    event: CostEventCreate = ...,
    aggregator: TripCostAggregator = Depends(get_aggregator)
):
    """
    Add a toll, levy, tax, repair or checkpoint payment to a trip.

    Events with an amount of zero or less are stored but not counted.
    """
    return TripResponse.model_validate(await aggregator.add_cost_event(trip_id, event))


@router.patch("/{trip_id}/events/{event_id}", response_model=TripResponse)
async def update_cost_event(
    trip_id: int = Path(..., description="Trip ID"),
    event_id: int = Path(..., description="Cost event ID"),
    event: CostEventUpdate = ...,
    aggregator: TripCostAggregator = Depends(get_aggregator)
):
    """
    Edit a cost event; returns the trip with its new total.
    """
    return TripResponse.model_validate(await aggregator.update_cost_event(trip_id, event_id, event))


@router.delete("/{trip_id}/events/{event_id}", response_model=TripResponse)
async def delete_cost_event(
    trip_id: int = Path(..., description="Trip ID"),
    event_id: int = Path(..., description="Cost event ID"),
    aggregator: TripCostAggregator = Depends(get_aggregator)
):
    """
    Remove a cost event; returns the trip with its new total.
    """
    return TripResponse.model_validate(await aggregator.delete_cost_event(trip_id, event_id))

"""
Trip persistence service.

Owner-scoped data access for trucks, drivers, trips and their cost records. Every
query filters on the acting owner; nothing here commits, so callers
control the transaction boundary.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleetexpense.app.models.cost_event import CostEvent
from fleetexpense.app.models.diesel_purchase import DieselPurchase
from fleetexpense.app.models.driver import Driver
from fleetexpense.app.models.enums import CostEventType
from fleetexpense.app.models.trip import Trip
from fleetexpense.app.models.truck import Truck


class TripRepository:
    """
    Persistence collaborator for the aggregation engine.

    Usage:
        repo = TripRepository(db, owner_id=current_user["user_id"])
        trip = await repo.fetch_trip(trip_id)
    """

    def __init__(self, db: AsyncSession, owner_id: int):
        self.db = db
        self.owner_id = owner_id

    # Trucks

    async def fetch_truck(self, truck_id: int) -> Optional[Truck]:
        result = await self.db.execute(
            select(Truck).where(Truck.id == truck_id, Truck.owner_id == self.owner_id)
        )
        return result.scalar_one_or_none()

    # Drivers

    async def fetch_driver(self, driver_id: int) -> Optional[Driver]:
        result = await self.db.execute(
            select(Driver).where(Driver.id == driver_id, Driver.owner_id == self.owner_id)
        )
        return result.scalar_one_or_none()

    # Trips

    async def fetch_trip(self, trip_id: int, for_update: bool = False) -> Optional[Trip]:
        """
        Fetch one trip with its diesel purchases and cost events.

        Args:
            trip_id: Trip to load
            for_update: Lock the trip row until the transaction ends
                (ignored by dialects without row locks, e.g. SQLite)

        Returns:
            The trip, or None if it does not exist for this owner
        """
        query = (
            select(Trip)
            .where(Trip.id == trip_id, Trip.owner_id == self.owner_id)
            .options(selectinload(Trip.diesel_purchases), selectinload(Trip.cost_events))
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def fetch_trips(self, truck_id: Optional[int] = None, driver_id: Optional[int] = None) -> List[Trip]:
        """All trips of this owner, newest trip date first."""
        query = (
            select(Trip)
            .where(Trip.owner_id == self.owner_id)
            .options(selectinload(Trip.diesel_purchases), selectinload(Trip.cost_events))
            .order_by(Trip.trip_date.desc(), Trip.id.desc())
            .execution_options(populate_existing=True)
        )
        if truck_id is not None:
            query = query.where(Trip.truck_id == truck_id)
        if driver_id is not None:
            query = query.where(Trip.driver_id == driver_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def insert_trip(self, fields: Dict[str, Any]) -> Trip:
        trip = Trip(owner_id=self.owner_id, **fields)
        self.db.add(trip)
        await self.db.flush()  # assigns trip.id
        return trip

    async def update_trip(self, trip: Trip, fields: Dict[str, Any]) -> Trip:
        for field, value in fields.items():
            setattr(trip, field, value)
        await self.db.flush()
        return trip

    async def delete_trip(self, trip: Trip) -> None:
        await self.db.delete(trip)
        await self.db.flush()

    # Child records

    async def insert_child_records(self, model, records: Iterable[Dict[str, Any]]) -> list:
        """
        Bulk insert diesel purchases or cost events.

        All rows are flushed together, so they succeed or fail as one.
        """
        rows = [model(**record) for record in records]
        if rows:
            self.db.add_all(rows)
            await self.db.flush()
        return rows

    async def delete_child_record(self, record) -> None:
        await self.db.delete(record)
        await self.db.flush()

    async def fetch_diesel_purchase(self, trip_id: int, purchase_id: int) -> Optional[DieselPurchase]:
        result = await self.db.execute(
            select(DieselPurchase)
            .join(Trip, DieselPurchase.trip_id == Trip.id)
            .where(
                DieselPurchase.id == purchase_id,
                DieselPurchase.trip_id == trip_id,
                Trip.owner_id == self.owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def fetch_cost_event(self, trip_id: int, event_id: int) -> Optional[CostEvent]:
        result = await self.db.execute(
            select(CostEvent)
            .join(Trip, CostEvent.trip_id == Trip.id)
            .where(
                CostEvent.id == event_id,
                CostEvent.trip_id == trip_id,
                Trip.owner_id == self.owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def fetch_diesel_purchases(self, trip_id: int) -> List[DieselPurchase]:
        """Current diesel purchases of a trip, read from storage (not the session cache)."""
        result = await self.db.execute(
            select(DieselPurchase)
            .where(DieselPurchase.trip_id == trip_id)
            .order_by(DieselPurchase.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def sum_event_amounts(self, trip_id: int) -> Dict[CostEventType, Decimal]:
        """
        Sum the positive event amounts of a trip, per event type.

        Types without any positive event are absent from the result.
        """
        result = await self.db.execute(
            select(CostEvent.event_type, func.sum(CostEvent.amount))
            .where(CostEvent.trip_id == trip_id, CostEvent.amount > 0)
            .group_by(CostEvent.event_type)
        )
        return {
            event_type: Decimal(str(amount))
            for event_type, amount in result.all()
            if amount is not None
        }

"""
Trip Cost Aggregation Engine (Domain Logic).

Keeps every trip's cached ``total_cost`` consistent with its diesel
purchases, direct cost fields and cost events.

Every operation that touches a cost-bearing record runs the same sequence
inside one database transaction:
1. Load the trip (owner-scoped, row-locked where supported)
2. Apply the mutation
3. Re-read the trip's cost fields and children from storage
4. Recompute the total with the cost model
5. Write the total and commit

Nothing is retried. On any failure the transaction is rolled back and the
error is re-raised; storage errors surface as PersistenceError.
"""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetexpense.app.core.exceptions import PersistenceError, ResourceNotFoundError
from fleetexpense.app.core.guards import ownership_guard
from fleetexpense.app.domain.costing.cost_model import (
    CostBreakdown,
    DieselLine,
    TripCostSnapshot,
    compute_breakdown,
)
from fleetexpense.app.models.cost_event import CostEvent
from fleetexpense.app.models.diesel_purchase import DieselPurchase
from fleetexpense.app.models.enums import CostEventType
from fleetexpense.app.models.trip import Trip, DIRECT_COST_FIELDS
from fleetexpense.app.schemas.trip import (
    CostEventCreate,
    CostEventUpdate,
    DieselPurchaseCreate,
    DieselPurchaseUpdate,
    TripCreate,
    TripUpdate,
)
from fleetexpense.app.services.trip_repository import TripRepository

logger = logging.getLogger(__name__)

# Trip creation payload arrays and the event type their rows are stored as
EVENT_SEED_FIELDS = {
    "fast_tag_costs": CostEventType.FAST_TAG,
    "mcd_costs": CostEventType.MCD,
    "green_tax_costs": CostEventType.GREEN_TAX,
    "rto_costs": CostEventType.RTO,
    "dto_costs": CostEventType.DTO,
    "municipalities_costs": CostEventType.MUNICIPALITIES,
    "border_costs": CostEventType.BORDER,
    "repair_items": CostEventType.REPAIR,
}

TRIP_FIELDS = {
    "truck_id", "driver_id", "source", "destination", "trip_date", "start_date", "end_date",
    *DIRECT_COST_FIELDS,
}

NULLABLE_TRIP_FIELDS = {"driver_id", "start_date", "end_date"}

TripMutation = Callable[[Trip], Awaitable[None]]


def build_snapshot(trip: Trip, purchases: List[DieselPurchase], event_sums: dict) -> TripCostSnapshot:
    """Assemble the cost model input from stored records."""
    return TripCostSnapshot(
        diesel_purchases=[DieselLine.model_validate(p) for p in purchases],
        event_sums=event_sums,
        **{field: getattr(trip, field) for field in DIRECT_COST_FIELDS},
    )


class TripCostAggregator:
    """
    Owner-scoped orchestration of trip mutations and total recomputation.

    Usage:
        aggregator = TripCostAggregator(db, owner_id=current_user["user_id"])
        trip = await aggregator.add_diesel_purchase(trip_id, purchase)
    """

    def __init__(self, db: AsyncSession, owner_id: int, repository: Optional[TripRepository] = None):
        self.db = db
        self.owner_id = owner_id
        self.repo = repository or TripRepository(db, owner_id)

    @asynccontextmanager
    async def _transaction(self, operation: str, commit: bool = True):
        try:
            yield
            if commit:
                await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.warning("%s failed for owner %s, rolled back: %s", operation, self.owner_id, exc)
            raise PersistenceError(operation, exc) from exc
        except Exception:
            await self.db.rollback()
            raise

    async def _load_trip(self, trip_id: int, for_update: bool = False) -> Trip:
        trip = await self.repo.fetch_trip(trip_id, for_update=for_update)
        return ownership_guard.enforce(trip, self.owner_id, "Trip", trip_id)

    async def _check_driver(self, driver_id: int) -> None:
        driver = await self.repo.fetch_driver(driver_id)
        ownership_guard.enforce(driver, self.owner_id, "Driver", driver_id)

    async def _snapshot(self, trip: Trip) -> TripCostSnapshot:
        await self.db.flush()
        await self.db.refresh(trip, attribute_names=list(DIRECT_COST_FIELDS))
        purchases = await self.repo.fetch_diesel_purchases(trip.id)
        event_sums = await self.repo.sum_event_amounts(trip.id)
        return build_snapshot(trip, purchases, event_sums)

    async def _recompute(self, trip: Trip) -> Decimal:
        breakdown = compute_breakdown(await self._snapshot(trip))
        previous = trip.total_cost
        trip.total_cost = breakdown.total_cost
        await self.db.flush()
        logger.debug("Trip %s total recomputed: %s -> %s", trip.id, previous, breakdown.total_cost)
        return breakdown.total_cost

    async def _mutate(self, trip_id: int, operation: str, mutation: Optional[TripMutation] = None) -> Trip:
        async with self._transaction(operation):
            trip = await self._load_trip(trip_id, for_update=True)
            if mutation is not None:
                await mutation(trip)
            await self._recompute(trip)
        return await self.get_trip(trip_id)

    # Reads

    async def get_trip(self, trip_id: int) -> Trip:
        async with self._transaction("Fetch trip", commit=False):
            return await self._load_trip(trip_id)

    async def list_trips(self, truck_id: Optional[int] = None, driver_id: Optional[int] = None) -> List[Trip]:
        async with self._transaction("Fetch trips", commit=False):
            return await self.repo.fetch_trips(truck_id=truck_id, driver_id=driver_id)

    async def cost_breakdown(self, trip_id: int) -> CostBreakdown:
        """Price a trip from its stored records without writing anything."""
        async with self._transaction("Price trip", commit=False):
            trip = await self._load_trip(trip_id)
            return compute_breakdown(await self._snapshot(trip))

    # Trip lifecycle

    async def create_trip(self, data: TripCreate) -> Trip:
        """
        Create a trip with its diesel purchases and event seeds.

        Seeds with a non-positive amount are dropped. The initial total is
        computed from the stored children, seeds included. If any child
        insert fails the whole trip is rolled back.
        """
        async with self._transaction("Create trip"):
            truck = await self.repo.fetch_truck(data.truck_id)
            ownership_guard.enforce(truck, self.owner_id, "Truck", data.truck_id)
            if data.driver_id is not None:
                await self._check_driver(data.driver_id)

            fields = data.model_dump(include=TRIP_FIELDS, exclude_none=True)
            trip = await self.repo.insert_trip(fields)

            await self.repo.insert_child_records(
                DieselPurchase,
                [
                    {"trip_id": trip.id, **purchase.model_dump(exclude_none=True)}
                    for purchase in data.diesel_purchases
                ],
            )
            for field, event_type in EVENT_SEED_FIELDS.items():
                seeds = [seed for seed in getattr(data, field) if seed.amount > 0]
                await self.repo.insert_child_records(
                    CostEvent,
                    [
                        {"trip_id": trip.id, "event_type": event_type, **seed.model_dump(exclude_none=True)}
                        for seed in seeds
                    ],
                )

            await self._recompute(trip)
            trip_id = trip.id

        logger.info("Trip %s created for owner %s", trip_id, self.owner_id)
        return await self.get_trip(trip_id)

    async def update_trip(self, trip_id: int, data: TripUpdate) -> Trip:
        """Apply changed trip fields; the total is recomputed over the merged view."""
        fields = {}
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field in DIRECT_COST_FIELDS:
                value = Decimal("0")
            if value is None and field not in NULLABLE_TRIP_FIELDS:
                continue
            fields[field] = value

        async def apply(trip: Trip) -> None:
            if fields.get("truck_id") is not None and fields["truck_id"] != trip.truck_id:
                truck = await self.repo.fetch_truck(fields["truck_id"])
                ownership_guard.enforce(truck, self.owner_id, "Truck", fields["truck_id"])
            if fields.get("driver_id") is not None and fields["driver_id"] != trip.driver_id:
                await self._check_driver(fields["driver_id"])
            await self.repo.update_trip(trip, fields)

        return await self._mutate(trip_id, "Update trip", apply)

    async def delete_trip(self, trip_id: int) -> None:
        async with self._transaction("Delete trip"):
            trip = await self._load_trip(trip_id, for_update=True)
            await self.repo.delete_trip(trip)
        logger.info("Trip %s deleted for owner %s", trip_id, self.owner_id)

    async def recompute_and_persist(self, trip_id: int) -> Trip:
        """Re-derive and store the total from the trip's current records."""
        return await self._mutate(trip_id, "Recompute trip total")

    # Diesel purchases

    async def add_diesel_purchase(self, trip_id: int, data: DieselPurchaseCreate) -> Trip:
        async def apply(trip: Trip) -> None:
            await self.repo.insert_child_records(
                DieselPurchase, [{"trip_id": trip.id, **data.model_dump(exclude_none=True)}]
            )

        return await self._mutate(trip_id, "Add diesel purchase", apply)

    async def update_diesel_purchase(self, trip_id: int, purchase_id: int, data: DieselPurchaseUpdate) -> Trip:
        async def apply(trip: Trip) -> None:
            purchase = await self.repo.fetch_diesel_purchase(trip.id, purchase_id)
            if purchase is None:
                raise ResourceNotFoundError("Diesel purchase", purchase_id)
            for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
                setattr(purchase, field, value)

        return await self._mutate(trip_id, "Update diesel purchase", apply)

    async def delete_diesel_purchase(self, trip_id: int, purchase_id: int) -> Trip:
        async def apply(trip: Trip) -> None:
            purchase = await self.repo.fetch_diesel_purchase(trip.id, purchase_id)
            if purchase is None:
                raise ResourceNotFoundError("Diesel purchase", purchase_id)
            await self.repo.delete_child_record(purchase)

        return await self._mutate(trip_id, "Delete diesel purchase", apply)

    # Cost events (all kinds, checkpoint authority payments included)

    async def add_cost_event(self, trip_id: int, data: CostEventCreate) -> Trip:
        async def apply(trip: Trip) -> None:
            await self.repo.insert_child_records(
                CostEvent, [{"trip_id": trip.id, **data.model_dump(exclude_none=True)}]
            )

        return await self._mutate(trip_id, f"Add {data.event_type.value} event", apply)

    async def update_cost_event(self, trip_id: int, event_id: int, data: CostEventUpdate) -> Trip:
        async def apply(trip: Trip) -> None:
            event = await self.repo.fetch_cost_event(trip.id, event_id)
            if event is None:
                raise ResourceNotFoundError("Cost event", event_id)
            for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
                setattr(event, field, value)

        return await self._mutate(trip_id, "Update cost event", apply)

    async def delete_cost_event(self, trip_id: int, event_id: int) -> Trip:
        async def apply(trip: Trip) -> None:
            event = await self.repo.fetch_cost_event(trip.id, event_id)
            if event is None:
                raise ResourceNotFoundError("Cost event", event_id)
            await self.repo.delete_child_record(event)

        return await self._mutate(trip_id, "Delete cost event", apply)

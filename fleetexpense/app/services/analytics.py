"""
Analytics Service.

Trip, truck and driver cost totals for dashboards.
Focused on READ-ONLY operations over the cached trip totals.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from fleetexpense.app.domain.costing.cost_model import round_money, to_decimal
from fleetexpense.app.models.diesel_purchase import DieselPurchase
from fleetexpense.app.models.trip import Trip
from fleetexpense.app.schemas.analytics import OwnerOverviewStats
from fleetexpense.app.schemas.driver import DriverStats
from fleetexpense.app.schemas.truck import TruckStats


def _average(total: Decimal, count: int) -> Decimal:
    return round_money(total / count) if count else Decimal("0.00")


class AnalyticsService:

    @staticmethod
    async def get_owner_overview(db: AsyncSession, owner_id: int) -> OwnerOverviewStats:
        """Trip count, spend and fuel volume across all of an owner's trucks."""
        
        # 1. Trip count and spend
        trip_query = select(func.count(Trip.id), func.sum(Trip.total_cost)).where(
            Trip.owner_id == owner_id
        )
        total_trips, total_cost = (await db.execute(trip_query)).one()
        total_trips = total_trips or 0
        total_cost = round_money(to_decimal(total_cost))
        
        # 2. Diesel volume
        diesel_query = (
            select(func.sum(DieselPurchase.quantity))
            .join(Trip, DieselPurchase.trip_id == Trip.id)
            .where(Trip.owner_id == owner_id)
        )
        total_diesel = to_decimal((await db.execute(diesel_query)).scalar())

        return OwnerOverviewStats(
            total_trips=total_trips,
            total_cost=total_cost,
            total_diesel_liters=total_diesel,
            avg_cost=_average(total_cost, total_trips)
        )

    @staticmethod
    async def get_truck_stats(db: AsyncSession, owner_id: int, truck_id: int) -> TruckStats:
        """Trip count and spend for one truck. Ownership is checked by the caller."""
        query = select(func.count(Trip.id), func.sum(Trip.total_cost)).where(
            Trip.owner_id == owner_id,
            Trip.truck_id == truck_id
        )
        total_trips, total_cost = (await db.execute(query)).one()
        total_trips = total_trips or 0
        total_cost = round_money(to_decimal(total_cost))

        return TruckStats(
            truck_id=truck_id,
            total_trips=total_trips,
            total_cost=total_cost,
            avg_cost=_average(total_cost, total_trips)
        )

    @staticmethod
    async def get_driver_stats(db: AsyncSession, owner_id: int, driver_id: int) -> DriverStats:
        """Trip count and spend for the trips a driver drove. Ownership is checked by the caller."""
        query = select(func.count(Trip.id), func.sum(Trip.total_cost)).where(
            Trip.owner_id == owner_id,
            Trip.driver_id == driver_id
        )
        total_trips, total_cost = (await db.execute(query)).one()
        total_trips = total_trips or 0
        total_cost = round_money(to_decimal(total_cost))

        return DriverStats(
            driver_id=driver_id,
            total_trips=total_trips,
            total_cost=total_cost,
            avg_cost=_average(total_cost, total_trips)
        )

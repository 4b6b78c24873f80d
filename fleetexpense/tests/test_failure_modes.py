"""
Failure Injection Tests.

Storage and cache failures must never leave a partial trip or a stale
total behind.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from fleetexpense.app.core.exceptions import PersistenceError
from fleetexpense.app.domain.costing.aggregation import TripCostAggregator
from fleetexpense.app.models.cost_event import CostEvent
from fleetexpense.app.models.diesel_purchase import DieselPurchase
from fleetexpense.app.models.trip import Trip
from fleetexpense.app.schemas.trip import DieselPurchaseCreate, TripCreate
from fleetexpense.app.services.trip_repository import TripRepository


def storage_down():
    return OperationalError("INSERT", {}, Exception("database is locked"))


def new_trip(truck_id: int) -> TripCreate:
    return TripCreate(
        truck_id=truck_id,
        source="Nagpur",
        destination="Raipur",
        fast_tag_cost=75,
        diesel_purchases=[{"state": "Maharashtra", "quantity": 80, "price_per_liter": 94}],
        repair_items=[{"amount": 1200, "part_or_defect": "Radiator hose"}],
    )


async def count(db_session, model) -> int:
    result = await db_session.execute(select(func.count(model.id)))
    return result.scalar()


@pytest.mark.asyncio
async def test_child_insert_failure_rolls_back_trip(db_session, seeded, mocker):
    """If any child row cannot be stored, the trip itself is not kept."""
    mocker.patch.object(TripRepository, "insert_child_records", side_effect=storage_down())
    aggregator = TripCostAggregator(db_session, owner_id=seeded["owner_id"])

    with pytest.raises(PersistenceError) as exc_info:
        await aggregator.create_trip(new_trip(seeded["truck_id"]))

    assert exc_info.value.error_code == "ERR_BACKEND_001"
    assert "database is locked" in exc_info.value.details["reason"]
    assert await count(db_session, Trip) == 0
    assert await count(db_session, DieselPurchase) == 0
    assert await count(db_session, CostEvent) == 0


@pytest.mark.asyncio
async def test_recompute_failure_discards_mutation(db_session, seeded, mocker):
    """A purchase is not kept when the total it changes cannot be recomputed."""
    aggregator = TripCostAggregator(db_session, owner_id=seeded["owner_id"])
    trip = await aggregator.create_trip(new_trip(seeded["truck_id"]))
    assert trip.total_cost == Decimal("8795.00")

    mocker.patch.object(TripRepository, "sum_event_amounts", side_effect=storage_down())
    with pytest.raises(PersistenceError):
        await aggregator.add_diesel_purchase(
            trip.id, DieselPurchaseCreate(state="Chhattisgarh", quantity=20, price_per_liter=93)
        )
    mocker.stopall()

    trip = await aggregator.get_trip(trip.id)
    assert len(trip.diesel_purchases) == 1
    assert trip.total_cost == Decimal("8795.00")


@pytest.mark.asyncio
async def test_backend_failure_maps_to_503(client, owner, truck, mocker):
    response = await client.post("/v1/trips", headers=owner["headers"], json={
        "truck_id": truck["id"], "source": "Surat", "destination": "Vadodara"
    })
    trip_id = response.json()["id"]

    mocker.patch.object(TripRepository, "fetch_diesel_purchases", side_effect=storage_down())
    response = await client.post(
        f"/v1/trips/{trip_id}/diesel-purchases",
        headers=owner["headers"],
        json={"state": "Gujarat", "quantity": 10, "price_per_liter": 90}
    )

    assert response.status_code == 503
    body = response.json()
    assert body["error_code"] == "ERR_BACKEND_001"
    assert body["details"]["operation"] == "Add diesel purchase"


@pytest.mark.asyncio
async def test_revocation_store_down_fails_open(client, owner, redis_client_session, mocker):
    """An unreachable token store does not lock owners out."""
    mocker.patch.object(redis_client_session, "exists", side_effect=ConnectionError("redis down"))

    response = await client.get("/v1/auth/me", headers=owner["headers"])

    assert response.status_code == 200
    assert response.json()["username"] == "owner1"


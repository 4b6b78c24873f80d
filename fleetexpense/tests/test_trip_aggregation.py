"""
Trip cost aggregation engine tests.

Drives TripCostAggregator directly against the test database: every
mutation must leave the stored total equal to a fresh computation.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select, func, update

from fleetexpense.app.core.exceptions import ResourceNotFoundError
from fleetexpense.app.core.security import get_password_hash
from fleetexpense.app.domain.costing.aggregation import TripCostAggregator
from fleetexpense.app.models.cost_event import CostEvent
from fleetexpense.app.models.diesel_purchase import DieselPurchase
from fleetexpense.app.models.driver import Driver
from fleetexpense.app.models.enums import CostEventType
from fleetexpense.app.models.trip import Trip
from fleetexpense.app.models.truck import Truck
from fleetexpense.app.models.user import User
from fleetexpense.app.schemas.trip import (
    CostEventCreate,
    CostEventUpdate,
    DieselPurchaseCreate,
    DieselPurchaseUpdate,
    TripCreate,
    TripUpdate,
)


def reference_trip(truck_id: int, **overrides) -> TripCreate:
    data = {
        "truck_id": truck_id,
        "source": "Delhi",
        "destination": "Jaipur",
        "fast_tag_cost": 50,
        "mcd_cost": 20,
        "green_tax_cost": 10,
        "diesel_purchases": [{"state": "Haryana", "quantity": 100, "price_per_liter": "95.5"}],
    }
    data.update(overrides)
    return TripCreate(**data)


@pytest.fixture
async def aggregator(db_session, seeded):
    return TripCostAggregator(db_session, owner_id=seeded["owner_id"])


@pytest.fixture
async def stranger(db_session):
    """A second owner with a truck of their own."""
    user = User(email="stranger@test.com", username="stranger", hashed_password=get_password_hash("password123"))
    db_session.add(user)
    await db_session.flush()
    truck = Truck(owner_id=user.id, name="Eicher Pro", truck_number="RJ14GB7777")
    db_session.add(truck)
    await db_session.commit()
    return {"owner_id": user.id, "truck_id": truck.id}


async def stored_total(db_session, trip_id: int) -> Decimal:
    result = await db_session.execute(select(Trip.total_cost).where(Trip.id == trip_id))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_trip_prices_reference_trip(aggregator, seeded, db_session):
    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"]))

    assert trip.total_cost == Decimal("9630.00")
    assert trip.owner_id == seeded["owner_id"]
    assert len(trip.diesel_purchases) == 1
    assert await stored_total(db_session, trip.id) == Decimal("9630.00")


@pytest.mark.asyncio
async def test_create_trip_counts_positive_seeds_only(aggregator, seeded, db_session):
    data = reference_trip(
        seeded["truck_id"],
        fast_tag_costs=[{"amount": 100}, {"amount": 0}, {"amount": -5}],
        rto_costs=[{"amount": 150, "state": "Rajasthan", "checkpoint": "Shahjahanpur"}],
        repair_items=[{"amount": "499.99", "part_or_defect": "Clutch plate"}],
    )
    trip = await aggregator.create_trip(data)

    kinds = sorted(event.event_type.value for event in trip.cost_events)
    assert kinds == ["FAST_TAG", "REPAIR", "RTO"]
    # 9630 + 100 + 150 + 499.99
    assert trip.total_cost == Decimal("10379.99")


@pytest.mark.asyncio
async def test_create_trip_without_costs_is_zero(aggregator, seeded):
    trip = await aggregator.create_trip(
        TripCreate(truck_id=seeded["truck_id"], source="Pune", destination="Mumbai")
    )
    assert trip.total_cost == Decimal("0.00")
    assert trip.diesel_purchases == []
    assert trip.cost_events == []


@pytest.mark.asyncio
async def test_create_trip_on_foreign_truck_is_not_found(aggregator, stranger, db_session):
    with pytest.raises(ResourceNotFoundError):
        await aggregator.create_trip(reference_trip(stranger["truck_id"]))

    count = await db_session.execute(select(func.count(Trip.id)))
    assert count.scalar() == 0


@pytest.mark.asyncio
async def test_add_and_remove_diesel_purchase(aggregator, seeded):
    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"]))

    trip = await aggregator.add_diesel_purchase(
        trip.id, DieselPurchaseCreate(state="Rajasthan", quantity=50, price_per_liter=90)
    )
    assert trip.total_cost == Decimal("14130.00")
    assert len(trip.diesel_purchases) == 2

    added = max(trip.diesel_purchases, key=lambda p: p.id)
    trip = await aggregator.delete_diesel_purchase(trip.id, added.id)
    assert trip.total_cost == Decimal("9630.00")
    assert len(trip.diesel_purchases) == 1


@pytest.mark.asyncio
async def test_update_diesel_purchase_recomputes(aggregator, seeded):
    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"]))
    purchase_id = trip.diesel_purchases[0].id

    trip = await aggregator.update_diesel_purchase(
        trip.id, purchase_id, DieselPurchaseUpdate(price_per_liter=Decimal("100"))
    )

    assert trip.diesel_purchases[0].quantity == Decimal("100")
    assert trip.total_cost == Decimal("10080.00")


@pytest.mark.asyncio
async def test_updating_direct_field_keeps_diesel(aggregator, seeded):
    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"]))

    trip = await aggregator.update_trip(trip.id, TripUpdate(fast_tag_cost=Decimal("80")))

    # Diesel (9550) is still counted alongside the new fast-tag value
    assert trip.fast_tag_cost == Decimal("80")
    assert trip.total_cost == Decimal("9660.00")


@pytest.mark.asyncio
async def test_clearing_direct_field_counts_as_zero(aggregator, seeded):
    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"]))

    trip = await aggregator.update_trip(trip.id, TripUpdate(mcd_cost=None, destination="Ajmer"))

    assert trip.mcd_cost == Decimal("0")
    assert trip.destination == "Ajmer"
    assert trip.total_cost == Decimal("9610.00")


@pytest.mark.asyncio
async def test_moving_trip_to_foreign_truck_is_rejected(aggregator, seeded, stranger, db_session):
    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"]))

    with pytest.raises(ResourceNotFoundError):
        await aggregator.update_trip(trip.id, TripUpdate(truck_id=stranger["truck_id"]))

    result = await db_session.execute(select(Trip.truck_id).where(Trip.id == trip.id))
    assert result.scalar_one() == seeded["truck_id"]


@pytest.mark.asyncio
async def test_checkpoint_payment_updates_total(aggregator, seeded):
    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"]))

    trip = await aggregator.add_cost_event(
        trip.id,
        CostEventCreate(event_type=CostEventType.BORDER, amount=Decimal("300"), state="Punjab")
    )
    assert trip.total_cost == Decimal("9930.00")

    event_id = trip.cost_events[0].id
    trip = await aggregator.update_cost_event(trip.id, event_id, CostEventUpdate(amount=Decimal("250")))
    assert trip.total_cost == Decimal("9880.00")

    trip = await aggregator.delete_cost_event(trip.id, event_id)
    assert trip.total_cost == Decimal("9630.00")
    assert trip.cost_events == []


@pytest.mark.asyncio
async def test_non_positive_event_is_stored_but_not_counted(aggregator, seeded):
    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"]))

    trip = await aggregator.add_cost_event(
        trip.id, CostEventCreate(event_type=CostEventType.MCD, amount=Decimal("-5"))
    )

    assert len(trip.cost_events) == 1
    assert trip.total_cost == Decimal("9630.00")


@pytest.mark.asyncio
async def test_event_of_another_trip_is_not_found(aggregator, seeded):
    first = await aggregator.create_trip(
        reference_trip(seeded["truck_id"], repair_items=[{"amount": 200}])
    )
    second = await aggregator.create_trip(reference_trip(seeded["truck_id"]))

    with pytest.raises(ResourceNotFoundError):
        await aggregator.delete_cost_event(second.id, first.cost_events[0].id)

    trip = await aggregator.get_trip(first.id)
    assert len(trip.cost_events) == 1
    assert trip.total_cost == Decimal("9830.00")


@pytest.mark.asyncio
async def test_other_owner_cannot_touch_trip(seeded, stranger, db_session):
    owner = TripCostAggregator(db_session, owner_id=seeded["owner_id"])
    intruder = TripCostAggregator(db_session, owner_id=stranger["owner_id"])
    trip = await owner.create_trip(reference_trip(seeded["truck_id"]))

    with pytest.raises(ResourceNotFoundError):
        await intruder.get_trip(trip.id)
    with pytest.raises(ResourceNotFoundError):
        await intruder.add_diesel_purchase(
            trip.id, DieselPurchaseCreate(state="Goa", quantity=10, price_per_liter=90)
        )
    with pytest.raises(ResourceNotFoundError):
        await intruder.delete_trip(trip.id)

    assert await intruder.list_trips() == []
    trip = await owner.get_trip(trip.id)
    assert len(trip.diesel_purchases) == 1
    assert trip.total_cost == Decimal("9630.00")


@pytest.mark.asyncio
async def test_recompute_repairs_stale_total(aggregator, seeded, db_session):
    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"]))

    await db_session.execute(update(Trip).where(Trip.id == trip.id).values(total_cost=Decimal("1.00")))
    await db_session.commit()

    breakdown = await aggregator.cost_breakdown(trip.id)
    assert breakdown.total_cost == Decimal("9630.00")
    assert await stored_total(db_session, trip.id) == Decimal("1.00")

    trip = await aggregator.recompute_and_persist(trip.id)
    assert trip.total_cost == Decimal("9630.00")

    # Repeating is a no-op
    trip = await aggregator.recompute_and_persist(trip.id)
    assert trip.total_cost == Decimal("9630.00")


@pytest.mark.asyncio
async def test_delete_trip_removes_children(aggregator, seeded, db_session):
    trip = await aggregator.create_trip(
        reference_trip(seeded["truck_id"], fast_tag_costs=[{"amount": 40}])
    )

    await aggregator.delete_trip(trip.id)

    purchases = await db_session.execute(select(func.count(DieselPurchase.id)))
    events = await db_session.execute(select(func.count(CostEvent.id)))
    assert purchases.scalar() == 0
    assert events.scalar() == 0
    with pytest.raises(ResourceNotFoundError):
        await aggregator.get_trip(trip.id)


@pytest.mark.asyncio
async def test_list_trips_filters_by_truck(aggregator, seeded, db_session):
    spare = Truck(owner_id=seeded["owner_id"], name="Spare", truck_number="DL01CA0002")
    db_session.add(spare)
    await db_session.commit()

    await aggregator.create_trip(reference_trip(seeded["truck_id"]))
    await aggregator.create_trip(reference_trip(spare.id, source="Agra"))

    assert len(await aggregator.list_trips()) == 2
    only_spare = await aggregator.list_trips(truck_id=spare.id)
    assert [trip.source for trip in only_spare] == ["Agra"]


@pytest.mark.asyncio
async def test_recompute_from_storage_matches_stored_total(aggregator, seeded, db_session):
    """Pricing the stored records again, with nothing cached, gives the stored total."""
    trip = await aggregator.create_trip(reference_trip(
        seeded["truck_id"],
        fast_tag_cost="0.01",
        mcd_cost=0,
        green_tax_cost=0,
        diesel_purchases=[{"state": "Gujarat", "quantity": "12.345", "price_per_liter": "93.125"}],
        repair_items=[{"amount": "0.05"}],
    ))
    trip_id = trip.id
    # 12.345 x 93.125 = 1149.628125
    assert trip.total_cost == Decimal("1149.69")

    await aggregator.add_cost_event(
        trip_id, CostEventCreate(event_type=CostEventType.GREEN_TAX, amount=Decimal("10.25"))
    )
    expected = await stored_total(db_session, trip_id)
    assert expected == Decimal("1159.94")

    db_session.expire_all()
    breakdown = await aggregator.cost_breakdown(trip_id)
    assert breakdown.total_cost == expected

    for _ in range(2):
        db_session.expire_all()
        trip = await aggregator.recompute_and_persist(trip_id)
        assert trip.total_cost == expected
        assert await stored_total(db_session, trip_id) == expected


@pytest.mark.asyncio
async def test_driver_must_belong_to_owner(aggregator, seeded, stranger, db_session):
    own = Driver(owner_id=seeded["owner_id"], name="Ramesh")
    foreign = Driver(owner_id=stranger["owner_id"], name="Someone else")
    db_session.add_all([own, foreign])
    await db_session.commit()

    with pytest.raises(ResourceNotFoundError):
        await aggregator.create_trip(reference_trip(seeded["truck_id"], driver_id=foreign.id))

    trip = await aggregator.create_trip(reference_trip(seeded["truck_id"], driver_id=own.id))
    assert trip.driver_id == own.id

    with pytest.raises(ResourceNotFoundError):
        await aggregator.update_trip(trip.id, TripUpdate(driver_id=foreign.id))

    trip = await aggregator.update_trip(trip.id, TripUpdate(driver_id=None))
    assert trip.driver_id is None
    assert trip.total_cost == Decimal("9630.00")

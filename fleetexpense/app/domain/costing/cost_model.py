"""
Trip Cost Model (Domain Logic).

Pure computation of a trip's authoritative total from a snapshot of its
cost-bearing records. No I/O, no side effects.

Rules:
1. Diesel cost is the exact sum of quantity x price_per_liter.
2. Direct cost fields and itemized event sums stack (both are added).
3. All arithmetic is Decimal; the total is rounded once, at the end,
   to two places with ROUND_HALF_UP (half away from zero).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fleetexpense.app.models.enums import CostEventType

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Convert a number to Decimal without inheriting binary float noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Any) -> Decimal:
    """Round to cents, half away from zero."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def purchase_cost(quantity: Any, price_per_liter: Any) -> Decimal:
    """Display cost of a single diesel purchase, rounded like the trip total."""
    return round_money(to_decimal(quantity) * to_decimal(price_per_liter))


def sum_positive(amounts: Iterable[Any]) -> Decimal:
    """Sum amounts, skipping zero and negative entries."""
    total = ZERO
    for amount in amounts:
        amount = to_decimal(amount)
        if amount > 0:
            total += amount
    return total


class DieselLine(BaseModel):
    """Quantity and unit price of one diesel purchase."""
    model_config = ConfigDict(from_attributes=True)

    quantity: Decimal
    price_per_liter: Decimal

    @field_validator("quantity", "price_per_liter", mode="before")
    @classmethod
    def _as_decimal(cls, value):
        return to_decimal(value)


class TripCostSnapshot(BaseModel):
    """Everything the cost model needs to price a trip."""

    diesel_purchases: List[DieselLine] = Field(default_factory=list)

    fast_tag_cost: Decimal = ZERO
    mcd_cost: Decimal = ZERO
    green_tax_cost: Decimal = ZERO
    rto_cost: Decimal = ZERO
    dto_cost: Decimal = ZERO
    municipalities_cost: Decimal = ZERO
    border_cost: Decimal = ZERO
    repair_cost: Decimal = ZERO

    # Pre-summed itemized events per type; missing types count as zero
    event_sums: Dict[CostEventType, Decimal] = Field(default_factory=dict)

    @field_validator(
        "fast_tag_cost", "mcd_cost", "green_tax_cost", "rto_cost",
        "dto_cost", "municipalities_cost", "border_cost", "repair_cost",
        mode="before",
    )
    @classmethod
    def _field_as_decimal(cls, value):
        return to_decimal(value)

    @field_validator("event_sums", mode="before")
    @classmethod
    def _sums_as_decimal(cls, value):
        return {event_type: to_decimal(amount) for event_type, amount in (value or {}).items()}


class CostBreakdown(BaseModel):
    """Per-category components of a trip total."""
    diesel_cost: Decimal
    fast_tag_cost: Decimal
    mcd_cost: Decimal
    green_tax_cost: Decimal
    split_commission: Decimal
    repair_cost: Decimal
    event_sums: Dict[CostEventType, Decimal]
    total_cost: Decimal


def diesel_cost(purchases: Iterable[DieselLine]) -> Decimal:
    """Exact (unrounded) diesel spend."""
    return sum((p.quantity * p.price_per_liter for p in purchases), ZERO)


def compute_breakdown(snapshot: TripCostSnapshot) -> CostBreakdown:
    """
    Price a trip and keep the intermediate sums.

    Components are reported unrounded except ``total_cost``.
    """
    diesel = diesel_cost(snapshot.diesel_purchases)
    split_commission = (
        snapshot.rto_cost
        + snapshot.dto_cost
        + snapshot.municipalities_cost
        + snapshot.border_cost
    )
    event_sums = {event_type: snapshot.event_sums.get(event_type, ZERO) for event_type in CostEventType}
    events_total = sum(event_sums.values(), ZERO)

    total = (
        diesel
        + snapshot.fast_tag_cost
        + snapshot.mcd_cost
        + snapshot.green_tax_cost
        + split_commission
        + snapshot.repair_cost
        + events_total
    )

    return CostBreakdown(
        diesel_cost=diesel,
        fast_tag_cost=snapshot.fast_tag_cost,
        mcd_cost=snapshot.mcd_cost,
        green_tax_cost=snapshot.green_tax_cost,
        split_commission=split_commission,
        repair_cost=snapshot.repair_cost,
        event_sums=event_sums,
        total_cost=round_money(total),
    )


def compute_total(snapshot: TripCostSnapshot) -> Decimal:
    """Authoritative trip total, rounded to cents."""
    return compute_breakdown(snapshot).total_cost

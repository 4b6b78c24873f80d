"""
Trip Pydantic schemas.

Request and response models for trips, diesel purchases and cost events.
A caller-supplied ``total_cost`` is never accepted: it is not a field of
any request schema.
"""

from pydantic import BaseModel, Field, computed_field, model_validator
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from fleetexpense.app.domain.costing.cost_model import purchase_cost
from fleetexpense.app.models.enums import CostEventType, COMMISSION_EVENT_TYPES

# Inputs must fit their column exactly, so what is priced is what is stored
MONEY = {"max_digits": 12, "decimal_places": 2}
QUANTITY = {"max_digits": 12, "decimal_places": 3}


# Diesel purchases

class DieselPurchaseCreate(BaseModel):
    """Schema for recording a diesel purchase."""
    state: str = Field(..., min_length=1, max_length=100, description="State where fuel was bought")
    city: Optional[str] = Field(None, max_length=100)
    quantity: Decimal = Field(..., gt=0, **QUANTITY, description="Liters purchased")
    price_per_liter: Decimal = Field(..., gt=0, **QUANTITY, description="Price per liter")
    purchase_date: Optional[datetime] = Field(None, description="Defaults to now")


class DieselPurchaseUpdate(BaseModel):
    """Schema for editing a diesel purchase."""
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    city: Optional[str] = Field(None, max_length=100)
    quantity: Optional[Decimal] = Field(None, gt=0, **QUANTITY)
    price_per_liter: Optional[Decimal] = Field(None, gt=0, **QUANTITY)
    purchase_date: Optional[datetime] = None


class DieselPurchaseResponse(BaseModel):
    """Schema for diesel purchase response."""
    id: int
    trip_id: int
    state: str
    city: Optional[str]
    quantity: Decimal
    price_per_liter: Decimal
    purchase_date: datetime

    @computed_field
    @property
    def cost(self) -> Decimal:
        return purchase_cost(self.quantity, self.price_per_liter)

    class Config:
        from_attributes = True


# Cost events

class CostEventSeed(BaseModel):
    """
    One itemized charge supplied with a new trip.

    Seeds with an amount of zero or less are ignored.
    """
    amount: Decimal = Field(..., **MONEY, description="Charge amount")
    state: Optional[str] = Field(None, max_length=100)
    checkpoint: Optional[str] = Field(None, max_length=255)
    part_or_defect: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    event_time: Optional[datetime] = Field(None, description="Defaults to now")


class CostEventCreate(CostEventSeed):
    """Schema for adding a cost event to an existing trip."""
    event_type: CostEventType

    @model_validator(mode="after")
    def require_state_for_checkpoints(self):
        if self.event_type in COMMISSION_EVENT_TYPES and not self.state:
            raise ValueError(f"state is required for {self.event_type.value} payments")
        return self


class CostEventUpdate(BaseModel):
    """Schema for editing a cost event."""
    amount: Optional[Decimal] = Field(None, **MONEY)
    state: Optional[str] = Field(None, max_length=100)
    checkpoint: Optional[str] = Field(None, max_length=255)
    part_or_defect: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    event_time: Optional[datetime] = None


class CostEventResponse(BaseModel):
    """Schema for cost event response."""
    id: int
    trip_id: int
    event_type: CostEventType
    amount: Decimal
    state: Optional[str]
    checkpoint: Optional[str]
    part_or_defect: Optional[str]
    notes: Optional[str]
    event_time: datetime

    class Config:
        from_attributes = True


# Trips

class TripCreate(BaseModel):
    """Schema for logging a new trip."""
    truck_id: int
    driver_id: Optional[int] = Field(None, description="Driver assigned to the trip")
    source: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    trip_date: Optional[datetime] = Field(None, description="Defaults to now")
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    # Direct cost fields
    fast_tag_cost: Decimal = Field(Decimal("0"), ge=0, **MONEY)
    mcd_cost: Decimal = Field(Decimal("0"), ge=0, **MONEY)
    green_tax_cost: Decimal = Field(Decimal("0"), ge=0, **MONEY)
    rto_cost: Decimal = Field(Decimal("0"), ge=0, **MONEY)
    dto_cost: Decimal = Field(Decimal("0"), ge=0, **MONEY)
    municipalities_cost: Decimal = Field(Decimal("0"), ge=0, **MONEY)
    border_cost: Decimal = Field(Decimal("0"), ge=0, **MONEY)
    repair_cost: Decimal = Field(Decimal("0"), ge=0, **MONEY)

    diesel_purchases: List[DieselPurchaseCreate] = Field(default_factory=list)

    # Itemized charges, stored as cost events
    fast_tag_costs: List[CostEventSeed] = Field(default_factory=list)
    mcd_costs: List[CostEventSeed] = Field(default_factory=list)
    green_tax_costs: List[CostEventSeed] = Field(default_factory=list)
    rto_costs: List[CostEventSeed] = Field(default_factory=list)
    dto_costs: List[CostEventSeed] = Field(default_factory=list)
    municipalities_costs: List[CostEventSeed] = Field(default_factory=list)
    border_costs: List[CostEventSeed] = Field(default_factory=list)
    repair_items: List[CostEventSeed] = Field(default_factory=list)


class TripUpdate(BaseModel):
    """Schema for editing trip details and direct cost fields."""
    truck_id: Optional[int] = None
    driver_id: Optional[int] = Field(None, description="null unassigns the driver")
    source: Optional[str] = Field(None, min_length=1, max_length=255)
    destination: Optional[str] = Field(None, min_length=1, max_length=255)
    trip_date: Optional[datetime] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    fast_tag_cost: Optional[Decimal] = Field(None, ge=0, **MONEY)
    mcd_cost: Optional[Decimal] = Field(None, ge=0, **MONEY)
    green_tax_cost: Optional[Decimal] = Field(None, ge=0, **MONEY)
    rto_cost: Optional[Decimal] = Field(None, ge=0, **MONEY)
    dto_cost: Optional[Decimal] = Field(None, ge=0, **MONEY)
    municipalities_cost: Optional[Decimal] = Field(None, ge=0, **MONEY)
    border_cost: Optional[Decimal] = Field(None, ge=0, **MONEY)
    repair_cost: Optional[Decimal] = Field(None, ge=0, **MONEY)


class TripResponse(BaseModel):
    """Schema for trip response."""
    id: int
    owner_id: int
    truck_id: int
    driver_id: Optional[int] = None
    source: str
    destination: str
    trip_date: datetime
    start_date: Optional[date]
    end_date: Optional[date]
    fast_tag_cost: Decimal
    mcd_cost: Decimal
    green_tax_cost: Decimal
    rto_cost: Decimal
    dto_cost: Decimal
    municipalities_cost: Decimal
    border_cost: Decimal
    repair_cost: Decimal
    total_cost: Decimal
    created_at: datetime
    updated_at: datetime
    diesel_purchases: List[DieselPurchaseResponse] = []
    cost_events: List[CostEventResponse] = []

    class Config:
        from_attributes = True


class TripListResponse(BaseModel):
    """Schema for trip list, newest trip date first."""
    trips: List[TripResponse]
    total: int


class CostBreakdownResponse(BaseModel):
    """Per-category components of a trip total."""
    trip_id: int
    diesel_cost: Decimal
    fast_tag_cost: Decimal
    mcd_cost: Decimal
    green_tax_cost: Decimal
    split_commission: Decimal
    repair_cost: Decimal
    event_sums: Dict[CostEventType, Decimal]
    total_cost: Decimal
    stored_total_cost: Decimal
    in_sync: bool

"""
Truck Pydantic schemas.

Defines request and response models for truck management.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List


class TruckCreate(BaseModel):
    """Schema for registering a new truck."""
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    truck_number: str = Field(..., min_length=1, max_length=100, description="Registration / plate number")
    model: Optional[str] = Field(None, max_length=255, description="Make and model")


class TruckUpdate(BaseModel):
    """Schema for updating an existing truck."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    truck_number: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, max_length=255)


class TruckResponse(BaseModel):
    """Schema for truck response."""
    id: int
    owner_id: int
    name: str
    truck_number: str
    model: Optional[str]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class TruckListResponse(BaseModel):
    """Schema for truck list."""
    trucks: List[TruckResponse]
    total: int


class TruckStats(BaseModel):
    """Trip totals for one truck."""
    truck_id: int
    total_trips: int
    total_cost: Decimal
    avg_cost: Decimal

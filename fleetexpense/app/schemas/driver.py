"""
Driver Pydantic schemas.

Defines request and response models for the driver roster.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List


class DriverCreate(BaseModel):
    """Schema for adding a driver."""
    name: str = Field(..., min_length=1, max_length=255)
    age: Optional[int] = Field(None, ge=18, le=100, description="Age in years")
    phone: Optional[str] = Field(None, max_length=20)
    license_number: Optional[str] = Field(None, max_length=50, description="Driving licence number")


class DriverUpdate(BaseModel):
    """Schema for updating a driver."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    age: Optional[int] = Field(None, ge=18, le=100)
    phone: Optional[str] = Field(None, max_length=20)
    license_number: Optional[str] = Field(None, max_length=50)


class DriverResponse(BaseModel):
    """Schema for driver response."""
    id: int
    owner_id: int
    name: str
    age: Optional[int]
    phone: Optional[str]
    license_number: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DriverListResponse(BaseModel):
    """Schema for driver list."""
    drivers: List[DriverResponse]
    total: int


class DriverStats(BaseModel):
    """Trip totals for one driver."""
    driver_id: int
    total_trips: int
    total_cost: Decimal
    avg_cost: Decimal

"""
Analytics Schemas.
"""

from pydantic import BaseModel
from decimal import Decimal


class OwnerOverviewStats(BaseModel):
    """Dashboard stats for an owner across all trucks."""
    total_trips: int
    total_cost: Decimal
    total_diesel_liters: Decimal
    avg_cost: Decimal

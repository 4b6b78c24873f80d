"""
Trip database model.

A trip is one hauling journey by a truck and accumulates its costs.
"""

from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetexpense.app.db.session import Base

# Money columns: two decimal places
Money = Numeric(12, 2)

# Direct cost fields stored on the trip itself
DIRECT_COST_FIELDS = (
    "fast_tag_cost",
    "mcd_cost",
    "green_tax_cost",
    "rto_cost",
    "dto_cost",
    "municipalities_cost",
    "border_cost",
    "repair_cost",
)


class Trip(Base):
    """
    Trip model.
    
    ``total_cost`` is a cached projection of the trip's diesel purchases,
    direct cost fields and positive cost events. Only the aggregation
    engine writes it.
    """
    __tablename__ = "trips"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Ownership - Trip belongs to a truck and its owner, optionally driven by one of their drivers
    owner_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, index=True)
    truck_id = Column(Integer, ForeignKey('trucks.id', ondelete="CASCADE"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id', ondelete="SET NULL"), nullable=True, index=True)
    
    # Journey
    source = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    trip_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    
    # Direct cost fields
    fast_tag_cost = Column(Money, default=0, nullable=False)
    mcd_cost = Column(Money, default=0, nullable=False)
    green_tax_cost = Column(Money, default=0, nullable=False)
    rto_cost = Column(Money, default=0, nullable=False)
    dto_cost = Column(Money, default=0, nullable=False)
    municipalities_cost = Column(Money, default=0, nullable=False)
    border_cost = Column(Money, default=0, nullable=False)
    repair_cost = Column(Money, default=0, nullable=False)
    
    # Derived
    total_cost = Column(Money, default=0, nullable=False)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    truck = relationship("Truck", back_populates="trips")
    driver = relationship("Driver", back_populates="trips")
    diesel_purchases = relationship(
        "DieselPurchase",
        back_populates="trip",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DieselPurchase.id",
    )
    cost_events = relationship(
        "CostEvent",
        back_populates="trip",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CostEvent.id",
    )
    
    def __repr__(self):
        return f"<Trip(id={self.id}, truck_id={self.truck_id}, total_cost={self.total_cost})>"

"""
Diesel purchase database model.

Fuel bought during a trip; contributes quantity x price to the trip total.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetexpense.app.db.session import Base


class DieselPurchase(Base):
    """Diesel purchase model, exclusively owned by its trip."""
    __tablename__ = "diesel_purchases"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey('trips.id', ondelete="CASCADE"), nullable=False, index=True)
    
    # Where
    state = Column(String(100), nullable=False)
    city = Column(String(100), nullable=True)
    
    # How much
    quantity = Column(Numeric(12, 3), nullable=False)  # liters
    price_per_liter = Column(Numeric(12, 3), nullable=False)
    
    purchase_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    trip = relationship("Trip", back_populates="diesel_purchases")
    
    def __repr__(self):
        return f"<DieselPurchase(id={self.id}, trip_id={self.trip_id}, quantity={self.quantity})>"

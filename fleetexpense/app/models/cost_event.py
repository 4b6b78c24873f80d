"""
Cost event database model.

Itemized, timestamped charges attached to a trip. All kinds share one
table and are told apart by ``event_type``.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetexpense.app.db.session import Base
from fleetexpense.app.models.enums import CostEventType


class CostEvent(Base):
    """
    Cost event model.
    
    Events with a non-positive amount are kept but never counted
    toward the trip total.
    """
    __tablename__ = "cost_events"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey('trips.id', ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(Enum(CostEventType), nullable=False, index=True)
    
    amount = Column(Numeric(12, 2), nullable=False)
    
    # Checkpoint details (authority payments and repairs)
    state = Column(String(100), nullable=True)
    checkpoint = Column(String(255), nullable=True)
    part_or_defect = Column(String(255), nullable=True)  # repairs only
    notes = Column(Text, nullable=True)
    
    event_time = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    
    trip = relationship("Trip", back_populates="cost_events")
    
    def __repr__(self):
        return f"<CostEvent(id={self.id}, trip_id={self.trip_id}, type='{self.event_type.value}', amount={self.amount})>"

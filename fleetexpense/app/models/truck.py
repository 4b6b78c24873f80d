"""
Truck database model.

Owners register the trucks whose trips they log.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetexpense.app.db.session import Base


class Truck(Base):
    """
    Truck model.
    
    The registration number is unique per owner. Deleting a truck removes
    its trips and, through them, every diesel purchase and cost event.
    """
    __tablename__ = "trucks"
    __table_args__ = (
        UniqueConstraint("owner_id", "truck_number", name="uq_trucks_owner_number"),
    )
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Ownership
    owner_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, index=True)
    
    # Identification
    name = Column(String(255), nullable=False)
    truck_number = Column(String(100), nullable=False, index=True)
    model = Column(String(255), nullable=True)
    
    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    owner = relationship("User", back_populates="trucks")
    trips = relationship(
        "Trip",
        back_populates="truck",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    
    def __repr__(self):
        return f"<Truck(id={self.id}, number='{self.truck_number}', owner_id={self.owner_id})>"

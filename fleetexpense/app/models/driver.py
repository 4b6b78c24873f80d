"""
Driver database model.

Owners keep a roster of drivers and may assign one to each trip.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetexpense.app.db.session import Base


class Driver(Base):
    """
    Driver model.

    Deleting a driver keeps their trips; the trips' ``driver_id`` is
    cleared by the database (``ON DELETE SET NULL``).
    """
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    owner_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), nullable=False, index=True)

    # Identification
    name = Column(String(255), nullable=False)
    age = Column(Integer, nullable=True)
    phone = Column(String(20), nullable=True)
    license_number = Column(String(50), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    owner = relationship("User", back_populates="drivers")
    trips = relationship("Trip", back_populates="driver", passive_deletes=True)

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"

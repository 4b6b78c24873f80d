"""
Audit Log Database Model.

Who did what to which truck or trip, and when.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.sql import func
from fleetexpense.app.db.session import Base


class AuditLog(Base):
    """
    One owner or authentication event.

    Events logged:
    - USER_CREATED, LOGIN_SUCCESS / LOGIN_FAILED, TOKEN_REVOKED (no resource)
    - TRUCK_* events (resource_type "truck")
    - TRIP_* events including manual recomputes (resource_type "trip")
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_resource", "resource_type", "resource_id"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    action = Column(String(100), nullable=False, index=True)

    resource_type = Column(String(50), nullable=True)
    resource_id = Column(Integer, nullable=True)

    meta_data = Column(JSON, nullable=True)
    correlation_id = Column(String(64), nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', {self.resource_type}={self.resource_id})>"

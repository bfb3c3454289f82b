"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from leave_scope.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("principals.id"), nullable=False)
    action = Column(String, nullable=False)  # e.g., "LEAVE_SUBMIT", "LEAVE_APPROVE", "LEAVE_SOFT_DELETE"
    entity_type = Column(String, nullable=False)  # e.g., "leave_requests"
    entity_id = Column(Integer, nullable=True)
    meta_json = Column(JSON, nullable=True)
    # Set explicitly on insert; SQLite and PostgreSQL defaults differ
    created_at = Column(DateTime(timezone=True), nullable=False)

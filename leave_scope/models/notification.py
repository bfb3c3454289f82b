"""
Notification intent model

An outbox row per notification the core wants delivered. Delivery
(email, push, in-app) drains this table and is not part of this service.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from leave_scope.db.base import Base


class NotificationIntent(Base):
    __tablename__ = "notification_intents"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("principals.id"), nullable=False, index=True)
    kind = Column(String, nullable=False)  # leave_approved, leave_rejected
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id"), nullable=True, index=True)
    data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

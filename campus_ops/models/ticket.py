"""
Maintenance ticket model.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, JSON

from campus_ops.db.base import Base, TimestampMixin
from campus_ops.models.enums import TicketPriority, TicketStatus


class Ticket(Base, TimestampMixin):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    facility_id = Column(
        Integer, ForeignKey("facilities.id", ondelete="SET NULL"), nullable=True, index=True
    )
    facility_name = Column(String(255), nullable=True)
    location = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default=TicketPriority.MEDIUM.value)
    status = Column(String(20), nullable=False, default=TicketStatus.OPEN.value)
    reported_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    reported_by_name = Column(String(150), nullable=True)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    assigned_to_name = Column(String(150), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    attachment_urls = Column(JSON, nullable=False, default=list)
    resolution_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        Index("ix_tickets_status_priority", "status", "priority"),
    )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, status={self.status}, priority={self.priority})>"

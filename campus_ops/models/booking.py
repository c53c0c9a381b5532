"""
Booking model: a user's reservation of a facility for a time window on a date.

Key design decisions:
- Status field keeps rejected/cancelled bookings as history instead of deleting them
- Composite index (facility_id, date, status) backs the overlap query run on
  every booking request
- `version` lets lifecycle transitions be applied as compare-and-swap updates
- Facility and user names are denormalised so listings need no joins
"""

from sqlalchemy import (
    Column, Integer, String, Text, Date, Time, ForeignKey, Index, CheckConstraint,
)

from campus_ops.db.base import Base, TimestampMixin
from campus_ops.models.enums import BookingStatus


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    facility_id = Column(
        Integer, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    facility_name = Column(String(255), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_name = Column(String(150), nullable=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    purpose = Column(Text, nullable=False)
    expected_attendees = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_booking_start_before_end"),
        CheckConstraint("expected_attendees >= 1", name="check_booking_attendees_positive"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED')",
            name="check_booking_status",
        ),
        Index("ix_bookings_facility_date_status", "facility_id", "date", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, facility={self.facility_id}, date={self.date}, "
            f"{self.start_time}-{self.end_time}, status={self.status})>"
        )

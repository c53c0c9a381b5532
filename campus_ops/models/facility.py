"""
Facility model: bookable rooms and equipment.

Key design decisions:
- `version` is an optimistic-locking counter bumped by every admitted booking
  and every admin edit, which serializes conflict-check-then-insert per
  facility without holding row locks while the overlap query runs
- Availability windows live in a child table ordered by `position`; an empty
  list means the facility declares no weekly restriction
- Amenities and image URLs are small string lists stored as JSON
"""

from sqlalchemy import (
    Column, Integer, String, Text, Time, ForeignKey, Index, CheckConstraint, JSON,
)
from sqlalchemy.orm import relationship

from campus_ops.db.base import Base, TimestampMixin
from campus_ops.models.enums import FacilityStatus


class Facility(Base, TimestampMixin):
    __tablename__ = "facilities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(30), nullable=False)
    capacity = Column(Integer, nullable=False, default=0)
    location = Column(String(255), nullable=True)
    building = Column(String(120), nullable=True)
    floor = Column(String(30), nullable=True)
    description = Column(Text, nullable=True)
    amenities = Column(JSON, nullable=False, default=list)
    image_urls = Column(JSON, nullable=False, default=list)
    status = Column(String(30), nullable=False, default=FacilityStatus.ACTIVE.value)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    availability_windows = relationship(
        "AvailabilityWindow",
        back_populates="facility",
        cascade="all, delete-orphan",
        order_by="AvailabilityWindow.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("capacity >= 0", name="check_facility_capacity_non_negative"),
        Index("ix_facilities_type_status", "type", "status"),
    )

    def __repr__(self) -> str:
        return f"<Facility(id={self.id}, name={self.name}, status={self.status})>"


class AvailabilityWindow(Base):
    __tablename__ = "facility_availability"

    id = Column(Integer, primary_key=True)
    facility_id = Column(
        Integer, ForeignKey("facilities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    day_of_week = Column(String(10), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    facility = relationship("Facility", back_populates="availability_windows")

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_window_start_before_end"),
    )

    def __repr__(self) -> str:
        return f"<AvailabilityWindow({self.day_of_week} {self.start_time}-{self.end_time})>"

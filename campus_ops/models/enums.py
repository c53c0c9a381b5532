"""
Enumerations shared by models, schemas and services.
Stored as plain strings so they read the same in PostgreSQL and SQLite.
"""

import enum


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    TECHNICIAN = "TECHNICIAN"
    MANAGER = "MANAGER"


class AuthProvider(str, enum.Enum):
    LOCAL = "LOCAL"
    GOOGLE = "GOOGLE"


class FacilityType(str, enum.Enum):
    LECTURE_HALL = "LECTURE_HALL"
    LAB = "LAB"
    MEETING_ROOM = "MEETING_ROOM"
    AUDITORIUM = "AUDITORIUM"
    PROJECTOR = "PROJECTOR"
    CAMERA = "CAMERA"
    LAPTOP = "LAPTOP"
    WHITEBOARD = "WHITEBOARD"
    OTHER_EQUIPMENT = "OTHER_EQUIPMENT"


class FacilityStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    UNDER_MAINTENANCE = "UNDER_MAINTENANCE"


class DayOfWeek(str, enum.Enum):
    # Declared in date.weekday() order
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        return list(cls)[weekday]


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Bookings in these states hold their time slot
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.APPROVED)


class TicketPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TicketStatus(str, enum.Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    REJECTED = "REJECTED"


class NotificationType(str, enum.Enum):
    BOOKING_CREATED = "BOOKING_CREATED"
    BOOKING_APPROVED = "BOOKING_APPROVED"
    BOOKING_REJECTED = "BOOKING_REJECTED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_ASSIGNED = "TICKET_ASSIGNED"
    TICKET_STATUS_CHANGED = "TICKET_STATUS_CHANGED"
    TICKET_RESOLVED = "TICKET_RESOLVED"
    TICKET_CLOSED = "TICKET_CLOSED"
    TICKET_REJECTED = "TICKET_REJECTED"
    COMMENT_ADDED = "COMMENT_ADDED"
    SYSTEM = "SYSTEM"


class ReferenceType(str, enum.Enum):
    BOOKING = "BOOKING"
    TICKET = "TICKET"
    COMMENT = "COMMENT"

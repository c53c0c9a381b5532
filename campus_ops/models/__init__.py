from campus_ops.models.user import User
from campus_ops.models.facility import Facility, AvailabilityWindow
from campus_ops.models.booking import Booking
from campus_ops.models.ticket import Ticket
from campus_ops.models.comment import Comment
from campus_ops.models.notification import Notification

__all__ = [
    "User", "Facility", "AvailabilityWindow", "Booking",
    "Ticket", "Comment", "Notification",
]

from campus_ops.schemas.user import UserCreate, UserResponse, UserLogin, GoogleSignIn, GoogleCredential, Token
from campus_ops.schemas.facility import FacilityCreate, FacilityUpdate, FacilityResponse
from campus_ops.schemas.booking import BookingCreate, BookingResponse
from campus_ops.schemas.ticket import TicketCreate, TicketResponse, CommentResponse
from campus_ops.schemas.notification import NotificationResponse, MessageResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "GoogleSignIn", "GoogleCredential", "Token",
    "FacilityCreate", "FacilityUpdate", "FacilityResponse",
    "BookingCreate", "BookingResponse",
    "TicketCreate", "TicketResponse", "CommentResponse",
    "NotificationResponse", "MessageResponse",
]

"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from campus_ops.api.routes import auth, facilities, bookings, tickets, comments, notifications

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(facilities.router)
api_router.include_router(bookings.router)
api_router.include_router(tickets.router)
api_router.include_router(comments.router)
api_router.include_router(notifications.router)

"""
Startup data seeding.

Registration only ever grants USER and role changes need an ADMIN, so a
fresh deployment needs its first administrator from configuration:

  INITIAL_ADMIN_EMAIL / INITIAL_ADMIN_PASSWORD  -> create (or promote) that account
  SEED_DEMO_FACILITIES=True                    -> add a demo catalogue to an empty facilities table

Both steps are idempotent, so the hook runs on every application start.
"""

from datetime import time
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.core.config import get_settings
from campus_ops.core.logging import get_logger
from campus_ops.core.security import hash_password
from campus_ops.models.enums import AuthProvider, DayOfWeek, FacilityStatus, FacilityType, Role
from campus_ops.models.facility import AvailabilityWindow, Facility
from campus_ops.models.user import User

settings = get_settings()
logger = get_logger(__name__)

WEEKDAYS = [DayOfWeek.MONDAY, DayOfWeek.TUESDAY, DayOfWeek.WEDNESDAY, DayOfWeek.THURSDAY, DayOfWeek.FRIDAY]

# name, type, capacity, building, floor, description, amenities
DEMO_FACILITIES = [
    ("Main Lecture Hall A", FacilityType.LECTURE_HALL, 200, "Block A", "Ground",
     "Large lecture hall with tiered seating and AV system",
     ["Projector", "Microphone", "Air Conditioning", "Whiteboard"]),
    ("Computer Lab 101", FacilityType.LAB, 50, "Block B", "1st",
     "Modern computer lab with high-spec workstations",
     ["Computers", "Projector", "Air Conditioning", "Printer"]),
    ("Board Meeting Room", FacilityType.MEETING_ROOM, 20, "Admin Block", "3rd",
     "Executive meeting room with video conferencing",
     ["Video Conferencing", "Whiteboard", "Projector"]),
    ("Seminar Room B2", FacilityType.MEETING_ROOM, 30, "Block B", "2nd",
     "Seminar room suitable for workshops",
     ["Projector", "Whiteboard", "Air Conditioning"]),
    ("Portable Projector #1", FacilityType.PROJECTOR, 0, "Block A", "Ground",
     "Portable projector from the equipment store",
     ["Wireless Connectivity"]),
    ("Auditorium", FacilityType.AUDITORIUM, 500, "Main Building", "Ground",
     "Main auditorium for large events",
     ["Stage", "Sound System", "Lighting"]),
]


async def seed_initial_admin(db: AsyncSession) -> Optional[User]:
    """Ensure the configured account exists and holds ADMIN. Returns it, or None if unconfigured."""
    email = settings.INITIAL_ADMIN_EMAIL.strip().lower()
    if not email or not settings.INITIAL_ADMIN_PASSWORD:
        return None

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(
            email=email,
            name=settings.INITIAL_ADMIN_NAME,
            hashed_password=hash_password(settings.INITIAL_ADMIN_PASSWORD),
            provider=AuthProvider.LOCAL.value,
            roles=sorted([Role.ADMIN.value, Role.USER.value]),
            enabled=True,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info("initial_admin_created", user_id=user.id, email=email)
        return user

    # Existing password is left alone; only the role is ensured
    if Role.ADMIN.value not in (user.roles or []):
        user.roles = sorted(set(user.roles or []) | {Role.ADMIN.value, Role.USER.value})
        await db.commit()
        await db.refresh(user)
        logger.info("initial_admin_promoted", user_id=user.id, email=email)
    return user


async def seed_demo_facilities(db: AsyncSession, created_by: Optional[int] = None) -> int:
    """Populate an empty catalogue. Returns the number of facilities added."""
    if not settings.SEED_DEMO_FACILITIES:
        return 0

    existing = await db.scalar(select(func.count()).select_from(Facility))
    if existing:
        return 0

    for name, facility_type, capacity, building, floor, description, amenities in DEMO_FACILITIES:
        db.add(Facility(
            name=name,
            type=facility_type.value,
            capacity=capacity,
            location=f"{building}, {floor} Floor",
            building=building,
            floor=floor,
            description=description,
            amenities=amenities,
            image_urls=[],
            status=FacilityStatus.ACTIVE.value,
            created_by=created_by,
            availability_windows=[
                AvailabilityWindow(position=i, day_of_week=day.value, start_time=time(8), end_time=time(18))
                for i, day in enumerate(WEEKDAYS)
            ],
        ))
    await db.commit()

    logger.info("demo_facilities_seeded", count=len(DEMO_FACILITIES))
    return len(DEMO_FACILITIES)


async def run_startup_seed(db: AsyncSession) -> None:
    admin = await seed_initial_admin(db)
    await seed_demo_facilities(db, created_by=admin.id if admin else None)

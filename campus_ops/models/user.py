"""
User model. Roles are the sole authorization input; a user may hold several.
"""

from sqlalchemy import Column, Integer, String, Boolean, JSON

from campus_ops.db.base import Base, TimestampMixin
from campus_ops.models.enums import AuthProvider, Role


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(150), nullable=False)
    # Null for accounts that only sign in through Google
    hashed_password = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    provider = Column(String(20), nullable=False, default=AuthProvider.LOCAL.value)
    provider_id = Column(String(255), nullable=True)
    roles = Column(JSON, nullable=False, default=lambda: [Role.USER.value])
    enabled = Column(Boolean, default=True, nullable=False)

    def has_role(self, role: Role) -> bool:
        return role.value in (self.roles or [])

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, roles={self.roles})>"

"""
Authorization gate.

`authorize(roles, operation)` is a pure, total function over any set of
roles. USER is a baseline permission set that every authenticated caller
holds whether or not the role is stored, so an empty role set still maps to
USER permissions rather than to a sentinel.

Ownership (booking owner, comment author, notification recipient) is not a
role question and is checked by the services after the gate admits the call.
"""

import enum
from dataclasses import dataclass, field
from typing import Iterable

from campus_ops.core.exceptions import Forbidden
from campus_ops.core.logging import get_logger
from campus_ops.models.enums import Role

logger = get_logger(__name__)


class Operation(str, enum.Enum):
    # Facilities
    FACILITY_READ = "facility:read"
    FACILITY_MANAGE = "facility:manage"
    # Bookings
    BOOKING_CREATE = "booking:create"
    BOOKING_READ_OWN = "booking:read_own"
    BOOKING_READ_ALL = "booking:read_all"
    BOOKING_APPROVE = "booking:approve"
    BOOKING_REJECT = "booking:reject"
    BOOKING_CANCEL_OWN = "booking:cancel_own"
    BOOKING_CANCEL_ANY = "booking:cancel_any"
    # Tickets
    TICKET_CREATE = "ticket:create"
    TICKET_READ_OWN = "ticket:read_own"
    TICKET_READ_ALL = "ticket:read_all"
    TICKET_ASSIGN = "ticket:assign"
    TICKET_UPDATE_STATUS = "ticket:update_status"
    TICKET_REJECT = "ticket:reject"
    TICKET_DELETE = "ticket:delete"
    # Comments
    COMMENT_CREATE = "comment:create"
    COMMENT_EDIT_OWN = "comment:edit_own"
    COMMENT_DELETE_OWN = "comment:delete_own"
    COMMENT_DELETE_ANY = "comment:delete_any"
    # Notifications
    NOTIFICATION_MANAGE_OWN = "notification:manage_own"
    # Users
    USER_MANAGE = "user:manage"


class Decision(str, enum.Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


USER_PERMISSIONS: frozenset[Operation] = frozenset({
    Operation.FACILITY_READ,
    Operation.BOOKING_CREATE,
    Operation.BOOKING_READ_OWN,
    Operation.BOOKING_CANCEL_OWN,
    Operation.TICKET_CREATE,
    Operation.TICKET_READ_OWN,
    Operation.COMMENT_CREATE,
    Operation.COMMENT_EDIT_OWN,
    Operation.COMMENT_DELETE_OWN,
    Operation.NOTIFICATION_MANAGE_OWN,
})

ROLE_PERMISSIONS: dict[Role, frozenset[Operation]] = {
    Role.USER: USER_PERMISSIONS,
    Role.ADMIN: frozenset(Operation),
    Role.TECHNICIAN: frozenset({
        Operation.TICKET_READ_ALL,
        Operation.TICKET_UPDATE_STATUS,
    }),
    # Assignable, but carries no authority of its own yet
    Role.MANAGER: frozenset(),
}


def _coerce_roles(roles: Iterable[Role | str]) -> set[Role]:
    coerced = set()
    for role in roles:
        try:
            coerced.add(Role(role))
        except ValueError:
            logger.warning("unknown_role_ignored", role=str(role))
    return coerced


def effective_permissions(roles: Iterable[Role | str]) -> frozenset[Operation]:
    """Union of the USER baseline and every permission granted by `roles`."""
    permissions = set(USER_PERMISSIONS)
    for role in _coerce_roles(roles):
        permissions |= ROLE_PERMISSIONS[role]
    return frozenset(permissions)


def authorize(roles: Iterable[Role | str], operation: Operation) -> Decision:
    if operation in effective_permissions(roles):
        return Decision.ALLOW
    return Decision.DENY


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, passed explicitly into every service call."""

    id: int
    email: str
    name: str
    roles: frozenset[Role] = field(default_factory=lambda: frozenset({Role.USER}))

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    def can(self, operation: Operation) -> bool:
        return authorize(self.roles, operation) is Decision.ALLOW

    @property
    def primary_role(self) -> Role:
        for role in (Role.ADMIN, Role.TECHNICIAN, Role.MANAGER):
            if role in self.roles:
                return role
        return Role.USER


def require(principal: Principal, operation: Operation) -> None:
    """Raise Forbidden unless the principal's roles permit `operation`."""
    if not principal.can(operation):
        logger.warning(
            "authorization_denied",
            user_id=principal.id,
            operation=operation.value,
        )
        raise Forbidden(
            f"Operation '{operation.value}' is not permitted for your role",
            operation=operation.value,
        )

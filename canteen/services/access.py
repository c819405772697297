"""
Access Policy

Single place that decides what a caller may do. Every route resolves the
caller to a Principal, then asks the policy for a capability (role check)
and, where orders or menus are canteen-bound, for the canteen scope.

Roles:
    - student / staff: place orders, read their own orders, read menus
    - admin: menu CRUD, every canteen's menus, history, transitions, stats
    - kitchen: queue, history and transitions for its own canteen only
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from canteen.core.exceptions import (
    AccessDenied,
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)
from canteen.models import UserRole

logger = logging.getLogger(__name__)


class Capability(str, enum.Enum):
    CREATE_ORDER = "create_order"
    READ_OWN_ORDERS = "read_own_orders"
    READ_MENU = "read_menu"
    READ_ALL_MENU = "read_all_menu"
    MANAGE_MENU = "manage_menu"
    CREATE_PAYMENT = "create_payment"
    VIEW_KITCHEN_QUEUE = "view_kitchen_queue"
    VIEW_HISTORY = "view_history"
    TRANSITION_ORDER = "transition_order"
    VIEW_DAILY_STATS = "view_daily_stats"


_CUSTOMER = frozenset({
    Capability.CREATE_ORDER,
    Capability.READ_OWN_ORDERS,
    Capability.READ_MENU,
    Capability.CREATE_PAYMENT,
})

ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.STUDENT: _CUSTOMER,
    UserRole.STAFF: _CUSTOMER,
    UserRole.ADMIN: frozenset({
        Capability.READ_MENU,
        Capability.READ_ALL_MENU,
        Capability.MANAGE_MENU,
        Capability.VIEW_HISTORY,
        Capability.TRANSITION_ORDER,
        Capability.VIEW_DAILY_STATS,
    }),
    UserRole.KITCHEN: frozenset({
        Capability.READ_MENU,
        Capability.VIEW_KITCHEN_QUEUE,
        Capability.VIEW_HISTORY,
        Capability.TRANSITION_ORDER,
    }),
}


@dataclass(frozen=True)
class Principal:
    """Resolved caller identity."""
    user_id: int
    name: str
    role: UserRole
    canteen_id: Optional[int] = None
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_kitchen(self) -> bool:
        return self.role == UserRole.KITCHEN


class AccessPolicy:
    """Role and canteen-scope checks shared by every operation."""

    def __init__(self, capabilities: Optional[dict[UserRole, frozenset[Capability]]] = None):
        self.capabilities = capabilities or ROLE_CAPABILITIES

    def can(self, principal: Principal, capability: Capability) -> bool:
        return capability in self.capabilities.get(principal.role, frozenset())

    def require(self, principal: Optional[Principal], capability: Capability) -> Principal:
        """
        Ensure the caller is identified and holds the capability.

        Raises:
            AuthenticationError: no principal
            AuthorizationError: role lacks the capability
        """
        if principal is None:
            raise AuthenticationError()
        if not self.can(principal, capability):
            logger.info(
                f"Denied {capability.value} for user #{principal.user_id} "
                f"(role={principal.role.value})"
            )
            raise AuthorizationError()
        return principal

    def kitchen_canteen(self, principal: Principal) -> int:
        """The canteen a kitchen account is bound to."""
        if principal.canteen_id is None:
            logger.warning(f"Kitchen user #{principal.user_id} has no canteen assigned")
            raise AuthorizationError("Kitchen account is not assigned to a canteen")
        return principal.canteen_id

    def resolve_canteen_scope(self, principal: Principal, requested: Optional[int]) -> int:
        """
        Canteen a read view operates on.

        Kitchen callers are always pinned to their own canteen; the requested
        value is ignored. Admins must name one.
        """
        if principal.is_kitchen:
            return self.kitchen_canteen(principal)
        if requested is None:
            raise ValidationError("canteenId is required")
        return requested

    def ensure_order_scope(self, principal: Principal, order_canteen_id: int) -> None:
        """Kitchen callers may only touch orders of their own canteen."""
        if principal.is_admin:
            return
        if principal.is_kitchen and self.kitchen_canteen(principal) == order_canteen_id:
            return
        logger.info(
            f"Access denied: user #{principal.user_id} ({principal.role.value}) "
            f"on canteen {order_canteen_id}"
        )
        raise AccessDenied()

    def sees_unavailable_items(self, principal: Principal) -> bool:
        return self.can(principal, Capability.READ_ALL_MENU)

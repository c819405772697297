"""
Error Taxonomy

Every failure the ordering core can report is a CanteenError subclass.
Each carries the HTTP status it maps to and a human-readable message;
the FastAPI exception handlers in canteen.main render them as
{"success": false, "error": <kind>, "detail": <message>}.
"""

from typing import Optional


class CanteenError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def __repr__(self) -> str:
        return f"<{self.kind} {self.status_code}: {self.message}>"


# =============================================================================
# VALIDATION (400)
# =============================================================================

class ValidationError(CanteenError):
    """Malformed or missing input."""
    status_code = 400
    default_message = "Invalid request"


class EmptyCart(ValidationError):
    default_message = "Cart is empty"


class EmailAlreadyRegistered(ValidationError):
    default_message = "Email already registered"


class InvalidTotal(ValidationError):
    default_message = "Invalid order total"


# =============================================================================
# NOT FOUND (404, or 400 when the missing thing was part of the input)
# =============================================================================

class NotFoundError(CanteenError):
    status_code = 404
    default_message = "Not found"


class InvalidCanteen(NotFoundError):
    status_code = 400
    default_message = "Invalid canteen"


class InvalidMenuItem(NotFoundError):
    status_code = 400
    default_message = "Invalid menu item for selected canteen"


class OrderNotFound(NotFoundError):
    default_message = "Order not found"


class MenuItemNotFound(NotFoundError):
    default_message = "Menu item not found"


class CanteenNotFound(NotFoundError):
    default_message = "Canteen not found"


# =============================================================================
# IDENTITY (401 / 403)
# =============================================================================

class AuthenticationError(CanteenError):
    """No valid caller identity."""
    status_code = 401
    default_message = "Not authenticated"


class InvalidCredentials(AuthenticationError):
    default_message = "Invalid credentials"


class AuthorizationError(CanteenError):
    """Valid identity, insufficient role or scope."""
    status_code = 403
    default_message = "Unauthorized"


class AccessDenied(AuthorizationError):
    """Caller's role is allowed but the target belongs to another canteen."""
    default_message = "Access denied"


# =============================================================================
# STATE MACHINE (400 / 409)
# =============================================================================

class StateTransitionError(CanteenError):
    status_code = 400
    default_message = "Invalid status transition"


class InvalidTransition(StateTransitionError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Invalid transition from {current} to {requested}")


class ConcurrentUpdateError(StateTransitionError):
    """Another request modified the order between read and write."""
    status_code = 409
    default_message = "Order was modified by another request, please retry"


# =============================================================================
# DEPENDENCIES (500)
# =============================================================================

class DependencyError(CanteenError):
    """A store or gateway call failed after validation passed."""
    status_code = 500
    default_message = "Service temporarily unavailable"


class StoreError(DependencyError):
    default_message = "Database operation failed"


class PaymentGatewayError(DependencyError):
    default_message = "Payment order creation failed"

    def __init__(self, message: Optional[str] = None, error_code: Optional[str] = None):
        self.error_code = error_code
        super().__init__(message)

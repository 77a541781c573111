"""Store domain exceptions.

Raised by the service layer when a business rule is violated. Views catch
``StoreError`` and translate it into an HTTP response via ``error_response``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from rest_framework import status
from rest_framework.response import Response


class StoreError(Exception):
    """Base exception for storefront business rule violations."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "", **details: Any) -> None:
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        self.message = message or str(self.args[0])
        self.details = details

    def as_payload(self) -> Dict[str, Any]:
        payload = {"detail": self.message, "code": self.__class__.__name__}
        payload.update(self.details)
        return payload


class AuthenticationRequired(StoreError):
    """A signed-in user is required for this operation."""

    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(StoreError):
    """Only store staff can perform this operation."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFound(StoreError):
    """The requested record does not exist or is not visible to the caller."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidInput(StoreError):
    """A required value is missing or not one of the allowed choices."""


class InvalidQuantity(StoreError):
    """Quantity must be a positive integer."""


class InvalidAmount(StoreError):
    """Amount is outside the allowed range."""


class StockError(StoreError):
    """Base class for availability failures."""

    status_code = status.HTTP_409_CONFLICT


class InsufficientStock(StockError):
    """Requested quantity exceeds available stock."""


class OutOfStock(InsufficientStock):
    """Cart line would exceed available stock."""


class StockConflict(InsufficientStock):
    """One or more cart lines are no longer available at checkout."""

    def __init__(self, conflicts: List[Dict[str, Any]], message: str = "") -> None:
        names = ", ".join(c["product_name"] for c in conflicts)
        super().__init__(message or f"Not enough stock for: {names}", conflicts=conflicts)
        self.conflicts = conflicts


class EmptyCart(StoreError):
    """The cart has no items to check out."""


class InvalidTransition(StoreError):
    """The requested status change is not allowed from the current status."""

    status_code = status.HTTP_409_CONFLICT


class ImmutableFieldViolation(StoreError):
    """The field is finalized and cannot be changed."""


class InsufficientBalance(StoreError):
    """The ledger balance is too low for this debit."""


class CompensationFailed(StoreError):
    """Rollback of a partially completed operation failed; manual reconciliation required."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "", original: Optional[BaseException] = None, **details: Any) -> None:
        super().__init__(message, **details)
        self.original = original


def require_user(user):
    if user is None or not getattr(user, "is_authenticated", False):
        raise AuthenticationRequired("Please sign in to continue")
    return user


def require_staff(user):
    require_user(user)
    if not getattr(user, "is_store_staff", False):
        raise PermissionDenied("Only store staff can perform this action")
    return user


def error_response(exc: StoreError):
    return Response(exc.as_payload(), status=exc.status_code)

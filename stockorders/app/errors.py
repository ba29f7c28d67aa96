from __future__ import annotations

from decimal import Decimal
from typing import Any


class OrderServiceError(Exception):
    """Base class for every typed failure surfaced by the order engine."""

    retryable = False

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def context(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "error": self.code, **self.context()}


# ---------- VALIDATION ----------
class ValidationError(OrderServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 400)


# ---------- DOMAIN ----------
class ProductNotFound(OrderServiceError):
    def __init__(self, sku: str) -> None:
        self.sku = sku
        super().__init__(f"Product with SKU {sku} not found", 404)

    def context(self) -> dict[str, Any]:
        return {"sku": self.sku}


class InsufficientStock(OrderServiceError):
    def __init__(self, sku: str, available: int, requested: int) -> None:
        self.sku = sku
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {sku}. Available: {available}, Requested: {requested}",
            409,
        )

    def context(self) -> dict[str, Any]:
        return {"sku": self.sku, "available": self.available, "requested": self.requested}


class OrderNotFound(OrderServiceError):
    def __init__(self, order_id: int) -> None:
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found", 404)

    def context(self) -> dict[str, Any]:
        return {"order_id": self.order_id}


class AlreadyCancelled(OrderServiceError):
    def __init__(self, order_id: int) -> None:
        self.order_id = order_id
        super().__init__(f"Order {order_id} is already cancelled", 409)

    def context(self) -> dict[str, Any]:
        return {"order_id": self.order_id}


class InvalidState(OrderServiceError):
    def __init__(self, order_id: int, status: str) -> None:
        self.order_id = order_id
        self.status = status
        super().__init__(
            f"Order {order_id} cannot be cancelled from status {status}", 409
        )

    def context(self) -> dict[str, Any]:
        return {"order_id": self.order_id, "status": self.status}


class OrderTooLarge(OrderServiceError):
    def __init__(self, total: Decimal, limit: Decimal) -> None:
        self.total = total
        self.limit = limit
        super().__init__(f"Order total {total} exceeds the maximum of {limit}", 409)

    def context(self) -> dict[str, Any]:
        return {"total": str(self.total), "limit": str(self.limit)}


# ---------- INFRASTRUCTURE ----------
class LockTimeout(OrderServiceError):
    retryable = True

    def __init__(self, message: str = "Timed out waiting for a row lock") -> None:
        super().__init__(message, 503)


class StoreUnavailable(OrderServiceError):
    retryable = True

    def __init__(self, message: str = "Database unavailable") -> None:
        super().__init__(message, 503)


class CommitFailed(OrderServiceError):
    def __init__(self, message: str = "Transaction commit failed") -> None:
        super().__init__(message, 500)


class OrderNumberExhausted(OrderServiceError):
    retryable = True

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a unique order number after {attempts} attempts", 503
        )

    def context(self) -> dict[str, Any]:
        return {"attempts": self.attempts}

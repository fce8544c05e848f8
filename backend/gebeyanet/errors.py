# Overview: Domain error taxonomy shared by services and routes.

"""
Every error raised by the inventory core derives from GebeyaError.

Routes never format these by hand: error_handlers.py turns them into
{"error": ..., "code": ..., "details": {...}} with the class status code.
"""

from __future__ import annotations


class GebeyaError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 400
    code = "ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class ValidationError(GebeyaError, ValueError):
    """400-level input problem."""
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(GebeyaError):
    """Referenced item/sale is absent (or no longer active)."""
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id=None):
        message = f"{resource} not found"
        super().__init__(message, details={"resource": resource, "id": resource_id})
        self.resource = resource


class ConflictError(GebeyaError, ValueError):
    """409-level business rule conflict (e.g., duplicate item name)."""
    status_code = 409
    code = "CONFLICT"

    def __init__(self, message: str, field: str):
        super().__init__(message, details={"field": field})
        self.field = field


class InsufficientStockError(GebeyaError):
    """Sale quantity exceeds stock on hand."""
    status_code = 409
    code = "INSUFFICIENT_STOCK"

    def __init__(self, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available: {available}",
            details={"available": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class ConcurrencyError(GebeyaError):
    """Lock or version contention outlasted the retry budget. Safe to retry."""
    status_code = 503
    code = "CONCURRENCY_CONFLICT"

    def __init__(self, message: str = "Stock is being modified concurrently, please retry"):
        super().__init__(message, details={"retryable": True})


class PersistenceError(GebeyaError):
    """Backing store failure."""
    status_code = 500
    code = "PERSISTENCE_ERROR"


class AuthenticationError(GebeyaError):
    status_code = 401
    code = "AUTHENTICATION_FAILED"

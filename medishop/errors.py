from __future__ import annotations


# Domain-level errors the app layer can surface directly (toast/snackbar)
class DomainError(Exception):
    title = "Error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainError):
    """Bad input: missing field, non-positive quantity, unresolved reference, empty cart."""
    title = "Validation Error"


class NotFoundError(DomainError):
    """A referenced bill/purchase/entity id does not exist."""
    title = "Not Found"


class StockIntegrityError(DomainError):
    """The resulting stock quantity would go negative."""
    title = "Stock Error"


__all__ = [
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "StockIntegrityError",
]

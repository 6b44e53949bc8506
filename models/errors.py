from typing import Dict, List, Optional


class NotFoundError(ValueError):
    """Unknown product or draft id."""


class InvalidArgumentError(ValueError):
    """Negative stock, non-positive quantity, bad price and the like."""


class InsufficientStockError(ValueError):
    """Raised by commit when one or more line items exceed current stock.

    ``shortfalls`` holds one entry per offending product:
    ``{"productId", "productName", "requested", "available"}``.
    """

    def __init__(self, shortfalls: List[Dict], message: Optional[str] = None):
        self.shortfalls = shortfalls
        if message is None:
            parts = [
                f"{s['productName']} (requested {s['requested']}, available {s['available']})"
                for s in shortfalls
            ]
            message = "Insufficient stock for " + ", ".join(parts)
        super().__init__(message)


class PersistenceError(OSError):
    """Import/export failures that need the user's attention."""

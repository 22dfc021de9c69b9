# services/booking-service/src/apps/core/services/__init__.py
"""
Booking Service Business Logic
"""

from .rate_service import RateResolver
from .pricing_service import PricingService, PricingResult, PricingErrorKind
from .inventory_service import InventoryService
from .invoice_service import InvoiceNumberService
from .exhibition_service import ExhibitionService
from .booking_service import BookingService


# Custom Exceptions
class BookingServiceError(Exception):
    """Base exception for booking service errors."""
    pass


class BookingNotFoundError(BookingServiceError):
    """Booking not found."""
    pass


class ExhibitionNotFoundError(BookingServiceError):
    """Exhibition not found."""
    pass


class StallNotFoundError(BookingServiceError):
    """One or more stalls are not in the exhibition layout."""

    def __init__(self, message: str, stall_ids: list = None):
        super().__init__(message)
        self.stall_ids = stall_ids or []


class LayoutNotFoundError(BookingServiceError):
    """Exhibition has no layout."""
    pass


class ExhibitionNotBookableError(BookingServiceError):
    """Exhibition is not published or not active."""
    pass


class StallUnavailableError(BookingServiceError):
    """One or more stalls are not available."""

    def __init__(self, message: str, stall_numbers: list = None):
        super().__init__(message)
        self.stall_numbers = stall_numbers or []


class CalculationMismatchError(BookingServiceError):
    """Client calculation does not match the server calculation."""

    def __init__(self, message: str, expected=None, received=None):
        super().__init__(message)
        self.expected = expected
        self.received = received


class BookingValidationError(BookingServiceError):
    """Booking validation failed."""
    pass


class BookingStateError(BookingServiceError):
    """Invalid booking state transition."""
    pass


class InvoiceNumberConflictError(BookingServiceError):
    """Invoice number already issued."""
    pass


class LayoutConcurrencyError(BookingServiceError):
    """Layout changed concurrently and retries were exhausted."""
    pass


__all__ = [
    # Services
    'RateResolver',
    'PricingService',
    'PricingResult',
    'PricingErrorKind',
    'InventoryService',
    'InvoiceNumberService',
    'ExhibitionService',
    'BookingService',

    # Exceptions
    'BookingServiceError',
    'BookingNotFoundError',
    'ExhibitionNotFoundError',
    'StallNotFoundError',
    'LayoutNotFoundError',
    'ExhibitionNotBookableError',
    'StallUnavailableError',
    'CalculationMismatchError',
    'BookingValidationError',
    'BookingStateError',
    'InvoiceNumberConflictError',
    'LayoutConcurrencyError',
]

# services/booking-service/src/apps/api/views/errors.py
"""
Service Error Mapping

Translates booking service exceptions into the shared API exceptions
rendered by the common exception handler.
"""

from apps.core.services import (
    BookingNotFoundError,
    BookingServiceError,
    BookingStateError,
    BookingValidationError,
    CalculationMismatchError,
    ExhibitionNotBookableError,
    ExhibitionNotFoundError,
    InvoiceNumberConflictError,
    LayoutConcurrencyError,
    LayoutNotFoundError,
    StallNotFoundError,
    StallUnavailableError,
)
from shared.common.exceptions import (
    BadRequestException,
    BaseAPIException,
    CalculationMismatchException,
    ConcurrentModificationException,
    ConflictException,
    ExhibitionNotBookableException,
    InternalServerException,
    InvalidStateTransitionException,
    NotFoundException,
    StallUnavailableException,
)
from shared.common.utils import decimal_to_json


def to_api_exception(exc: BookingServiceError) -> BaseAPIException:
    """Map a service exception to its API exception."""
    message = str(exc)

    if isinstance(exc, StallNotFoundError):
        return NotFoundException(message, extra_data={'stall_ids': exc.stall_ids})

    if isinstance(exc, (BookingNotFoundError, ExhibitionNotFoundError, LayoutNotFoundError)):
        return NotFoundException(message)

    if isinstance(exc, ExhibitionNotBookableError):
        return ExhibitionNotBookableException(message)

    if isinstance(exc, StallUnavailableError):
        return StallUnavailableException(message, extra_data={'stall_numbers': exc.stall_numbers})

    if isinstance(exc, CalculationMismatchError):
        return CalculationMismatchException(
            message,
            extra_data={
                'expected': decimal_to_json(exc.expected),
                'received': decimal_to_json(exc.received),
            }
        )

    if isinstance(exc, BookingStateError):
        return InvalidStateTransitionException(message)

    if isinstance(exc, BookingValidationError):
        return BadRequestException(message)

    if isinstance(exc, LayoutConcurrencyError):
        return ConcurrentModificationException(message)

    if isinstance(exc, InvoiceNumberConflictError):
        return ConflictException(message)

    return InternalServerException(message)

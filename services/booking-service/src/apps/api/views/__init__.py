# services/booking-service/src/apps/api/views/__init__.py
"""
Booking API Views
"""

from .booking_views import (
    BookingViewSet,
)

from .exhibition_views import (
    ExhibitionViewSet,
)


__all__ = [
    'BookingViewSet',
    'ExhibitionViewSet',
]

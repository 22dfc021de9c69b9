# services/booking-service/src/apps/api/serializers/__init__.py
"""
Booking API Serializers
"""

from .booking_serializers import (
    BookingSerializer,
    BookingListSerializer,
    BookingDetailSerializer,
    BookingCreateSerializer,
    BookingStatusUpdateSerializer,
    BookingPaymentUpdateSerializer,
    BookingStatisticsSerializer,
    ExtraAmenityRequestSerializer,
    PaymentDetailsSerializer,
)
from .exhibition_serializers import (
    ExhibitionSerializer,
)


__all__ = [
    'BookingSerializer',
    'BookingListSerializer',
    'BookingDetailSerializer',
    'BookingCreateSerializer',
    'BookingStatusUpdateSerializer',
    'BookingPaymentUpdateSerializer',
    'BookingStatisticsSerializer',
    'ExtraAmenityRequestSerializer',
    'PaymentDetailsSerializer',
    'ExhibitionSerializer',
]

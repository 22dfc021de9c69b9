# services/booking-service/src/apps/core/models/__init__.py
"""
Booking Service Models
"""

from .stall_type import StallType
from .exhibition import (
    Exhibition,
    ExhibitionStallRate,
    TaxConfig,
    DiscountConfig,
    Amenity,
    BasicAmenity,
)
from .layout import Layout
from .booking import Booking
from .invoice_sequence import InvoiceSequence

__all__ = [
    'StallType',
    'Exhibition',
    'ExhibitionStallRate',
    'TaxConfig',
    'DiscountConfig',
    'Amenity',
    'BasicAmenity',
    'Layout',
    'Booking',
    'InvoiceSequence',
]

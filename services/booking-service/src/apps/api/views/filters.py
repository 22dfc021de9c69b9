# services/booking-service/src/apps/api/views/filters.py
"""
API Filters

Django Filter classes for booking API.
"""

import django_filters
from django.db.models import Q

from apps.core.models import Booking


class BookingFilter(django_filters.FilterSet):
    """Filter for booking queries."""

    # Date filters
    date_from = django_filters.DateFilter(
        field_name='created_at',
        lookup_expr='date__gte'
    )
    date_to = django_filters.DateFilter(
        field_name='created_at',
        lookup_expr='date__lte'
    )

    # Status filters
    status = django_filters.ChoiceFilter(
        choices=Booking.Status.choices
    )
    status_in = django_filters.BaseInFilter(
        field_name='status'
    )
    holds_stalls = django_filters.BooleanFilter(
        method='filter_holds_stalls'
    )
    payment_status = django_filters.ChoiceFilter(
        choices=Booking.PaymentStatus.choices
    )
    booking_source = django_filters.ChoiceFilter(
        choices=Booking.BookingSource.choices
    )

    # References
    exhibition = django_filters.UUIDFilter(
        field_name='exhibition_id'
    )
    exhibitor_id = django_filters.UUIDFilter()
    user_id = django_filters.UUIDFilter()

    # User involvement (booked by or for)
    user_involved = django_filters.UUIDFilter(
        method='filter_user_involved'
    )

    invoice_number = django_filters.CharFilter(
        lookup_expr='icontains'
    )

    class Meta:
        model = Booking
        fields = [
            'status', 'payment_status', 'booking_source',
            'exhibition', 'exhibitor_id', 'user_id',
        ]

    def filter_holds_stalls(self, queryset, name, value):
        """Filter for bookings that still occupy their stalls."""
        if value:
            return queryset.filter(status__in=Booking.get_holding_statuses())
        return queryset.exclude(status__in=Booking.get_holding_statuses())

    def filter_user_involved(self, queryset, name, value):
        return queryset.filter(Q(user_id=value) | Q(exhibitor_id=value))

# services/booking-service/src/apps/api/views/booking_views.py
"""
Booking API Views

Views for booking creation, status workflow, payment recording and
statistics.
"""

import logging

from django.utils.dateparse import parse_date
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.models import Booking
from apps.core.services import BookingService, BookingServiceError
from apps.api.serializers import (
    BookingSerializer,
    BookingListSerializer,
    BookingDetailSerializer,
    BookingCreateSerializer,
    BookingStatusUpdateSerializer,
    BookingPaymentUpdateSerializer,
    BookingStatisticsSerializer,
)
from shared.common.exceptions import BadRequestException
from shared.common.pagination import StandardPagination
from shared.common.utils import is_valid_uuid
from .errors import to_api_exception
from .filters import BookingFilter

logger = logging.getLogger(__name__)


def request_user_id(request):
    """Caller identity as recorded on bookings, if it is a UUID."""
    user_id = getattr(getattr(request, 'user', None), 'id', None)
    return user_id if is_valid_uuid(user_id) else None


class BookingViewSet(
    mixins.ListModelMixin,
    viewsets.GenericViewSet
):
    """
    ViewSet for booking management.

    Bookings are created, moved through their status workflow and deleted
    through the booking service so that layout stalls stay in step.
    """

    queryset = Booking.objects.select_related('exhibition')
    serializer_class = BookingSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = BookingFilter
    search_fields = ['customer_name', 'customer_email', 'company_name', 'invoice_number']
    ordering_fields = ['created_at', 'amount', 'status', 'invoice_number']
    ordering = ['-created_at']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.booking_service = BookingService()

    def get_serializer_class(self):
        """Return appropriate serializer based on action."""
        if self.action in ['list', 'me']:
            return BookingListSerializer
        elif self.action == 'retrieve':
            return BookingDetailSerializer
        elif self.action == 'create':
            return BookingCreateSerializer
        elif self.action == 'update_status':
            return BookingStatusUpdateSerializer
        elif self.action == 'update_payment':
            return BookingPaymentUpdateSerializer
        return BookingSerializer

    def create(self, request, *args, **kwargs):
        """Create a new booking."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)

        try:
            booking = self.booking_service.create_booking(
                exhibition_id=data.pop('exhibition_id'),
                stall_ids=data.pop('stall_ids'),
                customer_name=data.pop('customer_name'),
                customer_email=data.pop('customer_email'),
                customer_phone=data.pop('customer_phone'),
                customer_address=data.pop('customer_address'),
                company_name=data.pop('company_name'),
                calculations=data.pop('calculations'),
                booking_source=data.pop('booking_source'),
                user_id=request_user_id(request),
                exhibitor_id=data.pop('exhibitor_id', None),
                extra_amenities=data.pop('extra_amenities', None),
                discount=data.pop('discount', None) or None,
                **data
            )
        except BookingServiceError as e:
            logger.warning(f"Booking creation rejected: {e}")
            raise to_api_exception(e)

        output_serializer = BookingDetailSerializer(booking)
        return Response(output_serializer.data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        """Get a booking with stall rows enriched from the current layout."""
        try:
            detail = self.booking_service.get_booking_detail(pk)
        except BookingServiceError as e:
            raise to_api_exception(e)

        serializer = BookingDetailSerializer(
            detail['booking'],
            context={'request': request, 'calculations': detail['calculations']}
        )
        return Response(serializer.data)

    def destroy(self, request, pk=None):
        """Delete a booking, freeing the stalls it holds."""
        try:
            self.booking_service.delete_booking(pk, user_id=request_user_id(request))
        except BookingServiceError as e:
            raise to_api_exception(e)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['patch'], url_path='status')
    def update_status(self, request, pk=None):
        """Move a booking to a new status."""
        try:
            booking = self.booking_service.get_booking(pk)
        except BookingServiceError as e:
            raise to_api_exception(e)

        serializer = BookingStatusUpdateSerializer(
            data=request.data,
            context={'booking': booking}
        )
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            booking = self.booking_service.update_status(
                booking_id=pk,
                status=data['status'],
                user_id=request_user_id(request),
                rejection_reason=data.get('rejection_reason'),
                cancellation_reason=data.get('cancellation_reason'),
            )
        except BookingServiceError as e:
            raise to_api_exception(e)

        return Response(BookingDetailSerializer(booking).data)

    @action(detail=True, methods=['patch'], url_path='payment')
    def update_payment(self, request, pk=None):
        """Record the payment status of a booking."""
        serializer = BookingPaymentUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            booking = self.booking_service.update_payment_status(
                booking_id=pk,
                payment_status=data['payment_status'],
                payment_details=data.get('payment_details'),
            )
        except BookingServiceError as e:
            raise to_api_exception(e)

        return Response(BookingDetailSerializer(booking).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Booking statistics, optionally per exhibition and date range."""
        exhibition_id = request.query_params.get('exhibition')
        if exhibition_id and not is_valid_uuid(exhibition_id):
            raise BadRequestException(f"Invalid exhibition id {exhibition_id}")

        start_date = self._parse_date_param(request, 'date_from')
        end_date = self._parse_date_param(request, 'date_to')

        stats = self.booking_service.get_statistics(
            exhibition_id=exhibition_id,
            start_date=start_date,
            end_date=end_date,
        )
        return Response(BookingStatisticsSerializer(stats).data)

    @action(detail=False, methods=['get'])
    def me(self, request):
        """Get the current user's bookings."""
        user_id = request_user_id(request)
        if not user_id:
            raise BadRequestException('User ID required')

        include_cancelled = request.query_params.get('include_cancelled', 'true').lower() == 'true'
        queryset = self.booking_service.get_user_bookings(
            user_id=user_id,
            include_cancelled=include_cancelled,
        )

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = BookingListSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = BookingListSerializer(queryset, many=True)
        return Response(serializer.data)

    def _parse_date_param(self, request, name):
        value = request.query_params.get(name)
        if not value:
            return None
        try:
            parsed = parse_date(value)
        except ValueError:
            parsed = None
        if parsed is None:
            raise BadRequestException(f"Invalid date for {name}, use YYYY-MM-DD")
        return parsed

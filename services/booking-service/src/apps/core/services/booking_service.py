# services/booking-service/src/apps/core/services/booking_service.py
"""
Booking Service

Core business logic for stall bookings: creation with server-side
pricing, status transitions kept in step with layout inventory, and
read projections.
"""

import uuid
import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Dict, Any, List

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Q, Sum, Count
from django.utils import timezone

from apps.core.layout_tree import StallStatus
from apps.core.models import Booking, Exhibition, Layout
from shared.common.utils import decimal_to_json, is_valid_uuid, round2, unique
from .exhibition_service import ExhibitionService
from .inventory_service import InventoryService
from .invoice_service import InvoiceNumberService
from .pricing_service import (
    PricingErrorKind,
    PricingResult,
    PricingService,
    calculate_stall_area,
    stall_dimensions,
)
from .rate_service import RateResolver

logger = logging.getLogger(__name__)

STATS_CACHE_PREFIX = 'booking_stats'


def stats_cache_key(exhibition_id=None) -> str:
    return f"{STATS_CACHE_PREFIX}:{exhibition_id or 'all'}"


class BookingService:
    """
    Service for managing bookings.

    Handles:
    - Booking creation
    - Status transitions and stall synchronization
    - Payment status
    - Deletion
    - Detail enrichment and statistics
    """

    def __init__(self):
        self.exhibition_service = ExhibitionService()
        self.inventory_service = InventoryService()
        self.invoice_service = InvoiceNumberService()
        self.pricing_service = PricingService()

    # ==========================================================================
    # Creation
    # ==========================================================================

    @transaction.atomic
    def create_booking(
        self,
        exhibition_id,
        stall_ids: List[str],
        customer_name: str,
        customer_email: str,
        customer_phone: str,
        customer_address: str,
        company_name: str,
        calculations: Dict[str, Any],
        booking_source: str = Booking.BookingSource.ADMIN,
        user_id: uuid.UUID = None,
        exhibitor_id: uuid.UUID = None,
        extra_amenities: List[Dict[str, Any]] = None,
        discount: Optional[str] = None,
        **kwargs
    ) -> Booking:
        """
        Create a booking.

        Booking, invoice sequence and stall statuses are written in one
        transaction; any failure leaves all three untouched.
        """
        from . import (
            BookingValidationError,
            ExhibitionNotBookableError,
            InvoiceNumberConflictError,
        )

        # 1. Exhibition must exist and accept bookings
        exhibition = self.exhibition_service.resolve(exhibition_id)
        if not exhibition.is_bookable:
            raise ExhibitionNotBookableError(
                f"Exhibition {exhibition.name} is not available for booking"
            )

        # 2. Basic input validation
        stall_ids = [str(stall_id) for stall_id in stall_ids or []]
        self._validate_stall_ids(stall_ids)
        if exhibitor_id and not is_valid_uuid(exhibitor_id):
            raise BookingValidationError(f"Invalid exhibitor id {exhibitor_id}")

        # 3. Lock the layout for the rest of the transaction
        layout = self._lock_layout(exhibition)
        stalls = self.inventory_service.find_stalls(exhibition, stall_ids, layout=layout)

        # 4. Price and check against the client calculation
        result = self.pricing_service.price_booking(
            exhibition,
            stalls,
            requested_amenities=extra_amenities,
            client_calculation=calculations,
            selected_discount=discount,
            booking_source=booking_source,
        )
        if not result.ok:
            raise self._pricing_error(result)

        # 5. Invoice number
        invoice_number = self.invoice_service.next_invoice_number(exhibition)

        # 6. Persist
        try:
            with transaction.atomic():
                booking = Booking.objects.create(
                    exhibition=exhibition,
                    stall_ids=stall_ids,
                    user_id=user_id,
                    exhibitor_id=exhibitor_id,
                    customer_name=customer_name,
                    customer_email=customer_email,
                    customer_phone=customer_phone,
                    customer_address=customer_address,
                    company_name=company_name,
                    amount=result.total_amount,
                    basic_amenities=result.basic_amenities,
                    extra_amenities=result.extra_amenities,
                    calculations=result.calculation,
                    status=Booking.initial_status_for(booking_source),
                    payment_status=Booking.PaymentStatus.PENDING,
                    booking_source=booking_source,
                    invoice_number=invoice_number,
                    invoice_generated_at=timezone.now(),
                    **kwargs
                )
        except IntegrityError as e:
            logger.error(f"Invoice number {invoice_number} conflict: {e}")
            raise InvoiceNumberConflictError(f"Invoice number {invoice_number} already issued")

        # 7. Take the stalls out of inventory
        stall_status = (
            StallStatus.BOOKED if booking_source == Booking.BookingSource.ADMIN
            else StallStatus.RESERVED
        )
        self.inventory_service.set_stall_status(
            exhibition.id,
            stall_ids,
            stall_status,
            booking_id=booking.id,
            updated_by=user_id,
        )

        logger.info(
            f"Created booking {booking.booking_reference} ({invoice_number}) for "
            f"{len(stall_ids)} stall(s), amount {booking.amount}"
        )

        return booking

    def _lock_layout(self, exhibition: Exhibition) -> Layout:
        from . import LayoutNotFoundError

        try:
            return Layout.objects.select_for_update().get(exhibition=exhibition)
        except Layout.DoesNotExist:
            raise LayoutNotFoundError(f"Layout for exhibition {exhibition.id} not found")

    def _pricing_error(self, result: PricingResult) -> Exception:
        """Map a failed pricing result to a service exception."""
        from . import (
            BookingValidationError,
            CalculationMismatchError,
            ExhibitionNotBookableError,
            StallUnavailableError,
        )

        if result.error_kind == PricingErrorKind.FORBIDDEN:
            return ExhibitionNotBookableError(result.message)
        if 'stall_numbers' in result.details:
            return StallUnavailableError(result.message, stall_numbers=result.details['stall_numbers'])
        if 'expected' in result.details:
            return CalculationMismatchError(
                result.message,
                expected=result.details['expected'],
                received=result.details['received'],
            )
        return BookingValidationError(result.message)

    # ==========================================================================
    # Retrieval
    # ==========================================================================

    def get_booking(self, booking_id: uuid.UUID) -> Booking:
        """Get a booking by ID."""
        from . import BookingNotFoundError

        if not is_valid_uuid(booking_id):
            raise BookingNotFoundError(f"Booking {booking_id} not found")

        try:
            return Booking.objects.select_related('exhibition').get(id=booking_id)
        except Booking.DoesNotExist:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

    def list_bookings(
        self,
        exhibition_id: uuid.UUID = None,
        status: str = None,
        payment_status: str = None,
        booking_source: str = None,
        user_id: uuid.UUID = None,
        exhibitor_id: uuid.UUID = None,
        search: str = None,
        start_date: date = None,
        end_date: date = None,
    ):
        """List bookings with filters."""
        queryset = Booking.objects.select_related('exhibition')

        if exhibition_id:
            queryset = queryset.filter(exhibition_id=exhibition_id)

        if status:
            queryset = queryset.filter(status=status)

        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)

        if booking_source:
            queryset = queryset.filter(booking_source=booking_source)

        if user_id:
            queryset = queryset.filter(user_id=user_id)

        if exhibitor_id:
            queryset = queryset.filter(exhibitor_id=exhibitor_id)

        if search:
            queryset = queryset.filter(
                Q(customer_name__icontains=search) |
                Q(customer_email__icontains=search) |
                Q(company_name__icontains=search) |
                Q(invoice_number__icontains=search)
            )

        if start_date:
            queryset = queryset.filter(created_at__date__gte=start_date)

        if end_date:
            queryset = queryset.filter(created_at__date__lte=end_date)

        return queryset.order_by('-created_at')

    def get_user_bookings(self, user_id: uuid.UUID, include_cancelled: bool = True):
        """Get bookings made by or for a user."""
        queryset = Booking.objects.select_related('exhibition').filter(
            Q(user_id=user_id) | Q(exhibitor_id=user_id)
        )
        if not include_cancelled:
            queryset = queryset.exclude(status=Booking.Status.CANCELLED)
        return queryset.order_by('-created_at')

    def get_booking_detail(self, booking_id: uuid.UUID) -> Dict[str, Any]:
        """
        Booking with calculation stalls enriched from the current layout.

        Each stall row gets dimensions, area, stall type name and, when the
        stored rate is missing or invalid, a freshly resolved rate.
        """
        booking = self.get_booking(booking_id)
        return {
            'booking': booking,
            'calculations': self.enrich_calculations(booking),
        }

    def enrich_calculations(self, booking: Booking) -> Dict[str, Any]:
        calculations = dict(booking.calculations or {})
        rows = calculations.get('stalls') or []
        if not rows:
            return calculations

        layout = Layout.objects.filter(exhibition_id=booking.exhibition_id).first()
        tree = layout.get_tree() if layout else None
        resolver = RateResolver(booking.exhibition)

        enriched = []
        for row in rows:
            row = dict(row)
            stall = tree.get_stall(row.get('stallId')) if tree else None
            stall_type_id = row.get('stallTypeId') or (stall.stall_type if stall else None)

            if stall is not None and not row.get('dimensions'):
                dimensions = stall_dimensions(stall)
                row['dimensions'] = dimensions.to_json()
                row['area'] = decimal_to_json(round2(calculate_stall_area(dimensions)))

            row['ratePerSqm'] = decimal_to_json(
                resolver.effective_rate(row.get('ratePerSqm'), stall_type_id)
            )

            stall_type = resolver.get_stall_type(stall_type_id)
            row['stallTypeName'] = stall_type.name if stall_type else 'Standard Stall'
            if stall is not None:
                row['currentStatus'] = stall.status
            enriched.append(row)

        calculations['stalls'] = enriched
        return calculations

    # ==========================================================================
    # Status Transitions
    # ==========================================================================

    @transaction.atomic
    def update_status(
        self,
        booking_id: uuid.UUID,
        status: str,
        user_id: uuid.UUID = None,
        rejection_reason: str = None,
        cancellation_reason: str = None,
    ) -> Booking:
        """
        Move a booking to a new status and sync its stalls.

        cancelled is terminal and confirmed cannot go back to pending.
        Cancelling or rejecting frees the stalls, confirming books them,
        approving and returning to pending leave them unchanged. A released
        booking that moves back to a holding status takes its stalls again,
        reserved or booked, provided no other booking holds them.
        """
        from . import BookingStateError, BookingValidationError

        booking = self._get_for_update(booking_id)
        old_status = booking.status

        if status not in Booking.Status.values:
            raise BookingValidationError(f"Invalid status '{status}'")

        try:
            if status == Booking.Status.APPROVED:
                booking.approve(user_id)
            elif status == Booking.Status.CANCELLED:
                booking.cancel(user_id, cancellation_reason)
            elif status == Booking.Status.REJECTED:
                booking.reject(rejection_reason)
            elif status == Booking.Status.CONFIRMED:
                booking.confirm()
            else:
                booking.mark_pending()
        except ValueError as e:
            raise BookingStateError(str(e))

        holding = Booking.get_holding_statuses()
        was_holding = old_status in holding

        if status in holding and not was_holding:
            self._ensure_stalls_free(booking)

        if status == Booking.Status.CONFIRMED:
            stall_status = StallStatus.BOOKED
        elif status in holding:
            stall_status = None if was_holding else StallStatus.RESERVED
        else:
            stall_status = StallStatus.AVAILABLE if was_holding else None

        if stall_status:
            self.inventory_service.set_stall_status(
                booking.exhibition_id,
                booking.stall_ids,
                stall_status,
                booking_id=booking.id,
                updated_by=user_id,
                owner_id=booking.id,
            )

        logger.info(f"Booking {booking.booking_reference} status {old_status} -> {status}")

        return booking

    def _get_for_update(self, booking_id: uuid.UUID) -> Booking:
        from . import BookingNotFoundError

        if not is_valid_uuid(booking_id):
            raise BookingNotFoundError(f"Booking {booking_id} not found")

        try:
            return Booking.objects.select_for_update().get(id=booking_id)
        except Booking.DoesNotExist:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

    def _ensure_stalls_free(self, booking: Booking):
        """Stalls of a released booking must not have been taken by another one."""
        from . import StallUnavailableError

        layout = self._lock_layout(booking.exhibition)
        tree = layout.get_tree()
        taken = []
        for stall_id in booking.stall_ids:
            stall = tree.get_stall(stall_id)
            if stall is None or stall.status == StallStatus.AVAILABLE:
                continue
            if stall.booking_id != str(booking.id):
                taken.append(stall.number)

        if taken:
            raise StallUnavailableError(
                f"Stalls {', '.join(taken)} are no longer available",
                stall_numbers=taken
            )

    @transaction.atomic
    def update_payment_status(
        self,
        booking_id: uuid.UUID,
        payment_status: str,
        payment_details: Dict[str, Any] = None,
    ) -> Booking:
        """Record a payment status. No payment is processed."""
        from . import BookingValidationError

        if payment_status not in Booking.PaymentStatus.values:
            raise BookingValidationError(f"Invalid payment status '{payment_status}'")

        booking = self._get_for_update(booking_id)
        booking.record_payment(payment_status, payment_details)

        logger.info(f"Booking {booking.booking_reference} payment status -> {payment_status}")

        return booking

    # ==========================================================================
    # Deletion
    # ==========================================================================

    @transaction.atomic
    def delete_booking(self, booking_id: uuid.UUID, user_id: uuid.UUID = None):
        """Hard delete a booking, freeing any stalls it still holds."""
        booking = self._get_for_update(booking_id)

        if booking.holds_stalls:
            self.inventory_service.set_stall_status(
                booking.exhibition_id,
                booking.stall_ids,
                StallStatus.AVAILABLE,
                updated_by=user_id,
                owner_id=booking.id,
            )

        reference = booking.booking_reference
        booking.delete()

        logger.info(f"Deleted booking {reference}")

    # ==========================================================================
    # Statistics
    # ==========================================================================

    def get_statistics(
        self,
        exhibition_id: uuid.UUID = None,
        start_date: date = None,
        end_date: date = None
    ) -> Dict[str, Any]:
        """Booking statistics, cached per exhibition when no date range is given."""
        use_cache = start_date is None and end_date is None
        cache_key = stats_cache_key(exhibition_id)

        if use_cache:
            cached = cache.get(cache_key)
            if cached is not None:
                return cached

        queryset = self.list_bookings(
            exhibition_id=exhibition_id,
            start_date=start_date,
            end_date=end_date,
        )

        by_status = {
            row['status']: row['count']
            for row in queryset.order_by().values('status').annotate(count=Count('id'))
        }
        by_payment_status = {
            row['payment_status']: row['count']
            for row in queryset.order_by().values('payment_status').annotate(count=Count('id'))
        }
        by_source = {
            row['booking_source']: row['count']
            for row in queryset.order_by().values('booking_source').annotate(count=Count('id'))
        }

        total = queryset.count()
        total_amount = queryset.aggregate(total=Sum('amount'))['total'] or Decimal('0')
        total_stalls = sum(len(ids or []) for ids in queryset.values_list('stall_ids', flat=True))
        average = round2(total_amount / total) if total else Decimal('0.00')

        recent = [
            {
                'id': str(booking.id),
                'booking_reference': booking.booking_reference,
                'invoice_number': booking.invoice_number,
                'company_name': booking.company_name,
                'exhibition_name': booking.exhibition.name,
                'status': booking.status,
                'amount': decimal_to_json(round2(booking.amount)),
                'created_at': booking.created_at.isoformat(),
            }
            for booking in queryset[:5]
        ]

        stats = {
            'total': total,
            'by_status': by_status,
            'by_payment_status': by_payment_status,
            'by_source': by_source,
            'total_amount': decimal_to_json(round2(total_amount)),
            'total_stalls': total_stalls,
            'average_booking_value': decimal_to_json(average),
            'recent_bookings': recent,
        }

        if use_cache:
            cache.set(cache_key, stats, getattr(settings, 'BOOKING_STATS_CACHE_TIMEOUT', 60))

        return stats

    @staticmethod
    def invalidate_statistics(exhibition_id: uuid.UUID = None):
        keys = [stats_cache_key()]
        if exhibition_id:
            keys.append(stats_cache_key(exhibition_id))
        cache.delete_many(keys)

    # ==========================================================================
    # Validation
    # ==========================================================================

    def _validate_stall_ids(self, stall_ids: List[str]):
        from . import BookingValidationError

        if not stall_ids:
            raise BookingValidationError("At least one stall must be selected")

        if any(not stall_id for stall_id in stall_ids):
            raise BookingValidationError("Stall ids cannot be empty")

        if len(unique(stall_ids)) != len(stall_ids):
            raise BookingValidationError("Stall ids must be unique")

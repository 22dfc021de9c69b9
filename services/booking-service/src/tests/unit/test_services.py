# services/booking-service/src/tests/unit/test_services.py
"""
Unit Tests for Booking Services

Tests for business logic in service layer.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.db.models import F

from apps.core.events import EventType, event_publisher
from apps.core.models import Booking, ExhibitionStallRate, InvoiceSequence, Layout
from apps.core.services import (
    BookingNotFoundError,
    BookingService,
    BookingStateError,
    BookingValidationError,
    CalculationMismatchError,
    ExhibitionNotBookableError,
    ExhibitionNotFoundError,
    InventoryService,
    InvoiceNumberService,
    LayoutConcurrencyError,
    LayoutNotFoundError,
    StallNotFoundError,
    StallUnavailableError,
)
from apps.core.services.booking_service import stats_cache_key


def stall_state(exhibition, stall_id):
    """(status, bookingId) of a stall as stored in the layout."""
    stall = Layout.objects.get(exhibition=exhibition).get_tree().get_stall(stall_id)
    return stall.status, stall.booking_id


@pytest.mark.django_db
class TestBookingCreation:
    """Tests for BookingService.create_booking."""

    def setup_method(self):
        self.service = BookingService()

    def test_admin_booking_confirmed_and_stalls_booked(self, layout, exhibition, booking_payload, user_id, current_year):
        """Test admin bookings are confirmed and book their stalls."""
        booking = self.service.create_booking(**booking_payload(), user_id=user_id)

        assert booking.status == Booking.Status.CONFIRMED
        assert booking.payment_status == Booking.PaymentStatus.PENDING
        assert booking.amount == Decimal('1800.00')
        assert booking.invoice_number == f"EXPO/{current_year}/0001"
        assert booking.invoice_generated_at is not None
        assert booking.user_id == user_id
        assert booking.calculations['totalBaseAmount'] == 1800.0

        assert stall_state(exhibition, 'stall-a1') == ('booked', str(booking.id))
        assert stall_state(exhibition, 'stall-a2') == ('booked', str(booking.id))
        assert stall_state(exhibition, 'stall-a3')[0] == 'booked'

        layout.refresh_from_db()
        assert layout.version == 2

    def test_exhibitor_booking_pending_and_stalls_reserved(self, layout, exhibition, booking_payload):
        booking = self.service.create_booking(
            **booking_payload(),
            booking_source=Booking.BookingSource.EXHIBITOR,
        )

        assert booking.status == Booking.Status.PENDING
        assert stall_state(exhibition, 'stall-a1') == ('reserved', str(booking.id))

    def test_amount_includes_tax(self, layout, gst, booking_payload):
        booking = self.service.create_booking(**booking_payload())

        assert booking.amount == Decimal('2124.00')
        assert booking.calculations['totalTaxAmount'] == 324.0

    def test_invoice_numbers_increase(self, layout, booking_payload, current_year):
        first = self.service.create_booking(**booking_payload(
            stall_ids=['stall-a1'],
            calculations={'totalBaseAmount': 600},
        ))
        second = self.service.create_booking(**booking_payload(
            stall_ids=['stall-a2'],
            calculations={'totalBaseAmount': 1200},
        ))

        assert first.invoice_number == f"EXPO/{current_year}/0001"
        assert second.invoice_number == f"EXPO/{current_year}/0002"

    def test_calculation_mismatch_writes_nothing(self, layout, exhibition, booking_payload):
        """Test a rejected calculation leaves bookings, invoices and stalls untouched."""
        with pytest.raises(CalculationMismatchError) as exc_info:
            self.service.create_booking(**booking_payload(calculations={'totalBaseAmount': 1000}))

        assert exc_info.value.expected == Decimal('1800.00')
        assert exc_info.value.received == Decimal('1000')
        assert Booking.objects.count() == 0
        assert InvoiceSequence.objects.count() == 0
        assert stall_state(exhibition, 'stall-a1') == ('available', None)

        layout.refresh_from_db()
        assert layout.version == 1

    def test_unavailable_stall(self, layout, booking_payload):
        with pytest.raises(StallUnavailableError) as exc_info:
            self.service.create_booking(**booking_payload(stall_ids=['stall-a1', 'stall-a3']))

        assert exc_info.value.stall_numbers == ['A3']
        assert Booking.objects.count() == 0

    def test_stall_not_in_layout(self, layout, booking_payload):
        with pytest.raises(StallNotFoundError) as exc_info:
            self.service.create_booking(**booking_payload(stall_ids=['stall-a1', 'stall-zz']))

        assert exc_info.value.stall_ids == ['stall-zz']

    def test_duplicate_stall_ids(self, layout, booking_payload):
        with pytest.raises(BookingValidationError):
            self.service.create_booking(**booking_payload(stall_ids=['stall-a1', 'stall-a1']))

    def test_exhibition_not_bookable(self, layout, exhibition, booking_payload):
        exhibition.status = 'draft'
        exhibition.save()

        with pytest.raises(ExhibitionNotBookableError):
            self.service.create_booking(**booking_payload())

    def test_unknown_exhibition(self, booking_payload):
        with pytest.raises(ExhibitionNotFoundError):
            self.service.create_booking(**booking_payload(exhibition_id=str(uuid.uuid4())))

    def test_exhibition_by_slug(self, layout, exhibition, booking_payload):
        booking = self.service.create_booking(**booking_payload(exhibition_id=exhibition.slug))

        assert booking.exhibition_id == exhibition.id

    def test_exhibition_without_layout(self, create_exhibition, booking_payload):
        other = create_exhibition(name='No Floor Plan')

        with pytest.raises(LayoutNotFoundError):
            self.service.create_booking(**booking_payload(exhibition_id=str(other.id)))

    def test_extra_fields_stored(self, layout, booking_payload):
        booking = self.service.create_booking(
            **booking_payload(),
            notes='Near the entrance please',
            customer_gstin='29ABCDE1234F1Z5',
        )

        booking.refresh_from_db()
        assert booking.notes == 'Near the entrance please'
        assert booking.customer_gstin == '29ABCDE1234F1Z5'

    def test_events_published_on_commit(self, layout, booking_payload, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            booking = self.service.create_booking(**booking_payload())

        published = {event['event_type']: event for event in event_publisher.published}
        assert EventType.BOOKING_CREATED in published
        assert EventType.STALL_STATUS_CHANGED in published
        assert published[EventType.BOOKING_CREATED]['payload']['booking_id'] == str(booking.id)
        assert published[EventType.STALL_STATUS_CHANGED]['payload']['stall_ids'] == ['stall-a1', 'stall-a2']


@pytest.mark.django_db
class TestBookingStatusTransitions:
    """Tests for BookingService.update_status."""

    def setup_method(self):
        self.service = BookingService()

    def book(self, booking_payload, **kwargs):
        payload = booking_payload(stall_ids=['stall-a1'], calculations={'totalBaseAmount': 600})
        payload.update(kwargs)
        return self.service.create_booking(**payload)

    def test_cancel_frees_stalls(self, layout, exhibition, booking_payload, user_id):
        booking = self.book(booking_payload)

        booking = self.service.update_status(
            booking.id,
            Booking.Status.CANCELLED,
            user_id=user_id,
            cancellation_reason='Exhibitor withdrew',
        )

        assert booking.status == Booking.Status.CANCELLED
        assert booking.cancelled_by == user_id
        assert stall_state(exhibition, 'stall-a1') == ('available', None)

    def test_cancelled_is_terminal(self, layout, booking_payload):
        booking = self.book(booking_payload)
        self.service.update_status(booking.id, Booking.Status.CANCELLED, cancellation_reason='Withdrew')

        with pytest.raises(BookingStateError):
            self.service.update_status(booking.id, Booking.Status.CONFIRMED)

    def test_cancel_without_reason(self, layout, booking_payload):
        booking = self.book(booking_payload)

        with pytest.raises(BookingStateError):
            self.service.update_status(booking.id, Booking.Status.CANCELLED)

    def test_confirmed_cannot_return_to_pending(self, layout, booking_payload):
        booking = self.book(booking_payload)

        with pytest.raises(BookingStateError):
            self.service.update_status(booking.id, Booking.Status.PENDING)

    def test_confirm_books_reserved_stalls(self, layout, exhibition, booking_payload):
        booking = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)

        self.service.update_status(booking.id, Booking.Status.CONFIRMED)

        assert stall_state(exhibition, 'stall-a1') == ('booked', str(booking.id))

    def test_approve_leaves_stalls(self, layout, exhibition, booking_payload, user_id):
        booking = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)

        booking = self.service.update_status(booking.id, Booking.Status.APPROVED, user_id=user_id)

        assert booking.approved_by == user_id
        assert stall_state(exhibition, 'stall-a1') == ('reserved', str(booking.id))

    def test_reject_frees_stalls(self, layout, exhibition, booking_payload):
        booking = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)

        booking = self.service.update_status(
            booking.id,
            Booking.Status.REJECTED,
            rejection_reason='Incomplete documents',
        )

        assert booking.rejection_reason == 'Incomplete documents'
        assert stall_state(exhibition, 'stall-a1') == ('available', None)

    def test_rejected_booking_can_be_confirmed_while_stalls_free(self, layout, exhibition, booking_payload):
        booking = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)
        self.service.update_status(booking.id, Booking.Status.REJECTED, rejection_reason='Late')

        self.service.update_status(booking.id, Booking.Status.CONFIRMED)

        assert stall_state(exhibition, 'stall-a1') == ('booked', str(booking.id))

    def test_rejected_booking_cannot_take_rebooked_stalls(self, layout, exhibition, booking_payload):
        """Test a released booking never takes stalls that another booking now holds."""
        first = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)
        self.service.update_status(first.id, Booking.Status.REJECTED, rejection_reason='Late')
        second = self.book(booking_payload)

        with pytest.raises(StallUnavailableError):
            self.service.update_status(first.id, Booking.Status.CONFIRMED)

        assert stall_state(exhibition, 'stall-a1') == ('booked', str(second.id))

    def test_cancelling_released_booking_keeps_new_holder(self, layout, exhibition, booking_payload):
        first = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)
        self.service.update_status(first.id, Booking.Status.REJECTED, rejection_reason='Late')
        second = self.book(booking_payload)

        self.service.update_status(first.id, Booking.Status.CANCELLED, cancellation_reason='Closed')

        assert stall_state(exhibition, 'stall-a1') == ('booked', str(second.id))

    @pytest.mark.parametrize('status', [Booking.Status.PENDING, Booking.Status.APPROVED])
    def test_rejected_booking_reserves_free_stalls_again(self, layout, exhibition, booking_payload, status):
        booking = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)
        self.service.update_status(booking.id, Booking.Status.REJECTED, rejection_reason='Late')

        booking = self.service.update_status(booking.id, status)

        assert booking.status == status
        assert stall_state(exhibition, 'stall-a1') == ('reserved', str(booking.id))

    @pytest.mark.parametrize('status', [Booking.Status.PENDING, Booking.Status.APPROVED])
    def test_rejected_booking_cannot_reopen_on_rebooked_stalls(
        self, layout, exhibition, booking_payload, status
    ):
        first = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)
        self.service.update_status(first.id, Booking.Status.REJECTED, rejection_reason='Late')
        second = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)

        with pytest.raises(StallUnavailableError):
            self.service.update_status(first.id, status)

        first.refresh_from_db()
        assert first.status == Booking.Status.REJECTED
        assert stall_state(exhibition, 'stall-a1') == ('reserved', str(second.id))

    def test_cancel_never_frees_stalls_held_by_another_booking(
        self, layout, exhibition, booking_payload, create_booking
    ):
        """Test a holding booking whose stall belongs to someone else leaves it alone."""
        stale = create_booking(stall_ids=['stall-a1'], status=Booking.Status.PENDING)
        holder = self.book(booking_payload, booking_source=Booking.BookingSource.EXHIBITOR)

        self.service.update_status(stale.id, Booking.Status.CANCELLED, cancellation_reason='Duplicate')

        assert stall_state(exhibition, 'stall-a1') == ('reserved', str(holder.id))

    def test_invalid_status(self, layout, booking_payload):
        booking = self.book(booking_payload)

        with pytest.raises(BookingValidationError):
            self.service.update_status(booking.id, 'archived')

    def test_unknown_booking(self):
        with pytest.raises(BookingNotFoundError):
            self.service.update_status(uuid.uuid4(), Booking.Status.CONFIRMED)

        with pytest.raises(BookingNotFoundError):
            self.service.get_booking('not-a-uuid')

    def test_status_event_published(self, layout, booking_payload, django_capture_on_commit_callbacks):
        booking = self.book(booking_payload)

        with django_capture_on_commit_callbacks(execute=True):
            self.service.update_status(booking.id, Booking.Status.CANCELLED, cancellation_reason='Withdrew')

        cancelled = [e for e in event_publisher.published if e['event_type'] == EventType.BOOKING_CANCELLED]
        assert len(cancelled) == 1
        assert cancelled[0]['payload']['previous_status'] == Booking.Status.CONFIRMED
        assert cancelled[0]['payload']['reason'] == 'Withdrew'


@pytest.mark.django_db
class TestBookingPaymentAndDeletion:
    """Tests for payment recording and deletion."""

    def setup_method(self):
        self.service = BookingService()

    def test_record_payment(self, layout, booking_payload):
        booking = self.service.create_booking(**booking_payload())

        booking = self.service.update_payment_status(
            booking.id,
            Booking.PaymentStatus.PAID,
            {'method': 'bank_transfer', 'transaction_id': 'TXN-1'},
        )

        assert booking.payment_status == Booking.PaymentStatus.PAID
        assert booking.payment_details['transaction_id'] == 'TXN-1'
        assert 'paidAt' in booking.payment_details
        assert booking.status == Booking.Status.CONFIRMED

    def test_invalid_payment_status(self, layout, booking_payload):
        booking = self.service.create_booking(**booking_payload())

        with pytest.raises(BookingValidationError):
            self.service.update_payment_status(booking.id, 'settled')

    def test_delete_frees_stalls(self, layout, exhibition, booking_payload):
        booking = self.service.create_booking(**booking_payload())

        self.service.delete_booking(booking.id)

        assert not Booking.objects.filter(id=booking.id).exists()
        assert stall_state(exhibition, 'stall-a1') == ('available', None)
        assert stall_state(exhibition, 'stall-a2') == ('available', None)

    def test_delete_cancelled_booking_leaves_stalls(self, layout, exhibition, create_booking):
        other = create_booking(stall_ids=['stall-a3'], status=Booking.Status.CANCELLED)

        self.service.delete_booking(other.id)

        assert stall_state(exhibition, 'stall-a3')[0] == 'booked'

    def test_delete_leaves_stalls_held_by_another_booking(
        self, layout, exhibition, booking_payload, create_booking
    ):
        stale = create_booking(stall_ids=['stall-a1'], status=Booking.Status.PENDING)
        holder = self.service.create_booking(**booking_payload())

        self.service.delete_booking(stale.id)

        assert stall_state(exhibition, 'stall-a1') == ('booked', str(holder.id))

    def test_delete_unknown(self):
        with pytest.raises(BookingNotFoundError):
            self.service.delete_booking(uuid.uuid4())


@pytest.mark.django_db
class TestBookingDetail:
    """Tests for detail enrichment."""

    def setup_method(self):
        self.service = BookingService()

    def test_calculation_rows_enriched(self, layout, booking_payload):
        booking = self.service.create_booking(**booking_payload())

        detail = self.service.get_booking_detail(booking.id)

        rows = detail['calculations']['stalls']
        assert detail['booking'] == booking
        assert [row['stallTypeName'] for row in rows] == ['Standard Stall', 'Standard Stall']
        assert [row['currentStatus'] for row in rows] == ['booked', 'booked']
        assert [row['ratePerSqm'] for row in rows] == [100.0, 100.0]

    def test_invalid_stored_rate_resolved(self, layout, create_booking, stall_type):
        booking = create_booking(calculations={
            'stalls': [{'stallId': 'stall-a1', 'ratePerSqm': 0, 'stallTypeId': str(stall_type.id)}],
        })

        rows = self.service.get_booking_detail(booking.id)['calculations']['stalls']

        assert rows[0]['ratePerSqm'] == 100.0
        assert rows[0]['area'] == 6.0
        assert rows[0]['dimensions']['width'] == 3


@pytest.mark.django_db
class TestBookingStatistics:
    """Tests for BookingService.get_statistics."""

    def setup_method(self):
        self.service = BookingService()

    def test_statistics(self, exhibition, create_booking):
        create_booking()
        create_booking(
            stall_ids=['stall-a2', 'stall-a3'],
            amount=Decimal('1200.00'),
            status=Booking.Status.CONFIRMED,
            payment_status=Booking.PaymentStatus.PAID,
            booking_source=Booking.BookingSource.EXHIBITOR,
        )

        stats = self.service.get_statistics(exhibition_id=exhibition.id)

        assert stats['total'] == 2
        assert stats['by_status'] == {'pending': 1, 'confirmed': 1}
        assert stats['by_payment_status'] == {'pending': 1, 'paid': 1}
        assert stats['by_source'] == {'admin': 1, 'exhibitor': 1}
        assert stats['total_amount'] == 1800.0
        assert stats['total_stalls'] == 3
        assert stats['average_booking_value'] == 900.0
        assert len(stats['recent_bookings']) == 2

    def test_statistics_cached_until_invalidated(self, exhibition, create_booking):
        create_booking()
        assert self.service.get_statistics(exhibition_id=exhibition.id)['total'] == 1
        assert cache.get(stats_cache_key(exhibition.id)) is not None

        create_booking()
        assert self.service.get_statistics(exhibition_id=exhibition.id)['total'] == 1

        BookingService.invalidate_statistics(exhibition.id)
        assert self.service.get_statistics(exhibition_id=exhibition.id)['total'] == 2

    def test_date_range_not_cached(self, exhibition, create_booking):
        create_booking()

        stats = self.service.get_statistics(
            exhibition_id=exhibition.id,
            start_date=date.today() + timedelta(days=1),
        )

        assert stats['total'] == 0
        assert stats['average_booking_value'] == 0.0
        assert cache.get(stats_cache_key(exhibition.id)) is None

    def test_user_bookings(self, create_booking, user_id):
        create_booking(user_id=user_id)
        create_booking(exhibitor_id=user_id, status=Booking.Status.CANCELLED)
        create_booking()

        assert self.service.get_user_bookings(user_id).count() == 2
        assert self.service.get_user_bookings(user_id, include_cancelled=False).count() == 1


@pytest.mark.django_db
class TestInvoiceNumberService:
    """Tests for invoice numbering."""

    def setup_method(self):
        self.service = InvoiceNumberService()

    def test_default_prefix(self, create_exhibition):
        exhibition = create_exhibition()

        number = self.service.next_invoice_number(exhibition, today=date(2024, 3, 1))

        assert number == 'INV/2024/0001'

    def test_continues_after_issued_numbers(self, create_exhibition, create_booking):
        """Test the first allocation of a year counts invoices already issued."""
        exhibition = create_exhibition()
        for sequence in range(1, 7):
            create_booking(exhibition=exhibition, invoice_number=f"INV/2024/{sequence:04d}")

        assert self.service.next_invoice_number(exhibition, today=date(2024, 6, 1)) == 'INV/2024/0007'
        assert self.service.next_invoice_number(exhibition, today=date(2024, 6, 2)) == 'INV/2024/0008'

    def test_sequence_restarts_each_year(self, exhibition):
        self.service.next_invoice_number(exhibition, today=date(2024, 12, 31))

        assert self.service.next_invoice_number(exhibition, today=date(2025, 1, 1)) == 'EXPO/2025/0001'

    def test_sequences_are_per_exhibition(self, exhibition, create_exhibition):
        other = create_exhibition(name='Autumn Fair', invoice_prefix='EXPO')
        self.service.next_invoice_number(exhibition, today=date(2024, 1, 1))

        assert self.service.next_invoice_number(other, today=date(2024, 1, 1)) == 'EXPO/2024/0001'


@pytest.mark.django_db
class TestInventoryService:
    """Tests for layout stall synchronization and projections."""

    def setup_method(self):
        self.service = InventoryService()

    def test_set_stall_status_skips_unknown_ids(self, layout, exhibition):
        changed = self.service.set_stall_status(exhibition.id, ['stall-a1', 'stall-zz'], 'blocked')

        assert changed == 1
        assert stall_state(exhibition, 'stall-a1') == ('blocked', None)

    def test_set_stall_status_is_idempotent(self, layout, exhibition):
        self.service.set_stall_status(exhibition.id, ['stall-a1'], 'blocked')

        assert self.service.set_stall_status(exhibition.id, ['stall-a1'], 'blocked') == 0

        layout.refresh_from_db()
        assert layout.version == 2

    def test_set_stall_status_without_layout(self, create_exhibition):
        other = create_exhibition(name='No Floor Plan')

        assert self.service.set_stall_status(other.id, ['stall-a1'], 'booked') == 0

    def test_version_conflict_retried(self, layout, exhibition):
        """Test a concurrent write is retried against the fresh layout."""
        calls = []

        def mutate(tree):
            calls.append(1)
            if len(calls) == 1:
                Layout.objects.filter(pk=layout.pk).update(version=F('version') + 1)
            return tree.set_stall_status(['stall-a1'], 'blocked')

        changed, version = self.service._write_layout(exhibition.id, mutate)

        assert changed == ['stall-a1']
        assert version == 3
        assert len(calls) == 2

    def test_version_conflict_exhausts_retries(self, layout, exhibition):
        service = InventoryService(max_retries=2)

        def mutate(tree):
            Layout.objects.filter(pk=layout.pk).update(version=F('version') + 1)
            return tree.set_stall_status(['stall-a1'], 'blocked')

        with pytest.raises(LayoutConcurrencyError):
            service._write_layout(exhibition.id, mutate)

    def test_refresh_stall_rates(self, layout, exhibition, stall_type):
        ExhibitionStallRate.objects.create(exhibition=exhibition, stall_type=stall_type, rate=Decimal('150'))

        assert self.service.refresh_stall_rates(exhibition) == 3
        assert self.service.refresh_stall_rates(exhibition) == 0

        layout.refresh_from_db()
        assert layout.version == 2
        assert layout.get_tree().get_stall('stall-a2').rate_per_sqm == 150

    def test_refresh_without_layout(self, create_exhibition):
        with pytest.raises(LayoutNotFoundError):
            self.service.refresh_stall_rates(create_exhibition(name='No Floor Plan'))

    def test_available_stalls(self, layout, exhibition):
        stalls = self.service.get_available_stalls(exhibition)

        assert [stall['id'] for stall in stalls] == ['stall-a1', 'stall-a2']
        assert [stall['area'] for stall in stalls] == [6.0, 12.0]
        assert stalls[0]['ratePerSqm'] == 100.0
        assert stalls[0]['hallName'] == 'Hall A'
        assert stalls[0]['stallTypeName'] == 'Standard Stall'

    def test_layout_view(self, layout, exhibition):
        view = self.service.get_layout_view(exhibition)

        stalls = view['spaces'][0]['halls'][0]['stalls']
        assert view['version'] == 1
        assert len(stalls) == 3
        assert stalls[0]['dimensions'] == {'width': 3, 'height': 2, 'shapeType': 'rectangle'}
        assert view['fixtures'][0]['name'] == 'Entrance'

    def test_find_stalls_reports_missing(self, layout, exhibition):
        with pytest.raises(StallNotFoundError) as exc_info:
            self.service.find_stalls(exhibition, ['stall-a1', 'nope'])

        assert exc_info.value.stall_ids == ['nope']

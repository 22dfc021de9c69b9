# services/booking-service/src/tests/unit/test_models.py
"""
Unit Tests for Booking Models

Tests for model methods, properties, and business logic.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError

from apps.core.models import Booking, Exhibition, ExhibitionStallRate, StallType


@pytest.mark.django_db
class TestBookingModel:
    """Tests for Booking model."""

    def test_create_booking(self, create_booking):
        """Test booking creation with defaults."""
        booking = create_booking()

        assert booking.id is not None
        assert booking.status == Booking.Status.PENDING
        assert booking.payment_status == Booking.PaymentStatus.PENDING
        assert booking.booking_source == Booking.BookingSource.ADMIN
        assert booking.stall_count == 1
        assert booking.holds_stalls

    def test_booking_reference(self, create_booking):
        booking = create_booking()

        assert booking.booking_reference == f"BK-{str(booking.id)[-8:].upper()}"

    def test_extra_amenities_total(self, create_booking):
        booking = create_booking(extra_amenities=[
            {'name': 'Projector', 'totalAmount': 500.0},
            {'name': 'Carpet', 'totalAmount': 120.5},
            {'name': 'Free Wifi'},
        ])

        assert booking.extra_amenities_total == Decimal('620.50')

    def test_invoice_number_unique_per_exhibition(self, create_booking):
        create_booking(invoice_number='EXPO/2024/0001')

        with pytest.raises(IntegrityError):
            create_booking(invoice_number='EXPO/2024/0001')

    def test_confirm(self, create_booking):
        booking = create_booking()

        booking.confirm()

        booking.refresh_from_db()
        assert booking.status == Booking.Status.CONFIRMED

    def test_approve_records_approver(self, create_booking, user_id):
        booking = create_booking()

        booking.approve(user_id)

        assert booking.status == Booking.Status.APPROVED
        assert booking.approved_by == user_id
        assert booking.approved_at is not None

    def test_cancel(self, create_booking, user_id):
        """Test cancellation records who, when and why."""
        booking = create_booking()

        booking.cancel(user_id, 'Exhibitor withdrew')

        assert booking.status == Booking.Status.CANCELLED
        assert booking.cancelled_by == user_id
        assert booking.cancelled_at is not None
        assert booking.cancellation_reason == 'Exhibitor withdrew'
        assert not booking.holds_stalls
        assert booking.is_terminal

    def test_cancel_requires_reason(self, create_booking, user_id):
        booking = create_booking()

        with pytest.raises(ValueError):
            booking.cancel(user_id, '')

    def test_cancel_twice_keeps_first_cancellation(self, create_booking, user_id):
        booking = create_booking()
        booking.cancel(user_id, 'Exhibitor withdrew')

        booking.cancel(uuid.uuid4(), 'Second attempt')

        assert booking.cancelled_by == user_id
        assert booking.cancellation_reason == 'Exhibitor withdrew'

    def test_cancelled_is_terminal(self, create_booking, user_id):
        booking = create_booking()
        booking.cancel(user_id, 'Exhibitor withdrew')

        with pytest.raises(ValueError):
            booking.confirm()

        with pytest.raises(ValueError):
            booking.mark_pending()

    def test_confirmed_cannot_return_to_pending(self, create_booking):
        booking = create_booking(status=Booking.Status.CONFIRMED)

        with pytest.raises(ValueError):
            booking.mark_pending()

    def test_reject_requires_reason(self, create_booking):
        booking = create_booking()

        with pytest.raises(ValueError):
            booking.reject('')

        booking.reject('Incomplete documents')
        assert booking.status == Booking.Status.REJECTED
        assert booking.rejection_reason == 'Incomplete documents'

    def test_record_payment_stamps_paid_at(self, create_booking):
        booking = create_booking()

        booking.record_payment(Booking.PaymentStatus.PAID, {'method': 'bank_transfer'})

        booking.refresh_from_db()
        assert booking.payment_status == Booking.PaymentStatus.PAID
        assert booking.payment_details['method'] == 'bank_transfer'
        assert 'paidAt' in booking.payment_details

    def test_record_payment_merges_details(self, create_booking):
        booking = create_booking(payment_details={'method': 'cash'})

        booking.record_payment(Booking.PaymentStatus.PARTIAL, {'amount': '300.00'})

        assert booking.payment_details == {'method': 'cash', 'amount': '300.00'}

    def test_initial_status_for_source(self):
        assert Booking.initial_status_for(Booking.BookingSource.ADMIN) == Booking.Status.CONFIRMED
        assert Booking.initial_status_for(Booking.BookingSource.EXHIBITOR) == Booking.Status.PENDING
        assert Booking.initial_status_for(Booking.BookingSource.PUBLIC) == Booking.Status.PENDING


@pytest.mark.django_db
class TestExhibitionModel:
    """Tests for Exhibition model."""

    def test_slug_generated_from_name(self, create_exhibition):
        first = create_exhibition(name='Auto Expo 2024')
        second = create_exhibition(name='Auto Expo 2024')

        assert first.slug == 'auto-expo-2024'
        assert second.slug == 'auto-expo-2024-2'

    def test_is_bookable(self, create_exhibition):
        assert create_exhibition().is_bookable
        assert not create_exhibition(status=Exhibition.Status.DRAFT).is_bookable
        assert not create_exhibition(is_active=False).is_bookable
        assert not create_exhibition(status=Exhibition.Status.COMPLETED).is_bookable

    def test_end_date_must_follow_start_date(self, create_exhibition):
        exhibition = create_exhibition()
        exhibition.end_date = exhibition.start_date - timedelta(days=1)

        with pytest.raises(ValidationError):
            exhibition.clean()

    def test_invalid_invoice_prefix(self, create_exhibition):
        exhibition = create_exhibition()
        exhibition.invoice_prefix = 'EX/PO'

        with pytest.raises(ValidationError):
            exhibition.full_clean()

    def test_rate_overrides(self, exhibition, stall_type):
        ExhibitionStallRate.objects.create(exhibition=exhibition, stall_type=stall_type, rate=Decimal('150'))

        assert exhibition.rate_overrides == {str(stall_type.id): Decimal('150.00')}


@pytest.mark.django_db
class TestStallTypeModel:
    """Tests for StallType model."""

    def test_default_area(self, create_stall_type):
        stall_type = create_stall_type(default_width=Decimal('4'), default_height=Decimal('2.5'))

        assert stall_type.default_area == Decimal('10')

    def test_defaults(self, create_stall_type):
        stall_type = create_stall_type()

        assert stall_type.rate_type == StallType.RateType.PER_SQM
        assert stall_type.is_active


@pytest.mark.django_db
class TestLayoutModel:
    """Tests for Layout model."""

    def test_stall_count(self, layout):
        assert layout.stall_count == 3

    def test_tree_round_trip(self, layout):
        tree = layout.get_tree()
        tree.set_stall_status(['stall-a1'], 'blocked')

        layout.set_tree(tree)
        layout.save()
        layout.refresh_from_db()

        assert layout.get_tree().get_stall('stall-a1').status == 'blocked'
        assert layout.fixtures[0]['name'] == 'Entrance'

    def test_one_layout_per_exhibition(self, layout, create_layout):
        with pytest.raises(IntegrityError):
            create_layout(layout.exhibition)

    def test_default_version(self, exhibition, create_layout):
        assert create_layout(exhibition).version == 1

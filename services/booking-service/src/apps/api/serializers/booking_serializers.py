# services/booking-service/src/apps/api/serializers/booking_serializers.py
"""
Booking Serializers

Serializers for booking creation, status and payment updates, and
booking read models.
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from apps.core.models import Booking
from shared.common.validators import (
    validate_gstin,
    validate_pan,
    validate_phone_number,
    validate_unique_list,
)


def _run_validator(validator, value, field_name):
    try:
        return validator(value, field_name)
    except DjangoValidationError as e:
        raise serializers.ValidationError(e.messages)


class BookingSerializer(serializers.ModelSerializer):
    """Base booking serializer."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    payment_status_display = serializers.CharField(
        source='get_payment_status_display',
        read_only=True
    )
    booking_source_display = serializers.CharField(
        source='get_booking_source_display',
        read_only=True
    )
    exhibition_name = serializers.CharField(
        source='exhibition.name',
        read_only=True
    )
    booking_reference = serializers.CharField(read_only=True)
    stall_count = serializers.IntegerField(read_only=True)
    extra_amenities_total = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        read_only=True
    )

    class Meta:
        model = Booking
        fields = [
            'id', 'booking_reference', 'exhibition', 'exhibition_name',
            'stall_ids', 'stall_count',
            'user_id', 'exhibitor_id',
            'customer_name', 'customer_email', 'customer_phone',
            'customer_address', 'customer_gstin', 'customer_pan',
            'company_name',
            'amount', 'basic_amenities', 'extra_amenities', 'extra_amenities_total',
            'calculations',
            'status', 'status_display', 'rejection_reason',
            'payment_status', 'payment_status_display', 'payment_details',
            'booking_source', 'booking_source_display',
            'notes', 'special_requirements',
            'invoice_number', 'invoice_generated_at',
            'approved_by', 'approved_at',
            'cancelled_by', 'cancelled_at', 'cancellation_reason',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class BookingListSerializer(BookingSerializer):
    """Optimized serializer for booking lists."""

    class Meta(BookingSerializer.Meta):
        fields = [
            'id', 'booking_reference', 'invoice_number',
            'exhibition', 'exhibition_name',
            'company_name', 'customer_name', 'customer_email',
            'stall_ids', 'stall_count', 'amount',
            'status', 'status_display',
            'payment_status', 'payment_status_display',
            'booking_source', 'created_at',
        ]
        read_only_fields = fields


class BookingDetailSerializer(BookingSerializer):
    """
    Detailed serializer.

    ``calculations`` is replaced by the enriched version passed in the
    serializer context when one is available.
    """

    calculations = serializers.SerializerMethodField()

    def get_calculations(self, obj) -> dict:
        enriched = self.context.get('calculations')
        if enriched is not None:
            return enriched
        return obj.calculations


class ExtraAmenityRequestSerializer(serializers.Serializer):
    """Extra amenity requested with a booking."""

    id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class BookingCreateSerializer(serializers.Serializer):
    """Serializer for creating new bookings."""

    exhibition_id = serializers.CharField(
        help_text="Exhibition id or slug"
    )
    stall_ids = serializers.ListField(
        child=serializers.CharField(allow_blank=False),
        min_length=1
    )

    # Customer
    customer_name = serializers.CharField(max_length=255)
    customer_email = serializers.EmailField()
    customer_phone = serializers.CharField(max_length=30)
    customer_address = serializers.CharField()
    customer_gstin = serializers.CharField(max_length=15, required=False, allow_blank=True, default='')
    customer_pan = serializers.CharField(max_length=10, required=False, allow_blank=True, default='')
    company_name = serializers.CharField(max_length=255)

    # Pricing
    calculations = serializers.DictField()
    extra_amenities = ExtraAmenityRequestSerializer(many=True, required=False)
    discount = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    booking_source = serializers.ChoiceField(
        choices=Booking.BookingSource.choices,
        default=Booking.BookingSource.ADMIN
    )
    exhibitor_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    special_requirements = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_stall_ids(self, value):
        return _run_validator(validate_unique_list, value, 'stall_ids')

    def validate_customer_phone(self, value):
        return _run_validator(validate_phone_number, value, 'customer_phone')

    def validate_customer_gstin(self, value):
        return _run_validator(validate_gstin, value, 'GSTIN')

    def validate_customer_pan(self, value):
        return _run_validator(validate_pan, value, 'PAN')

    def validate_calculations(self, value):
        if 'totalBaseAmount' not in value:
            raise serializers.ValidationError("totalBaseAmount is required")
        return value

    def validate_extra_amenities(self, value):
        return [
            {'id': str(item['id']), 'quantity': item['quantity']}
            for item in value
        ]


class BookingStatusUpdateSerializer(serializers.Serializer):
    """Serializer for booking status changes."""

    status = serializers.ChoiceField(choices=Booking.Status.choices)
    rejection_reason = serializers.CharField(required=False, allow_blank=True)
    cancellation_reason = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        status = attrs['status']

        if status == Booking.Status.REJECTED and not attrs.get('rejection_reason'):
            raise serializers.ValidationError({
                'rejection_reason': "Rejection reason is required"
            })

        if status == Booking.Status.CANCELLED and not attrs.get('cancellation_reason'):
            booking = self.context.get('booking')
            if booking is None or booking.status != Booking.Status.CANCELLED:
                raise serializers.ValidationError({
                    'cancellation_reason': "Cancellation reason is required"
                })

        return attrs


class PaymentDetailsSerializer(serializers.Serializer):
    """Payment reference details recorded with a payment status."""

    method = serializers.CharField(required=False, allow_blank=True)
    transaction_id = serializers.CharField(required=False, allow_blank=True)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class BookingPaymentUpdateSerializer(serializers.Serializer):
    """Serializer for recording payment status."""

    payment_status = serializers.ChoiceField(choices=Booking.PaymentStatus.choices)
    payment_details = PaymentDetailsSerializer(required=False)

    def validate_payment_details(self, value):
        details = {}
        for key, item in value.items():
            details[key] = str(item) if key == 'amount' else item
        return details


class BookingStatisticsSerializer(serializers.Serializer):
    """Serializer for booking statistics."""

    total = serializers.IntegerField()
    by_status = serializers.DictField(child=serializers.IntegerField())
    by_payment_status = serializers.DictField(child=serializers.IntegerField())
    by_source = serializers.DictField(child=serializers.IntegerField())
    total_amount = serializers.FloatField()
    total_stalls = serializers.IntegerField()
    average_booking_value = serializers.FloatField()
    recent_bookings = serializers.ListField(child=serializers.DictField())

# services/booking-service/src/apps/core/models/booking.py
"""
Booking Model

Stall bookings against an exhibition layout.
"""

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone


class Booking(models.Model):
    """
    Booking of one or more layout stalls.

    Stall ids are opaque strings that resolve only inside the owning
    exhibition's layout. ``calculations`` is the server-computed pricing
    snapshot taken at creation time.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        CONFIRMED = 'confirmed', 'Confirmed'
        CANCELLED = 'cancelled', 'Cancelled'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        REFUNDED = 'refunded', 'Refunded'
        PARTIAL = 'partial', 'Partial'

    class BookingSource(models.TextChoices):
        ADMIN = 'admin', 'Admin'
        EXHIBITOR = 'exhibitor', 'Exhibitor'
        PUBLIC = 'public', 'Public'

    # Primary Key
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # References
    exhibition = models.ForeignKey(
        'core.Exhibition',
        on_delete=models.PROTECT,
        related_name='bookings'
    )
    stall_ids = models.JSONField(default=list)
    user_id = models.UUIDField(blank=True, null=True, db_index=True)
    exhibitor_id = models.UUIDField(blank=True, null=True, db_index=True)

    # Customer
    customer_name = models.CharField(max_length=255)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=30)
    customer_address = models.TextField()
    customer_gstin = models.CharField(max_length=15, blank=True, default='')
    customer_pan = models.CharField(max_length=10, blank=True, default='')
    company_name = models.CharField(max_length=255)

    # Pricing
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    basic_amenities = models.JSONField(default=list, blank=True)
    extra_amenities = models.JSONField(default=list, blank=True)
    calculations = models.JSONField(default=dict)

    # Status
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )
    rejection_reason = models.TextField(blank=True, null=True)

    # Payment
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )
    payment_details = models.JSONField(default=dict, blank=True)

    booking_source = models.CharField(
        max_length=20,
        choices=BookingSource.choices,
        default=BookingSource.ADMIN
    )

    # Notes
    notes = models.TextField(blank=True, null=True)
    special_requirements = models.TextField(blank=True, null=True)

    # Invoice
    invoice_number = models.CharField(max_length=40, blank=True, null=True)
    invoice_generated_at = models.DateTimeField(blank=True, null=True)

    # Approval / Cancellation
    approved_by = models.UUIDField(blank=True, null=True)
    approved_at = models.DateTimeField(blank=True, null=True)
    cancelled_by = models.UUIDField(blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, null=True)

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['exhibition', 'status']),
            models.Index(fields=['exhibition', 'created_at']),
            models.Index(fields=['payment_status']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['exhibition', 'invoice_number'],
                name='unique_invoice_per_exhibition'
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name='booking_amount_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.booking_reference}: {self.company_name}"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def booking_reference(self) -> str:
        """Short human-facing reference."""
        return f"BK-{str(self.id)[-8:].upper()}"

    @property
    def holds_stalls(self) -> bool:
        """Check if the booking still holds its stalls."""
        return self.status in self.get_holding_statuses()

    @property
    def extra_amenities_total(self) -> Decimal:
        """Total of the separately priced extra amenities."""
        total = Decimal('0')
        for amenity in self.extra_amenities or []:
            total += Decimal(str(amenity.get('totalAmount') or 0))
        return total.quantize(Decimal('0.01'))

    @property
    def stall_count(self) -> int:
        return len(self.stall_ids or [])

    @property
    def is_terminal(self) -> bool:
        return self.status == self.Status.CANCELLED

    # ==========================================================================
    # Status Transitions
    # ==========================================================================

    def _check_transition(self, new_status: str):
        if self.status == self.Status.CANCELLED and new_status != self.Status.CANCELLED:
            raise ValueError("Cannot change status of a cancelled booking")

        if self.status == self.Status.CONFIRMED and new_status == self.Status.PENDING:
            raise ValueError("Cannot change status from confirmed to pending")

    def confirm(self):
        """Confirm the booking."""
        self._check_transition(self.Status.CONFIRMED)
        self.status = self.Status.CONFIRMED
        self.save()

    def approve(self, user_id: uuid.UUID = None):
        """Approve the booking."""
        self._check_transition(self.Status.APPROVED)
        self.status = self.Status.APPROVED
        self.approved_by = user_id
        self.approved_at = timezone.now()
        self.save()

    def cancel(self, user_id: uuid.UUID, reason: str):
        """Cancel the booking."""
        if self.status == self.Status.CANCELLED:
            self.save()
            return

        if not reason:
            raise ValueError("Cancellation reason is required")

        self.status = self.Status.CANCELLED
        self.cancelled_by = user_id
        self.cancelled_at = timezone.now()
        self.cancellation_reason = reason
        self.save()

    def reject(self, reason: str):
        """Reject the booking."""
        self._check_transition(self.Status.REJECTED)
        if not reason:
            raise ValueError("Rejection reason is required")

        self.status = self.Status.REJECTED
        self.rejection_reason = reason
        self.save()

    def mark_pending(self):
        """Move the booking back to pending."""
        self._check_transition(self.Status.PENDING)
        self.status = self.Status.PENDING
        self.save()

    def record_payment(self, payment_status: str, details: dict = None):
        """Record a payment status change."""
        self.payment_status = payment_status
        details = dict(details or {})
        if payment_status == self.PaymentStatus.PAID and not details.get('paidAt'):
            details['paidAt'] = timezone.now().isoformat()
        self.payment_details = {**(self.payment_details or {}), **details}
        self.save()

    # ==========================================================================
    # Class Methods
    # ==========================================================================

    @classmethod
    def get_holding_statuses(cls) -> list:
        """Statuses in which the booking's stalls stay out of inventory."""
        return [
            cls.Status.PENDING,
            cls.Status.CONFIRMED,
            cls.Status.APPROVED,
        ]

    @classmethod
    def initial_status_for(cls, booking_source: str) -> str:
        if booking_source == cls.BookingSource.ADMIN:
            return cls.Status.CONFIRMED
        return cls.Status.PENDING

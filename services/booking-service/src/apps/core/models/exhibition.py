# services/booking-service/src/apps/core/models/exhibition.py
"""
Exhibition Models

Exhibitions and the per-exhibition pricing configuration: stall rate
overrides, taxes, discounts and amenities.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.text import slugify

from shared.common.validators import validate_invoice_prefix, validate_percentage


class Exhibition(models.Model):
    """
    Exhibition offering stalls for booking.

    Only published and active exhibitions accept new bookings.
    """

    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        PUBLISHED = 'published', 'Published'
        COMPLETED = 'completed', 'Completed'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True, blank=True)
    description = models.TextField(blank=True, default='')
    venue = models.CharField(max_length=255)

    # Dates
    start_date = models.DateField()
    end_date = models.DateField()
    registration_deadline = models.DateField(blank=True, null=True)

    # Status
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True
    )
    is_active = models.BooleanField(default=True)

    # Invoicing
    invoice_prefix = models.CharField(
        max_length=10,
        blank=True,
        default='',
        validators=[validate_invoice_prefix]
    )

    # Audit
    created_by = models.UUIDField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'exhibitions'
        ordering = ['-start_date']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F('start_date')),
                name='valid_exhibition_dates'
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({'end_date': 'End date must be after start date'})

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = self._generate_slug()
        super().save(*args, **kwargs)

    def _generate_slug(self) -> str:
        """Derive a unique slug from the exhibition name."""
        base = slugify(self.name) or 'exhibition'
        slug = base
        suffix = 1
        while Exhibition.objects.filter(slug=slug).exclude(pk=self.pk).exists():
            suffix += 1
            slug = f"{base}-{suffix}"
        return slug

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_bookable(self) -> bool:
        """Check if the exhibition accepts bookings."""
        return self.status == self.Status.PUBLISHED and self.is_active

    @property
    def rate_overrides(self) -> dict:
        """Map of stall type id (str) to override rate."""
        return {
            str(rate.stall_type_id): rate.rate
            for rate in self.stall_rates.all()
        }


class ExhibitionStallRate(models.Model):
    """Exhibition-specific rate for a stall type."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exhibition = models.ForeignKey(
        Exhibition,
        on_delete=models.CASCADE,
        related_name='stall_rates'
    )
    stall_type = models.ForeignKey(
        'core.StallType',
        on_delete=models.PROTECT,
        related_name='exhibition_rates'
    )
    rate = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )

    class Meta:
        db_table = 'exhibition_stall_rates'
        constraints = [
            models.UniqueConstraint(
                fields=['exhibition', 'stall_type'],
                name='unique_exhibition_stall_rate'
            ),
        ]

    def __str__(self):
        return f"{self.exhibition_id} / {self.stall_type_id}: {self.rate}"


class TaxConfig(models.Model):
    """Tax applied on the discounted booking total."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exhibition = models.ForeignKey(
        Exhibition,
        on_delete=models.CASCADE,
        related_name='taxes'
    )
    name = models.CharField(max_length=100)
    rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[validate_percentage]
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'exhibition_taxes'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.rate}%)"


class DiscountConfig(models.Model):
    """
    Named discount offered by an exhibition.

    Standard discounts are available to admin bookings, public discounts
    to exhibitor and public bookings.
    """

    class DiscountType(models.TextChoices):
        PERCENTAGE = 'percentage', 'Percentage'
        FIXED = 'fixed', 'Fixed Amount'

    class Audience(models.TextChoices):
        STANDARD = 'standard', 'Standard'
        PUBLIC = 'public', 'Public'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exhibition = models.ForeignKey(
        Exhibition,
        on_delete=models.CASCADE,
        related_name='discounts'
    )
    name = models.CharField(max_length=100)
    discount_type = models.CharField(
        max_length=20,
        choices=DiscountType.choices,
        default=DiscountType.PERCENTAGE
    )
    value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )
    audience = models.CharField(
        max_length=20,
        choices=Audience.choices,
        default=Audience.STANDARD
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'exhibition_discounts'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.discount_type} {self.value})"

    def clean(self):
        if self.discount_type == self.DiscountType.PERCENTAGE and self.value > 100:
            raise ValidationError({'value': 'Percentage discount cannot exceed 100'})


class Amenity(models.Model):
    """Extra amenity that can be ordered with a booking."""

    class AmenityType(models.TextChoices):
        FACILITY = 'facility', 'Facility'
        SERVICE = 'service', 'Service'
        EQUIPMENT = 'equipment', 'Equipment'
        FURNITURE = 'furniture', 'Furniture'
        OTHER = 'other', 'Other'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exhibition = models.ForeignKey(
        Exhibition,
        on_delete=models.CASCADE,
        related_name='amenities'
    )
    amenity_type = models.CharField(
        max_length=20,
        choices=AmenityType.choices,
        default=AmenityType.OTHER
    )
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default='')
    rate = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))]
    )

    class Meta:
        db_table = 'exhibition_amenities'
        ordering = ['name']
        verbose_name_plural = 'amenities'

    def __str__(self):
        return self.name


class BasicAmenity(models.Model):
    """
    Amenity included with every booking.

    The included quantity scales with booked area: ``per_sqm`` units per
    square meter.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exhibition = models.ForeignKey(
        Exhibition,
        on_delete=models.CASCADE,
        related_name='basic_amenities'
    )
    amenity_type = models.CharField(
        max_length=20,
        choices=Amenity.AmenityType.choices,
        default=Amenity.AmenityType.OTHER
    )
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, default='')
    per_sqm = models.DecimalField(
        max_digits=10,
        decimal_places=4,
        validators=[MinValueValidator(Decimal('0'))]
    )
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = 'exhibition_basic_amenities'
        ordering = ['name']
        verbose_name_plural = 'basic amenities'

    def __str__(self):
        return self.name

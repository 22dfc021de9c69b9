# services/booking-service/src/apps/core/models/stall_type.py
"""
Stall Type Model

Catalogue of stall categories with their default geometry and rate.
"""

import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class StallType(models.Model):
    """
    Stall type referenced by layout stalls.

    The default rate is interpreted according to ``rate_type`` when an
    exhibition does not override the rate for this type.
    """

    class Category(models.TextChoices):
        STANDARD = 'standard', 'Standard'
        PREMIUM = 'premium', 'Premium'
        CORNER = 'corner', 'Corner'
        ISLAND = 'island', 'Island'
        CUSTOM = 'custom', 'Custom'

    class RateType(models.TextChoices):
        PER_SQM = 'per_sqm', 'Per Square Meter'
        PER_STALL = 'per_stall', 'Per Stall'
        PER_DAY = 'per_day', 'Per Day'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, null=True)
    category = models.CharField(
        max_length=20,
        choices=Category.choices,
        default=Category.STANDARD
    )

    # Default geometry (meters)
    default_width = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=Decimal('3.00'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    default_height = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=Decimal('3.00'),
        validators=[MinValueValidator(Decimal('0'))]
    )

    color = models.CharField(max_length=20, default='#1890ff')

    # Pricing
    default_rate = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('100.00'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    rate_type = models.CharField(
        max_length=20,
        choices=RateType.choices,
        default=RateType.PER_SQM
    )

    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stall_types'
        ordering = ['sort_order', 'name']

    def __str__(self):
        return self.name

    @property
    def default_area(self) -> Decimal:
        """Default stall area in square meters."""
        return (self.default_width or Decimal('0')) * (self.default_height or Decimal('0'))

# services/booking-service/src/apps/core/models/invoice_sequence.py
"""
Invoice Sequence Model

Per-exhibition, per-year invoice counter.
"""

import uuid

from django.db import models


class InvoiceSequence(models.Model):
    """
    Last issued invoice sequence for an (exhibition, prefix, year).

    Rows are locked with ``select_for_update`` and incremented in place,
    so concurrent bookings never receive the same number.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exhibition = models.ForeignKey(
        'core.Exhibition',
        on_delete=models.CASCADE,
        related_name='invoice_sequences'
    )
    prefix = models.CharField(max_length=10)
    year = models.PositiveIntegerField()
    last_value = models.PositiveIntegerField(default=0)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'invoice_sequences'
        constraints = [
            models.UniqueConstraint(
                fields=['exhibition', 'prefix', 'year'],
                name='unique_invoice_sequence'
            ),
        ]

    def __str__(self):
        return f"{self.prefix}/{self.year}: {self.last_value}"

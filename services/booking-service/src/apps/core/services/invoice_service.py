# services/booking-service/src/apps/core/services/invoice_service.py
"""
Invoice Number Service

Issues invoice numbers of the form ``{prefix}/{year}/{NNNN}`` from an
atomic per-exhibition, per-year counter.
"""

import logging
from datetime import date
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.core.models import Booking, Exhibition, InvoiceSequence

logger = logging.getLogger(__name__)


class InvoiceNumberService:
    """
    Service for invoice numbering.

    Must be called inside the transaction that persists the booking, so a
    rolled back booking also rolls back its sequence number.
    """

    def get_prefix(self, exhibition: Exhibition) -> str:
        return exhibition.invoice_prefix or getattr(settings, 'DEFAULT_INVOICE_PREFIX', 'INV')

    @staticmethod
    def format_number(prefix: str, year: int, sequence: int) -> str:
        return f"{prefix}/{year}/{sequence:04d}"

    @transaction.atomic
    def next_invoice_number(self, exhibition: Exhibition, today: Optional[date] = None) -> str:
        """Allocate the next invoice number for the exhibition and year."""
        prefix = self.get_prefix(exhibition)
        year = (today or timezone.now().date()).year

        sequence = self._lock_sequence(exhibition, prefix, year)
        InvoiceSequence.objects.filter(pk=sequence.pk).update(last_value=F('last_value') + 1)
        sequence.refresh_from_db(fields=['last_value'])

        number = self.format_number(prefix, year, sequence.last_value)
        logger.info(f"Allocated invoice number {number} for exhibition {exhibition.id}")
        return number

    def _lock_sequence(self, exhibition: Exhibition, prefix: str, year: int) -> InvoiceSequence:
        queryset = InvoiceSequence.objects.select_for_update()
        try:
            return queryset.get(exhibition=exhibition, prefix=prefix, year=year)
        except InvoiceSequence.DoesNotExist:
            pass

        # First invoice of the year: continue after any numbers already issued
        issued = Booking.objects.filter(
            exhibition=exhibition,
            invoice_number__startswith=f"{prefix}/{year}/"
        ).count()

        try:
            with transaction.atomic():
                InvoiceSequence.objects.create(
                    exhibition=exhibition,
                    prefix=prefix,
                    year=year,
                    last_value=issued,
                )
        except IntegrityError:
            # Created concurrently, fall through to the locked read
            logger.debug(f"Invoice sequence for {prefix}/{year} created concurrently")

        return queryset.get(exhibition=exhibition, prefix=prefix, year=year)

# services/booking-service/src/apps/core/signals.py
"""
Django Signals for Booking Service

Handles post-save and post-delete signals for event publishing
and statistics cache invalidation.
"""

import logging
from django.db import transaction
from django.db.models.signals import post_save, post_delete, pre_save
from django.dispatch import receiver

from .models import Booking
from .events import (
    publish_booking_created,
    publish_booking_status_changed,
    publish_booking_deleted,
    publish_booking_payment_updated,
)

logger = logging.getLogger(__name__)


def _invalidate_stats(booking):
    from .services.booking_service import BookingService
    BookingService.invalidate_statistics(booking.exhibition_id)


# ==========================================================================
# Booking Signals
# ==========================================================================

@receiver(pre_save, sender=Booking)
def booking_pre_save(sender, instance, **kwargs):
    """Track status changes before save."""
    instance._old_status = None
    instance._old_payment_status = None

    if instance.pk:
        old = Booking.objects.filter(pk=instance.pk).values('status', 'payment_status').first()
        if old:
            instance._old_status = old['status']
            instance._old_payment_status = old['payment_status']


@receiver(post_save, sender=Booking)
def booking_post_save(sender, instance, created, **kwargs):
    """Handle booking post-save events."""
    transaction.on_commit(lambda: _invalidate_stats(instance))

    if created:
        transaction.on_commit(lambda: publish_booking_created(instance))
        logger.info(f"Booking created: {instance.booking_reference}")
        return

    old_status = getattr(instance, '_old_status', None)
    if old_status and old_status != instance.status:
        transaction.on_commit(lambda: publish_booking_status_changed(instance, old_status))
        logger.info(f"Booking {instance.status}: {instance.booking_reference}")

    old_payment_status = getattr(instance, '_old_payment_status', None)
    if old_payment_status and old_payment_status != instance.payment_status:
        transaction.on_commit(lambda: publish_booking_payment_updated(instance))


@receiver(post_delete, sender=Booking)
def booking_post_delete(sender, instance, **kwargs):
    """Handle booking deletion."""
    transaction.on_commit(lambda: _invalidate_stats(instance))
    transaction.on_commit(lambda: publish_booking_deleted(instance))
    logger.info(f"Booking deleted: {instance.booking_reference}")

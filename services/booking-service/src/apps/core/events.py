# services/booking-service/src/apps/core/events.py
"""
Booking Service Events

Event definitions and publishing for the booking service.
Integrates with the event bus for cross-service communication.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


class EventType:
    """Event type constants for booking service."""

    # Booking lifecycle events
    BOOKING_CREATED = 'booking.created'
    BOOKING_CONFIRMED = 'booking.confirmed'
    BOOKING_APPROVED = 'booking.approved'
    BOOKING_CANCELLED = 'booking.cancelled'
    BOOKING_REJECTED = 'booking.rejected'
    BOOKING_DELETED = 'booking.deleted'
    BOOKING_PAYMENT_UPDATED = 'booking.payment_updated'

    # Layout events
    STALL_STATUS_CHANGED = 'layout.stall_status_changed'
    STALL_RATES_REFRESHED = 'layout.stall_rates_refreshed'


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for event payloads."""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


class EventPublisher:
    """
    Event publisher for booking service.

    Publishes events to the message bus for consumption by other services
    (invoice rendering, notifications).
    """

    def __init__(self):
        self.service_name = getattr(settings, 'SERVICE_NAME', 'booking-service')
        self.published: List[Dict[str, Any]] = []

    @property
    def enabled(self) -> bool:
        return getattr(settings, 'EVENT_PUBLISHING_ENABLED', True)

    def publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        exhibition_id: UUID = None,
        correlation_id: str = None,
        metadata: Dict[str, Any] = None
    ) -> bool:
        """
        Publish an event to the message bus.

        Args:
            event_type: Type of event (e.g., 'booking.created')
            payload: Event data
            exhibition_id: Exhibition context
            correlation_id: Optional correlation ID for tracing
            metadata: Additional metadata

        Returns:
            True if published successfully, False otherwise
        """
        if not self.enabled:
            logger.debug(f"Event publishing disabled, skipping: {event_type}")
            return False

        event = {
            'event_type': event_type,
            'service': self.service_name,
            'timestamp': timezone.now().isoformat(),
            'exhibition_id': str(exhibition_id) if exhibition_id else None,
            'correlation_id': correlation_id,
            'payload': payload,
            'metadata': metadata or {},
        }

        try:
            event_json = json.dumps(event, cls=JSONEncoder)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize event {event_type}: {e}")
            return False

        logger.info(f"Publishing event: {event_type}", extra={
            'event_type': event_type,
            'exhibition_id': event['exhibition_id'],
        })

        return self._publish_to_backend(event_type, event_json)

    def _publish_to_backend(self, event_type: str, event_json: str) -> bool:
        """Publish to the configured message backend."""
        backend = getattr(settings, 'EVENT_BACKEND', 'log')

        if backend == 'redis':
            return self._publish_redis(event_type, event_json)
        if backend == 'memory':
            self.published.append(json.loads(event_json))
            return True

        logger.debug(f"Event payload: {event_json[:500]}")
        return True

    def _publish_redis(self, event_type: str, event_json: str) -> bool:
        """Publish to Redis pub/sub through the cache connection."""
        from django_redis import get_redis_connection
        from redis.exceptions import RedisError

        try:
            connection = get_redis_connection('default')
            prefix = getattr(settings, 'EVENT_CHANNEL_PREFIX', 'events')
            connection.publish(f"{prefix}:{event_type}", event_json)
            return True
        except RedisError as e:
            logger.error(f"Redis publish error: {e}")
            return False

    def clear(self):
        self.published.clear()


# Global event publisher instance
event_publisher = EventPublisher()


# Convenience functions for publishing specific events
def _booking_payload(booking) -> Dict[str, Any]:
    return {
        'booking_id': booking.id,
        'booking_reference': booking.booking_reference,
        'invoice_number': booking.invoice_number,
        'status': booking.status,
        'payment_status': booking.payment_status,
        'booking_source': booking.booking_source,
        'stall_ids': list(booking.stall_ids or []),
        'amount': booking.amount,
        'user_id': booking.user_id,
        'exhibitor_id': booking.exhibitor_id,
    }


def publish_booking_created(booking):
    """Publish booking created event."""
    event_publisher.publish(
        EventType.BOOKING_CREATED,
        payload=_booking_payload(booking),
        exhibition_id=booking.exhibition_id
    )


def publish_booking_status_changed(booking, old_status: str = None):
    """Publish the event matching the booking's new status."""
    event_type = {
        'confirmed': EventType.BOOKING_CONFIRMED,
        'approved': EventType.BOOKING_APPROVED,
        'cancelled': EventType.BOOKING_CANCELLED,
        'rejected': EventType.BOOKING_REJECTED,
    }.get(booking.status)

    if event_type is None:
        return

    payload = _booking_payload(booking)
    payload['previous_status'] = old_status

    if event_type == EventType.BOOKING_APPROVED:
        payload['approved_by'] = booking.approved_by
    elif event_type == EventType.BOOKING_CANCELLED:
        payload['cancelled_by'] = booking.cancelled_by
        payload['reason'] = booking.cancellation_reason
    elif event_type == EventType.BOOKING_REJECTED:
        payload['reason'] = booking.rejection_reason

    event_publisher.publish(event_type, payload=payload, exhibition_id=booking.exhibition_id)


def publish_booking_deleted(booking):
    """Publish booking deleted event."""
    event_publisher.publish(
        EventType.BOOKING_DELETED,
        payload=_booking_payload(booking),
        exhibition_id=booking.exhibition_id
    )


def publish_booking_payment_updated(booking):
    """Publish booking payment updated event."""
    payload = _booking_payload(booking)
    payload['payment_details'] = booking.payment_details
    event_publisher.publish(
        EventType.BOOKING_PAYMENT_UPDATED,
        payload=payload,
        exhibition_id=booking.exhibition_id
    )


def publish_stall_status_changed(exhibition_id: UUID, stall_ids: list, status: str, version: int):
    """Publish stall status change event."""
    event_publisher.publish(
        EventType.STALL_STATUS_CHANGED,
        payload={
            'stall_ids': stall_ids,
            'status': status,
            'layout_version': version,
        },
        exhibition_id=exhibition_id
    )


def publish_stall_rates_refreshed(exhibition_id: UUID, stall_ids: list, version: int):
    """Publish stall rate refresh event."""
    event_publisher.publish(
        EventType.STALL_RATES_REFRESHED,
        payload={
            'stall_ids': stall_ids,
            'layout_version': version,
        },
        exhibition_id=exhibition_id
    )

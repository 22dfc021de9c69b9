# services/booking-service/src/tests/conftest.py
"""
Pytest Configuration and Fixtures

Provides common fixtures for booking service tests.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def clear_cache_and_events():
    """Statistics cache and recorded events start empty for every test."""
    from apps.core.events import event_publisher

    cache.clear()
    event_publisher.clear()
    yield
    cache.clear()
    event_publisher.clear()


@pytest.fixture
def api_client():
    """Provide API client for testing."""
    return APIClient()


@pytest.fixture
def user_id():
    """Provide a test user ID."""
    return uuid.uuid4()


@pytest.fixture
def token_user(user_id):
    """Authenticated caller as produced by JWT authentication."""
    from shared.common.authentication import TokenUser

    return TokenUser({
        'sub': str(user_id),
        'email': 'organizer@example.com',
        'roles': ['admin'],
    })


@pytest.fixture
def auth_client(api_client, token_user):
    """API client authenticated as the test user."""
    api_client.force_authenticate(user=token_user)
    return api_client


@pytest.fixture
def current_year():
    return timezone.now().year


# =============================================================================
# Factory fixtures
# =============================================================================

@pytest.fixture
def create_stall_type():
    """Factory fixture for creating stall types."""
    from apps.core.models import StallType

    def _create_stall_type(**kwargs):
        defaults = {
            'name': 'Standard Stall',
            'category': StallType.Category.STANDARD,
            'default_width': Decimal('3.00'),
            'default_height': Decimal('3.00'),
            'default_rate': Decimal('100.00'),
            'rate_type': StallType.RateType.PER_SQM,
        }
        defaults.update(kwargs)

        return StallType.objects.create(**defaults)

    return _create_stall_type


@pytest.fixture
def create_exhibition():
    """Factory fixture for creating exhibitions."""
    from apps.core.models import Exhibition

    def _create_exhibition(**kwargs):
        defaults = {
            'name': 'Spring Trade Fair',
            'venue': 'Convention Centre',
            'start_date': date.today() + timedelta(days=30),
            'end_date': date.today() + timedelta(days=33),
            'status': Exhibition.Status.PUBLISHED,
            'is_active': True,
        }
        defaults.update(kwargs)

        return Exhibition.objects.create(**defaults)

    return _create_exhibition


def make_stall(stall_id, number, stall_type_id=None, status='available', **extra):
    """Layout stall document."""
    stall = {
        'id': stall_id,
        'number': number,
        'status': status,
        'position': {'x': 0, 'y': 0},
    }
    if stall_type_id:
        stall['stallType'] = str(stall_type_id)
    stall.update(extra)
    return stall


def make_spaces(stalls, hall_id='hall-1', space_id='space-1'):
    """Layout spaces document with a single hall."""
    return [{
        'id': space_id,
        'name': 'Ground Floor',
        'halls': [{
            'id': hall_id,
            'name': 'Hall A',
            'stalls': stalls,
        }],
    }]


@pytest.fixture
def stall_doc():
    """Builder for layout stall documents."""
    return make_stall


@pytest.fixture
def create_layout():
    """Factory fixture for creating layouts."""
    from apps.core.models import Layout

    def _create_layout(exhibition, stalls=None, **kwargs):
        defaults = {
            'exhibition': exhibition,
            'spaces': make_spaces(stalls or []),
            'fixtures': [{'id': 'fixture-1', 'name': 'Entrance', 'type': 'entrance'}],
        }
        defaults.update(kwargs)

        return Layout.objects.create(**defaults)

    return _create_layout


@pytest.fixture
def stall_type(create_stall_type):
    """Standard stall type at 100 per square meter."""
    return create_stall_type()


@pytest.fixture
def exhibition(create_exhibition):
    """Published, active exhibition with an invoice prefix."""
    return create_exhibition(invoice_prefix='EXPO')


@pytest.fixture
def layout(exhibition, stall_type, create_layout):
    """
    Layout with three stalls.

    A1: 150x100 px at 50 px/m, 3m x 2m = 6 sqm
    A2: explicit 4m x 3m = 12 sqm
    A3: already booked
    """
    return create_layout(exhibition, stalls=[
        make_stall('stall-a1', 'A1', stall_type.id, size={'width': 150, 'height': 100}),
        make_stall('stall-a2', 'A2', stall_type.id, dimensions={'width': 4, 'height': 3}),
        make_stall('stall-a3', 'A3', stall_type.id, status='booked', size={'width': 100, 'height': 100}),
    ])


@pytest.fixture
def gst(exhibition):
    """18% tax on the exhibition."""
    from apps.core.models import TaxConfig

    return TaxConfig.objects.create(exhibition=exhibition, name='GST', rate=Decimal('18.00'))


@pytest.fixture
def booking_payload(exhibition):
    """Factory for booking creation payloads (A1 + A2 unless overridden)."""

    def _booking_payload(**kwargs):
        payload = {
            'exhibition_id': str(exhibition.id),
            'stall_ids': ['stall-a1', 'stall-a2'],
            'customer_name': 'Asha Rao',
            'customer_email': 'asha@example.com',
            'customer_phone': '+919876543210',
            'customer_address': '12 MG Road, Bengaluru',
            'company_name': 'Rao Industries',
            'calculations': {'totalBaseAmount': 1800.0},
        }
        payload.update(kwargs)
        return payload

    return _booking_payload


@pytest.fixture
def create_booking(exhibition):
    """Factory fixture for creating booking rows directly."""
    from apps.core.models import Booking

    def _create_booking(**kwargs):
        defaults = {
            'exhibition': exhibition,
            'stall_ids': ['stall-a1'],
            'customer_name': 'Asha Rao',
            'customer_email': 'asha@example.com',
            'customer_phone': '+919876543210',
            'customer_address': '12 MG Road, Bengaluru',
            'company_name': 'Rao Industries',
            'amount': Decimal('600.00'),
            'calculations': {'totalBaseAmount': 600.0, 'totalAmount': 600.0},
            'status': Booking.Status.PENDING,
        }
        defaults.update(kwargs)

        return Booking.objects.create(**defaults)

    return _create_booking

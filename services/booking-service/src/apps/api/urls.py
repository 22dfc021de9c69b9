# services/booking-service/src/apps/api/urls.py
"""
Booking API URL Configuration

Defines all API routes for the booking service.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from shared.common.health import health_check
from .views import (
    BookingViewSet,
    ExhibitionViewSet,
)

app_name = 'api'

# Create router and register viewsets
router = DefaultRouter()
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'exhibitions', ExhibitionViewSet, basename='exhibition')

urlpatterns = [
    # Router URLs
    path('', include(router.urls)),

    # Liveness under the API prefix
    path('health/', health_check, name='health'),
]

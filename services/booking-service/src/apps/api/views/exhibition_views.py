# services/booking-service/src/apps/api/views/exhibition_views.py
"""
Exhibition API Views

Read access to exhibition layouts and stall availability, and the
stall rate refresh.
"""

import logging

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.core.services import (
    BookingServiceError,
    ExhibitionService,
    InventoryService,
)
from apps.api.serializers import ExhibitionSerializer
from .booking_views import request_user_id
from .errors import to_api_exception

logger = logging.getLogger(__name__)


class ExhibitionViewSet(viewsets.ViewSet):
    """
    ViewSet for exhibition layout and availability.

    Exhibitions are addressed by id or slug.
    """

    permission_classes = [IsAuthenticated]
    lookup_field = 'identifier'
    lookup_value_regex = '[^/]+'

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.exhibition_service = ExhibitionService()
        self.inventory_service = InventoryService()

    def retrieve(self, request, identifier=None):
        """Get an exhibition."""
        try:
            exhibition = self.exhibition_service.resolve(identifier)
        except BookingServiceError as e:
            raise to_api_exception(e)

        return Response(ExhibitionSerializer(exhibition).data)

    @action(detail=True, methods=['get'])
    def layout(self, request, identifier=None):
        """Get the layout with derived stall dimensions, areas and rates."""
        try:
            exhibition = self.exhibition_service.resolve(identifier)
            layout = self.inventory_service.get_layout_view(exhibition)
        except BookingServiceError as e:
            raise to_api_exception(e)

        return Response(layout)

    @action(detail=True, methods=['get'], url_path='stalls/available')
    def available_stalls(self, request, identifier=None):
        """List stalls that can be booked."""
        try:
            exhibition = self.exhibition_service.get_bookable(identifier)
            stalls = self.inventory_service.get_available_stalls(exhibition)
        except BookingServiceError as e:
            raise to_api_exception(e)

        return Response({
            'exhibition_id': str(exhibition.id),
            'count': len(stalls),
            'stalls': stalls,
        })

    @action(detail=True, methods=['post'], url_path='layout/refresh-rates')
    def refresh_rates(self, request, identifier=None):
        """Copy the exhibition's stall type rates onto its layout stalls."""
        try:
            exhibition = self.exhibition_service.resolve(identifier)
            updated = self.inventory_service.refresh_stall_rates(
                exhibition,
                updated_by=request_user_id(request),
            )
        except BookingServiceError as e:
            raise to_api_exception(e)

        logger.info(f"Stall rates refreshed for exhibition {exhibition.id}: {updated} stall(s)")

        return Response({
            'exhibition_id': str(exhibition.id),
            'updated_stalls': updated,
        })

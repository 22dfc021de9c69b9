# services/booking-service/src/apps/core/services/exhibition_service.py
"""
Exhibition Service

Exhibition lookup by id or slug.
"""

import logging
from typing import Union
from uuid import UUID

from apps.core.models import Exhibition
from shared.common.utils import is_valid_uuid

logger = logging.getLogger(__name__)


class ExhibitionService:
    """Service for resolving exhibitions."""

    def resolve(self, identifier: Union[str, UUID]) -> Exhibition:
        """Get an exhibition by UUID or slug."""
        from . import ExhibitionNotFoundError

        queryset = Exhibition.objects.prefetch_related('stall_rates')
        try:
            if is_valid_uuid(identifier):
                return queryset.get(id=identifier)
            return queryset.get(slug=str(identifier))
        except Exhibition.DoesNotExist:
            raise ExhibitionNotFoundError(f"Exhibition {identifier} not found")

    def get_bookable(self, identifier: Union[str, UUID]) -> Exhibition:
        """Get an exhibition that accepts bookings."""
        from . import ExhibitionNotBookableError

        exhibition = self.resolve(identifier)
        if not exhibition.is_bookable:
            raise ExhibitionNotBookableError(
                f"Exhibition {exhibition.name} is not available for booking"
            )
        return exhibition

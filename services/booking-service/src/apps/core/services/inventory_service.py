# services/booking-service/src/apps/core/services/inventory_service.py
"""
Inventory Service

Keeps stall status inside the exhibition layout in step with bookings,
and provides read projections of the layout for display.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.core.events import publish_stall_rates_refreshed, publish_stall_status_changed
from apps.core.layout_tree import LayoutTree, StallNode, StallStatus
from apps.core.models import Exhibition, Layout
from shared.common.utils import decimal_to_json, round2
from .pricing_service import calculate_stall_area, stall_dimensions
from .rate_service import RateResolver

logger = logging.getLogger(__name__)


class InventoryService:
    """
    Service for layout stall inventory.

    Handles:
    - Stall lookup inside the layout tree
    - Stall status synchronization
    - Stall rate refresh from exhibition overrides
    - Layout and availability projections

    Writes lock the layout row and bump its version; a version mismatch
    on write is retried.
    """

    def __init__(self, max_retries: int = None):
        if max_retries is None:
            max_retries = getattr(settings, 'LAYOUT_SYNC_MAX_RETRIES', 3)
        self.max_retries = max(1, max_retries)

    # ==========================================================================
    # Lookup
    # ==========================================================================

    def get_layout(self, exhibition: Exhibition) -> Layout:
        from . import LayoutNotFoundError

        try:
            return Layout.objects.get(exhibition=exhibition)
        except Layout.DoesNotExist:
            raise LayoutNotFoundError(f"Layout for exhibition {exhibition.id} not found")

    def find_stalls(
        self,
        exhibition: Exhibition,
        stall_ids: Iterable[str],
        layout: Layout = None
    ) -> List[StallNode]:
        """Resolve stall ids inside the exhibition layout, in request order."""
        from . import StallNotFoundError

        layout = layout or self.get_layout(exhibition)
        found, missing = layout.get_tree().find_stalls(stall_ids)

        if missing:
            raise StallNotFoundError(
                f"Stalls not found in layout: {', '.join(missing)}",
                stall_ids=missing
            )
        return found

    # ==========================================================================
    # Synchronization
    # ==========================================================================

    def set_stall_status(
        self,
        exhibition_id: uuid.UUID,
        stall_ids: Iterable[str],
        status: str,
        booking_id: Optional[uuid.UUID] = None,
        updated_by: Optional[uuid.UUID] = None,
        owner_id: Optional[uuid.UUID] = None
    ) -> int:
        """
        Set the status of stalls in the exhibition layout.

        Idempotent; ids missing from the layout are skipped, as are stalls
        held by a booking other than ``owner_id`` when it is given. Returns
        the number of stalls whose status changed.
        """
        stall_ids = [str(stall_id) for stall_id in stall_ids]
        booking_ref = str(booking_id) if booking_id else None
        owner_ref = str(owner_id) if owner_id else None

        def mutate(tree: LayoutTree) -> List[str]:
            return tree.set_stall_status(stall_ids, status, booking_id=booking_ref, owner_id=owner_ref)

        result = self._write_layout(exhibition_id, mutate, updated_by)
        if result is None:
            logger.warning(f"No layout for exhibition {exhibition_id}, stall sync skipped")
            return 0

        changed, version = result
        if changed:
            logger.info(
                f"Set {len(changed)} stall(s) to {status} in exhibition {exhibition_id} "
                f"(layout v{version})"
            )
            transaction.on_commit(
                lambda: publish_stall_status_changed(exhibition_id, changed, status, version)
            )

        skipped = len(stall_ids) - len(changed)
        if skipped:
            logger.debug(f"{skipped} stall(s) unchanged or not in layout for exhibition {exhibition_id}")

        return len(changed)

    def refresh_stall_rates(self, exhibition: Exhibition, updated_by: Optional[uuid.UUID] = None) -> int:
        """Apply the exhibition's rate overrides to every matching stall."""
        overrides = exhibition.rate_overrides

        def mutate(tree: LayoutTree) -> List[str]:
            changed = []
            for stall in tree.iter_stalls():
                if stall.stall_type and stall.stall_type in overrides:
                    if tree.set_stall_rate(stall.id, round2(overrides[stall.stall_type])):
                        changed.append(stall.id)
            return changed

        result = self._write_layout(exhibition.id, mutate, updated_by)
        if result is None:
            from . import LayoutNotFoundError
            raise LayoutNotFoundError(f"Layout for exhibition {exhibition.id} not found")

        changed, version = result
        if changed:
            logger.info(f"Refreshed rates of {len(changed)} stall(s) in exhibition {exhibition.id}")
            transaction.on_commit(
                lambda: publish_stall_rates_refreshed(exhibition.id, changed, version)
            )
        return len(changed)

    def _write_layout(self, exhibition_id, mutate, updated_by=None):
        """
        Locked read-modify-write of a layout tree.

        Returns (changed_ids, version) or None when the exhibition has no
        layout.
        """
        from . import LayoutConcurrencyError

        for attempt in range(1, self.max_retries + 1):
            with transaction.atomic():
                layout = (
                    Layout.objects
                    .select_for_update()
                    .filter(exhibition_id=exhibition_id)
                    .first()
                )
                if layout is None:
                    return None

                tree = layout.get_tree()
                changed = mutate(tree)
                if not changed:
                    return [], layout.version

                updated = Layout.objects.filter(
                    pk=layout.pk,
                    version=layout.version
                ).update(
                    spaces=tree.spaces_json(),
                    version=F('version') + 1,
                    updated_by=updated_by or layout.updated_by,
                    updated_at=timezone.now(),
                )
                if updated:
                    return changed, layout.version + 1

            logger.warning(
                f"Layout version conflict for exhibition {exhibition_id}, "
                f"attempt {attempt}/{self.max_retries}"
            )

        raise LayoutConcurrencyError(
            f"Layout for exhibition {exhibition_id} changed concurrently, please retry"
        )

    # ==========================================================================
    # Projections
    # ==========================================================================

    def describe_stall(self, stall: StallNode, resolver: RateResolver) -> Dict[str, Any]:
        """Stall with derived dimensions, area, type name and corrected rate."""
        dimensions = stall_dimensions(stall)
        stall_type = resolver.get_stall_type(stall.stall_type)

        data = stall.to_json()
        data.update({
            'dimensions': dimensions.to_json(),
            'area': decimal_to_json(round2(calculate_stall_area(dimensions))),
            'ratePerSqm': decimal_to_json(resolver.effective_rate(stall.rate_per_sqm, stall.stall_type)),
            'stallTypeName': stall_type.name if stall_type else 'Standard Stall',
        })
        return data

    def get_layout_view(self, exhibition: Exhibition) -> Dict[str, Any]:
        layout = self.get_layout(exhibition)
        tree = layout.get_tree()
        resolver = RateResolver(exhibition)
        resolver.prefetch(stall.stall_type for stall in tree.iter_stalls())

        spaces = []
        for space in tree.spaces:
            space_data = space.to_json()
            space_data['halls'] = [
                {
                    **hall.to_json(),
                    'stalls': [self.describe_stall(stall, resolver) for stall in hall.stalls],
                }
                for hall in space.halls
            ]
            spaces.append(space_data)

        return {
            'id': str(layout.id),
            'exhibition_id': str(exhibition.id),
            'name': layout.name,
            'canvas': layout.canvas,
            'settings': layout.settings,
            'spaces': spaces,
            'fixtures': tree.fixtures_json(),
            'version': layout.version,
            'is_active': layout.is_active,
        }

    def get_available_stalls(self, exhibition: Exhibition) -> List[Dict[str, Any]]:
        layout = self.get_layout(exhibition)
        tree = layout.get_tree()
        resolver = RateResolver(exhibition)

        available = []
        for stall in tree.iter_stalls():
            if stall.status != StallStatus.AVAILABLE:
                continue
            space, hall, _ = tree.locate_stall(stall.id)
            data = self.describe_stall(stall, resolver)
            data['spaceId'] = space.id
            data['hallId'] = hall.id
            data['hallName'] = hall.name
            available.append(data)
        return available

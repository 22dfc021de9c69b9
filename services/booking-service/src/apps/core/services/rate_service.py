# services/booking-service/src/apps/core/services/rate_service.py
"""
Rate Service

Resolves the per-square-meter rate of a stall from the exhibition's rate
overrides and the stall type defaults.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from apps.core.models import Exhibition, StallType
from shared.common.utils import is_valid_uuid, round2, to_decimal

logger = logging.getLogger(__name__)


def is_valid_rate(value: Any) -> bool:
    """A rate is invalid if absent, not a finite number, or not positive."""
    rate = to_decimal(value)
    return rate is not None and rate > 0


class RateResolver:
    """
    Rate resolution for the stalls of one exhibition.

    Resolution order:
    1. Exhibition override for the stall type, used as-is.
    2. Stall type default rate, adjusted by rate type:
       per_sqm as-is, per_stall divided by the default area,
       per_day as-is.
    3. Unknown stall type resolves to 0.

    Overrides and stall types are loaded once per resolver.
    """

    def __init__(self, exhibition: Optional[Exhibition] = None, overrides: Dict[str, Decimal] = None):
        if overrides is None:
            overrides = exhibition.rate_overrides if exhibition is not None else {}
        self.overrides = {str(key): value for key, value in overrides.items()}
        self._stall_types: Dict[str, Optional[StallType]] = {}

    # ==========================================================================
    # Stall types
    # ==========================================================================

    def prefetch(self, stall_type_ids: Iterable[str]):
        """Load several stall types in one query."""
        wanted = {
            str(type_id) for type_id in stall_type_ids
            if type_id and str(type_id) not in self._stall_types
        }
        valid = [type_id for type_id in wanted if is_valid_uuid(type_id)]

        for stall_type in StallType.objects.filter(id__in=valid):
            self._stall_types[str(stall_type.id)] = stall_type

        for type_id in wanted:
            self._stall_types.setdefault(type_id, None)

    def get_stall_type(self, stall_type_id: Optional[str]) -> Optional[StallType]:
        if not stall_type_id:
            return None
        key = str(stall_type_id)
        if key not in self._stall_types:
            self.prefetch([key])
        return self._stall_types[key]

    # ==========================================================================
    # Resolution
    # ==========================================================================

    def resolve(self, stall_type_id: Optional[str]) -> Decimal:
        """Resolve the per-square-meter rate for a stall type."""
        if stall_type_id and str(stall_type_id) in self.overrides:
            return round2(self.overrides[str(stall_type_id)])

        stall_type = self.get_stall_type(stall_type_id)
        if stall_type is None:
            if stall_type_id:
                logger.warning(f"Stall type {stall_type_id} not found, rate resolved to 0")
            return round2(0)

        return round2(self.convert_default_rate(stall_type))

    @staticmethod
    def convert_default_rate(stall_type: StallType) -> Decimal:
        rate = Decimal(stall_type.default_rate or 0)

        if stall_type.rate_type == StallType.RateType.PER_STALL:
            area = stall_type.default_area
            if area > 0:
                return rate / area
            return rate

        # per_sqm is already per area; per_day has no day-count conversion
        return rate

    def effective_rate(self, stored_rate: Any, stall_type_id: Optional[str]) -> Decimal:
        """Stored stall rate when valid, otherwise a freshly resolved one."""
        if is_valid_rate(stored_rate):
            return round2(to_decimal(stored_rate))
        return self.resolve(stall_type_id)

# shared/common/utils.py
"""
Common Utility Functions
"""

import uuid
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional, Union
import logging

logger = logging.getLogger(__name__)

# =============================================================================
# UUID UTILITIES
# =============================================================================

def is_valid_uuid(value: Any) -> bool:
    """Check if value is a valid UUID"""
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, AttributeError, TypeError):
        return False

# =============================================================================
# NUMBER UTILITIES
# =============================================================================

def to_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Convert a number-like value to Decimal.

    Returns ``default`` for None, empty strings, non-numeric input and
    non-finite values (NaN, infinity).
    """
    if value is None or value == '' or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            return default
    if not result.is_finite():
        return default
    return result

def round_decimal(value: Union[Decimal, float, int], places: int = 2) -> Decimal:
    """Round half-up to specified decimal places"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP)

def round2(value: Union[Decimal, float, int]) -> Decimal:
    """Round a monetary value to cents"""
    return round_decimal(value, 2)

def decimal_to_json(value: Optional[Decimal]) -> Optional[float]:
    """Render a rounded Decimal as a JSON number"""
    if value is None:
        return None
    return float(value)

# =============================================================================
# DICT / LIST UTILITIES
# =============================================================================

def unique(lst: List) -> List:
    """Return unique items while preserving order"""
    seen = set()
    return [x for x in lst if not (x in seen or seen.add(x))]

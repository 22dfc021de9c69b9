"""
Shared Validators Module.

Common validation utilities used across all microservices.
"""
import re
from decimal import Decimal
from typing import List

from django.core.exceptions import ValidationError


# =============================================================================
# STRING VALIDATORS
# =============================================================================

def validate_phone_number(value: str, field_name: str = "phone") -> str:
    """Validate phone number format."""
    cleaned = re.sub(r'[^\d+]', '', value or '')

    if not cleaned:
        raise ValidationError(f"{field_name} is required")

    # Basic validation: 10-15 digits, optionally starting with +
    pattern = r'^\+?\d{10,15}$'
    if not re.match(pattern, cleaned):
        raise ValidationError(f"Invalid {field_name} format")

    return cleaned


def validate_gstin(value: str, field_name: str = "GSTIN") -> str:
    """Validate an Indian GST identification number."""
    if not value:
        return value
    pattern = r'^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$'
    if not re.match(pattern, value.upper()):
        raise ValidationError(f"Invalid {field_name} format")
    return value.upper()


def validate_pan(value: str, field_name: str = "PAN") -> str:
    """Validate an Indian permanent account number."""
    if not value:
        return value
    if not re.match(r'^[A-Z]{5}[0-9]{4}[A-Z]$', value.upper()):
        raise ValidationError(f"Invalid {field_name} format")
    return value.upper()


def validate_invoice_prefix(value: str, field_name: str = "invoice prefix") -> str:
    """Validate an invoice prefix (letters, digits and hyphens, max 10)."""
    if len(value) > 10:
        raise ValidationError(f"{field_name} cannot be longer than 10 characters")
    if not re.match(r'^[A-Za-z0-9-]*$', value):
        raise ValidationError(f"{field_name} may only contain letters, numbers and hyphens")
    return value


# =============================================================================
# NUMBER VALIDATORS
# =============================================================================

def validate_percentage(value: Decimal, field_name: str = "percentage") -> Decimal:
    """Validate a percentage value (0-100)."""
    value = Decimal(str(value))

    if value < 0 or value > 100:
        raise ValidationError(f"{field_name} must be between 0 and 100")

    return value


# =============================================================================
# LIST VALIDATORS
# =============================================================================

def validate_unique_list(value: List, field_name: str = "list") -> List:
    """Validate that a list has unique values."""
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field_name} must be a list")

    if len(value) != len(set(value)):
        raise ValidationError(f"{field_name} must contain unique values")

    return list(value)

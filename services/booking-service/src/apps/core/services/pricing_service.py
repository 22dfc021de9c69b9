# services/booking-service/src/apps/core/services/pricing_service.py
"""
Pricing Service

Stall area calculation and booking pricing: per-stall base amounts,
discounts, taxes and amenities, plus the check of the client-submitted
calculation against the server result.

Pricing never raises for business rule failures; it returns a
PricingResult carrying an error kind that the caller maps to its own
error handling.
"""

import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings

from apps.core.layout_tree import StallDimensions, StallNode, StallStatus
from apps.core.models import Booking, DiscountConfig, Exhibition
from shared.common.utils import decimal_to_json, round2, to_decimal
from .rate_service import RateResolver

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def pixels_per_meter() -> Decimal:
    return Decimal(str(getattr(settings, 'STALL_PIXELS_PER_METER', 50)))


# =============================================================================
# Area Calculator
# =============================================================================

def calculate_stall_area(dimensions: Optional[StallDimensions]) -> Decimal:
    """
    Area in square meters.

    Rectangles are width * height. L-shapes are the sum of their two
    rectangles; an L-shape without rectangle data falls back to
    width * height. Missing dimensions give 0.
    """
    if dimensions is None:
        return ZERO

    if dimensions.shape_type == StallDimensions.L_SHAPE and dimensions.l_shape is not None:
        l_shape = dimensions.l_shape
        area = (
            l_shape.rect1_width * l_shape.rect1_height
            + l_shape.rect2_width * l_shape.rect2_height
        )
    else:
        area = dimensions.width * dimensions.height

    return max(area, ZERO)


def stall_dimensions(stall: StallNode) -> StallDimensions:
    """
    Real-world dimensions of a stall.

    Explicit dimensions win; otherwise they are derived from the pixel
    size at the configured pixels-per-meter ratio. A stall without a size
    counts as one meter square.
    """
    if stall.dimensions is not None:
        return stall.dimensions

    ratio = pixels_per_meter()
    width = stall.size.width if stall.size and stall.size.width else ratio
    height = stall.size.height if stall.size and stall.size.height else ratio
    shape_type = stall.raw.get('shapeType') or StallDimensions.RECTANGLE

    return StallDimensions(
        width=width / ratio,
        height=height / ratio,
        shape_type=shape_type,
    )


# =============================================================================
# Results
# =============================================================================

class PricingErrorKind(enum.Enum):
    FORBIDDEN = 'forbidden'
    BAD_REQUEST = 'bad_request'


@dataclass
class PricedStall:
    stall_id: str
    number: str
    stall_type_id: Optional[str]
    dimensions: StallDimensions
    area: Decimal
    rate_per_sqm: Decimal
    base_amount: Decimal
    discount: Optional[Dict[str, Any]] = None
    discount_amount: Decimal = ZERO

    @property
    def amount_after_discount(self) -> Decimal:
        return round2(self.base_amount - self.discount_amount)

    def to_json(self) -> Dict[str, Any]:
        return {
            'stallId': self.stall_id,
            'number': self.number,
            'stallTypeId': self.stall_type_id,
            'area': decimal_to_json(round2(self.area)),
            'ratePerSqm': decimal_to_json(self.rate_per_sqm),
            'baseAmount': decimal_to_json(self.base_amount),
            'discount': self.discount,
            'amountAfterDiscount': decimal_to_json(self.amount_after_discount),
            'dimensions': self.dimensions.to_json(),
        }


@dataclass
class PricingResult:
    ok: bool
    calculation: Dict[str, Any] = field(default_factory=dict)
    total_amount: Decimal = ZERO
    total_area: Decimal = ZERO
    basic_amenities: List[Dict[str, Any]] = field(default_factory=list)
    extra_amenities: List[Dict[str, Any]] = field(default_factory=list)
    error_kind: Optional[PricingErrorKind] = None
    message: str = ''
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, kind: PricingErrorKind, message: str, **details) -> 'PricingResult':
        return cls(ok=False, error_kind=kind, message=message, details=details)


# =============================================================================
# Pricing Engine
# =============================================================================

class PricingService:
    """
    Service for pricing bookings.

    Handles:
    - Per-stall base amounts
    - Percentage and fixed discounts
    - Tax aggregation
    - Basic and extra amenities
    - Client calculation check
    """

    def __init__(self, tolerance: Decimal = None):
        if tolerance is None:
            tolerance = Decimal(str(getattr(settings, 'PRICING_TOLERANCE', '0.01')))
        self.tolerance = tolerance

    def price_booking(
        self,
        exhibition: Exhibition,
        stalls: List[StallNode],
        requested_amenities: List[Dict[str, Any]] = None,
        client_calculation: Dict[str, Any] = None,
        selected_discount: Optional[str] = None,
        booking_source: str = Booking.BookingSource.ADMIN,
        rate_resolver: RateResolver = None,
    ) -> PricingResult:
        """
        Price a booking and check it against the client calculation.

        ``stalls`` are layout stalls already resolved for the exhibition.
        """
        if not exhibition.is_bookable:
            return PricingResult.failure(
                PricingErrorKind.FORBIDDEN,
                'Exhibition is not available for booking',
            )

        if not stalls:
            return PricingResult.failure(
                PricingErrorKind.BAD_REQUEST,
                'At least one stall must be selected',
            )

        unavailable = [stall.number for stall in stalls if stall.status != StallStatus.AVAILABLE]
        if unavailable:
            return PricingResult.failure(
                PricingErrorKind.BAD_REQUEST,
                f"Stalls {', '.join(unavailable)} are not available",
                stall_numbers=unavailable,
            )

        resolver = rate_resolver or RateResolver(exhibition)
        priced = self.calculate_stall_charges(stalls, resolver)
        total_base_amount = round2(sum((p.base_amount for p in priced), ZERO))

        # Server is the source of truth for the base amount
        mismatch = self.check_client_total(total_base_amount, client_calculation)
        if mismatch is not None:
            return mismatch

        discount = None
        if selected_discount:
            discount = self.resolve_discount(exhibition, selected_discount, booking_source)
            if discount is None:
                return PricingResult.failure(
                    PricingErrorKind.BAD_REQUEST,
                    f"Discount '{selected_discount}' is not available",
                )
            self.apply_discount(priced, discount)

        total_discount_amount = round2(sum((p.discount_amount for p in priced), ZERO))
        total_after_discount = round2(sum((p.amount_after_discount for p in priced), ZERO))

        taxes = self.calculate_taxes(exhibition, total_after_discount)
        total_tax_amount = round2(sum((Decimal(str(t['amount'])) for t in taxes), ZERO))
        total_amount = round2(total_after_discount + total_tax_amount)

        total_area = sum((p.area for p in priced), ZERO)
        basic_amenities = self.calculate_basic_amenities(exhibition, total_area)

        extra_amenities = self.price_extra_amenities(exhibition, requested_amenities or [])
        if isinstance(extra_amenities, PricingResult):
            return extra_amenities

        calculation = {
            'stalls': [p.to_json() for p in priced],
            'totalBaseAmount': decimal_to_json(total_base_amount),
            'totalDiscountAmount': decimal_to_json(total_discount_amount),
            'totalAmountAfterDiscount': decimal_to_json(total_after_discount),
            'taxes': taxes,
            'totalTaxAmount': decimal_to_json(total_tax_amount),
            'totalAmount': decimal_to_json(total_amount),
        }

        return PricingResult(
            ok=True,
            calculation=calculation,
            total_amount=total_amount,
            total_area=total_area,
            basic_amenities=basic_amenities,
            extra_amenities=extra_amenities,
        )

    # ==========================================================================
    # Steps
    # ==========================================================================

    def calculate_stall_charges(self, stalls: List[StallNode], resolver: RateResolver) -> List[PricedStall]:
        resolver.prefetch(stall.stall_type for stall in stalls)

        priced = []
        for stall in stalls:
            dimensions = stall_dimensions(stall)
            area = calculate_stall_area(dimensions)
            rate = resolver.effective_rate(stall.rate_per_sqm, stall.stall_type)
            priced.append(PricedStall(
                stall_id=stall.id,
                number=stall.number,
                stall_type_id=stall.stall_type,
                dimensions=dimensions,
                area=area,
                rate_per_sqm=rate,
                base_amount=round2(area * rate),
            ))
        return priced

    def check_client_total(
        self,
        total_base_amount: Decimal,
        client_calculation: Optional[Dict[str, Any]]
    ) -> Optional[PricingResult]:
        received = to_decimal((client_calculation or {}).get('totalBaseAmount'))

        if received is None or abs(total_base_amount - received) > self.tolerance:
            logger.warning(
                f"Calculation mismatch: expected {total_base_amount}, received {received}"
            )
            return PricingResult.failure(
                PricingErrorKind.BAD_REQUEST,
                f"Calculation mismatch. Expected: {total_base_amount}, Received: {received}",
                expected=total_base_amount,
                received=received,
            )
        return None

    def resolve_discount(
        self,
        exhibition: Exhibition,
        name: str,
        booking_source: str
    ) -> Optional[DiscountConfig]:
        """Find an active discount by name for the booking source's audience."""
        audience = (
            DiscountConfig.Audience.STANDARD
            if booking_source == Booking.BookingSource.ADMIN
            else DiscountConfig.Audience.PUBLIC
        )
        return exhibition.discounts.filter(
            name=name,
            audience=audience,
            is_active=True,
        ).first()

    def apply_discount(self, priced: List[PricedStall], discount: DiscountConfig):
        """Apply a discount across the priced stalls in place."""
        value = Decimal(discount.value)
        snapshot = {
            'name': discount.name,
            'type': discount.discount_type,
            'value': decimal_to_json(value),
        }

        if discount.discount_type == DiscountConfig.DiscountType.PERCENTAGE:
            percentage = min(max(value, ZERO), Decimal('100'))
            for stall in priced:
                stall.discount_amount = round2(stall.base_amount * percentage / 100)
        else:
            self._distribute_fixed_discount(priced, value)

        for stall in priced:
            stall.discount = {**snapshot, 'amount': decimal_to_json(stall.discount_amount)}

    def _distribute_fixed_discount(self, priced: List[PricedStall], value: Decimal):
        """
        Split a fixed discount proportionally to each stall's base amount.

        Each share is capped at its stall's base amount and rounded; the
        leftover cent differences go to the largest stalls first so the
        shares add up to min(value, total).
        """
        total = sum((stall.base_amount for stall in priced), ZERO)
        if total <= 0 or value <= 0:
            return

        for stall in priced:
            share = stall.base_amount / total * value
            stall.discount_amount = round2(min(share, stall.base_amount))

        target = round2(min(value, total))
        residual = target - sum((stall.discount_amount for stall in priced), ZERO)
        cent = Decimal('0.01')

        for stall in sorted(priced, key=lambda s: s.base_amount, reverse=True):
            while residual > 0 and stall.discount_amount + cent <= stall.base_amount:
                stall.discount_amount += cent
                residual -= cent
            while residual < 0 and stall.discount_amount - cent >= 0:
                stall.discount_amount -= cent
                residual += cent
            if residual == 0:
                break

    def calculate_taxes(self, exhibition: Exhibition, amount: Decimal) -> List[Dict[str, Any]]:
        taxes = []
        for tax in exhibition.taxes.filter(is_active=True):
            rate = Decimal(tax.rate)
            taxes.append({
                'name': tax.name,
                'rate': decimal_to_json(rate),
                'amount': decimal_to_json(round2(amount * rate / 100)),
            })
        return taxes

    def calculate_basic_amenities(self, exhibition: Exhibition, total_area: Decimal) -> List[Dict[str, Any]]:
        """Included amenities, scaled by total booked area (not floored)."""
        amenities = []
        for amenity in exhibition.basic_amenities.all():
            amenities.append({
                'name': amenity.name,
                'type': amenity.amenity_type,
                'perSqm': decimal_to_json(Decimal(amenity.per_sqm)),
                'quantity': amenity.quantity,
                'calculatedQuantity': decimal_to_json(round2(total_area * Decimal(amenity.per_sqm))),
                'description': amenity.description,
            })
        return amenities

    def price_extra_amenities(self, exhibition: Exhibition, requested: List[Dict[str, Any]]):
        """
        Price requested extra amenities from the exhibition's amenity list.

        Returns the priced list, or a failed PricingResult for unknown ids
        or invalid quantities.
        """
        if not requested:
            return []

        available = {str(amenity.id): amenity for amenity in exhibition.amenities.all()}
        priced = []
        for item in requested:
            amenity = available.get(str(item.get('id')))
            if amenity is None:
                return PricingResult.failure(
                    PricingErrorKind.BAD_REQUEST,
                    f"Amenity {item.get('id')} is not offered by this exhibition",
                )

            quantity = item.get('quantity', 1)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
                return PricingResult.failure(
                    PricingErrorKind.BAD_REQUEST,
                    f"Invalid quantity for amenity {amenity.name}",
                )

            rate = Decimal(amenity.rate)
            priced.append({
                'id': str(amenity.id),
                'name': amenity.name,
                'type': amenity.amenity_type,
                'rate': decimal_to_json(rate),
                'quantity': quantity,
                'totalAmount': decimal_to_json(round2(rate * quantity)),
                'description': amenity.description,
            })
        return priced

# services/booking-service/src/apps/core/layout_tree.py
"""
Layout Tree

Typed view over the JSON document stored on a Layout: spaces contain
halls, halls contain stalls. Fixtures sit beside the spaces.

Nodes keep every key they were parsed from, so writing a tree back only
changes the fields that were mutated.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from django.db import models

from shared.common.utils import to_decimal


class StallStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    RESERVED = 'reserved', 'Reserved'
    BOOKED = 'booked', 'Booked'
    BLOCKED = 'blocked', 'Blocked'
    MAINTENANCE = 'maintenance', 'Maintenance'


class LayoutValidationError(ValueError):
    """Layout document does not have the expected shape."""
    pass


def _to_number(value: Decimal):
    """Render a Decimal back into a JSON number."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# =============================================================================
# Geometry
# =============================================================================

@dataclass
class Size:
    width: Decimal
    height: Decimal

    @classmethod
    def parse(cls, data: Any) -> Optional['Size']:
        if not isinstance(data, dict):
            return None
        return cls(
            width=to_decimal(data.get('width'), Decimal('0')),
            height=to_decimal(data.get('height'), Decimal('0')),
        )


@dataclass
class LShape:
    rect1_width: Decimal
    rect1_height: Decimal
    rect2_width: Decimal
    rect2_height: Decimal

    @classmethod
    def parse(cls, data: Any) -> Optional['LShape']:
        if not isinstance(data, dict):
            return None
        return cls(
            rect1_width=to_decimal(data.get('rect1Width'), Decimal('0')),
            rect1_height=to_decimal(data.get('rect1Height'), Decimal('0')),
            rect2_width=to_decimal(data.get('rect2Width'), Decimal('0')),
            rect2_height=to_decimal(data.get('rect2Height'), Decimal('0')),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'rect1Width': _to_number(self.rect1_width),
            'rect1Height': _to_number(self.rect1_height),
            'rect2Width': _to_number(self.rect2_width),
            'rect2Height': _to_number(self.rect2_height),
        }


@dataclass
class StallDimensions:
    """Stall geometry in meters."""

    RECTANGLE = 'rectangle'
    L_SHAPE = 'l-shape'

    width: Decimal
    height: Decimal
    shape_type: str = RECTANGLE
    l_shape: Optional[LShape] = None

    @classmethod
    def parse(cls, data: Any) -> Optional['StallDimensions']:
        if not isinstance(data, dict):
            return None
        return cls(
            width=to_decimal(data.get('width'), Decimal('0')),
            height=to_decimal(data.get('height'), Decimal('0')),
            shape_type=data.get('shapeType') or cls.RECTANGLE,
            l_shape=LShape.parse(data.get('lShape')),
        )

    def to_json(self) -> Dict[str, Any]:
        data = {
            'width': _to_number(self.width),
            'height': _to_number(self.height),
            'shapeType': self.shape_type,
        }
        if self.l_shape is not None:
            data['lShape'] = self.l_shape.to_json()
        return data


# =============================================================================
# Nodes
# =============================================================================

@dataclass
class StallNode:
    id: str
    number: str
    status: str
    stall_type: Optional[str] = None
    rate_per_sqm: Any = None
    size: Optional[Size] = None
    dimensions: Optional[StallDimensions] = None
    booking_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def parse(cls, data: Any) -> 'StallNode':
        if not isinstance(data, dict) or not data.get('id'):
            raise LayoutValidationError('Stall entries must be objects with an id')

        status = data.get('status') or StallStatus.AVAILABLE
        if status not in StallStatus.values:
            raise LayoutValidationError(f"Stall {data['id']} has unknown status '{status}'")

        stall_type = data.get('stallType')
        if isinstance(stall_type, dict):
            stall_type = stall_type.get('id')

        return cls(
            id=str(data['id']),
            number=str(data.get('number') or data['id']),
            status=status,
            stall_type=str(stall_type) if stall_type else None,
            rate_per_sqm=data.get('ratePerSqm'),
            size=Size.parse(data.get('size')),
            dimensions=StallDimensions.parse(data.get('dimensions')),
            booking_id=data.get('bookingId'),
            raw=dict(data),
        )

    def to_json(self) -> Dict[str, Any]:
        data = dict(self.raw)
        data['id'] = self.id
        data['number'] = self.number
        data['status'] = self.status
        if self.rate_per_sqm is not None:
            data['ratePerSqm'] = self.rate_per_sqm
        if self.booking_id:
            data['bookingId'] = self.booking_id
        else:
            data.pop('bookingId', None)
        if self.dimensions is not None:
            data['dimensions'] = self.dimensions.to_json()
        return data


@dataclass
class HallNode:
    id: str
    name: str
    stalls: List[StallNode] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def parse(cls, data: Any) -> 'HallNode':
        if not isinstance(data, dict) or not data.get('id'):
            raise LayoutValidationError('Hall entries must be objects with an id')
        stalls = data.get('stalls') or []
        if not isinstance(stalls, list):
            raise LayoutValidationError(f"Hall {data['id']} stalls must be a list")
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            stalls=[StallNode.parse(stall) for stall in stalls],
            raw=dict(data),
        )

    def to_json(self) -> Dict[str, Any]:
        data = dict(self.raw)
        data['stalls'] = [stall.to_json() for stall in self.stalls]
        return data


@dataclass
class SpaceNode:
    id: str
    name: str
    halls: List[HallNode] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def parse(cls, data: Any) -> 'SpaceNode':
        if not isinstance(data, dict) or not data.get('id'):
            raise LayoutValidationError('Space entries must be objects with an id')
        halls = data.get('halls') or []
        if not isinstance(halls, list):
            raise LayoutValidationError(f"Space {data['id']} halls must be a list")
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            halls=[HallNode.parse(hall) for hall in halls],
            raw=dict(data),
        )

    def to_json(self) -> Dict[str, Any]:
        data = dict(self.raw)
        data['halls'] = [hall.to_json() for hall in self.halls]
        return data


@dataclass
class FixtureNode:
    id: str
    name: str
    fixture_type: str
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def parse(cls, data: Any) -> 'FixtureNode':
        if not isinstance(data, dict) or not data.get('id'):
            raise LayoutValidationError('Fixture entries must be objects with an id')
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            fixture_type=data.get('type', 'custom'),
            raw=dict(data),
        )

    def to_json(self) -> Dict[str, Any]:
        return dict(self.raw)


# =============================================================================
# Tree
# =============================================================================

class LayoutTree:
    """
    Parsed layout document.

    Stall lookups go through an id index built once at parse time; stall
    ids are unique within a layout.
    """

    def __init__(self, spaces: List[SpaceNode], fixtures: List[FixtureNode] = None):
        self.spaces = spaces
        self.fixtures = fixtures or []
        self._index: Dict[str, Tuple[SpaceNode, HallNode, StallNode]] = {}

        for space, hall, stall in self._walk():
            if stall.id in self._index:
                raise LayoutValidationError(f"Duplicate stall id {stall.id}")
            self._index[stall.id] = (space, hall, stall)

    @classmethod
    def from_json(cls, spaces: Any, fixtures: Any = None) -> 'LayoutTree':
        if spaces is None:
            spaces = []
        if not isinstance(spaces, list):
            raise LayoutValidationError('Layout spaces must be a list')
        if fixtures is not None and not isinstance(fixtures, list):
            raise LayoutValidationError('Layout fixtures must be a list')

        return cls(
            spaces=[SpaceNode.parse(space) for space in spaces],
            fixtures=[FixtureNode.parse(fixture) for fixture in fixtures or []],
        )

    def spaces_json(self) -> List[Dict[str, Any]]:
        return [space.to_json() for space in self.spaces]

    def fixtures_json(self) -> List[Dict[str, Any]]:
        return [fixture.to_json() for fixture in self.fixtures]

    def _walk(self) -> Iterator[Tuple[SpaceNode, HallNode, StallNode]]:
        for space in self.spaces:
            for hall in space.halls:
                for stall in hall.stalls:
                    yield space, hall, stall

    # ==========================================================================
    # Lookup
    # ==========================================================================

    def iter_stalls(self) -> Iterator[StallNode]:
        for _, _, stall in self._walk():
            yield stall

    def get_stall(self, stall_id: str) -> Optional[StallNode]:
        entry = self._index.get(str(stall_id))
        return entry[2] if entry else None

    def locate_stall(self, stall_id: str) -> Optional[Tuple[SpaceNode, HallNode, StallNode]]:
        """Return (space, hall, stall) for a stall id."""
        return self._index.get(str(stall_id))

    def find_stalls(self, stall_ids: Iterable[str]) -> Tuple[List[StallNode], List[str]]:
        """
        Resolve stall ids in request order.

        Returns the found stalls and the ids that are not in the layout.
        """
        found = []
        missing = []
        for stall_id in stall_ids:
            stall = self.get_stall(stall_id)
            if stall is None:
                missing.append(str(stall_id))
            else:
                found.append(stall)
        return found, missing

    # ==========================================================================
    # Mutation
    # ==========================================================================

    def set_stall_status(
        self,
        stall_ids: Iterable[str],
        status: str,
        booking_id: Optional[str] = None,
        owner_id: Optional[str] = None
    ) -> List[str]:
        """
        Set the status of the given stalls.

        Unknown ids are skipped. With ``owner_id``, stalls held by another
        booking are skipped too. Returns ids whose status actually changed.
        """
        if status not in StallStatus.values:
            raise LayoutValidationError(f"Unknown stall status '{status}'")

        changed = []
        for stall_id in stall_ids:
            stall = self.get_stall(stall_id)
            if stall is None:
                continue
            if owner_id and stall.booking_id and stall.booking_id != owner_id:
                continue

            new_booking_id = None if status == StallStatus.AVAILABLE else (booking_id or stall.booking_id)
            if stall.status == status and stall.booking_id == new_booking_id:
                continue

            stall.status = status
            stall.booking_id = new_booking_id
            changed.append(stall.id)
        return changed

    def set_stall_rate(self, stall_id: str, rate: Decimal) -> bool:
        stall = self.get_stall(stall_id)
        if stall is None:
            return False
        new_rate = _to_number(rate)
        if to_decimal(stall.rate_per_sqm) == to_decimal(new_rate):
            return False
        stall.rate_per_sqm = new_rate
        return True

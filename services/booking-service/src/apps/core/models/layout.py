# services/booking-service/src/apps/core/models/layout.py
"""
Layout Model

Floor layout of an exhibition. The space/hall/stall tree is stored as a
JSON document and accessed through ``apps.core.layout_tree``.
"""

import uuid

from django.core.validators import MinValueValidator
from django.db import models

from apps.core.layout_tree import LayoutTree


def default_canvas():
    return {'width': 2000, 'height': 2000, 'scale': 1, 'gridSize': 10, 'showGrid': True}


class Layout(models.Model):
    """
    Layout aggregate for a single exhibition.

    ``version`` increases on every write of the tree and is used as an
    optimistic concurrency token by the inventory synchronizer.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    exhibition = models.OneToOneField(
        'core.Exhibition',
        on_delete=models.CASCADE,
        related_name='layout'
    )

    name = models.CharField(max_length=255, default='Main Layout')
    canvas = models.JSONField(default=default_canvas, blank=True)
    settings = models.JSONField(default=dict, blank=True)

    # Tree
    spaces = models.JSONField(default=list, blank=True)
    fixtures = models.JSONField(default=list, blank=True)

    version = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    is_active = models.BooleanField(default=True)

    # Audit
    created_by = models.UUIDField(blank=True, null=True)
    updated_by = models.UUIDField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'layouts'

    def __str__(self):
        return f"{self.name} (v{self.version})"

    def get_tree(self) -> LayoutTree:
        """Parse the stored document into a LayoutTree."""
        return LayoutTree.from_json(self.spaces, self.fixtures)

    def set_tree(self, tree: LayoutTree):
        self.spaces = tree.spaces_json()
        self.fixtures = tree.fixtures_json()

    @property
    def stall_count(self) -> int:
        return sum(
            len(hall.get('stalls') or [])
            for space in self.spaces or []
            for hall in space.get('halls') or []
        )

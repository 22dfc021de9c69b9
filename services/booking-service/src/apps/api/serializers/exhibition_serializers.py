# services/booking-service/src/apps/api/serializers/exhibition_serializers.py
"""
Exhibition Serializers
"""

from rest_framework import serializers

from apps.core.models import Exhibition


class ExhibitionSerializer(serializers.ModelSerializer):
    """Exhibition summary with bookability."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    is_bookable = serializers.BooleanField(read_only=True)

    class Meta:
        model = Exhibition
        fields = [
            'id', 'name', 'slug', 'description', 'venue',
            'start_date', 'end_date', 'registration_deadline',
            'status', 'status_display', 'is_active', 'is_bookable',
            'invoice_prefix',
        ]
        read_only_fields = fields

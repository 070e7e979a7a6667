"""
Sync request/response serializers.

Row shapes live in apps.records.serializers; these cover the envelopes.
"""
from rest_framework import serializers

from apps.sync.models import SyncCursor


class PullRequestSerializer(serializers.Serializer):
    """
    Body of POST /sync/pull/.

    `since` stays a string here: apps.sync.services.parse_since owns the
    timestamp rules. Devices send `deviceId`; `device_id` is accepted too.
    """
    since = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=True)
    deviceId = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)
    device_id = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)

    def get_device_id(self):
        data = self.validated_data
        return data.get('deviceId') or data.get('device_id') or None


class PushResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    pushed = serializers.IntegerField()


class SyncCursorSerializer(serializers.ModelSerializer):
    class Meta:
        model = SyncCursor
        fields = ['device_id', 'last_pulled_at']
        read_only_fields = fields

"""
Sync endpoints.

POST /api/v1/sync/push/     - apply a device's unsynced rows
POST /api/v1/sync/pull/     - rows changed since the device's last server_time
GET  /api/v1/sync/restore/  - every row of the clinic
GET  /api/v1/sync/status/   - pull cursors of the clinic's devices

All endpoints act on the caller's clinic only (HasClinic).
"""
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import ClinicScopedMixin, HasClinic
from apps.sync import services
from apps.sync.serializers import PullRequestSerializer, PushResponseSerializer, SyncCursorSerializer


class SyncPushView(ClinicScopedMixin, APIView):
    """
    Body: {"patients": [...], "queue": [...], ...}; any subset of collections.

    Response: {"success": true, "pushed": <rows submitted>}
    """
    permission_classes = [IsAuthenticated, HasClinic]

    def post(self, request):
        result = services.push_changes(self.get_clinic(), request.data)
        response = PushResponseSerializer({'success': True, 'pushed': result.pushed})
        return Response(response.data, status=status.HTTP_200_OK)


class SyncPullView(ClinicScopedMixin, APIView):
    """
    Body: {"since": ISO-8601 (default epoch), "deviceId": "..."}

    Response: {"success": true, "patients": [...], ..., "server_time": "..."}
    """
    permission_classes = [IsAuthenticated, HasClinic]

    def post(self, request):
        serializer = PullRequestSerializer(data=request.data)
        if not serializer.is_valid():
            raise services.MalformedSyncPayload(serializer.errors)

        result = services.pull_changes(
            self.get_clinic(),
            since=serializer.validated_data.get('since'),
            device_id=serializer.get_device_id(),
        )
        return Response({'success': True, **result.as_payload()}, status=status.HTTP_200_OK)


class SyncRestoreView(ClinicScopedMixin, APIView):
    """Response: same shape as pull, starting from the epoch."""
    permission_classes = [IsAuthenticated, HasClinic]

    def get(self, request):
        result = services.full_restore(self.get_clinic())
        return Response({'success': True, **result.as_payload()}, status=status.HTTP_200_OK)


class SyncStatusView(ClinicScopedMixin, APIView):
    permission_classes = [IsAuthenticated, HasClinic]

    def get(self, request):
        clinic = self.get_clinic()
        cursors = SyncCursorSerializer(services.list_cursors(clinic), many=True).data
        return Response(
            {
                'success': True,
                'clinic_id': str(clinic.id),
                'server_time': services.format_timestamp(timezone.now()),
                'devices': cursors,
            },
            status=status.HTTP_200_OK
        )

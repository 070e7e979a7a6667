"""
Sync models: sync_cursors

One row per (clinic, device) remembering when that device last pulled.
Cursors are bookkeeping for support and monitoring only; the pull protocol
itself is driven by the `since` each device sends.
"""
from django.db import models


class SyncCursor(models.Model):
    """
    Last successful pull of a device.

    Fields:
    - clinic: FK -> clinic
    - device_id: client-chosen identifier ("unknown" when not sent, "restore" for full restores)
    - last_pulled_at: server_time of the latest pull
    """
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        related_name='sync_cursors'
    )
    device_id = models.CharField(max_length=255)
    last_pulled_at = models.DateTimeField()

    class Meta:
        db_table = 'sync_cursors'
        verbose_name = 'Sync Cursor'
        verbose_name_plural = 'Sync Cursors'
        ordering = ['-last_pulled_at']
        constraints = [
            models.UniqueConstraint(fields=['clinic', 'device_id'], name='uniq_sync_cursor_device'),
        ]

    def __str__(self):
        return f"{self.device_id} @ {self.clinic_id} ({self.last_pulled_at})"

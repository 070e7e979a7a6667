"""
Core models: clinic

A clinic is the tenant boundary. Every synced record, sync cursor and
membership hangs off exactly one clinic.
"""
import uuid
from django.conf import settings
from django.db import models


class Clinic(models.Model):
    """
    One doctor's practice.

    Fields:
    - id: UUID PK
    - name
    - address, phone, email: optional contact details printed on prescriptions
    - owner: FK -> auth_user (the doctor who registered the clinic)
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=500, blank=True, default='')
    phone = models.CharField(max_length=20, blank=True, default='')
    email = models.EmailField(max_length=255, blank=True, default='')
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='owned_clinics',
        help_text='Doctor who registered the clinic'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinic'
        verbose_name = 'Clinic'
        verbose_name_plural = 'Clinics'
        indexes = [
            models.Index(fields=['owner'], name='idx_clinic_owner'),
        ]

    def __str__(self):
        return self.name

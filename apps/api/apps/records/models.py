"""
Records models: the seven clinic-scoped collections that devices sync.

sync_patients, sync_prescriptions, sync_prescription_medicines,
sync_prescription_lab_tests, sync_queue, sync_custom_medicines,
sync_custom_lab_tests

Every row is keyed on the wire by (id, clinic). `id` is assigned by whichever
side creates the row first and never changes; the table's own primary key
(`sync_pk`) is a private surrogate that never leaves the server.

Parent references (patient_id, prescription_id, doctor_id, added_by) are
plain identifier columns: a device may push children before, or without,
their parent.
"""
from django.db import models
from django.utils import timezone


# ============================================================================
# Enums
# ============================================================================

class GenderChoices(models.TextChoices):
    MALE = 'male', 'Male'
    FEMALE = 'female', 'Female'
    OTHER = 'other', 'Other'


class PrescriptionStatusChoices(models.TextChoices):
    """Prescription status"""
    DRAFT = 'draft', 'Draft'
    FINALIZED = 'finalized', 'Finalized'


class QueueStatusChoices(models.TextChoices):
    """Visit queue status"""
    WAITING = 'waiting', 'Waiting'
    IN_PROGRESS = 'in_progress', 'In Progress'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


# ============================================================================
# Base
# ============================================================================

class SyncedRecord(models.Model):
    """
    Abstract base for every synced collection.

    - sync_pk: surrogate PK (server only)
    - id: wire identity, unique per clinic
    - clinic: tenant
    - is_deleted: soft delete flag; deleted rows keep syncing as tombstones
    - created_at: set once on insert
    - updated_at: bumped on every mutation, drives last-write-wins
    """
    sync_pk = models.BigAutoField(primary_key=True)
    id = models.CharField(max_length=64, help_text='Client- or server-assigned identifier')
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        related_name='+'
    )
    is_deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        abstract = True
        constraints = [
            models.UniqueConstraint(fields=['id', 'clinic'], name='uniq_%(class)s_id_clinic'),
        ]

    def __str__(self):
        return f"{self.__class__.__name__} {self.id}"

    def touch(self, at=None):
        """Bump updated_at (does not save)."""
        self.updated_at = at or timezone.now()


# ============================================================================
# Patients
# ============================================================================

class Patient(SyncedRecord):
    name = models.CharField(max_length=255)
    age = models.PositiveIntegerField(default=0)
    gender = models.CharField(
        max_length=10,
        choices=GenderChoices.choices,
        default=GenderChoices.MALE
    )
    weight = models.FloatField(blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, default='')
    address = models.CharField(max_length=500, blank=True, default='')
    blood_group = models.CharField(max_length=10, blank=True, default='')
    allergies = models.TextField(blank=True, default='')

    class Meta(SyncedRecord.Meta):
        db_table = 'sync_patients'
        verbose_name = 'Patient'
        verbose_name_plural = 'Patients'
        indexes = [
            models.Index(fields=['clinic', 'updated_at'], name='idx_patient_clinic_upd'),
            models.Index(fields=['clinic', 'phone'], name='idx_patient_clinic_phone'),
        ]


# ============================================================================
# Prescriptions
# ============================================================================

class Prescription(SyncedRecord):
    """
    Prescription header.

    The server generates readable codes (RX-XXXXXX) for prescriptions it
    creates; devices may push their own ids for prescriptions written offline.
    wallet_deducted counts how many prescription credits were charged.
    """
    patient_id = models.CharField(max_length=64, blank=True, default='')
    patient_name = models.CharField(max_length=255, blank=True, default='')
    patient_age = models.PositiveIntegerField(default=0)
    patient_gender = models.CharField(max_length=10, choices=GenderChoices.choices, default=GenderChoices.MALE)
    patient_phone = models.CharField(max_length=20, blank=True, default='')
    doctor_id = models.CharField(max_length=64, blank=True, default='')
    diagnosis = models.TextField(blank=True, default='')
    advice = models.TextField(blank=True, default='')
    follow_up_date = models.DateField(blank=True, null=True)
    pdf_hash = models.CharField(max_length=128, blank=True, null=True)
    signature = models.TextField(blank=True, null=True)
    status = models.CharField(
        max_length=20,
        choices=PrescriptionStatusChoices.choices,
        default=PrescriptionStatusChoices.DRAFT
    )
    wallet_deducted = models.PositiveIntegerField(default=0)

    class Meta(SyncedRecord.Meta):
        db_table = 'sync_prescriptions'
        verbose_name = 'Prescription'
        verbose_name_plural = 'Prescriptions'
        indexes = [
            models.Index(fields=['clinic', 'updated_at'], name='idx_rx_clinic_upd'),
            models.Index(fields=['clinic', 'patient_id'], name='idx_rx_clinic_patient'),
        ]


class PrescriptionMedicine(SyncedRecord):
    prescription_id = models.CharField(max_length=64, blank=True, default='')
    medicine_name = models.CharField(max_length=255)
    type = models.CharField(max_length=50, blank=True, default='')
    dosage = models.CharField(max_length=100, blank=True, default='')
    frequency = models.CharField(max_length=100, blank=True, default='')
    duration = models.CharField(max_length=100, blank=True, default='')
    timing = models.CharField(max_length=100, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    class Meta(SyncedRecord.Meta):
        db_table = 'sync_prescription_medicines'
        verbose_name = 'Prescription Medicine'
        verbose_name_plural = 'Prescription Medicines'
        indexes = [
            models.Index(fields=['clinic', 'updated_at'], name='idx_rxmed_clinic_upd'),
            models.Index(fields=['clinic', 'prescription_id'], name='idx_rxmed_clinic_rx'),
        ]


class PrescriptionLabTest(SyncedRecord):
    prescription_id = models.CharField(max_length=64, blank=True, default='')
    test_name = models.CharField(max_length=255)
    category = models.CharField(max_length=100, blank=True, default='')
    notes = models.TextField(blank=True, default='')

    class Meta(SyncedRecord.Meta):
        db_table = 'sync_prescription_lab_tests'
        verbose_name = 'Prescription Lab Test'
        verbose_name_plural = 'Prescription Lab Tests'
        indexes = [
            models.Index(fields=['clinic', 'updated_at'], name='idx_rxlab_clinic_upd'),
            models.Index(fields=['clinic', 'prescription_id'], name='idx_rxlab_clinic_rx'),
        ]


# ============================================================================
# Queue
# ============================================================================

class QueueEntry(SyncedRecord):
    """
    One patient visit in the clinic's daily queue.

    token_number restarts at 1 every day per clinic.
    """
    patient_id = models.CharField(max_length=64, blank=True, default='')
    status = models.CharField(
        max_length=20,
        choices=QueueStatusChoices.choices,
        default=QueueStatusChoices.WAITING
    )
    added_by = models.CharField(max_length=64, blank=True, default='')
    notes = models.TextField(blank=True, default='')
    token_number = models.PositiveIntegerField(default=0)
    added_at = models.DateTimeField(default=timezone.now)
    started_at = models.DateTimeField(blank=True, null=True)
    completed_at = models.DateTimeField(blank=True, null=True)

    class Meta(SyncedRecord.Meta):
        db_table = 'sync_queue'
        verbose_name = 'Queue Entry'
        verbose_name_plural = 'Queue Entries'
        indexes = [
            models.Index(fields=['clinic', 'updated_at'], name='idx_queue_clinic_upd'),
            models.Index(fields=['clinic', 'added_at'], name='idx_queue_clinic_added'),
        ]


# ============================================================================
# Custom catalogue
# ============================================================================

class CustomMedicine(SyncedRecord):
    name = models.CharField(max_length=255)
    type = models.CharField(max_length=50, default='Tablet')
    strength = models.CharField(max_length=100, blank=True, default='')
    manufacturer = models.CharField(max_length=255, blank=True, default='')
    usage_count = models.PositiveIntegerField(default=0)

    class Meta(SyncedRecord.Meta):
        db_table = 'sync_custom_medicines'
        verbose_name = 'Custom Medicine'
        verbose_name_plural = 'Custom Medicines'
        indexes = [
            models.Index(fields=['clinic', 'updated_at'], name='idx_cmed_clinic_upd'),
            models.Index(fields=['clinic', 'name'], name='idx_cmed_clinic_name'),
        ]


class CustomLabTest(SyncedRecord):
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=100, default='Other')
    usage_count = models.PositiveIntegerField(default=0)

    class Meta(SyncedRecord.Meta):
        db_table = 'sync_custom_lab_tests'
        verbose_name = 'Custom Lab Test'
        verbose_name_plural = 'Custom Lab Tests'
        indexes = [
            models.Index(fields=['clinic', 'updated_at'], name='idx_clab_clinic_upd'),
            models.Index(fields=['clinic', 'name'], name='idx_clab_clinic_name'),
        ]

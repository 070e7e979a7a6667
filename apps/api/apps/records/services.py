"""
Record operations outside the sync path.

Every mutation here bumps `updated_at`, so devices receive it on their next
pull like any change pushed by another device. All writes are
parameterized ORM updates scoped to the caller's clinic.
"""
import secrets
import uuid

from django.db import DEFAULT_DB_ALIAS, transaction
from django.db.models import Count, F, Max, Q
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from apps.core.models import Clinic
from apps.core.observability import metrics
from apps.core.observability.events import log_prescription_finalized, log_queue_status_changed
from apps.records.models import (
    CustomLabTest,
    CustomMedicine,
    Patient,
    Prescription,
    PrescriptionLabTest,
    PrescriptionMedicine,
    PrescriptionStatusChoices,
    QueueEntry,
    QueueStatusChoices,
)

PRESCRIPTION_CODE_PREFIX = 'RX-'
PRESCRIPTION_CODE_DIGITS = 6
PRESCRIPTION_CODE_ATTEMPTS = 20

CATALOGUE_SEARCH_LIMIT = 30
FREQUENT_CATALOGUE_LIMIT = 20
PATIENT_LIST_LIMIT = 100
RECENT_PRESCRIPTIONS_LIMIT = 20


class RecordNotFound(NotFound):
    default_detail = 'Record not found.'
    default_code = 'record_not_found'


def new_record_id():
    return str(uuid.uuid4())


def soft_delete(record, at=None, using=DEFAULT_DB_ALIAS):
    """Mark a synced record deleted; the tombstone keeps syncing."""
    record.is_deleted = True
    record.touch(at)
    record.save(using=using, update_fields=['is_deleted', 'updated_at'])
    return record


# ============================================================================
# Patients
# ============================================================================

PATIENT_FIELDS = ('name', 'age', 'gender', 'weight', 'phone', 'address', 'blood_group', 'allergies')


def list_patients(clinic: Clinic, search: str = '', limit: int = PATIENT_LIST_LIMIT, offset: int = 0,
                  using=DEFAULT_DB_ALIAS):
    """Live patients, most recently changed first, optionally matched on name or phone."""
    queryset = Patient.objects.using(using).filter(clinic=clinic, is_deleted=False)
    search = (search or '').strip()
    if search:
        queryset = queryset.filter(Q(name__icontains=search) | Q(phone__icontains=search))
    return queryset.order_by('-updated_at', 'id')[offset:offset + limit]


def get_patient(clinic: Clinic, patient_id: str, using=DEFAULT_DB_ALIAS) -> Patient:
    patient = Patient.objects.using(using).filter(clinic=clinic, id=patient_id, is_deleted=False).first()
    if patient is None:
        raise RecordNotFound(f'Patient {patient_id} not found.')
    return patient


def create_patient(clinic: Clinic, data: dict, using=DEFAULT_DB_ALIAS) -> Patient:
    now = timezone.now()
    patient = Patient(id=new_record_id(), clinic=clinic, created_at=now, updated_at=now, **data)
    patient.save(using=using)
    return patient


def update_patient(clinic: Clinic, patient_id: str, data: dict, using=DEFAULT_DB_ALIAS) -> Patient:
    """
    Apply a partial update to a live patient.

    Only the given columns change. An empty update returns the patient as
    stored without bumping updated_at.
    """
    patient = get_patient(clinic, patient_id, using=using)
    changes = {name: value for name, value in data.items() if name in PATIENT_FIELDS}
    if not changes:
        return patient

    for name, value in changes.items():
        setattr(patient, name, value)
    patient.touch()
    patient.save(using=using, update_fields=[*changes, 'updated_at'])
    return patient


# ============================================================================
# Prescriptions
# ============================================================================

def next_prescription_code(clinic: Clinic, using=DEFAULT_DB_ALIAS) -> str:
    """
    Readable prescription id, RX- followed by six digits, unused in the clinic.

    Raises RuntimeError when no free code is found (the clinic is close to
    exhausting the code space).
    """
    existing = Prescription.objects.using(using).filter(clinic=clinic)
    for _ in range(PRESCRIPTION_CODE_ATTEMPTS):
        number = secrets.randbelow(10 ** PRESCRIPTION_CODE_DIGITS)
        code = f'{PRESCRIPTION_CODE_PREFIX}{number:0{PRESCRIPTION_CODE_DIGITS}d}'
        if not existing.filter(id=code).exists():
            return code
    raise RuntimeError(f'No free prescription code for clinic {clinic.id}')


def create_prescription(clinic: Clinic, data: dict, medicines=(), lab_tests=(), using=DEFAULT_DB_ALIAS):
    """
    Create a draft prescription with its medicines and lab tests.

    The header gets a readable RX- code; child rows get UUIDs. Returns
    (prescription, medicines, lab_tests).
    """
    now = timezone.now()

    with transaction.atomic(using=using):
        prescription = Prescription(
            id=next_prescription_code(clinic, using=using),
            clinic=clinic,
            status=PrescriptionStatusChoices.DRAFT,
            wallet_deducted=0,
            created_at=now,
            updated_at=now,
            **data
        )
        prescription.save(using=using)

        medicine_rows = [
            PrescriptionMedicine(
                id=new_record_id(), clinic=clinic, prescription_id=prescription.id,
                created_at=now, updated_at=now, **medicine
            )
            for medicine in medicines
        ]
        lab_test_rows = [
            PrescriptionLabTest(
                id=new_record_id(), clinic=clinic, prescription_id=prescription.id,
                created_at=now, updated_at=now, **lab_test
            )
            for lab_test in lab_tests
        ]
        PrescriptionMedicine.objects.using(using).bulk_create(medicine_rows)
        PrescriptionLabTest.objects.using(using).bulk_create(lab_test_rows)

    return prescription, medicine_rows, lab_test_rows


def get_prescription(clinic: Clinic, prescription_id: str, using=DEFAULT_DB_ALIAS):
    """Live prescription with its live medicines and lab tests, children oldest first."""
    prescription = (
        Prescription.objects.using(using)
        .filter(clinic=clinic, id=prescription_id, is_deleted=False)
        .first()
    )
    if prescription is None:
        raise RecordNotFound(f'Prescription {prescription_id} not found.')

    medicines = (
        PrescriptionMedicine.objects.using(using)
        .filter(clinic=clinic, prescription_id=prescription.id, is_deleted=False)
        .order_by('created_at', 'id')
    )
    lab_tests = (
        PrescriptionLabTest.objects.using(using)
        .filter(clinic=clinic, prescription_id=prescription.id, is_deleted=False)
        .order_by('created_at', 'id')
    )
    return prescription, list(medicines), list(lab_tests)


def recent_prescriptions(clinic: Clinic, limit: int = RECENT_PRESCRIPTIONS_LIMIT, using=DEFAULT_DB_ALIAS):
    """Finalized prescriptions, newest first."""
    return (
        Prescription.objects.using(using)
        .filter(clinic=clinic, is_deleted=False, status=PrescriptionStatusChoices.FINALIZED)
        .order_by('-created_at', 'id')[:limit]
    )


def patient_prescriptions(clinic: Clinic, patient_id: str, using=DEFAULT_DB_ALIAS):
    """Every live prescription of a patient, drafts included, newest first."""
    return (
        Prescription.objects.using(using)
        .filter(clinic=clinic, patient_id=patient_id, is_deleted=False)
        .order_by('-created_at', 'id')
    )


def todays_prescription_count(clinic: Clinic, using=DEFAULT_DB_ALIAS) -> int:
    return (
        Prescription.objects.using(using)
        .filter(
            clinic=clinic,
            is_deleted=False,
            status=PrescriptionStatusChoices.FINALIZED,
            created_at__date=timezone.localdate(),
        )
        .count()
    )


def finalize_prescription(clinic: Clinic, prescription_id: str, signature: str, pdf_hash: str,
                          using=DEFAULT_DB_ALIAS) -> Prescription:
    """
    Sign a draft: status becomes finalized and one prescription credit is recorded.

    A finalized prescription cannot be finalized again.
    """
    with transaction.atomic(using=using):
        prescription = (
            Prescription.objects.using(using)
            .select_for_update()
            .filter(clinic=clinic, id=prescription_id, is_deleted=False)
            .first()
        )
        if prescription is None:
            raise RecordNotFound(f'Prescription {prescription_id} not found.')
        if prescription.status == PrescriptionStatusChoices.FINALIZED:
            raise ValidationError({'status': ['Prescription is already finalized.']})

        prescription.status = PrescriptionStatusChoices.FINALIZED
        prescription.signature = signature
        prescription.pdf_hash = pdf_hash
        prescription.wallet_deducted = 1
        prescription.touch()
        prescription.save(
            using=using,
            update_fields=['status', 'signature', 'pdf_hash', 'wallet_deducted', 'updated_at'],
        )

    metrics.prescriptions_finalized_total.inc()
    log_prescription_finalized(prescription)
    return prescription


# ============================================================================
# Queue
# ============================================================================

def todays_queue(clinic: Clinic, using=DEFAULT_DB_ALIAS):
    """Live queue entries added today, in token order."""
    return (
        QueueEntry.objects.using(using)
        .filter(clinic=clinic, is_deleted=False, added_at__date=timezone.localdate())
        .order_by('token_number')
    )


def add_to_queue(clinic: Clinic, patient_id: str, added_by: str, notes: str = '', using=DEFAULT_DB_ALIAS) -> QueueEntry:
    """
    Append a patient to today's queue with the next token number.

    Token numbers restart at 1 each day. The clinic row is locked while the
    next token is chosen so two staff members never hand out the same one.
    """
    now = timezone.now()

    with transaction.atomic(using=using):
        Clinic.objects.using(using).select_for_update().filter(pk=clinic.pk).first()

        last_token = (
            QueueEntry.objects.using(using)
            .filter(clinic=clinic, added_at__date=timezone.localdate(now))
            .aggregate(last=Max('token_number'))['last']
        ) or 0

        entry = QueueEntry(
            id=new_record_id(),
            clinic=clinic,
            patient_id=patient_id,
            added_by=added_by,
            notes=notes,
            token_number=last_token + 1,
            status=QueueStatusChoices.WAITING,
            added_at=now,
            created_at=now,
            updated_at=now,
        )
        entry.save(using=using)

    return entry


def update_queue_status(clinic: Clinic, entry_id: str, status: str, using=DEFAULT_DB_ALIAS) -> QueueEntry:
    """
    Move a queue entry to `status`.

    Entering in_progress stamps started_at; entering completed or cancelled
    stamps completed_at.
    """
    if status not in QueueStatusChoices.values:
        raise ValidationError({'status': [f'"{status}" is not a valid queue status.']})

    now = timezone.now()
    changes = {'status': status, 'updated_at': now}
    if status == QueueStatusChoices.IN_PROGRESS:
        changes['started_at'] = now
    elif status in (QueueStatusChoices.COMPLETED, QueueStatusChoices.CANCELLED):
        changes['completed_at'] = now

    entries = QueueEntry.objects.using(using).filter(clinic=clinic, id=entry_id)
    if not entries.update(**changes):
        raise RecordNotFound(f'Queue entry {entry_id} not found.')

    entry = entries.get()
    metrics.queue_status_transitions_total.labels(to_status=status).inc()
    log_queue_status_changed(entry, status)
    return entry


def queue_stats(clinic: Clinic, using=DEFAULT_DB_ALIAS) -> dict:
    """Counts of today's live queue entries, overall and per open status."""
    return todays_queue(clinic, using=using).aggregate(
        total=Count('sync_pk'),
        waiting=Count('sync_pk', filter=Q(status=QueueStatusChoices.WAITING)),
        in_progress=Count('sync_pk', filter=Q(status=QueueStatusChoices.IN_PROGRESS)),
        completed=Count('sync_pk', filter=Q(status=QueueStatusChoices.COMPLETED)),
    )


def remove_from_queue(clinic: Clinic, entry_id: str, using=DEFAULT_DB_ALIAS) -> QueueEntry:
    entry = QueueEntry.objects.using(using).filter(clinic=clinic, id=entry_id).first()
    if entry is None:
        raise RecordNotFound(f'Queue entry {entry_id} not found.')
    return soft_delete(entry, using=using)


# ============================================================================
# Custom catalogue
# ============================================================================

def add_custom_medicine(clinic: Clinic, name: str, type: str = 'Tablet', strength: str = '',
                        manufacturer: str = '', using=DEFAULT_DB_ALIAS) -> CustomMedicine:
    now = timezone.now()
    medicine = CustomMedicine(
        id=new_record_id(),
        clinic=clinic,
        name=name,
        type=type,
        strength=strength,
        manufacturer=manufacturer,
        created_at=now,
        updated_at=now,
    )
    medicine.save(using=using)
    return medicine


def add_custom_lab_test(clinic: Clinic, name: str, category: str = 'Other', using=DEFAULT_DB_ALIAS) -> CustomLabTest:
    now = timezone.now()
    lab_test = CustomLabTest(
        id=new_record_id(),
        clinic=clinic,
        name=name,
        category=category,
        created_at=now,
        updated_at=now,
    )
    lab_test.save(using=using)
    return lab_test


def _increment_usage(model, clinic, name, using):
    return (
        model.objects.using(using)
        .filter(clinic=clinic, name=name, is_deleted=False)
        .update(usage_count=F('usage_count') + 1, updated_at=timezone.now())
    )


def increment_medicine_usage(clinic: Clinic, name: str, using=DEFAULT_DB_ALIAS) -> int:
    """Count one more use of every live custom medicine called `name`. Returns rows touched."""
    return _increment_usage(CustomMedicine, clinic, name, using)


def increment_lab_test_usage(clinic: Clinic, name: str, using=DEFAULT_DB_ALIAS) -> int:
    return _increment_usage(CustomLabTest, clinic, name, using)


def search_catalogue(model, clinic: Clinic, query: str = '', using=DEFAULT_DB_ALIAS):
    """
    Live catalogue entries, most used first, optionally filtered by name.

    Lab tests also match on category.
    """
    queryset = model.objects.using(using).filter(clinic=clinic, is_deleted=False)
    query = query.strip()
    if query:
        condition = Q(name__icontains=query)
        if model is CustomLabTest:
            condition |= Q(category__icontains=query)
        queryset = queryset.filter(condition)
    return queryset.order_by('-usage_count', 'name')[:CATALOGUE_SEARCH_LIMIT]


def frequent_catalogue(model, clinic: Clinic, limit: int = FREQUENT_CATALOGUE_LIMIT, using=DEFAULT_DB_ALIAS):
    """The `limit` most used live catalogue entries."""
    return (
        model.objects.using(using)
        .filter(clinic=clinic, is_deleted=False)
        .order_by('-usage_count', 'name')[:limit]
    )

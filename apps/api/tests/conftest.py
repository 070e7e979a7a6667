"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Users by role and their clinics
- Authenticated API clients (doctor, assistant, other clinic, no clinic)
- Wire row factories for every synced collection
"""
from datetime import datetime, timedelta, timezone

import pytest
from rest_framework.test import APIClient

from apps.authz.models import ClinicMembership, RoleChoices, User
from apps.core.services import save_owned_clinic


BASE_TIME = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


def iso(value):
    """Wire format used by the API for timestamps."""
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


# ============================================================================
# Users and clinics
# ============================================================================

@pytest.fixture
def doctor_user(db):
    return User.objects.create_user(
        phone='+919800000001',
        password='testpass123',
        name='Dr. Meera Rao',
        role=RoleChoices.DOCTOR,
    )


@pytest.fixture
def clinic(db, doctor_user):
    clinic, _ = save_owned_clinic(doctor_user, 'Sunrise Clinic', address='12 MG Road', phone='0801234567')
    return clinic


@pytest.fixture
def assistant_user(db, clinic):
    user = User.objects.create_user(
        phone='+919800000002',
        password='testpass123',
        name='Ravi',
        role=RoleChoices.ASSISTANT,
    )
    ClinicMembership.objects.create(clinic=clinic, user=user, role=RoleChoices.ASSISTANT)
    return user


@pytest.fixture
def other_doctor(db):
    return User.objects.create_user(
        phone='+919800000099',
        password='testpass123',
        name='Dr. Other',
        role=RoleChoices.DOCTOR,
    )


@pytest.fixture
def other_clinic(db, other_doctor):
    clinic, _ = save_owned_clinic(other_doctor, 'Other Clinic')
    return clinic


@pytest.fixture
def clinicless_user(db):
    return User.objects.create_user(
        phone='+919800000050',
        password='testpass123',
        name='Dr. New',
        role=RoleChoices.DOCTOR,
    )


# ============================================================================
# API Clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


def _authenticated_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def doctor_client(doctor_user, clinic):
    return _authenticated_client(doctor_user)


@pytest.fixture
def assistant_client(assistant_user):
    return _authenticated_client(assistant_user)


@pytest.fixture
def other_clinic_client(other_doctor, other_clinic):
    return _authenticated_client(other_doctor)


@pytest.fixture
def no_clinic_client(clinicless_user):
    return _authenticated_client(clinicless_user)


# ============================================================================
# Wire rows
# ============================================================================

ROW_DEFAULTS = {
    'patients': {
        'name': 'Asha Kumar',
        'age': 34,
        'gender': 'female',
        'weight': 58.5,
        'phone': '9812345678',
        'address': 'Jayanagar',
        'blood_group': 'O+',
        'allergies': '',
    },
    'prescriptions': {
        'patient_id': 'p1',
        'patient_name': 'Asha Kumar',
        'patient_age': 34,
        'patient_gender': 'female',
        'patient_phone': '9812345678',
        'doctor_id': 'doc-1',
        'diagnosis': 'Viral fever',
        'advice': 'Rest, fluids',
        'follow_up_date': '2024-05-08',
        'pdf_hash': None,
        'signature': None,
        'status': 'draft',
        'wallet_deducted': 0,
    },
    'prescription_medicines': {
        'prescription_id': 'RX-000001',
        'medicine_name': 'Paracetamol 500mg',
        'type': 'Tablet',
        'dosage': '1 tab',
        'frequency': 'TDS',
        'duration': '5 days',
        'timing': 'After food',
        'notes': '',
    },
    'prescription_lab_tests': {
        'prescription_id': 'RX-000001',
        'test_name': 'CBC',
        'category': 'Blood',
        'notes': '',
    },
    'queue': {
        'patient_id': 'p1',
        'status': 'waiting',
        'added_by': 'assistant-1',
        'notes': '',
        'token_number': 1,
        'added_at': iso(BASE_TIME),
        'started_at': None,
        'completed_at': None,
    },
    'custom_medicines': {
        'name': 'Dolo 650',
        'type': 'Tablet',
        'strength': '650mg',
        'manufacturer': 'Micro Labs',
        'usage_count': 0,
    },
    'custom_lab_tests': {
        'name': 'Dengue NS1',
        'category': 'Serology',
        'usage_count': 0,
    },
}


@pytest.fixture
def at():
    """at(minutes) -> ISO timestamp `minutes` after a fixed base time."""
    def _at(minutes=0):
        return iso(BASE_TIME + timedelta(minutes=minutes))
    return _at


@pytest.fixture
def make_row(at):
    """
    Factory fixture for wire rows.

    make_row('patients', 'p1', updated=5, name='Asha') builds a complete
    patients row whose updated_at is 5 minutes after the base time.
    """
    def _make_row(collection, row_id, updated=0, **overrides):
        row = {'id': row_id, 'is_deleted': False, 'created_at': at(0), 'updated_at': at(updated)}
        row.update(ROW_DEFAULTS[collection])
        row.update(overrides)
        return row
    return _make_row

"""
Tests for the online record endpoints and services.

Every record write must bump updated_at so the change reaches devices on
their next pull.
"""
from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework import status

from apps.records import services
from apps.records.models import (
    CustomLabTest,
    CustomMedicine,
    Patient,
    Prescription,
    PrescriptionLabTest,
    PrescriptionMedicine,
    QueueEntry,
)
from apps.sync.services import pull_changes


PATIENTS_URL = '/api/v1/records/patients/'
QUEUE_URL = '/api/v1/records/queue/'
PRESCRIPTIONS_URL = '/api/v1/records/prescriptions/'
CUSTOM_MEDICINES_URL = '/api/v1/records/custom-medicines/'
CUSTOM_LAB_TESTS_URL = '/api/v1/records/custom-lab-tests/'


@pytest.mark.django_db
class TestQueue:
    def test_tokens_increment_per_day(self, clinic):
        first = services.add_to_queue(clinic, 'p1', added_by='u1')
        second = services.add_to_queue(clinic, 'p2', added_by='u1')

        assert first.token_number == 1
        assert second.token_number == 2
        assert first.status == 'waiting'

    def test_tokens_are_per_clinic(self, clinic, other_clinic):
        services.add_to_queue(clinic, 'p1', added_by='u1')

        assert services.add_to_queue(other_clinic, 'p1', added_by='u2').token_number == 1

    def test_post_adds_entry(self, assistant_client, assistant_user):
        response = assistant_client.post(QUEUE_URL, {'patient_id': 'p1', 'notes': 'Fever'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['token_number'] == 1
        assert response.data['added_by'] == str(assistant_user.id)
        assert response.data['status'] == 'waiting'

    def test_get_lists_todays_queue(self, doctor_client, clinic):
        services.add_to_queue(clinic, 'p1', added_by='u1')
        services.add_to_queue(clinic, 'p2', added_by='u1')
        removed = services.add_to_queue(clinic, 'p3', added_by='u1')
        services.remove_from_queue(clinic, removed.id)

        response = doctor_client.get(QUEUE_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [entry['patient_id'] for entry in response.data] == ['p1', 'p2']

    def test_status_transition_stamps_times(self, doctor_client, clinic):
        entry = services.add_to_queue(clinic, 'p1', added_by='u1')

        response = doctor_client.put(f'{QUEUE_URL}{entry.id}/status/', {'status': 'in_progress'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'in_progress'
        assert response.data['started_at'] is not None

        response = doctor_client.put(f'{QUEUE_URL}{entry.id}/status/', {'status': 'completed'}, format='json')

        assert response.data['completed_at'] is not None
        entry.refresh_from_db()
        assert entry.updated_at > entry.created_at

    def test_invalid_status_is_400(self, doctor_client, clinic):
        entry = services.add_to_queue(clinic, 'p1', added_by='u1')

        response = doctor_client.put(f'{QUEUE_URL}{entry.id}/status/', {'status': 'teleported'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_status_of_other_clinic_entry_is_404(self, doctor_client, other_clinic):
        entry = services.add_to_queue(other_clinic, 'p1', added_by='u2')

        response = doctor_client.put(f'{QUEUE_URL}{entry.id}/status/', {'status': 'cancelled'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        entry.refresh_from_db()
        assert entry.status == 'waiting'

    def test_delete_is_soft(self, doctor_client, clinic):
        entry = services.add_to_queue(clinic, 'p1', added_by='u1')

        response = doctor_client.delete(f'{QUEUE_URL}{entry.id}/')

        assert response.status_code == status.HTTP_204_NO_CONTENT
        entry.refresh_from_db()
        assert entry.is_deleted is True

    def test_queue_change_reaches_pull(self, clinic):
        entry = services.add_to_queue(clinic, 'p1', added_by='u1')
        since = timezone.now()

        services.update_queue_status(clinic, entry.id, 'in_progress')

        rows = pull_changes(clinic, since=since).collections['queue']
        assert [row['status'] for row in rows] == ['in_progress']


@pytest.mark.django_db
class TestPrescriptions:
    def payload(self):
        return {
            'patient_id': 'p1',
            'patient_name': 'Asha Kumar',
            'patient_age': 34,
            'patient_gender': 'female',
            'diagnosis': 'Viral fever',
            'follow_up_date': '2024-05-08',
            'medicines': [
                {'medicine_name': 'Paracetamol 500mg', 'dosage': '1 tab', 'frequency': 'TDS'},
                {'medicine_name': 'ORS', 'type': 'Sachet'},
            ],
            'lab_tests': [{'test_name': 'CBC', 'category': 'Blood'}],
        }

    def test_doctor_creates_draft_with_children(self, doctor_client, doctor_user, clinic):
        response = doctor_client.post(PRESCRIPTIONS_URL, self.payload(), format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['id'].startswith('RX-')
        assert len(response.data['id']) == 9
        assert response.data['status'] == 'draft'
        assert response.data['doctor_id'] == str(doctor_user.id)
        assert len(response.data['medicines']) == 2
        assert len(response.data['lab_tests']) == 1

        prescription_id = response.data['id']
        assert Prescription.objects.filter(clinic=clinic, id=prescription_id).exists()
        assert PrescriptionMedicine.objects.filter(clinic=clinic, prescription_id=prescription_id).count() == 2
        assert PrescriptionLabTest.objects.filter(clinic=clinic, prescription_id=prescription_id).count() == 1

    def test_assistant_cannot_prescribe(self, assistant_client):
        response = assistant_client.post(PRESCRIPTIONS_URL, self.payload(), format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_missing_patient_fields_is_400(self, doctor_client):
        response = doctor_client.post(PRESCRIPTIONS_URL, {'diagnosis': 'Cold'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'patient_id' in response.data

    def test_codes_are_rx_plus_six_digits(self, clinic):
        codes = {services.next_prescription_code(clinic) for _ in range(5)}

        assert all(code.startswith('RX-') and code[3:].isdigit() and len(code) == 9 for code in codes)

    def test_code_space_exhaustion_raises(self, clinic, monkeypatch):
        services.create_prescription(clinic, {
            'patient_id': 'p1', 'patient_name': 'A', 'patient_age': 1, 'patient_gender': 'male',
        })
        taken = Prescription.objects.get(clinic=clinic).id
        monkeypatch.setattr(services.secrets, 'randbelow', lambda n: int(taken[3:]))

        with pytest.raises(RuntimeError):
            services.next_prescription_code(clinic)


@pytest.mark.django_db
class TestCustomCatalogue:
    def test_add_and_search_medicines(self, doctor_client, clinic):
        doctor_client.post(CUSTOM_MEDICINES_URL, {'name': 'Dolo 650', 'strength': '650mg'}, format='json')
        doctor_client.post(CUSTOM_MEDICINES_URL, {'name': 'Azithral 500'}, format='json')

        response = doctor_client.get(CUSTOM_MEDICINES_URL, {'q': 'dolo'})

        assert response.status_code == status.HTTP_200_OK
        assert [item['name'] for item in response.data] == ['Dolo 650']
        assert response.data[0]['type'] == 'Tablet'

    def test_usage_orders_results(self, doctor_client, clinic):
        services.add_custom_medicine(clinic, 'Alpha')
        services.add_custom_medicine(clinic, 'Beta')

        response = doctor_client.put(f'{CUSTOM_MEDICINES_URL}usage/', {'name': 'Beta'}, format='json')

        assert response.data == {'success': True, 'updated': 1}
        listing = doctor_client.get(CUSTOM_MEDICINES_URL)
        assert [item['name'] for item in listing.data] == ['Beta', 'Alpha']
        assert CustomMedicine.objects.get(clinic=clinic, name='Beta').usage_count == 1

    def test_usage_of_unknown_name_updates_nothing(self, doctor_client):
        response = doctor_client.put(f'{CUSTOM_MEDICINES_URL}usage/', {'name': 'Nothing'}, format='json')

        assert response.data == {'success': True, 'updated': 0}

    def test_lab_tests(self, assistant_client, clinic):
        response = assistant_client.post(CUSTOM_LAB_TESTS_URL, {'name': 'Dengue NS1'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['category'] == 'Other'

        assistant_client.put(f'{CUSTOM_LAB_TESTS_URL}usage/', {'name': 'Dengue NS1'}, format='json')
        assert CustomLabTest.objects.get(clinic=clinic, name='Dengue NS1').usage_count == 1

    def test_catalogue_is_clinic_scoped(self, doctor_client, other_clinic):
        services.add_custom_lab_test(other_clinic, 'Theirs')

        response = doctor_client.get(CUSTOM_LAB_TESTS_URL)

        assert response.data == []

    def test_deleted_entries_are_hidden(self, clinic):
        medicine = services.add_custom_medicine(clinic, 'Gone')
        services.soft_delete(medicine)

        assert list(services.search_catalogue(CustomMedicine, clinic)) == []
        assert services.increment_medicine_usage(clinic, 'Gone') == 0


@pytest.mark.django_db
class TestSoftDelete:
    def test_soft_delete_bumps_updated_at(self, clinic):
        entry = services.add_to_queue(clinic, 'p1', added_by='u1')
        before = entry.updated_at

        services.soft_delete(entry)

        stored = QueueEntry.objects.get(clinic=clinic, id=entry.id)
        assert stored.is_deleted is True
        assert stored.updated_at >= before


def backdate(record, minutes=10):
    """Move a record's updated_at into the past so a later write is strictly newer."""
    type(record).objects.filter(pk=record.pk).update(updated_at=timezone.now() - timedelta(minutes=minutes))
    record.refresh_from_db()
    return record


def new_patient(clinic, name='Asha Kumar', **extra):
    data = {'name': name, 'age': 34, 'gender': 'female', 'phone': '9812345678'}
    data.update(extra)
    return services.create_patient(clinic, data)


@pytest.mark.django_db
class TestPatients:
    def test_post_creates_patient(self, assistant_client, clinic):
        response = assistant_client.post(
            PATIENTS_URL, {'name': 'Asha Kumar', 'age': 34, 'gender': 'female', 'phone': '9812345678'},
            format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['name'] == 'Asha Kumar'
        assert response.data['weight'] is None
        assert response.data['is_deleted'] is False
        assert Patient.objects.filter(clinic=clinic, id=response.data['id']).exists()

    def test_post_without_age_or_gender_is_400(self, doctor_client):
        response = doctor_client.post(PATIENTS_URL, {'name': 'Asha'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'age' in response.data
        assert 'gender' in response.data

    def test_list_is_most_recent_first_and_hides_deleted(self, doctor_client, clinic):
        older = backdate(new_patient(clinic, 'Older'))
        new_patient(clinic, 'Newer')
        services.soft_delete(new_patient(clinic, 'Gone'))

        response = doctor_client.get(PATIENTS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [item['name'] for item in response.data] == ['Newer', older.name]

    def test_list_search_matches_name_or_phone(self, doctor_client, clinic):
        new_patient(clinic, 'Asha Kumar', phone='9800011111')
        new_patient(clinic, 'Ravi Shah', phone='9800022222')

        by_name = doctor_client.get(PATIENTS_URL, {'search': 'asha'})
        by_phone = doctor_client.get(PATIENTS_URL, {'search': '22222'})

        assert [item['name'] for item in by_name.data] == ['Asha Kumar']
        assert [item['name'] for item in by_phone.data] == ['Ravi Shah']

    def test_list_limit_and_offset(self, doctor_client, clinic):
        for minutes, name in ((30, 'C'), (20, 'B'), (10, 'A')):
            backdate(new_patient(clinic, name), minutes=minutes)

        response = doctor_client.get(PATIENTS_URL, {'limit': 1, 'offset': 1})

        assert [item['name'] for item in response.data] == ['B']

    def test_list_rejects_bad_limit(self, doctor_client):
        response = doctor_client.get(PATIENTS_URL, {'limit': 0})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_get_returns_patient(self, doctor_client, clinic):
        patient = new_patient(clinic)

        response = doctor_client.get(f'{PATIENTS_URL}{patient.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == patient.id

    def test_get_other_clinic_or_deleted_is_404(self, doctor_client, clinic, other_clinic):
        theirs = new_patient(other_clinic)
        deleted = services.soft_delete(new_patient(clinic))

        assert doctor_client.get(f'{PATIENTS_URL}{theirs.id}/').status_code == status.HTTP_404_NOT_FOUND
        assert doctor_client.get(f'{PATIENTS_URL}{deleted.id}/').status_code == status.HTTP_404_NOT_FOUND

    def test_put_is_partial_and_bumps_updated_at(self, doctor_client, clinic):
        patient = backdate(new_patient(clinic))
        before = patient.updated_at

        response = doctor_client.put(f'{PATIENTS_URL}{patient.id}/', {'weight': 61.2}, format='json')

        assert response.status_code == status.HTTP_200_OK
        patient.refresh_from_db()
        assert patient.weight == 61.2
        assert patient.name == 'Asha Kumar'
        assert patient.updated_at > before

    def test_put_other_clinic_patient_is_404(self, doctor_client, other_clinic):
        theirs = new_patient(other_clinic)

        response = doctor_client.put(f'{PATIENTS_URL}{theirs.id}/', {'name': 'Changed'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        theirs.refresh_from_db()
        assert theirs.name == 'Asha Kumar'

    def test_empty_update_keeps_updated_at(self, clinic):
        patient = backdate(new_patient(clinic))

        updated = services.update_patient(clinic, patient.id, {})

        assert updated.updated_at == patient.updated_at

    def test_patient_edit_reaches_pull(self, clinic):
        patient = backdate(new_patient(clinic))
        since = patient.updated_at

        services.update_patient(clinic, patient.id, {'allergies': 'Penicillin'})

        rows = pull_changes(clinic, since=since).collections['patients']
        assert [row['allergies'] for row in rows] == ['Penicillin']


def draft_prescription(clinic, patient_id='p1', medicines=(), lab_tests=()):
    prescription, _, _ = services.create_prescription(
        clinic,
        {'patient_id': patient_id, 'patient_name': 'Asha Kumar', 'patient_age': 34, 'patient_gender': 'female'},
        medicines=medicines,
        lab_tests=lab_tests,
    )
    return prescription


def finalized_prescription(clinic, patient_id='p1'):
    prescription = draft_prescription(clinic, patient_id)
    return services.finalize_prescription(clinic, prescription.id, signature='sig', pdf_hash='abc123')


@pytest.mark.django_db
class TestPrescriptionReads:
    def test_list_returns_finalized_only(self, doctor_client, clinic):
        draft_prescription(clinic)
        finalized = finalized_prescription(clinic)

        response = doctor_client.get(PRESCRIPTIONS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [item['id'] for item in response.data] == [finalized.id]

    def test_list_respects_limit(self, assistant_client, clinic):
        for _ in range(3):
            finalized_prescription(clinic)

        response = assistant_client.get(PRESCRIPTIONS_URL, {'limit': 2})

        assert len(response.data) == 2

    def test_detail_includes_live_children(self, doctor_client, clinic):
        prescription = draft_prescription(
            clinic,
            medicines=[{'medicine_name': 'Paracetamol 500mg'}, {'medicine_name': 'ORS'}],
            lab_tests=[{'test_name': 'CBC'}],
        )
        services.soft_delete(PrescriptionMedicine.objects.get(clinic=clinic, medicine_name='ORS'))

        response = doctor_client.get(f'{PRESCRIPTIONS_URL}{prescription.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == prescription.id
        assert [item['medicine_name'] for item in response.data['medicines']] == ['Paracetamol 500mg']
        assert [item['test_name'] for item in response.data['lab_tests']] == ['CBC']

    def test_detail_of_other_clinic_is_404(self, doctor_client, other_clinic):
        theirs = draft_prescription(other_clinic)

        response = doctor_client.get(f'{PRESCRIPTIONS_URL}{theirs.id}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_by_patient_includes_drafts(self, doctor_client, clinic):
        draft = draft_prescription(clinic, patient_id='p1')
        finalized = finalized_prescription(clinic, patient_id='p1')
        draft_prescription(clinic, patient_id='p2')

        response = doctor_client.get(f'{PRESCRIPTIONS_URL}patient/p1/')

        assert response.status_code == status.HTTP_200_OK
        assert {item['id'] for item in response.data} == {draft.id, finalized.id}

    def test_today_count_counts_finalized_today(self, doctor_client, clinic):
        draft_prescription(clinic)
        finalized_prescription(clinic)
        yesterday = finalized_prescription(clinic)
        Prescription.objects.filter(pk=yesterday.pk).update(created_at=timezone.now() - timedelta(days=1))

        response = doctor_client.get(f'{PRESCRIPTIONS_URL}today/count/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'count': 1}


@pytest.mark.django_db
class TestFinalizePrescription:
    def url(self, prescription_id):
        return f'{PRESCRIPTIONS_URL}{prescription_id}/finalize/'

    def test_doctor_finalizes_draft(self, doctor_client, clinic):
        prescription = backdate(draft_prescription(clinic))
        before = prescription.updated_at

        response = doctor_client.put(
            self.url(prescription.id), {'signature': 'data:image/png;base64,AAAA', 'pdf_hash': 'f00d'},
            format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'finalized'
        assert response.data['wallet_deducted'] == 1
        assert response.data['pdf_hash'] == 'f00d'
        prescription.refresh_from_db()
        assert prescription.updated_at > before

    def test_assistant_cannot_finalize(self, assistant_client, clinic):
        prescription = draft_prescription(clinic)

        response = assistant_client.put(self.url(prescription.id), {'signature': 's', 'pdf_hash': 'h'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        prescription.refresh_from_db()
        assert prescription.status == 'draft'

    def test_missing_signature_is_400(self, doctor_client, clinic):
        prescription = draft_prescription(clinic)

        response = doctor_client.put(self.url(prescription.id), {'pdf_hash': 'h'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'signature' in response.data

    def test_second_finalize_is_400(self, doctor_client, clinic):
        prescription = finalized_prescription(clinic)

        response = doctor_client.put(self.url(prescription.id), {'signature': 'other', 'pdf_hash': 'h2'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        prescription.refresh_from_db()
        assert prescription.signature == 'sig'

    def test_other_clinic_prescription_is_404(self, doctor_client, other_clinic):
        theirs = draft_prescription(other_clinic)

        response = doctor_client.put(self.url(theirs.id), {'signature': 's', 'pdf_hash': 'h'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_finalized_state_reaches_pull(self, clinic):
        prescription = backdate(draft_prescription(clinic))
        since = prescription.updated_at

        services.finalize_prescription(clinic, prescription.id, signature='sig', pdf_hash='abc123')

        rows = pull_changes(clinic, since=since).collections['prescriptions']
        assert [(row['id'], row['status']) for row in rows] == [(prescription.id, 'finalized')]


@pytest.mark.django_db
class TestQueueStats:
    def test_counts_todays_live_entries(self, doctor_client, clinic):
        first = services.add_to_queue(clinic, 'p1', added_by='u1')
        second = services.add_to_queue(clinic, 'p2', added_by='u1')
        services.add_to_queue(clinic, 'p3', added_by='u1')
        removed = services.add_to_queue(clinic, 'p4', added_by='u1')
        services.update_queue_status(clinic, first.id, 'completed')
        services.update_queue_status(clinic, second.id, 'in_progress')
        services.remove_from_queue(clinic, removed.id)

        response = doctor_client.get(f'{QUEUE_URL}stats/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'total': 3, 'waiting': 1, 'in_progress': 1, 'completed': 1}

    def test_empty_queue(self, doctor_client, other_clinic):
        services.add_to_queue(other_clinic, 'p1', added_by='u2')

        response = doctor_client.get(f'{QUEUE_URL}stats/')

        assert response.data == {'total': 0, 'waiting': 0, 'in_progress': 0, 'completed': 0}


@pytest.mark.django_db
class TestFrequentCatalogue:
    def test_medicines_most_used_first_with_limit(self, doctor_client, clinic):
        for name, uses in (('Alpha', 1), ('Beta', 5), ('Gamma', 3)):
            medicine = services.add_custom_medicine(clinic, name)
            CustomMedicine.objects.filter(pk=medicine.pk).update(usage_count=uses)

        response = doctor_client.get(f'{CUSTOM_MEDICINES_URL}frequent/', {'limit': 2})

        assert response.status_code == status.HTTP_200_OK
        assert [item['name'] for item in response.data] == ['Beta', 'Gamma']

    def test_lab_tests_hide_deleted(self, doctor_client, clinic):
        kept = services.add_custom_lab_test(clinic, 'CBC', category='Blood')
        services.soft_delete(services.add_custom_lab_test(clinic, 'Widal'))
        services.increment_lab_test_usage(clinic, kept.name)

        response = doctor_client.get(f'{CUSTOM_LAB_TESTS_URL}frequent/')

        assert [(item['name'], item['usage_count']) for item in response.data] == [('CBC', 1)]

    def test_lab_test_search_matches_category(self, doctor_client, clinic):
        services.add_custom_lab_test(clinic, 'CBC', category='Blood')
        services.add_custom_lab_test(clinic, 'Urine routine', category='Urine')

        response = doctor_client.get(CUSTOM_LAB_TESTS_URL, {'q': 'blood'})

        assert [item['name'] for item in response.data] == ['CBC']

"""
Last-write-wins row upsert.

Covers the merge rule on a single collection: insert when absent, replace
only when strictly newer, ties and stale rows keep the stored row,
created_at never changes, replays are no-ops.
"""
import pytest
from django.utils.dateparse import parse_datetime

from apps.records.models import CustomMedicine, Patient, Prescription
from apps.sync.manifests import get_manifest
from apps.sync.services import MalformedSyncPayload, upsert_rows


def patients():
    return get_manifest('patients')


@pytest.mark.django_db
class TestUpsertInsert:
    def test_inserts_missing_row(self, clinic, make_row, at):
        count = upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=1)])

        assert count == 1
        patient = Patient.objects.get(clinic=clinic, id='p1')
        assert patient.name == 'Asha Kumar'
        assert patient.age == 34
        assert patient.updated_at == parse_datetime(at(1))
        assert patient.created_at == parse_datetime(at(0))

    def test_same_id_in_two_clinics_are_separate_rows(self, clinic, other_clinic, make_row):
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=1, name='Ours')])
        upsert_rows(patients(), other_clinic, [make_row('patients', 'p1', updated=1, name='Theirs')])

        assert Patient.objects.get(clinic=clinic, id='p1').name == 'Ours'
        assert Patient.objects.get(clinic=other_clinic, id='p1').name == 'Theirs'

    def test_omitted_columns_take_model_defaults(self, clinic, at):
        row = {'id': 'p2', 'name': 'Kiran', 'age': 7, 'updated_at': at(2)}

        upsert_rows(patients(), clinic, [row])

        patient = Patient.objects.get(clinic=clinic, id='p2')
        assert patient.gender == 'male'
        assert patient.phone == ''
        assert patient.weight is None
        assert patient.is_deleted is False
        assert patient.created_at is not None

    def test_empty_batch_is_noop(self, clinic):
        assert upsert_rows(patients(), clinic, []) == 0
        assert Patient.objects.count() == 0


@pytest.mark.django_db
class TestUpsertLastWriteWins:
    def test_newer_row_replaces_stored(self, clinic, make_row, at):
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=1, name='Old')])
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=5, name='New')])

        patient = Patient.objects.get(clinic=clinic, id='p1')
        assert patient.name == 'New'
        assert patient.updated_at == parse_datetime(at(5))

    def test_older_row_is_discarded(self, clinic, make_row, at):
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=5, name='Current')])
        count = upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=2, name='Stale')])

        # Stale rows are still counted as submitted
        assert count == 1
        patient = Patient.objects.get(clinic=clinic, id='p1')
        assert patient.name == 'Current'
        assert patient.updated_at == parse_datetime(at(5))

    def test_tie_keeps_stored_row(self, clinic, make_row):
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=3, name='First')])
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=3, name='Second')])

        assert Patient.objects.get(clinic=clinic, id='p1').name == 'First'

    def test_created_at_is_never_replaced(self, clinic, make_row, at):
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=1)])
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=9, created_at=at(8))])

        assert Patient.objects.get(clinic=clinic, id='p1').created_at == parse_datetime(at(0))

    def test_newer_row_replaces_every_column(self, clinic, make_row, at):
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=1, allergies='Penicillin')])
        upsert_rows(patients(), clinic, [{'id': 'p1', 'name': 'Asha K', 'age': 35, 'updated_at': at(4)}])

        patient = Patient.objects.get(clinic=clinic, id='p1')
        assert patient.name == 'Asha K'
        assert patient.allergies == ''
        assert patient.gender == 'male'

    def test_soft_delete_wins_when_newer(self, clinic, make_row):
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=1)])
        upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated=2, is_deleted=True)])

        assert Patient.objects.get(clinic=clinic, id='p1').is_deleted is True

    def test_replay_is_idempotent(self, clinic, make_row):
        rows = [make_row('patients', 'p1', updated=1), make_row('patients', 'p2', updated=2)]
        upsert_rows(patients(), clinic, rows)
        before = list(Patient.objects.order_by('id').values())

        upsert_rows(patients(), clinic, rows)

        assert list(Patient.objects.order_by('id').values()) == before

    def test_duplicate_id_in_one_batch_keeps_newest(self, clinic, make_row):
        rows = [
            make_row('patients', 'p1', updated=4, name='Newest'),
            make_row('patients', 'p1', updated=2, name='Older'),
        ]

        upsert_rows(patients(), clinic, rows)

        assert Patient.objects.filter(clinic=clinic, id='p1').count() == 1
        assert Patient.objects.get(clinic=clinic, id='p1').name == 'Newest'


@pytest.mark.django_db
class TestUpsertOtherCollections:
    def test_prescription_date_and_nullable_columns(self, clinic, make_row):
        upsert_rows(get_manifest('prescriptions'), clinic, [make_row('prescriptions', 'RX-000001', updated=1)])

        prescription = Prescription.objects.get(clinic=clinic, id='RX-000001')
        assert prescription.follow_up_date.isoformat() == '2024-05-08'
        assert prescription.pdf_hash is None
        assert prescription.status == 'draft'

    def test_catalogue_usage_count_follows_newest_row(self, clinic, make_row):
        manifest = get_manifest('custom_medicines')
        upsert_rows(manifest, clinic, [make_row('custom_medicines', 'm1', updated=1, usage_count=3)])
        upsert_rows(manifest, clinic, [make_row('custom_medicines', 'm1', updated=2, usage_count=7)])

        assert CustomMedicine.objects.get(clinic=clinic, id='m1').usage_count == 7


@pytest.mark.django_db
class TestUpsertValidation:
    def test_missing_updated_at_is_malformed(self, clinic):
        with pytest.raises(MalformedSyncPayload) as exc_info:
            upsert_rows(patients(), clinic, [{'id': 'p1', 'name': 'Asha', 'age': 30}])

        assert 'patients' in exc_info.value.detail
        assert Patient.objects.count() == 0

    def test_missing_id_is_malformed(self, clinic, make_row):
        row = make_row('patients', 'p1', updated=1)
        del row['id']

        with pytest.raises(MalformedSyncPayload):
            upsert_rows(patients(), clinic, [row])

    def test_bad_timestamp_is_malformed(self, clinic, make_row):
        with pytest.raises(MalformedSyncPayload):
            upsert_rows(patients(), clinic, [make_row('patients', 'p1', updated_at='yesterday')])

    def test_invalid_choice_is_malformed(self, clinic, make_row):
        with pytest.raises(MalformedSyncPayload):
            upsert_rows(patients(), clinic, [make_row('patients', 'p1', gender='unknown')])

    def test_one_bad_row_rejects_whole_batch(self, clinic, make_row):
        rows = [make_row('patients', 'p1', updated=1), {'id': 'p2', 'name': 'No timestamp', 'age': 3}]

        with pytest.raises(MalformedSyncPayload):
            upsert_rows(patients(), clinic, rows)

        assert Patient.objects.count() == 0

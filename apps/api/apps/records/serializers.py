"""
Records serializers.

Row serializers define the wire shape of each synced collection: they
validate pushed rows and render pulled rows. Their `Meta.fields` is the
collection's column manifest, so the order and content here are the sync
contract with devices.
"""
from rest_framework import serializers

from apps.records.models import (
    Patient,
    Prescription,
    PrescriptionMedicine,
    PrescriptionLabTest,
    QueueEntry,
    QueueStatusChoices,
    CustomMedicine,
    CustomLabTest,
)


SYNC_BASE_FIELDS = ['id', 'is_deleted', 'created_at', 'updated_at']


class SyncedRowSerializer(serializers.ModelSerializer):
    """
    Base for synced row serializers.

    `updated_at` is required on every pushed row; `created_at` may be omitted
    and defaults to the insert time.
    """

    class Meta:
        fields = SYNC_BASE_FIELDS
        extra_kwargs = {
            'updated_at': {'required': True},
        }


class PatientRowSerializer(SyncedRowSerializer):
    class Meta(SyncedRowSerializer.Meta):
        model = Patient
        fields = [
            'id',
            'name',
            'age',
            'gender',
            'weight',
            'phone',
            'address',
            'blood_group',
            'allergies',
            'is_deleted',
            'created_at',
            'updated_at',
        ]


class PrescriptionRowSerializer(SyncedRowSerializer):
    class Meta(SyncedRowSerializer.Meta):
        model = Prescription
        fields = [
            'id',
            'patient_id',
            'patient_name',
            'patient_age',
            'patient_gender',
            'patient_phone',
            'doctor_id',
            'diagnosis',
            'advice',
            'follow_up_date',
            'pdf_hash',
            'signature',
            'status',
            'wallet_deducted',
            'is_deleted',
            'created_at',
            'updated_at',
        ]


class PrescriptionMedicineRowSerializer(SyncedRowSerializer):
    class Meta(SyncedRowSerializer.Meta):
        model = PrescriptionMedicine
        fields = [
            'id',
            'prescription_id',
            'medicine_name',
            'type',
            'dosage',
            'frequency',
            'duration',
            'timing',
            'notes',
            'is_deleted',
            'created_at',
            'updated_at',
        ]


class PrescriptionLabTestRowSerializer(SyncedRowSerializer):
    class Meta(SyncedRowSerializer.Meta):
        model = PrescriptionLabTest
        fields = [
            'id',
            'prescription_id',
            'test_name',
            'category',
            'notes',
            'is_deleted',
            'created_at',
            'updated_at',
        ]


class QueueEntryRowSerializer(SyncedRowSerializer):
    class Meta(SyncedRowSerializer.Meta):
        model = QueueEntry
        fields = [
            'id',
            'patient_id',
            'status',
            'added_by',
            'notes',
            'token_number',
            'added_at',
            'started_at',
            'completed_at',
            'is_deleted',
            'created_at',
            'updated_at',
        ]


class CustomMedicineRowSerializer(SyncedRowSerializer):
    class Meta(SyncedRowSerializer.Meta):
        model = CustomMedicine
        fields = [
            'id',
            'name',
            'type',
            'strength',
            'manufacturer',
            'usage_count',
            'is_deleted',
            'created_at',
            'updated_at',
        ]


class CustomLabTestRowSerializer(SyncedRowSerializer):
    class Meta(SyncedRowSerializer.Meta):
        model = CustomLabTest
        fields = [
            'id',
            'name',
            'category',
            'usage_count',
            'is_deleted',
            'created_at',
            'updated_at',
        ]


# ============================================================================
# Record endpoint payloads
# ============================================================================

class QueueStatusUpdateSerializer(serializers.Serializer):
    """Input for PATCH /records/queue/{id}/status/"""
    status = serializers.ChoiceField(choices=QueueStatusChoices.choices)


class CustomMedicineCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    type = serializers.CharField(max_length=50, required=False, default='Tablet')
    strength = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    manufacturer = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')


class CustomLabTestCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    category = serializers.CharField(max_length=100, required=False, default='Other')


class UsageIncrementSerializer(serializers.Serializer):
    """Input for the usage tracking endpoints (matched by catalogue name)."""
    name = serializers.CharField(max_length=255)


class QueueEntryCreateSerializer(serializers.Serializer):
    """Input for POST /records/queue/"""
    patient_id = serializers.CharField(max_length=64)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PrescriptionMedicineInputSerializer(serializers.ModelSerializer):
    class Meta:
        model = PrescriptionMedicine
        fields = ['medicine_name', 'type', 'dosage', 'frequency', 'duration', 'timing', 'notes']


class PrescriptionLabTestInputSerializer(serializers.ModelSerializer):
    class Meta:
        model = PrescriptionLabTest
        fields = ['test_name', 'category', 'notes']


class PrescriptionCreateSerializer(serializers.ModelSerializer):
    """
    Input for POST /records/prescriptions/.

    doctor_id is not accepted: the prescription is written by the caller.
    """
    medicines = PrescriptionMedicineInputSerializer(many=True, required=False)
    lab_tests = PrescriptionLabTestInputSerializer(many=True, required=False)

    class Meta:
        model = Prescription
        fields = [
            'patient_id',
            'patient_name',
            'patient_age',
            'patient_gender',
            'patient_phone',
            'diagnosis',
            'advice',
            'follow_up_date',
            'medicines',
            'lab_tests',
        ]
        extra_kwargs = {
            'patient_id': {'required': True, 'allow_blank': False},
            'patient_name': {'required': True, 'allow_blank': False},
            'patient_age': {'required': True},
            'patient_gender': {'required': True},
        }


class PrescriptionFinalizeSerializer(serializers.Serializer):
    """Input for PUT /records/prescriptions/{id}/finalize/"""
    signature = serializers.CharField()
    pdf_hash = serializers.CharField(max_length=128)


class PatientInputSerializer(serializers.ModelSerializer):
    """
    Input for POST /records/patients/ and PUT /records/patients/{id}/.

    Creation needs name, age and gender; updates are partial.
    """

    class Meta:
        model = Patient
        fields = ['name', 'age', 'gender', 'weight', 'phone', 'address', 'blood_group', 'allergies']
        extra_kwargs = {
            'age': {'required': True},
            'gender': {'required': True},
        }


class PatientListQuerySerializer(serializers.Serializer):
    search = serializers.CharField(required=False, allow_blank=True, default='')
    limit = serializers.IntegerField(required=False, min_value=1, max_value=500, default=100)
    offset = serializers.IntegerField(required=False, min_value=0, default=0)


class LimitQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=20)

from django.contrib import admin
from .models import (
    Patient,
    Prescription,
    PrescriptionMedicine,
    PrescriptionLabTest,
    QueueEntry,
    CustomMedicine,
    CustomLabTest,
)


class SyncedRecordAdmin(admin.ModelAdmin):
    """Rows are created by devices or the records API; admin edits bump updated_at so they sync."""
    list_filter = ['clinic', 'is_deleted']
    readonly_fields = ['sync_pk', 'id', 'clinic', 'created_at', 'updated_at']
    ordering = ['-updated_at']

    def has_add_permission(self, request):
        return False

    def save_model(self, request, obj, form, change):
        obj.touch()
        super().save_model(request, obj, form, change)


@admin.register(Patient)
class PatientAdmin(SyncedRecordAdmin):
    list_display = ['id', 'name', 'age', 'gender', 'clinic', 'is_deleted', 'updated_at']
    search_fields = ['id', 'name', 'phone']


@admin.register(Prescription)
class PrescriptionAdmin(SyncedRecordAdmin):
    list_display = ['id', 'patient_name', 'status', 'clinic', 'is_deleted', 'updated_at']
    list_filter = ['clinic', 'status', 'is_deleted']
    search_fields = ['id', 'patient_id', 'patient_name']


@admin.register(PrescriptionMedicine)
class PrescriptionMedicineAdmin(SyncedRecordAdmin):
    list_display = ['id', 'prescription_id', 'medicine_name', 'clinic', 'is_deleted', 'updated_at']
    search_fields = ['id', 'prescription_id', 'medicine_name']


@admin.register(PrescriptionLabTest)
class PrescriptionLabTestAdmin(SyncedRecordAdmin):
    list_display = ['id', 'prescription_id', 'test_name', 'clinic', 'is_deleted', 'updated_at']
    search_fields = ['id', 'prescription_id', 'test_name']


@admin.register(QueueEntry)
class QueueEntryAdmin(SyncedRecordAdmin):
    list_display = ['id', 'token_number', 'patient_id', 'status', 'clinic', 'added_at', 'is_deleted']
    list_filter = ['clinic', 'status', 'is_deleted']
    search_fields = ['id', 'patient_id']


@admin.register(CustomMedicine)
class CustomMedicineAdmin(SyncedRecordAdmin):
    list_display = ['id', 'name', 'type', 'usage_count', 'clinic', 'is_deleted']
    search_fields = ['id', 'name']


@admin.register(CustomLabTest)
class CustomLabTestAdmin(SyncedRecordAdmin):
    list_display = ['id', 'name', 'category', 'usage_count', 'clinic', 'is_deleted']
    search_fields = ['id', 'name']

"""
Records API URLs.
"""
from django.urls import path

from .views import (
    CustomLabTestUsageView,
    CustomLabTestView,
    CustomMedicineUsageView,
    CustomMedicineView,
    FrequentCustomLabTestView,
    FrequentCustomMedicineView,
    PatientDetailView,
    PatientPrescriptionsView,
    PatientView,
    PrescriptionDetailView,
    PrescriptionFinalizeView,
    PrescriptionListView,
    QueueEntryView,
    QueueStatsView,
    QueueStatusView,
    QueueView,
    TodayPrescriptionCountView,
)

urlpatterns = [
    # Patients
    path('patients/', PatientView.as_view(), name='patients'),
    path('patients/<str:patient_id>/', PatientDetailView.as_view(), name='patient-detail'),

    # Queue
    path('queue/', QueueView.as_view(), name='queue'),
    path('queue/stats/', QueueStatsView.as_view(), name='queue-stats'),
    path('queue/<str:entry_id>/', QueueEntryView.as_view(), name='queue-entry'),
    path('queue/<str:entry_id>/status/', QueueStatusView.as_view(), name='queue-status'),

    # Prescriptions
    path('prescriptions/', PrescriptionListView.as_view(), name='prescriptions'),
    path('prescriptions/today/count/', TodayPrescriptionCountView.as_view(), name='prescription-today-count'),
    path('prescriptions/patient/<str:patient_id>/', PatientPrescriptionsView.as_view(),
         name='patient-prescriptions'),
    path('prescriptions/<str:prescription_id>/', PrescriptionDetailView.as_view(), name='prescription-detail'),
    path('prescriptions/<str:prescription_id>/finalize/', PrescriptionFinalizeView.as_view(),
         name='prescription-finalize'),

    # Custom catalogue
    path('custom-medicines/', CustomMedicineView.as_view(), name='custom-medicines'),
    path('custom-medicines/frequent/', FrequentCustomMedicineView.as_view(), name='custom-medicines-frequent'),
    path('custom-medicines/usage/', CustomMedicineUsageView.as_view(), name='custom-medicine-usage'),
    path('custom-lab-tests/', CustomLabTestView.as_view(), name='custom-lab-tests'),
    path('custom-lab-tests/frequent/', FrequentCustomLabTestView.as_view(), name='custom-lab-tests-frequent'),
    path('custom-lab-tests/usage/', CustomLabTestUsageView.as_view(), name='custom-lab-test-usage'),
]

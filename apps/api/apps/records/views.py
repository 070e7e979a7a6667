"""
Record endpoints used while a device is online.

Every write goes through apps.records.services and bumps updated_at, so the
change reaches other devices through the normal pull.
"""
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.authz.permissions import ClinicScopedMixin, HasClinic, IsDoctor
from apps.records import services
from apps.records.models import CustomLabTest, CustomMedicine
from apps.records.serializers import (
    CustomLabTestCreateSerializer,
    CustomLabTestRowSerializer,
    CustomMedicineCreateSerializer,
    CustomMedicineRowSerializer,
    LimitQuerySerializer,
    PatientInputSerializer,
    PatientListQuerySerializer,
    PatientRowSerializer,
    PrescriptionCreateSerializer,
    PrescriptionFinalizeSerializer,
    PrescriptionLabTestRowSerializer,
    PrescriptionMedicineRowSerializer,
    PrescriptionRowSerializer,
    QueueEntryCreateSerializer,
    QueueEntryRowSerializer,
    QueueStatusUpdateSerializer,
    UsageIncrementSerializer,
)


class ClinicRecordView(ClinicScopedMixin, APIView):
    permission_classes = [IsAuthenticated, HasClinic]


# ============================================================================
# Patients
# ============================================================================

class PatientView(ClinicRecordView):
    """
    GET  /records/patients/?search=asha&limit=100&offset=0 - most recently changed first
    POST /records/patients/
    """

    def get(self, request):
        query = PatientListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        patients = services.list_patients(self.get_clinic(), **query.validated_data)
        return Response(PatientRowSerializer(patients, many=True).data)

    def post(self, request):
        serializer = PatientInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        patient = services.create_patient(self.get_clinic(), serializer.validated_data)
        return Response(PatientRowSerializer(patient).data, status=status.HTTP_201_CREATED)


class PatientDetailView(ClinicRecordView):
    """
    GET /records/patients/{id}/
    PUT /records/patients/{id}/ - partial update
    """

    def get(self, request, patient_id):
        patient = services.get_patient(self.get_clinic(), patient_id)
        return Response(PatientRowSerializer(patient).data)

    def put(self, request, patient_id):
        serializer = PatientInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        patient = services.update_patient(self.get_clinic(), patient_id, serializer.validated_data)
        return Response(PatientRowSerializer(patient).data)


# ============================================================================
# Queue
# ============================================================================

class QueueView(ClinicRecordView):
    """
    GET  /records/queue/ - today's live queue in token order
    POST /records/queue/ - add a patient with the next token number
    """

    def get(self, request):
        entries = services.todays_queue(self.get_clinic())
        return Response(QueueEntryRowSerializer(entries, many=True).data)

    def post(self, request):
        serializer = QueueEntryCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = services.add_to_queue(
            self.get_clinic(),
            added_by=str(request.user.id),
            **serializer.validated_data
        )
        return Response(QueueEntryRowSerializer(entry).data, status=status.HTTP_201_CREATED)


class QueueStatsView(ClinicRecordView):
    """GET /records/queue/stats/ - today's totals per status"""

    def get(self, request):
        return Response(services.queue_stats(self.get_clinic()))


class QueueStatusView(ClinicRecordView):
    """PUT /records/queue/{id}/status/ - {"status": "in_progress"}"""

    def put(self, request, entry_id):
        serializer = QueueStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = services.update_queue_status(
            self.get_clinic(), entry_id, serializer.validated_data['status']
        )
        return Response(QueueEntryRowSerializer(entry).data)


class QueueEntryView(ClinicRecordView):
    """DELETE /records/queue/{id}/ - soft delete"""

    def delete(self, request, entry_id):
        services.remove_from_queue(self.get_clinic(), entry_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Prescriptions
# ============================================================================

def prescription_payload(prescription, medicines, lab_tests):
    data = dict(PrescriptionRowSerializer(prescription).data)
    data['medicines'] = PrescriptionMedicineRowSerializer(medicines, many=True).data
    data['lab_tests'] = PrescriptionLabTestRowSerializer(lab_tests, many=True).data
    return data


class PrescriptionListView(ClinicRecordView):
    """
    GET  /records/prescriptions/?limit=20 - recent finalized prescriptions
    POST /records/prescriptions/ - doctors only; creates a draft with an RX- code
    """

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsDoctor(), HasClinic()]
        return super().get_permissions()

    def get(self, request):
        query = LimitQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        prescriptions = services.recent_prescriptions(self.get_clinic(), **query.validated_data)
        return Response(PrescriptionRowSerializer(prescriptions, many=True).data)

    def post(self, request):
        serializer = PrescriptionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = dict(serializer.validated_data)
        medicines = data.pop('medicines', [])
        lab_tests = data.pop('lab_tests', [])
        data['doctor_id'] = str(request.user.id)

        prescription, medicine_rows, lab_test_rows = services.create_prescription(
            self.get_clinic(), data, medicines=medicines, lab_tests=lab_tests
        )
        return Response(
            prescription_payload(prescription, medicine_rows, lab_test_rows),
            status=status.HTTP_201_CREATED
        )


class PrescriptionDetailView(ClinicRecordView):
    """GET /records/prescriptions/{id}/ - header with medicines and lab tests"""

    def get(self, request, prescription_id):
        prescription, medicines, lab_tests = services.get_prescription(self.get_clinic(), prescription_id)
        return Response(prescription_payload(prescription, medicines, lab_tests))


class PatientPrescriptionsView(ClinicRecordView):
    """GET /records/prescriptions/patient/{patient_id}/ - drafts included"""

    def get(self, request, patient_id):
        prescriptions = services.patient_prescriptions(self.get_clinic(), patient_id)
        return Response(PrescriptionRowSerializer(prescriptions, many=True).data)


class TodayPrescriptionCountView(ClinicRecordView):
    """GET /records/prescriptions/today/count/ - finalized today"""

    def get(self, request):
        return Response({'count': services.todays_prescription_count(self.get_clinic())})


class PrescriptionFinalizeView(ClinicRecordView):
    """PUT /records/prescriptions/{id}/finalize/ - {"signature": "...", "pdf_hash": "..."}; doctors only"""
    permission_classes = [IsAuthenticated, IsDoctor, HasClinic]

    def put(self, request, prescription_id):
        serializer = PrescriptionFinalizeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        prescription = services.finalize_prescription(
            self.get_clinic(), prescription_id, **serializer.validated_data
        )
        return Response(PrescriptionRowSerializer(prescription).data)


# ============================================================================
# Custom catalogue
# ============================================================================

class CustomMedicineView(ClinicRecordView):
    """
    GET  /records/custom-medicines/?q=para - most used first
    POST /records/custom-medicines/
    """

    def get(self, request):
        medicines = services.search_catalogue(
            CustomMedicine, self.get_clinic(), request.query_params.get('q', '')
        )
        return Response(CustomMedicineRowSerializer(medicines, many=True).data)

    def post(self, request):
        serializer = CustomMedicineCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        medicine = services.add_custom_medicine(self.get_clinic(), **serializer.validated_data)
        return Response(CustomMedicineRowSerializer(medicine).data, status=status.HTTP_201_CREATED)


class CustomMedicineUsageView(ClinicRecordView):
    """PUT /records/custom-medicines/usage/ - {"name": "..."}"""

    def put(self, request):
        serializer = UsageIncrementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        updated = services.increment_medicine_usage(self.get_clinic(), serializer.validated_data['name'])
        return Response({'success': True, 'updated': updated})


class CustomLabTestView(ClinicRecordView):
    """
    GET  /records/custom-lab-tests/?q=cbc - most used first
    POST /records/custom-lab-tests/
    """

    def get(self, request):
        lab_tests = services.search_catalogue(
            CustomLabTest, self.get_clinic(), request.query_params.get('q', '')
        )
        return Response(CustomLabTestRowSerializer(lab_tests, many=True).data)

    def post(self, request):
        serializer = CustomLabTestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lab_test = services.add_custom_lab_test(self.get_clinic(), **serializer.validated_data)
        return Response(CustomLabTestRowSerializer(lab_test).data, status=status.HTTP_201_CREATED)


class CustomLabTestUsageView(ClinicRecordView):
    """PUT /records/custom-lab-tests/usage/ - {"name": "..."}"""

    def put(self, request):
        serializer = UsageIncrementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        updated = services.increment_lab_test_usage(self.get_clinic(), serializer.validated_data['name'])
        return Response({'success': True, 'updated': updated})


class FrequentCatalogueView(ClinicRecordView):
    """
    GET /records/custom-medicines/frequent/?limit=20
    GET /records/custom-lab-tests/frequent/?limit=20
    """
    model = None
    serializer_class = None

    def get(self, request):
        query = LimitQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        entries = services.frequent_catalogue(self.model, self.get_clinic(), **query.validated_data)
        return Response(self.serializer_class(entries, many=True).data)


class FrequentCustomMedicineView(FrequentCatalogueView):
    model = CustomMedicine
    serializer_class = CustomMedicineRowSerializer


class FrequentCustomLabTestView(FrequentCatalogueView):
    model = CustomLabTest
    serializer_class = CustomLabTestRowSerializer

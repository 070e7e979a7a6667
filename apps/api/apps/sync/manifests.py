"""
Collection manifests.

Static description of every synced collection: its wire name, the model
backing it, the ordered column list devices exchange, and the serializer
that validates pushed rows and renders pulled ones.

PUSH_ORDER is the order collections are applied in a push and listed in a
pull: parents before children.
"""
from dataclasses import dataclass
from typing import Dict, Tuple, Type

from django.db import models
from rest_framework import serializers

from apps.records.models import (
    Patient,
    Prescription,
    PrescriptionMedicine,
    PrescriptionLabTest,
    QueueEntry,
    CustomMedicine,
    CustomLabTest,
)
from apps.records.serializers import (
    PatientRowSerializer,
    PrescriptionRowSerializer,
    PrescriptionMedicineRowSerializer,
    PrescriptionLabTestRowSerializer,
    QueueEntryRowSerializer,
    CustomMedicineRowSerializer,
    CustomLabTestRowSerializer,
)


# Columns every manifest must carry
REQUIRED_COLUMNS = ('id', 'is_deleted', 'created_at', 'updated_at')

# Written on insert only, never replaced by a later upsert
INSERT_ONLY_COLUMNS = ('created_at',)


@dataclass(frozen=True)
class CollectionManifest:
    name: str
    model: Type[models.Model]
    serializer_class: Type[serializers.ModelSerializer]

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(self.serializer_class.Meta.fields)

    @property
    def update_columns(self) -> Tuple[str, ...]:
        """Columns replaced when an incoming row wins (identity and insert-only excluded)."""
        return tuple(c for c in self.columns if c != 'id' and c not in INSERT_ONLY_COLUMNS)


PUSH_ORDER = (
    'patients',
    'prescriptions',
    'prescription_medicines',
    'prescription_lab_tests',
    'queue',
    'custom_medicines',
    'custom_lab_tests',
)

MANIFESTS: Dict[str, CollectionManifest] = {
    'patients': CollectionManifest('patients', Patient, PatientRowSerializer),
    'prescriptions': CollectionManifest('prescriptions', Prescription, PrescriptionRowSerializer),
    'prescription_medicines': CollectionManifest(
        'prescription_medicines', PrescriptionMedicine, PrescriptionMedicineRowSerializer
    ),
    'prescription_lab_tests': CollectionManifest(
        'prescription_lab_tests', PrescriptionLabTest, PrescriptionLabTestRowSerializer
    ),
    'queue': CollectionManifest('queue', QueueEntry, QueueEntryRowSerializer),
    'custom_medicines': CollectionManifest('custom_medicines', CustomMedicine, CustomMedicineRowSerializer),
    'custom_lab_tests': CollectionManifest('custom_lab_tests', CustomLabTest, CustomLabTestRowSerializer),
}


def ordered_manifests():
    """Manifests in push order."""
    return [MANIFESTS[name] for name in PUSH_ORDER]


def get_manifest(name: str) -> CollectionManifest:
    return MANIFESTS[name]


def _check_manifests():
    """Fail at import if a manifest drifts from its model."""
    if set(PUSH_ORDER) != set(MANIFESTS):
        raise RuntimeError(
            f"PUSH_ORDER and MANIFESTS disagree: {sorted(set(PUSH_ORDER) ^ set(MANIFESTS))}"
        )

    for manifest in MANIFESTS.values():
        serializer_model = manifest.serializer_class.Meta.model
        if serializer_model is not manifest.model:
            raise RuntimeError(
                f"{manifest.name}: serializer targets {serializer_model.__name__}, "
                f"manifest targets {manifest.model.__name__}"
            )

        missing = [c for c in REQUIRED_COLUMNS if c not in manifest.columns]
        if missing:
            raise RuntimeError(f"{manifest.name}: missing required columns {missing}")

        model_fields = {f.name for f in manifest.model._meta.concrete_fields}
        unknown = [c for c in manifest.columns if c not in model_fields]
        if unknown:
            raise RuntimeError(f"{manifest.name}: columns not on {manifest.model.__name__}: {unknown}")


_check_manifests()

"""
Clinic setup.

A doctor registers exactly one clinic; registering again updates it.
The owner always gets an active doctor membership so clinic resolution
works the same way for owners and staff.
"""
from django.db import transaction

from apps.authz.models import ClinicMembership, RoleChoices
from apps.core.models import Clinic
from apps.core.observability.events import log_domain_event

CLINIC_CONTACT_FIELDS = ('address', 'phone', 'email')


def save_owned_clinic(owner, name, **contact):
    """
    Create or update the clinic owned by `owner`.

    Returns (clinic, created).
    """
    values = {'name': name}
    values.update({k: v for k, v in contact.items() if k in CLINIC_CONTACT_FIELDS and v is not None})

    with transaction.atomic():
        clinic = Clinic.objects.select_for_update().filter(owner=owner).first()
        created = clinic is None
        if created:
            clinic = Clinic.objects.create(owner=owner, **values)
        else:
            for key, value in values.items():
                setattr(clinic, key, value)
            clinic.save()

        ClinicMembership.objects.update_or_create(
            clinic=clinic,
            user=owner,
            defaults={'role': RoleChoices.DOCTOR, 'is_active': True},
        )

    log_domain_event(
        'clinic_created' if created else 'clinic_updated',
        entity_type='Clinic',
        entity_id=str(clinic.id),
        entity_ids={'owner_id': str(owner.id)},
    )
    return clinic, created

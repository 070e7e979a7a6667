"""
Management command to ensure a doctor account with a clinic exists (for Docker startup).
"""
import os

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from apps.authz.models import RoleChoices
from apps.core.services import save_owned_clinic


class Command(BaseCommand):
    help = 'Create the bootstrap doctor (superuser) and their clinic if they do not exist'

    def handle(self, *args, **options):
        User = get_user_model()

        phone = os.environ.get('DJANGO_SUPERUSER_PHONE', '+10000000000')
        password = os.environ.get('DJANGO_SUPERUSER_PASSWORD', 'admin123dev')
        clinic_name = os.environ.get('BOOTSTRAP_CLINIC_NAME', 'Demo Clinic')

        user = User.objects.filter(phone=phone).first()
        if user is None:
            user = User.objects.create_superuser(
                phone=phone,
                password=password,
                name='Admin',
                role=RoleChoices.DOCTOR,
            )
            self.stdout.write(self.style.SUCCESS(f'Superuser "{phone}" created successfully'))
        else:
            self.stdout.write(self.style.WARNING(f'Superuser "{phone}" already exists'))

        if user.owned_clinics.exists():
            self.stdout.write(self.style.WARNING(f'Clinic for "{phone}" already exists'))
            return

        clinic, _ = save_owned_clinic(user, clinic_name)
        self.stdout.write(self.style.SUCCESS(f'Clinic "{clinic.name}" created'))

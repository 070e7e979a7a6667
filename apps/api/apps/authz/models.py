"""
Authz models: auth_user, clinic_membership

Users log in by phone number. A user reaches clinic data only through an
active ClinicMembership; the clinic resolved from it is the authorization
context every sync and record operation is scoped to.
"""
import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin


# ============================================================================
# Enums
# ============================================================================

class RoleChoices(models.TextChoices):
    """
    Clinic staff roles.

    - DOCTOR: owns a clinic, writes and finalizes prescriptions
    - ASSISTANT: registers patients and manages the visit queue
    """
    DOCTOR = 'doctor', 'Doctor'
    ASSISTANT = 'assistant', 'Assistant'


# ============================================================================
# User Management
# ============================================================================

class UserManager(BaseUserManager):
    """Custom user manager for phone-based authentication."""

    def create_user(self, phone, password=None, **extra_fields):
        if not phone:
            raise ValueError('Phone is required')
        email = extra_fields.pop('email', '')
        user = self.model(phone=phone, email=self.normalize_email(email), **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, phone, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        return self.create_user(phone, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom user model for authentication.

    Fields:
    - id: UUID PK
    - phone: unique, login identifier
    - name
    - email: optional
    - role: doctor|assistant
    - is_active, is_staff
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    phone = models.CharField(unique=True, max_length=20)
    name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(max_length=255, blank=True, default='')
    role = models.CharField(
        max_length=20,
        choices=RoleChoices.choices,
        default=RoleChoices.DOCTOR
    )
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)  # Required for admin access
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'phone'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'auth_user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['is_active'], name='idx_user_active'),
        ]

    def __str__(self):
        return self.name or self.phone


class ClinicMembership(models.Model):
    """
    Links a user to the clinic they work in.

    A doctor gets a membership for the clinic they own; an assistant gets one
    once connected to a doctor. At most one active membership is expected per
    user, but the doctor-owned clinic wins if several exist.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        related_name='memberships'
    )
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='clinic_memberships'
    )
    role = models.CharField(max_length=20, choices=RoleChoices.choices)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'clinic_membership'
        verbose_name = 'Clinic Membership'
        verbose_name_plural = 'Clinic Memberships'
        constraints = [
            models.UniqueConstraint(fields=['clinic', 'user'], name='uniq_clinic_membership'),
        ]
        indexes = [
            models.Index(fields=['user', 'is_active'], name='idx_membership_user_active'),
        ]

    def __str__(self):
        return f"{self.user} @ {self.clinic} ({self.role})"

"""
Auth and profile serializers.
"""
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from apps.authz.permissions import resolve_clinic
from apps.core.models import Clinic


class ClinicTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Phone + password login.

    Adds `role` and `clinic_id` claims for client display. The server never
    trusts the claim: every request resolves the clinic from memberships.
    """

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        clinic = resolve_clinic(user)
        token['role'] = user.role
        token['clinic_id'] = str(clinic.id) if clinic else None
        return token


class ClinicSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Clinic
        fields = ['id', 'name', 'address', 'phone', 'email']
        read_only_fields = fields


class UserProfileSerializer(serializers.Serializer):
    """Current user profile (GET /api/auth/me/)."""
    id = serializers.UUIDField()
    phone = serializers.CharField()
    name = serializers.CharField(allow_blank=True)
    role = serializers.CharField()
    is_active = serializers.BooleanField()
    clinic = ClinicSummarySerializer(allow_null=True)


class ClinicWriteSerializer(serializers.Serializer):
    """Input for POST /api/clinic/"""
    name = serializers.CharField(max_length=255)
    address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(max_length=255, required=False, allow_blank=True)

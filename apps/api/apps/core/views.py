"""
Core views - JWT login and current user profile.
"""
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from apps.authz.permissions import IsDoctor, resolve_clinic
from .serializers import (
    ClinicSummarySerializer,
    ClinicTokenObtainPairSerializer,
    ClinicWriteSerializer,
    UserProfileSerializer,
)
from .services import save_owned_clinic


class ClinicTokenObtainPairView(TokenObtainPairView):
    """POST /api/auth/token/ - phone + password -> access/refresh pair."""
    serializer_class = ClinicTokenObtainPairSerializer


class CurrentUserView(APIView):
    """
    Current authenticated user profile endpoint.

    GET /api/auth/me/

    Clients call this after login to learn the user's role and clinic.
    `clinic` is null until the user has an active clinic membership; sync
    endpoints answer 400 clinic_required in that state.

    Response format:
    {
        "id": "uuid",
        "phone": "+919800000001",
        "name": "Dr. Rao",
        "role": "doctor",
        "is_active": true,
        "clinic": {"id": "uuid", "name": "...", ...} | null
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user

        profile_data = {
            'id': user.id,
            'phone': user.phone,
            'name': user.name,
            'role': user.role,
            'is_active': user.is_active,
            'clinic': resolve_clinic(user),
        }

        serializer = UserProfileSerializer(profile_data)
        return Response(serializer.data, status=status.HTTP_200_OK)


class ClinicView(APIView):
    """
    The caller's clinic.

    GET  /api/clinic/ - {"clinic": {...} | null}
    POST /api/clinic/ - doctors only; creates their clinic or updates it
    """

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsDoctor()]
        return [IsAuthenticated()]

    def get(self, request):
        clinic = resolve_clinic(request.user)
        data = ClinicSummarySerializer(clinic).data if clinic else None
        return Response({'clinic': data}, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = ClinicWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        clinic, created = save_owned_clinic(request.user, **serializer.validated_data)
        return Response(
            {'clinic': ClinicSummarySerializer(clinic).data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )

"""
Core API URLs - Authentication.
"""
from django.urls import path
from rest_framework_simplejwt.views import (
    TokenRefreshView,
    TokenVerifyView,
)

from .views import ClinicTokenObtainPairView, ClinicView, CurrentUserView

urlpatterns = [
    # JWT Authentication
    path('auth/token/', ClinicTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    # Current user
    path('auth/me/', CurrentUserView.as_view(), name='current-user'),

    # Clinic setup
    path('clinic/', ClinicView.as_view(), name='clinic'),
]

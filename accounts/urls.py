from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from .tokens import RoleTokenObtainPairView

app_name = 'accounts'

urlpatterns = [
    # ========================================
    # JWT TOKEN MANAGEMENT
    # ========================================
    path('token/', RoleTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
]

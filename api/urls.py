# api/urls.py

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'requests', views.AidRequestViewSet, basename='aid-request')
router.register(r'notifications', views.NotificationViewSet, basename='notification')

app_name = 'api'

urlpatterns = [
    path('', include(router.urls)),
]

# Available endpoints:
# POST /api/requests/                        - Submit a blood, plasma or ventilator request
# GET  /api/requests/?status=PENDING         - List requests, optionally by status
# GET  /api/requests/pending/                - Pending requests in priority order
# GET  /api/requests/{id}/matches/           - Donors matched to a request
# POST /api/requests/{id}/respond/           - Donor accepts or rejects
# POST /api/requests/{id}/approve/           - Hospital approves
# POST /api/requests/{id}/fulfill/           - Hospital marks the donation done
# POST /api/requests/{id}/cancel/
# POST /api/requests/{id}/reject/
#
# GET  /api/notifications/                   - Unread notifications of the logged-in user
# POST /api/notifications/{id}/read/         - Mark one as read

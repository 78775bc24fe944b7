# api/views.py
from django.db.models import Q
from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.authentication import BasicAuthentication, SessionAuthentication
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.authentication import JWTAuthentication

from accounts.models import Notification
from accounts.permissions import HasUserType, is_platform_admin
from hospitals.models import AidRequest
from matching import factory
from matching.exceptions import NotFoundError, TransientPersistenceError, ValidationError
from .serializers import (
    AidRequestSerializer, ApproveSerializer, DonorMatchSerializer, DonorResponseSerializer,
    NotificationSerializer,
)

def service_error_response(exc):
    """Map matching errors to HTTP responses"""
    if isinstance(exc, NotFoundError):
        return Response({'error': str(exc)}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, ValidationError):
        return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'error': 'Temporarily unavailable, please retry.'},
                    status=status.HTTP_503_SERVICE_UNAVAILABLE)


class AidRequestViewSet(mixins.CreateModelMixin,
                        mixins.ListModelMixin,
                        mixins.RetrieveModelMixin,
                        viewsets.GenericViewSet):
    """
    API endpoint for submitting and handling blood, plasma and ventilator requests

    Patients see their own requests, hospitals the requests assigned to them, donors
    the requests they were matched to, and admins everything.
    """
    queryset = AidRequest.objects.select_related('hospital').order_by('-created_at')
    serializer_class = AidRequestSerializer
    lookup_value_regex = r'\d+'
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def get_permissions(self):
        if self.action in ('approve', 'fulfill', 'cancel', 'reject', 'pending', 'matches'):
            return [IsAuthenticated(), HasUserType.of('hospital', 'super_admin')()]
        if self.action == 'create':
            return [IsAuthenticated(), HasUserType.of('patient', 'hospital', 'super_admin')()]
        if self.action == 'respond':
            return [IsAuthenticated(), HasUserType.of('donor')()]
        return super().get_permissions()

    def get_queryset(self):
        queryset = self._visible_to(self.request.user, super().get_queryset())
        status_filter = self.request.query_params.get('status')
        if status_filter and status_filter != 'all':
            queryset = queryset.filter(status=status_filter.upper())
        return queryset

    @staticmethod
    def _visible_to(user, queryset):
        if is_platform_admin(user):
            return queryset
        if user.user_type == 'patient':
            return queryset.filter(patient__user=user)
        if user.user_type == 'hospital':
            return queryset.filter(hospital__user=user)
        if user.user_type == 'donor':
            return queryset.filter(matches__donor__user=user).distinct()
        return queryset.none()

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        fields = dict(serializer.validated_data)
        user = request.user
        if not is_platform_admin(user):
            # Patients file for themselves; hospitals file under their own name
            profile_attr = 'patient_profile' if user.user_type == 'patient' else 'hospital_profile'
            profile = getattr(user, profile_attr, None)
            if profile is None:
                return Response({'error': 'Complete your profile before submitting requests.'},
                                status=status.HTTP_403_FORBIDDEN)
            fields['patient_id' if user.user_type == 'patient' else 'hospital_id'] = profile.pk

        aid_request = AidRequest(**fields)
        try:
            factory.submit_request(aid_request)
        except (NotFoundError, ValidationError, TransientPersistenceError) as e:
            return service_error_response(e)

        data = self.get_serializer(aid_request).data
        data['matches'] = DonorMatchSerializer(aid_request.matches.select_related('donor'), many=True).data
        return Response(data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def pending(self, request):
        """Pending requests ordered by priority (urgency, waiting time, quantity, rarity)"""
        own_hospital = self._acting_hospital()
        queue = factory.build_lifecycle().pending_queue()
        if own_hospital is not None:
            # Unassigned requests are open to every hospital
            queue = [item for item in queue if item['request'].hospital_id in (None, own_hospital.pk)]
        return Response([
            {
                **self.get_serializer(item['request']).data,
                'priority_score': item['priority_score'],
                'priority_level': item['priority_level'],
            }
            for item in queue
        ])

    @action(detail=True, methods=['get'])
    def matches(self, request, pk=None):
        aid_request = self.get_object()
        queryset = aid_request.matches.select_related('donor')
        return Response(DonorMatchSerializer(queryset, many=True).data)

    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        """Logged-in donor accepts or rejects the request they were matched to"""
        donor = getattr(request.user, 'donor_profile', None)
        if donor is None:
            return Response({'error': 'Only donors can respond to requests.'}, status=status.HTTP_403_FORBIDDEN)

        serializer = DonorResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            recorded = factory.record_donor_response(int(pk), donor.pk, serializer.validated_data['response'])
        except (NotFoundError, ValidationError, TransientPersistenceError) as e:
            return service_error_response(e)

        if not recorded:
            return Response(
                {'recorded': False, 'error': 'This request has already been handled.'},
                status=status.HTTP_409_CONFLICT,
            )
        return Response({'recorded': True, 'status': AidRequest.objects.get(pk=pk).status})

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        serializer = ApproveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        hospital_id = serializer.validated_data.get('hospital_id')
        own_hospital = getattr(request.user, 'hospital_profile', None)
        if own_hospital is not None:
            hospital_id = own_hospital.pk

        return self._lifecycle_action(pk, lambda lifecycle: lifecycle.approve(int(pk), hospital_id))

    @action(detail=True, methods=['post'])
    def fulfill(self, request, pk=None):
        return self._lifecycle_action(pk, lambda lifecycle: lifecycle.fulfill(int(pk)))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        return self._lifecycle_action(pk, lambda lifecycle: lifecycle.cancel(int(pk)))

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        return self._lifecycle_action(pk, lambda lifecycle: lifecycle.reject(int(pk)))

    def _acting_hospital(self):
        """None for admins; otherwise the hospital the user works for"""
        user = self.request.user
        if is_platform_admin(user):
            return None
        hospital = getattr(user, 'hospital_profile', None)
        if hospital is None:
            raise PermissionDenied('Complete your hospital profile first.')
        return hospital

    def _lifecycle_action(self, pk, operation):
        own_hospital = self._acting_hospital()
        if own_hospital is not None and AidRequest.objects.filter(pk=pk).exclude(
            Q(hospital__isnull=True) | Q(hospital=own_hospital)
        ).exists():
            return Response({'error': f"Request {pk} not found"}, status=status.HTTP_404_NOT_FOUND)

        try:
            changed = operation(factory.build_lifecycle())
        except ValidationError as e:
            return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)
        except (NotFoundError, TransientPersistenceError) as e:
            return service_error_response(e)

        aid_request = AidRequest.objects.get(pk=pk)
        if not changed:
            return Response(
                {'error': 'The request was updated by someone else.', 'status': aid_request.status},
                status=status.HTTP_409_CONFLICT,
            )
        return Response(self.get_serializer(aid_request).data)


class NotificationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """The logged-in user's unread in-app notifications"""
    serializer_class = NotificationSerializer
    lookup_value_regex = r'\d+'
    authentication_classes = [JWTAuthentication, SessionAuthentication, BasicAuthentication]
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Notification.objects.filter(user=self.request.user)
        if self.action == 'list':
            queryset = queryset.filter(is_read=False)
        return queryset.order_by('-created_at')

    @action(detail=True, methods=['post'])
    def read(self, request, pk=None):
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=['is_read', 'read_at'])
        return Response(self.get_serializer(notification).data)

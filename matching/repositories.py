# matching/repositories.py
"""
Repository contracts consumed by the matching services, and their Django ORM adapters.

The services only see these interfaces; tests substitute in-memory implementations.
"""
import logging
from abc import ABC, abstractmethod

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from donors.models import DonorMatch, DonorProfile
from hospitals.models import AidRequest, HospitalProfile
from matching.choices import BloodGroup, MatchResponse, RequestStatus
from matching.exceptions import TransientPersistenceError
from patients.models import PatientProfile

logger = logging.getLogger(__name__)


class DonorRepository(ABC):
    @abstractmethod
    def find_by_blood_group(self, blood_group):
        """All donors of one blood group, in a stable order"""

    @abstractmethod
    def find_by_id(self, donor_id):
        """The donor, or None"""

    @abstractmethod
    def record_donation(self, donor_id, donated_on):
        """Restart the donor's eligibility window"""


class RequestRepository(ABC):
    @abstractmethod
    def create(self, aid_request):
        """Persist a new request and return its id"""

    @abstractmethod
    def find_by_id(self, request_id):
        """The request, or None"""

    @abstractmethod
    def update_status(self, request_id, status, expected=None, hospital_id=None):
        """
        Set the status, only if the current status is one of `expected` (when given).

        Returns True when exactly one row changed.
        """

    @abstractmethod
    def find_pending(self):
        """Requests still waiting for a decision"""


class PatientRepository(ABC):
    @abstractmethod
    def find_by_id(self, patient_id):
        """The patient, or None"""


class HospitalRepository(ABC):
    @abstractmethod
    def find_by_id(self, hospital_id):
        """The hospital, or None"""


class MatchRepository(ABC):
    @abstractmethod
    def insert(self, request_id, donor_id, score, distance_km):
        """
        Create a PENDING match row.

        Returns False, without touching the existing row, when the pair already exists.
        """

    @abstractmethod
    def update_response(self, request_id, donor_id, response):
        """Record a response on a PENDING row. Returns False if no PENDING row exists."""

    @abstractmethod
    def find_for_request(self, request_id, response=None):
        """Match rows of one request, optionally filtered by response"""


def _expected_statuses(expected):
    if isinstance(expected, str):
        return (expected,)
    return tuple(expected)


# ---------------------------
# Django ORM adapters
# ---------------------------
class DjangoDonorRepository(DonorRepository):
    def find_by_blood_group(self, blood_group):
        try:
            return list(
                DonorProfile.objects.select_related('user')
                .filter(blood_type=BloodGroup.parse(blood_group).value)
                .order_by('pk')
            )
        except DatabaseError as e:
            raise TransientPersistenceError(f"Could not load {blood_group} donors: {e}") from e

    def find_by_id(self, donor_id):
        return DonorProfile.objects.select_related('user').filter(pk=donor_id).first()

    def record_donation(self, donor_id, donated_on):
        return DonorProfile.objects.filter(pk=donor_id).update(
            last_donation_date=donated_on,
            updated_at=timezone.now(),
        ) == 1


class DjangoRequestRepository(RequestRepository):
    def create(self, aid_request):
        aid_request.save()
        logger.info(f"Request #{aid_request.pk} created ({aid_request.kind}, {aid_request.urgency})")
        return aid_request.pk

    def find_by_id(self, request_id):
        return AidRequest.objects.filter(pk=request_id).first()

    def update_status(self, request_id, status, expected=None, hospital_id=None):
        queryset = AidRequest.objects.filter(pk=request_id)
        if expected is not None:
            queryset = queryset.filter(status__in=_expected_statuses(expected))

        changes = {'status': RequestStatus(status), 'updated_at': timezone.now()}
        if hospital_id is not None:
            changes['hospital_id'] = hospital_id

        # Conditional UPDATE: concurrent callers cannot both win the same transition
        return queryset.update(**changes) == 1

    def find_pending(self):
        return list(AidRequest.objects.filter(status=RequestStatus.PENDING).order_by('created_at'))


class DjangoPatientRepository(PatientRepository):
    def find_by_id(self, patient_id):
        return PatientProfile.objects.select_related('user').filter(pk=patient_id).first()


class DjangoHospitalRepository(HospitalRepository):
    def find_by_id(self, hospital_id):
        return HospitalProfile.objects.select_related('user').filter(pk=hospital_id).first()


class DjangoMatchRepository(MatchRepository):
    def insert(self, request_id, donor_id, score, distance_km):
        try:
            # Savepoint so a lost unique-constraint race does not poison an outer transaction
            with transaction.atomic():
                _, created = DonorMatch.objects.get_or_create(
                    request_id=request_id,
                    donor_id=donor_id,
                    defaults={'score': score, 'distance_km': distance_km},
                )
        except IntegrityError:
            return False
        except DatabaseError as e:
            raise TransientPersistenceError(f"Could not record match for donor {donor_id}: {e}") from e
        return created

    def update_response(self, request_id, donor_id, response):
        try:
            updated = DonorMatch.objects.filter(
                request_id=request_id,
                donor_id=donor_id,
                response=MatchResponse.PENDING,
            ).update(response=MatchResponse(response), responded_at=timezone.now())
        except DatabaseError as e:
            raise TransientPersistenceError(f"Could not record response of donor {donor_id}: {e}") from e
        return updated == 1

    def find_for_request(self, request_id, response=None):
        queryset = DonorMatch.objects.select_related('donor').filter(request_id=request_id)
        if response is not None:
            queryset = queryset.filter(response=MatchResponse(response))
        return list(queryset)

# matching/services.py
"""
Donor matching workflow.

    submit_request -> MatchRanker (compatibility, eligibility, distance, score)
                   -> MatchNotifier (persist top K, notify)
    donor responds -> ResponseRecorder (atomic accept/reject, may approve the request)

Every collaborator is passed in; nothing here reads session or global state.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, NamedTuple

from django.db import transaction
from django.utils import timezone

from algorithms.blood_compatibility import compatible_donor_groups, is_compatible
from algorithms.eligibility import is_donor_eligible
from algorithms.haversine import haversine_distances, is_unknown_location
from algorithms.priority import run_priority_algorithm
from algorithms.scoring import calculate_match_score
from matching.choices import (
    BloodGroup, MatchResponse, NotificationPriority, NotificationType, RequestKind, RequestStatus,
)
from matching.conf import get_setting
from matching.exceptions import NotFoundError, TransientPersistenceError, ValidationError

logger = logging.getLogger(__name__)


class RankedDonor(NamedTuple):
    donor: Any
    score: float
    distance_km: float


def validate_donor_request(aid_request):
    """Contract checks for requests that are sourced from donors"""
    kind = RequestKind(aid_request.kind)
    if not kind.requires_donors:
        raise ValidationError(f"{kind.label} requests are not matched to donors")
    if not aid_request.blood_type:
        raise ValidationError(f"{kind.label} requests need a blood group")
    BloodGroup.parse(aid_request.blood_type)
    if aid_request.quantity_ml is None or aid_request.quantity_ml <= 0:
        raise ValidationError(f"Quantity must be positive, got {aid_request.quantity_ml!r}")


def _contact(profile):
    """(user id, email, phone) for a donor/patient/hospital profile"""
    user = getattr(profile, 'user', None)
    email = getattr(user, 'email', None)
    phone = getattr(profile, 'phone', None) or getattr(user, 'phone', None)
    return profile.user_id, email, phone


# ============================================
# RANKING
# ============================================
class MatchRanker:
    def __init__(self, donors, patients, hospitals, max_radius_km=None, default_coordinate=None,
                 today=timezone.localdate):
        self.donors = donors
        self.patients = patients
        self.hospitals = hospitals
        self.max_radius_km = max_radius_km if max_radius_km is not None else get_setting('MAX_RADIUS_KM')
        self.default_coordinate = tuple(default_coordinate or get_setting('DEFAULT_COORDINATE'))
        self.today = today

    def find_matches(self, aid_request):
        """
        Rank eligible donors for a blood or plasma request.

        Steps:
        1. Resolve compatible donor groups
        2. Fetch donors per group (a failing group is skipped)
        3. Drop unavailable donors, donors inside their donation window and donors beyond the radius
        4. Score and sort, best first

        Returns an empty list when the patient or hospital cannot be resolved.
        """
        validate_donor_request(aid_request)
        kind = RequestKind(aid_request.kind)

        patient = self.patients.find_by_id(aid_request.patient_id)
        hospital = None
        if aid_request.hospital_id is not None:
            hospital = self.hospitals.find_by_id(aid_request.hospital_id)
        if patient is None or hospital is None:
            logger.warning(
                f"Matching failed for request #{aid_request.pk}: "
                f"patient {aid_request.patient_id} or hospital {aid_request.hospital_id} not found"
            )
            return []

        origin = self._search_origin(hospital)
        groups = compatible_donor_groups(aid_request.blood_type, kind)
        logger.info(f"Matching request #{aid_request.pk}: compatible groups {[g.value for g in groups]}")

        today = self.today()
        candidates = [
            donor for donor in self._fetch_candidates(groups)
            if self._is_compatible(donor, aid_request, kind)
            and is_donor_eligible(donor, kind, today)
        ]

        ranked = []
        for donor, distance in zip(candidates, self._distances(origin, candidates)):
            if distance > self.max_radius_km:
                continue
            score = calculate_match_score(donor, aid_request, distance, self.max_radius_km, today)
            ranked.append(RankedDonor(donor, score, distance))

        # Stable: equal scores keep repository order
        ranked.sort(key=lambda match: match.score, reverse=True)

        logger.info(
            f"{len(ranked)} donors matched for request #{aid_request.pk} within {self.max_radius_km}km"
        )
        return ranked

    def _search_origin(self, hospital):
        if is_unknown_location(hospital.latitude, hospital.longitude):
            logger.warning(
                f"⚠ Hospital {hospital.pk} has no coordinates; searching from default "
                f"location {self.default_coordinate}. Please fix the hospital profile."
            )
            return self.default_coordinate
        return hospital.latitude, hospital.longitude

    @staticmethod
    def _is_compatible(donor, aid_request, kind):
        try:
            return is_compatible(donor.blood_type, aid_request.blood_type, kind)
        except ValidationError as e:
            logger.warning(f"⚠ Skipping donor {donor.pk}: {e}")
            return False

    def _fetch_candidates(self, groups):
        candidates = []
        for group in groups:
            try:
                candidates.extend(self.donors.find_by_blood_group(group))
            except TransientPersistenceError as e:
                logger.warning(f"Skipping {group.value} donors: {e}")
        return candidates

    def _distances(self, origin, donors):
        """Distance per donor; donors without a known location are assumed local (0 km)"""
        distances = [0.0] * len(donors)
        known = []
        for index, donor in enumerate(donors):
            if is_unknown_location(donor.latitude, donor.longitude):
                logger.warning(f"⚠ Donor {donor.pk} has no coordinates. Assuming local match (0km).")
            else:
                known.append(index)

        if known:
            computed = haversine_distances(
                origin[0], origin[1],
                [donors[i].latitude for i in known],
                [donors[i].longitude for i in known],
            )
            for index, distance in zip(known, computed):
                distances[index] = float(distance)
        return distances


# ============================================
# NOTIFICATION
# ============================================
class MatchNotifier:
    """Persists a match row for each of the top K donors, then notifies them on every channel"""

    def __init__(self, matches, notifier, patients=None, top_k=None, max_workers=None):
        self.matches = matches
        self.notifier = notifier
        self.patients = patients
        self.top_k = top_k if top_k is not None else get_setting('TOP_K')
        self.max_workers = max_workers if max_workers is not None else get_setting('NOTIFICATION_WORKERS')

    def notify(self, aid_request, ranked):
        """
        Returns the RankedDonor entries that were newly recorded and notified.

        Donors that already have a match row for this request are skipped, so calling
        this twice for the same request neither duplicates rows nor re-notifies.
        """
        location = self._location(aid_request)
        recorded = []
        for match in ranked[:self.top_k]:
            try:
                created = self.matches.insert(aid_request.pk, match.donor.pk, match.score, match.distance_km)
            except TransientPersistenceError as e:
                logger.warning(f"✗ Failed to record match for donor {match.donor.pk}: {e}")
                continue
            if not created:
                logger.info(f"Donor {match.donor.pk} already matched to request #{aid_request.pk}")
                continue
            logger.info(f"✓ Match recorded for donor {match.donor.pk} (score {match.score:.1f})")
            recorded.append(match)

        # Rows are persisted before any notification goes out
        outbound = []
        for match in recorded:
            outbound.extend(self._notify_donor(aid_request, match, location))
        self._deliver(outbound)
        return recorded

    def _notify_donor(self, aid_request, match, location):
        """Sends the in-app notification and returns the email/SMS jobs for the pool"""
        donor = match.donor
        user_id, email, phone = _contact(donor)
        kind = RequestKind(aid_request.kind)

        title = f"Urgent {kind.label} Donation Request"
        body = (
            f"A patient needs {kind.label.lower()} donation. Blood Group: {aid_request.blood_type}, "
            f"Quantity: {aid_request.quantity_ml}ml. You are a {match.score:.1f}% match and "
            f"located {match.distance_km:.1f}km away. Can you help?"
        )
        if not self.notifier.send_in_app(user_id, title, body, aid_request.pk):
            logger.warning(f"In-app notification to donor {donor.pk} failed")

        email_args = {
            'template': 'donor_request',
            'donor_name': donor.full_name,
            'kind': kind.label,
            'blood_type': aid_request.blood_type,
            'quantity_ml': aid_request.quantity_ml,
            'urgency': aid_request.urgency,
            'distance_km': match.distance_km,
        }
        sms_args = {
            'template': 'donor_request',
            'kind': kind.label,
            'blood_type': aid_request.blood_type,
            'location': location,
        }
        return [
            ('email', donor.pk, self.notifier.send_email, email, email_args),
            ('sms', donor.pk, self.notifier.send_sms, phone, sms_args),
        ]

    def _deliver(self, jobs):
        """Email and SMS go out through a bounded pool; each channel fails on its own"""
        if not jobs:
            return
        if not self.max_workers:
            for job in jobs:
                self._send(*job)
            return

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            for future in as_completed([pool.submit(self._send, *job) for job in jobs]):
                future.result()

    @staticmethod
    def _send(channel, donor_id, send, address, args):
        try:
            delivered = send(address, args)
        except Exception:
            logger.exception(f"{channel} notification to donor {donor_id} raised")
            delivered = False
        if not delivered:
            logger.warning(f"✗ {channel} notification to donor {donor_id} was not delivered")
        return delivered

    def _location(self, aid_request):
        patient = self.patients.find_by_id(aid_request.patient_id) if self.patients else None
        return getattr(patient, 'city', None) or "a nearby location"


# ============================================
# RESPONSES
# ============================================
class ResponseRecorder:
    """
    Records a donor's ACCEPTED/REJECTED answer.

    The match update, the PENDING -> APPROVED transition and the in-app notices to the
    patient and hospital commit or roll back together. The transition is a conditional
    update, so when several donors accept at once only the first approves the request.
    """

    def __init__(self, matches, requests, donors, patients, hospitals, notifier, atomic=transaction.atomic):
        self.matches = matches
        self.requests = requests
        self.donors = donors
        self.patients = patients
        self.hospitals = hospitals
        self.notifier = notifier
        self.atomic = atomic

    def record_response(self, request_id, donor_id, response):
        """
        Returns True when the response was recorded, False when the donor has no
        PENDING match for this request (already answered, or never matched).

        Raises NotFoundError when the request does not exist, or when the accepting
        donor, patient or hospital cannot be resolved (nothing is saved in that case).
        """
        try:
            response = MatchResponse(response)
        except ValueError:
            raise ValidationError(f"Unknown response: {response!r}") from None
        if response == MatchResponse.PENDING:
            raise ValidationError("A response must be ACCEPTED or REJECTED")

        aid_request = self.requests.find_by_id(request_id)
        if aid_request is None:
            raise NotFoundError(f"Request #{request_id} not found")

        try:
            with self.atomic():
                if not self.matches.update_response(request_id, donor_id, response):
                    logger.info(f"No pending match for donor {donor_id} on request #{request_id}")
                    return False

                if response == MatchResponse.ACCEPTED:
                    self._approve_on_acceptance(aid_request, donor_id)
        except Exception:
            logger.exception(f"✗ Response from donor {donor_id} on request #{request_id} rolled back")
            raise

        logger.info(f"Donor {donor_id} {response.label.lower()} request #{request_id}")
        return True

    def _approve_on_acceptance(self, aid_request, donor_id):
        request_id = aid_request.pk
        if not self.requests.update_status(request_id, RequestStatus.APPROVED, expected=RequestStatus.PENDING):
            # Someone else already moved the request on; the donor's own answer still stands
            logger.info(f"Request #{request_id} no longer pending; acceptance by donor {donor_id} recorded only")
            return

        donor = self.donors.find_by_id(donor_id)
        if donor is None:
            raise NotFoundError(f"Accepting donor {donor_id} not found")
        patient = self.patients.find_by_id(aid_request.patient_id)
        if patient is None:
            raise NotFoundError(f"Patient {aid_request.patient_id} not found")
        hospital = None
        if aid_request.hospital_id is not None:
            hospital = self.hospitals.find_by_id(aid_request.hospital_id)
            if hospital is None:
                raise NotFoundError(f"Hospital {aid_request.hospital_id} not found")

        kind = RequestKind(aid_request.kind)
        self.notifier.send_in_app(
            patient.user_id,
            f"Donor Accepted: {donor.full_name}",
            f"Your {kind.label.lower()} request #{request_id} has been accepted by donor "
            f"{donor.full_name}. The hospital will coordinate the donation.",
            request_id,
            NotificationType.APPROVAL,
            NotificationPriority.MEDIUM,
        )
        if hospital is not None:
            self.notifier.send_in_app(
                hospital.user_id,
                f"DONOR ACCEPTED Request #{request_id}",
                f"Donor {donor.full_name} ({donor.blood_type}, phone {donor.phone}) has accepted the "
                f"request. Please contact them for coordination.",
                request_id,
                NotificationType.MATCH,
                NotificationPriority.HIGH,
            )
        logger.info(f"Request #{request_id} approved after donor {donor_id} accepted")


# ============================================
# REQUEST LIFECYCLE
# ============================================
class RequestLifecycle:
    """Hospital-side transitions: approve, fulfil, cancel, reject. Forward-only."""

    def __init__(self, requests, matches, donors, patients, hospitals, notifier,
                 atomic=transaction.atomic, today=timezone.localdate):
        self.requests = requests
        self.matches = matches
        self.donors = donors
        self.patients = patients
        self.hospitals = hospitals
        self.notifier = notifier
        self.atomic = atomic
        self.today = today

    def approve(self, request_id, hospital_id=None):
        """Explicit hospital approval. Notifies the patient in-app, by email and by SMS."""
        aid_request = self._get(request_id)
        hospital_id = hospital_id if hospital_id is not None else aid_request.hospital_id
        hospital = self.hospitals.find_by_id(hospital_id) if hospital_id is not None else None
        if hospital is None:
            raise NotFoundError(f"Hospital {hospital_id} not found")

        if not self._transition(aid_request, RequestStatus.APPROVED, hospital_id=hospital.pk):
            return False

        patient = self.patients.find_by_id(aid_request.patient_id)
        if patient is None:
            logger.warning(f"Request #{request_id} approved but patient {aid_request.patient_id} is missing")
            return True

        kind = RequestKind(aid_request.kind)
        user_id, email, phone = _contact(patient)
        self.notifier.send_in_app(
            user_id,
            "Request Approved",
            f"Your {kind.label.lower()} request has been approved by {hospital.hospital_name}. "
            f"Please contact them for further details.",
            request_id,
            NotificationType.APPROVAL,
            NotificationPriority.MEDIUM,
        )
        args = {
            'template': 'request_approved',
            'patient_name': patient.full_name,
            'kind': kind.label,
            'request_id': request_id,
            'hospital_name': hospital.hospital_name,
            'hospital_phone': hospital.phone,
        }
        self.notifier.send_email(email, args)
        self.notifier.send_sms(phone, args)
        return True

    def fulfill(self, request_id):
        """APPROVED -> FULFILLED; donors who accepted start a new donation window today"""
        aid_request = self._get(request_id)
        with self.atomic():
            if not self._transition(aid_request, RequestStatus.FULFILLED):
                return False
            for match in self.matches.find_for_request(request_id, MatchResponse.ACCEPTED):
                self.donors.record_donation(match.donor_id, self.today())
        return True

    def cancel(self, request_id):
        return self._transition(self._get(request_id), RequestStatus.CANCELLED)

    def reject(self, request_id):
        return self._transition(self._get(request_id), RequestStatus.REJECTED)

    def pending_queue(self):
        """Pending requests, most pressing first"""
        return run_priority_algorithm(self.requests.find_pending())

    def _get(self, request_id):
        aid_request = self.requests.find_by_id(request_id)
        if aid_request is None:
            raise NotFoundError(f"Request #{request_id} not found")
        return aid_request

    def _transition(self, aid_request, target, hospital_id=None):
        current = RequestStatus(aid_request.status)
        if not RequestStatus.can_transition(current, target):
            raise ValidationError(f"Request #{aid_request.pk} cannot move from {current} to {target}")

        # Guarded by the status we read, so a concurrent change makes this a no-op
        changed = self.requests.update_status(aid_request.pk, target, expected=current, hospital_id=hospital_id)
        if changed:
            logger.info(f"Request #{aid_request.pk}: {current} → {target}")
        else:
            logger.warning(f"Request #{aid_request.pk} changed concurrently; {current} → {target} not applied")
        return changed


# ============================================
# SUBMISSION
# ============================================
class RequestSubmissionCoordinator:
    """Persists new requests and starts donor sourcing for blood and plasma"""

    def __init__(self, requests, patients, hospitals, ranker, match_notifier,
                 async_matching=None, enqueue=None):
        self.requests = requests
        self.patients = patients
        self.hospitals = hospitals
        self.ranker = ranker
        self.match_notifier = match_notifier
        self.async_matching = async_matching if async_matching is not None else get_setting('ASYNC_MATCHING')
        self.enqueue = enqueue

    def submit_request(self, aid_request):
        """
        Returns the new request id.

        Raises ValidationError or NotFoundError for problems with the request itself;
        notification problems are logged and never reach the caller.
        """
        kind = RequestKind(aid_request.kind)
        if kind.requires_donors:
            validate_donor_request(aid_request)
            aid_request.blood_type = BloodGroup.parse(aid_request.blood_type).value
        elif aid_request.blood_type:
            raise ValidationError(f"{kind.label} requests do not take a blood group")
        if aid_request.quantity_ml is not None and aid_request.quantity_ml < 0:
            raise ValidationError("Quantity cannot be negative")

        if self.patients.find_by_id(aid_request.patient_id) is None:
            raise NotFoundError(f"Patient {aid_request.patient_id} not found")
        if aid_request.hospital_id is not None and self.hospitals.find_by_id(aid_request.hospital_id) is None:
            raise NotFoundError(f"Hospital {aid_request.hospital_id} not found")

        aid_request.status = RequestStatus.PENDING
        request_id = self.requests.create(aid_request)

        if not kind.requires_donors:
            logger.info(f"✓ Request #{request_id} is {kind.label}. No donor matching required.")
            return request_id

        if self.async_matching and self.enqueue is not None:
            self.enqueue(request_id)
            logger.info(f"✓ Donor matching queued for request #{request_id}")
        else:
            self.match_and_notify(aid_request)
        return request_id

    def match_and_notify(self, aid_request):
        """Rank donors for a stored request and notify the best ones"""
        ranked = self.ranker.find_matches(aid_request)
        notified = self.match_notifier.notify(aid_request, ranked)
        logger.info(
            f"✓ Donor matching complete for request #{aid_request.pk}: "
            f"{len(ranked)} matches, {len(notified)} notified"
        )
        return notified

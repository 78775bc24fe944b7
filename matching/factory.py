# matching/factory.py
"""
Wires the matching services to the Django repositories and notifier.
"""
from django.db import transaction

from matching.notifiers import DjangoNotifier
from matching.repositories import (
    DjangoDonorRepository, DjangoHospitalRepository, DjangoMatchRepository,
    DjangoPatientRepository, DjangoRequestRepository,
)
from matching.services import (
    MatchNotifier, MatchRanker, RequestLifecycle, RequestSubmissionCoordinator, ResponseRecorder,
)


def build_coordinator(notifier=None):
    # donors.tasks imports this module at load time
    from donors.tasks import match_request_donors

    patients = DjangoPatientRepository()
    hospitals = DjangoHospitalRepository()
    return RequestSubmissionCoordinator(
        requests=DjangoRequestRepository(),
        patients=patients,
        hospitals=hospitals,
        ranker=MatchRanker(DjangoDonorRepository(), patients, hospitals),
        match_notifier=MatchNotifier(DjangoMatchRepository(), notifier or DjangoNotifier(), patients),
        # Queue only once the request row is committed
        enqueue=lambda request_id: transaction.on_commit(lambda: match_request_donors.delay(request_id)),
    )


def build_response_recorder(notifier=None):
    return ResponseRecorder(
        matches=DjangoMatchRepository(),
        requests=DjangoRequestRepository(),
        donors=DjangoDonorRepository(),
        patients=DjangoPatientRepository(),
        hospitals=DjangoHospitalRepository(),
        notifier=notifier or DjangoNotifier(),
    )


def build_lifecycle(notifier=None):
    return RequestLifecycle(
        requests=DjangoRequestRepository(),
        matches=DjangoMatchRepository(),
        donors=DjangoDonorRepository(),
        patients=DjangoPatientRepository(),
        hospitals=DjangoHospitalRepository(),
        notifier=notifier or DjangoNotifier(),
    )


def submit_request(aid_request):
    """Entry point for request intake: persist, then source donors for blood/plasma"""
    return build_coordinator().submit_request(aid_request)


def record_donor_response(request_id, donor_id, response):
    """Entry point for donor replies; False means the match was already handled or absent"""
    return build_response_recorder().record_response(request_id, donor_id, response)

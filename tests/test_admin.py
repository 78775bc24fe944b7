from datetime import timedelta

import pytest
from django.contrib import admin
from django.utils import timezone

from donors.models import DonorMatch
from hospitals.models import AidRequest
from matching.choices import MatchResponse, RequestStatus

pytestmark = pytest.mark.django_db


@pytest.fixture
def match(db_patient, db_hospital, make_db_donor):
    aid_request = AidRequest.objects.create(
        patient=db_patient, hospital=db_hospital, kind='BLOOD', blood_type='A+', quantity_ml=450,
    )
    return DonorMatch.objects.create(request=aid_request, donor=make_db_donor('A+'), score=90.0, distance_km=1.5)


@pytest.fixture
def staff_request(rf, make_account):
    request = rf.get('/admin/')
    request.user = make_account('super_admin', is_staff=True, is_superuser=True)
    return request


def test_match_rows_cannot_be_edited_or_deleted(match, staff_request):
    match_admin = admin.site._registry[DonorMatch]

    assert {'request', 'donor', 'response'} <= set(match_admin.get_readonly_fields(staff_request, match))
    assert match_admin.has_delete_permission(staff_request) is False
    assert match_admin.has_delete_permission(staff_request, match) is False
    assert 'delete_selected' not in match_admin.get_actions(staff_request)


def test_match_admin_shows_response_time(match):
    match_admin = admin.site._registry[DonorMatch]
    assert match_admin.response_time(match) == '-'

    DonorMatch.objects.filter(pk=match.pk).update(
        response=MatchResponse.ACCEPTED, responded_at=match.created_at + timedelta(minutes=90),
    )
    match.refresh_from_db()
    assert match_admin.response_time(match) == '1.5h'


def test_request_admin_shows_waiting_time_while_pending(match):
    request_admin = admin.site._registry[AidRequest]
    aid_request = match.request
    AidRequest.objects.filter(pk=aid_request.pk).update(created_at=timezone.now() - timedelta(hours=5))
    aid_request.refresh_from_db()

    assert request_admin.waiting(aid_request).startswith('5.0')

    aid_request.status = RequestStatus.APPROVED
    assert request_admin.waiting(aid_request) == '-'


def test_can_donate_follows_the_blood_donation_window(make_db_donor):
    today = timezone.localdate()

    assert make_db_donor(last_donation_date=today - timedelta(days=90)).can_donate is True
    assert make_db_donor(last_donation_date=today - timedelta(days=89)).can_donate is False
    assert make_db_donor(is_available=False).can_donate is False

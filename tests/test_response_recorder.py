import threading

import pytest

from matching.choices import MatchResponse, NotificationType, RequestStatus
from matching.exceptions import NotFoundError, ValidationError
from matching.services import ResponseRecorder
from tests.fakes import (
    FakeDonorRepository, FakeRequestRepository, FakeUnitOfWork, make_donor, make_request,
)


@pytest.fixture
def donors():
    return FakeDonorRepository([make_donor(1, full_name='Ravi'), make_donor(2, full_name='Meena')])


@pytest.fixture
def requests_repo():
    return FakeRequestRepository([make_request(pk=10)])


@pytest.fixture
def unit_of_work(matches, requests_repo, notifier):
    return FakeUnitOfWork(matches, requests_repo, notifier)


@pytest.fixture
def recorder(matches, requests_repo, donors, patients, hospitals, notifier, unit_of_work):
    return ResponseRecorder(matches, requests_repo, donors, patients, hospitals, notifier, atomic=unit_of_work)


@pytest.fixture
def matched(matches):
    matches.insert(10, 1, 90.0, 2.0)
    matches.insert(10, 2, 80.0, 6.0)
    return matches


def status_of(requests_repo, request_id=10):
    return requests_repo.requests[request_id].status


def test_no_pending_match_changes_nothing(recorder, matches, requests_repo, notifier):
    assert recorder.record_response(10, 1, MatchResponse.ACCEPTED) is False
    assert matches.rows == {}
    assert status_of(requests_repo) == RequestStatus.PENDING
    assert notifier.in_app == []


def test_rejection_keeps_the_request_pending(recorder, matched, requests_repo, notifier):
    assert recorder.record_response(10, 1, 'REJECTED') is True
    assert matched.rows[(10, 1)].response == MatchResponse.REJECTED
    assert status_of(requests_repo) == RequestStatus.PENDING
    assert notifier.in_app == []


def test_acceptance_approves_and_notifies(recorder, matched, requests_repo, notifier):
    assert recorder.record_response(10, 1, MatchResponse.ACCEPTED) is True

    assert matched.rows[(10, 1)].response == MatchResponse.ACCEPTED
    assert matched.rows[(10, 1)].responded_at is not None
    assert status_of(requests_repo) == RequestStatus.APPROVED

    recipients = {n['user_id']: n for n in notifier.in_app}
    assert set(recipients) == {501, 701}
    assert recipients[501]['notification_type'] == NotificationType.APPROVAL
    assert 'Ravi' in recipients[501]['title']
    assert recipients[701]['notification_type'] == NotificationType.MATCH


def test_second_answer_is_ignored(recorder, matched):
    assert recorder.record_response(10, 1, MatchResponse.REJECTED) is True
    assert recorder.record_response(10, 1, MatchResponse.ACCEPTED) is False
    assert matched.rows[(10, 1)].response == MatchResponse.REJECTED


def test_later_acceptance_is_recorded_without_a_second_approval(recorder, matched, notifier):
    recorder.record_response(10, 1, MatchResponse.ACCEPTED)
    assert recorder.record_response(10, 2, MatchResponse.ACCEPTED) is True

    assert matched.rows[(10, 2)].response == MatchResponse.ACCEPTED
    assert len(notifier.in_app) == 2


def test_concurrent_acceptances_approve_once(recorder, matched, requests_repo, notifier, unit_of_work):
    barrier = threading.Barrier(2)
    results = {}

    def accept(donor_id):
        barrier.wait()
        results[donor_id] = recorder.record_response(10, donor_id, MatchResponse.ACCEPTED)

    threads = [threading.Thread(target=accept, args=(donor_id,)) for donor_id in (1, 2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == {1: True, 2: True}
    assert status_of(requests_repo) == RequestStatus.APPROVED
    assert matched.rows[(10, 1)].response == MatchResponse.ACCEPTED
    assert matched.rows[(10, 2)].response == MatchResponse.ACCEPTED
    assert sorted(n['user_id'] for n in notifier.in_app) == [501, 701]
    assert unit_of_work.commits == 2


def test_unresolvable_donor_rolls_everything_back(matches, requests_repo, patients, hospitals, notifier,
                                                    unit_of_work):
    matches.insert(10, 3, 70.0, 4.0)
    recorder = ResponseRecorder(matches, requests_repo, FakeDonorRepository(), patients, hospitals,
                                notifier, atomic=unit_of_work)

    with pytest.raises(NotFoundError):
        recorder.record_response(10, 3, MatchResponse.ACCEPTED)

    assert matches.rows[(10, 3)].response == MatchResponse.PENDING
    assert status_of(requests_repo) == RequestStatus.PENDING
    assert notifier.in_app == []
    assert unit_of_work.rollbacks == 1


def test_missing_request(recorder):
    with pytest.raises(NotFoundError):
        recorder.record_response(404, 1, MatchResponse.ACCEPTED)


@pytest.mark.parametrize('response', ['PENDING', 'MAYBE'])
def test_invalid_response(recorder, matched, response):
    with pytest.raises(ValidationError):
        recorder.record_response(10, 1, response)
    assert matched.rows[(10, 1)].response == MatchResponse.PENDING

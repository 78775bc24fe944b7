import pytest

from matching.services import MatchNotifier, RankedDonor
from tests.fakes import RecordingNotifier, make_donor, make_request


def ranked(count):
    return [RankedDonor(make_donor(pk), 100 - pk, float(pk)) for pk in range(1, count + 1)]


@pytest.fixture
def notify(matches, patients):
    def _notify(notifier, aid_request, ranked_donors, **kwargs):
        kwargs.setdefault('top_k', 5)
        kwargs.setdefault('max_workers', 2)
        return MatchNotifier(matches, notifier, patients, **kwargs).notify(aid_request, ranked_donors)
    return _notify


def test_only_top_k_are_recorded_and_notified(notify, matches, notifier):
    aid_request = make_request(pk=7)
    recorded = notify(notifier, aid_request, ranked(7))

    assert [match.donor.pk for match in recorded] == [1, 2, 3, 4, 5]
    assert sorted(donor_id for _, donor_id in matches.rows) == [1, 2, 3, 4, 5]
    assert len(notifier.in_app) == 5
    assert len(notifier.emails) == 5
    assert len(notifier.sms) == 5
    assert {n['related_request_id'] for n in notifier.in_app} == {7}


def test_rows_exist_before_any_notification(notify, matches):
    seen = []
    notifier = RecordingNotifier(on_in_app=lambda user_id, request_id: seen.append(len(matches.rows)))
    notify(notifier, make_request(pk=1), ranked(3))
    assert seen == [3, 3, 3]


def test_running_twice_does_not_duplicate(notify, matches, notifier):
    aid_request = make_request(pk=1)
    first = notify(notifier, aid_request, ranked(3))
    second = notify(notifier, aid_request, ranked(3))

    assert len(first) == 3
    assert second == []
    assert len(matches.rows) == 3
    assert len(notifier.in_app) == 3
    assert len(notifier.emails) == 3


def test_existing_row_is_left_untouched(notify, matches, notifier):
    aid_request = make_request(pk=1)
    matches.insert(1, 1, 12.0, 9.0)
    recorded = notify(notifier, aid_request, ranked(2))

    assert [match.donor.pk for match in recorded] == [2]
    assert matches.rows[(1, 1)].score == 12.0


@pytest.mark.parametrize('max_workers', [0, 3])
def test_failed_channel_does_not_block_the_others(notify, max_workers):
    notifier = RecordingNotifier(explode={'email'}, fail={'in_app'})
    recorded = notify(notifier, make_request(pk=1), ranked(2), max_workers=max_workers)

    assert len(recorded) == 2
    assert len(notifier.sms) == 2
    assert notifier.emails == []


def test_sms_mentions_the_patient_city(notify, notifier):
    notify(notifier, make_request(pk=1), ranked(1))
    phone, args = notifier.sms[0]
    assert phone == '+919000000001'
    assert args['template'] == 'donor_request'
    assert args['location'] == 'Bengaluru'


def test_unknown_patient_city_falls_back(matches, notifier):
    MatchNotifier(matches, notifier, patients=None, top_k=5, max_workers=0).notify(make_request(pk=1), ranked(1))
    assert notifier.sms[0][1]['location'] == 'a nearby location'


def test_nothing_to_notify(notify, matches, notifier):
    assert notify(notifier, make_request(pk=1), []) == []
    assert matches.rows == {}
    assert notifier.in_app == []

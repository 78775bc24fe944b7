import logging
from datetime import timedelta

import pytest

from algorithms.haversine import haversine_distance
from matching.exceptions import ValidationError
from matching.services import MatchRanker
from tests.conftest import HOSPITAL_COORDS, TODAY
from tests.fakes import (
    FakeDonorRepository, FakeProfileRepository, make_donor, make_request, make_user_profile,
)

KM_PER_DEGREE_LAT = 111.195


def north_of_hospital(km):
    return HOSPITAL_COORDS[0] + km / KM_PER_DEGREE_LAT, HOSPITAL_COORDS[1]


def donor_at(pk, km, blood_type='A+', **fields):
    lat, lon = north_of_hospital(km)
    return make_donor(pk, blood_type=blood_type, latitude=lat, longitude=lon, **fields)


@pytest.fixture
def ranker_for(patients, hospitals):
    def _build(donors, **kwargs):
        repo = donors if isinstance(donors, FakeDonorRepository) else FakeDonorRepository(donors)
        return MatchRanker(repo, patients, hospitals, max_radius_km=50,
                           default_coordinate=HOSPITAL_COORDS, today=lambda: TODAY, **kwargs)
    return _build


def test_nearby_identical_group_beats_farther_compatible_group(ranker_for):
    ranker = ranker_for([donor_at(1, 2, 'A+'), donor_at(2, 10, 'O+'), donor_at(3, 60, 'A+')])

    ranked = ranker.find_matches(make_request(pk=1, blood_type='A+'))

    assert [match.donor.pk for match in ranked] == [1, 2]
    near, far = ranked
    assert near.distance_km == pytest.approx(2, abs=0.05)
    assert far.distance_km == pytest.approx(10, abs=0.05)
    assert near.score == pytest.approx(40 + 30 * (1 - near.distance_km / 50) + 20 + 10)
    assert far.score == pytest.approx(30 + 30 * (1 - far.distance_km / 50) + 20 + 10)
    assert near.score > far.score


def test_incompatible_groups_are_never_fetched(ranker_for):
    repo = FakeDonorRepository([donor_at(1, 1, 'B+'), donor_at(2, 1, 'O-')])
    ranked = ranker_for(repo).find_matches(make_request(pk=1, blood_type='O-'))

    assert [match.donor.pk for match in ranked] == [2]
    assert {group.value for group in repo.queried_groups} == {'O-'}


def test_unavailable_and_recent_donors_are_excluded(ranker_for):
    donors = [
        donor_at(1, 1, is_available=False),
        donor_at(2, 1, last_donation_date=TODAY - timedelta(days=89)),
        donor_at(3, 1, last_donation_date=TODAY - timedelta(days=90)),
    ]
    ranked = ranker_for(donors).find_matches(make_request(pk=1, blood_type='A+'))
    assert [match.donor.pk for match in ranked] == [3]


def test_plasma_uses_the_shorter_window(ranker_for):
    donors = [
        donor_at(1, 1, 'AB+', last_donation_date=TODAY - timedelta(days=14)),
        donor_at(2, 1, 'AB+', last_donation_date=TODAY - timedelta(days=13)),
    ]
    ranked = ranker_for(donors).find_matches(make_request(pk=1, kind='PLASMA', blood_type='A+'))
    assert [match.donor.pk for match in ranked] == [1]


def test_ties_keep_repository_order(ranker_for):
    ranked = ranker_for([donor_at(2, 5), donor_at(1, 5)]).find_matches(make_request(pk=1))
    assert [match.donor.pk for match in ranked] == [1, 2]


def test_donor_without_location_is_treated_as_local(ranker_for, caplog):
    donor = make_donor(1, latitude=None, longitude=None)
    with caplog.at_level(logging.WARNING, logger='matching.services'):
        ranked = ranker_for([donor]).find_matches(make_request(pk=1))

    assert ranked[0].distance_km == 0
    assert 'no coordinates' in caplog.text


def test_missing_patient_fails_closed(ranker_for):
    ranked = ranker_for([donor_at(1, 1)]).find_matches(make_request(pk=1, patient_id=99))
    assert ranked == []


def test_missing_hospital_fails_closed(ranker_for):
    assert ranker_for([donor_at(1, 1)]).find_matches(make_request(pk=1, hospital_id=99)) == []
    assert ranker_for([donor_at(1, 1)]).find_matches(make_request(pk=1, hospital_id=None)) == []


def test_hospital_without_location_searches_from_default(patients, caplog):
    hospital = FakeProfileRepository([make_user_profile(1, user_id=701, hospital_name='Clinic', latitude=0, longitude=0)])
    ranker = MatchRanker(FakeDonorRepository([donor_at(1, 3)]), patients, hospital,
                         max_radius_km=50, default_coordinate=(12.9716, 77.5946), today=lambda: TODAY)

    with caplog.at_level(logging.WARNING, logger='matching.services'):
        ranked = ranker.find_matches(make_request(pk=1))

    assert 'searching from default' in caplog.text
    lat, lon = north_of_hospital(3)
    assert ranked[0].distance_km == pytest.approx(haversine_distance(12.9716, 77.5946, lat, lon))


def test_failing_group_is_skipped(ranker_for, caplog):
    repo = FakeDonorRepository([donor_at(1, 1, 'A+'), donor_at(2, 1, 'O+')], failing_groups=['O+'])
    with caplog.at_level(logging.WARNING, logger='matching.services'):
        ranked = ranker_for(repo).find_matches(make_request(pk=1, blood_type='A+'))

    assert [match.donor.pk for match in ranked] == [1]
    assert 'Skipping O+ donors' in caplog.text


def test_loose_blood_group_spelling_is_accepted(ranker_for):
    ranked = ranker_for([donor_at(1, 1, 'A+')]).find_matches(make_request(pk=1, blood_type='A_POSITIVE'))
    assert len(ranked) == 1


@pytest.mark.parametrize('overrides', [
    {'kind': 'VENTILATOR', 'blood_type': None},
    {'blood_type': None},
    {'quantity_ml': 0},
])
def test_malformed_requests_are_rejected(ranker_for, overrides):
    with pytest.raises(ValidationError):
        ranker_for([]).find_matches(make_request(pk=1, **overrides))


class CorruptRowRepository(FakeDonorRepository):
    """Serves a donor whose stored blood group no longer parses alongside the A+ bucket"""

    def __init__(self, donors, corrupt):
        super().__init__(donors)
        self.corrupt = corrupt

    def find_by_blood_group(self, blood_group):
        donors = super().find_by_blood_group(blood_group)
        if self.queried_groups[-1].value == 'A+':
            donors.append(self.corrupt)
        return donors


def test_donor_with_unreadable_blood_group_is_skipped(ranker_for, caplog):
    repo = CorruptRowRepository([donor_at(1, 2, 'A+'), donor_at(2, 5, 'O+')], corrupt=donor_at(3, 1, 'XX'))

    with caplog.at_level(logging.WARNING, logger='matching.services'):
        ranked = ranker_for(repo).find_matches(make_request(pk=1, blood_type='A+'))

    assert [match.donor.pk for match in ranked] == [1, 2]
    assert 'Skipping donor 3' in caplog.text

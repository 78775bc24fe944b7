import pytest

from algorithms.haversine import haversine_distance, haversine_distances, is_unknown_location

BANGALORE = (12.9716, 77.5946)
MYSORE = (12.2958, 76.6394)


def test_distance_to_itself_is_zero():
    assert haversine_distance(*BANGALORE, *BANGALORE) == 0


def test_symmetric():
    assert haversine_distance(*BANGALORE, *MYSORE) == pytest.approx(haversine_distance(*MYSORE, *BANGALORE))


def test_known_distance():
    # Roughly 127 km as the crow flies
    assert haversine_distance(*BANGALORE, *MYSORE) == pytest.approx(127, abs=3)


def test_antipodal_points_do_not_blow_up():
    assert haversine_distance(0, 0, 0, 180) == pytest.approx(20015, rel=1e-3)


def test_vectorised_matches_scalar():
    points = [MYSORE, (13.0827, 80.2707), BANGALORE]
    distances = haversine_distances(*BANGALORE, [p[0] for p in points], [p[1] for p in points])
    for point, distance in zip(points, distances):
        assert distance == pytest.approx(haversine_distance(*BANGALORE, *point))


@pytest.mark.parametrize('lat, lon, unknown', [
    (None, 77.5, True),
    (12.9, None, True),
    (0, 0, True),
    (0.0, 77.5, False),
    (12.9, 77.5, False),
])
def test_unknown_location(lat, lon, unknown):
    assert is_unknown_location(lat, lon) is unknown

# algorithms/scoring.py
"""
Weighted match score (0-100) for one donor against one request

Components:
1. Blood compatibility: 40 for the identical group, 30 for any other compatible group
2. Distance: up to 30, falling linearly to 0 at the search radius
3. Recency: up to 20, growing with days past the donation window (20 if never donated)
4. Weight: 10 for donors of at least 50 kg
"""
import math

from algorithms.eligibility import cooldown_days, days_since_last_donation
from matching.choices import BloodGroup, RequestKind
from matching.exceptions import ValidationError

MAX_RADIUS_KM = 50

EXACT_MATCH_POINTS = 40.0
COMPATIBLE_POINTS = 30.0
DISTANCE_POINTS = 30.0
RECENCY_POINTS = 20.0
WEIGHT_BONUS_POINTS = 10.0
MIN_WEIGHT_KG = 50.0

# Days past the donation window it takes to earn the full recency score
RECENCY_SPAN_DAYS = {
    RequestKind.BLOOD: 30,
    RequestKind.PLASMA: 16,
}


def calculate_match_score(donor, aid_request, distance_km, max_radius_km=MAX_RADIUS_KM, today=None):
    """
    Score a donor for a request

    Args:
        donor: object with blood_type, last_donation_date and weight
        aid_request: object with blood_type and kind
        distance_km: distance between donor and search centre (0 when the donor location is unknown)
        max_radius_km: search radius the distance term is scaled against

    Returns:
        float clamped to [0, 100]
    """
    if distance_km is None or math.isnan(distance_km) or distance_km < 0:
        raise ValidationError(f'Distance must be a non-negative number, got {distance_km!r}')
    if max_radius_km <= 0:
        raise ValidationError('Search radius must be positive')

    kind = RequestKind(aid_request.kind)
    score = blood_group_score(donor.blood_type, aid_request.blood_type)
    score += distance_score(distance_km, max_radius_km)
    score += recency_score(donor, kind, today)
    score += weight_score(donor.weight)

    return min(100.0, max(0.0, score))


def blood_group_score(donor_blood_type, required_blood_type):
    if BloodGroup.parse(donor_blood_type) == BloodGroup.parse(required_blood_type):
        return EXACT_MATCH_POINTS
    return COMPATIBLE_POINTS


def distance_score(distance_km, max_radius_km=MAX_RADIUS_KM):
    return max(0.0, DISTANCE_POINTS * (1 - distance_km / max_radius_km))


def recency_score(donor, kind, today=None):
    """
    Reward donors further past their minimum window, up to a plateau.

    Negative for donors still inside the window; those are filtered out before
    scoring, and the final clamp keeps the total in range regardless.
    """
    days_since = days_since_last_donation(donor, today)
    if days_since is None:
        return RECENCY_POINTS

    threshold = cooldown_days(kind)
    span = RECENCY_SPAN_DAYS[RequestKind(kind)]
    return min(RECENCY_POINTS, (days_since - threshold) / span * RECENCY_POINTS)


def weight_score(weight):
    if weight is not None and weight >= MIN_WEIGHT_KG:
        return WEIGHT_BONUS_POINTS
    return 0.0

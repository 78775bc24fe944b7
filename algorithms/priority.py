# algorithms/priority.py
"""
Priority queue for pending requests

Weighted score (0-100):
- Urgency tier           40%
- Time spent waiting     30%
- Quantity requested     20%
- Blood group rarity     10%
"""
from django.utils import timezone

from matching.choices import BloodGroup, Urgency

PRIORITY_WEIGHTS = {
    'urgency': 0.40,
    'time': 0.30,
    'quantity': 0.20,
    'blood_rarity': 0.10,
}

URGENCY_SCORES = {
    Urgency.CRITICAL: 100,
    Urgency.URGENT: 70,
    Urgency.NORMAL: 40,
}

# (minimum hours waiting, score), checked top-down
WAITING_STEPS = ((24, 100), (12, 80), (6, 60), (3, 40), (1, 20))

# (minimum ml, score); one whole-blood unit is roughly 450 ml
QUANTITY_STEPS = ((2000, 100), (1500, 80), (1000, 60), (450, 40))

# Rarer groups score higher; O+ is the most common
RARITY_SCORES = {
    BloodGroup.AB_NEGATIVE.value: 100,
    BloodGroup.B_NEGATIVE.value: 90,
    BloodGroup.AB_POSITIVE.value: 80,
    BloodGroup.A_NEGATIVE.value: 70,
    BloodGroup.O_NEGATIVE.value: 60,
    BloodGroup.B_POSITIVE.value: 50,
    BloodGroup.A_POSITIVE.value: 40,
    BloodGroup.O_POSITIVE.value: 30,
}

LEVELS = ((80, 'critical'), (60, 'high'), (40, 'medium'))


def run_priority_algorithm(aid_requests):
    """
    Rank pending requests, most pressing first

    Ties on score go to the more urgent tier, then to the older request.
    Returns a list of dicts: request, priority_score, priority_level and the component scores.
    """
    now = timezone.now()
    ranked = [_prioritise(aid_request, now) for aid_request in (aid_requests or [])]
    ranked.sort(key=lambda item: (
        -item['priority_score'],
        Urgency(item['request'].urgency).rank,
        item['request'].created_at,
    ))
    return ranked


def _prioritise(aid_request, now):
    components = {
        'urgency': calculate_urgency_score(aid_request.urgency),
        'time': calculate_time_score(aid_request.created_at, now),
        'quantity': calculate_quantity_score(aid_request.quantity_ml),
        'blood_rarity': calculate_blood_rarity_score(aid_request.blood_type),
    }
    score = round(sum(components[name] * weight for name, weight in PRIORITY_WEIGHTS.items()), 1)
    return {
        'request': aid_request,
        'priority_score': score,
        'priority_level': priority_level(score),
        'urgency_score': components['urgency'],
        'time_score': components['time'],
        'quantity_score': components['quantity'],
        'blood_rarity_score': components['blood_rarity'],
    }


def priority_level(score):
    for threshold, level in LEVELS:
        if score >= threshold:
            return level
    return 'low'


def calculate_urgency_score(urgency):
    return URGENCY_SCORES[Urgency(urgency)]


def calculate_time_score(created_at, now=None):
    """0 for a fresh request, 100 once it has waited a full day"""
    now = now or timezone.now()
    if timezone.is_naive(created_at):
        created_at = timezone.make_aware(created_at)

    hours_waiting = (now - created_at).total_seconds() / 3600
    return _step_score(hours_waiting, WAITING_STEPS, default=0)


def calculate_quantity_score(quantity_ml):
    return _step_score(quantity_ml or 0, QUANTITY_STEPS, default=20)


def calculate_blood_rarity_score(blood_type):
    """Requests without a blood group (ventilators) count as average"""
    if not blood_type:
        return 50
    return RARITY_SCORES[BloodGroup.parse(blood_type).value]


def _step_score(value, steps, default):
    for minimum, score in steps:
        if value >= minimum:
            return score
    return default


from django.utils import timezone

from matching.choices import RequestKind
from matching.exceptions import ValidationError

# Minimum rest between donations
BLOOD_COOLDOWN_DAYS = 90
PLASMA_COOLDOWN_DAYS = 14

COOLDOWN_DAYS = {
    RequestKind.BLOOD: BLOOD_COOLDOWN_DAYS,
    RequestKind.PLASMA: PLASMA_COOLDOWN_DAYS,
}


def cooldown_days(kind):
    try:
        return COOLDOWN_DAYS[RequestKind(kind)]
    except (KeyError, ValueError):
        raise ValidationError(f'No donation window defined for {kind}') from None


def days_since_last_donation(donor, today=None):
    """Whole days since the donor last gave, or None if they never have"""
    if not donor.last_donation_date:
        return None
    today = today or timezone.localdate()
    return (today - donor.last_donation_date).days


def is_donor_eligible(donor, kind, today=None) -> bool:
    """
    Check if a donor may be asked to give for a request of the given kind.

    Criteria:
    - Donor is available
    - Donor never donated, or at least 90 days (blood) / 14 days (plasma) have passed

    Location is not checked here; donors without coordinates are treated as local
    by the ranker.
    """
    if not donor.is_available:
        return False

    days_since = days_since_last_donation(donor, today)
    if days_since is None:
        return True
    return days_since >= cooldown_days(kind)

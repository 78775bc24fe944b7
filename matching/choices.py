# matching/choices.py
"""
Canonical enums shared by the models, the algorithms and the API.

Blood groups are stored as their display symbol ('A+', 'O-', ...). BloodGroup.parse
is the single place where any other spelling is converted.
"""
import re

from django.db import models

from matching.exceptions import ValidationError


class BloodGroup(models.TextChoices):
    A_POSITIVE = 'A+', 'A+'
    A_NEGATIVE = 'A-', 'A-'
    B_POSITIVE = 'B+', 'B+'
    B_NEGATIVE = 'B-', 'B-'
    AB_POSITIVE = 'AB+', 'AB+'
    AB_NEGATIVE = 'AB-', 'AB-'
    O_POSITIVE = 'O+', 'O+'
    O_NEGATIVE = 'O-', 'O-'

    @property
    def symbol(self):
        return self.value

    @property
    def abo(self):
        """ABO part of the group without the Rh sign ('AB' for 'AB-')"""
        return self.value[:-1]

    @classmethod
    def parse(cls, value):
        """
        Convert any accepted spelling to a BloodGroup.

        Accepts the symbol ('A+'), the member name ('A_POSITIVE') and loose
        spellings such as 'a pos', 'O NEG' or 'ab+ve'.
        """
        if isinstance(value, cls):
            return value
        if value is None:
            raise ValidationError('Blood group is required')

        text = re.sub(r'[\s_]+', '', str(value)).upper()
        for suffix, sign in _SIGN_SUFFIXES:
            if text.endswith(suffix):
                text = text[:-len(suffix)] + sign
                break

        try:
            return cls(text)
        except ValueError:
            raise ValidationError(f'Unknown blood group: {value!r}') from None


# Longest suffixes first so 'POSITIVE' is not read as 'POS' + 'ITIVE'
_SIGN_SUFFIXES = (
    ('POSITIVE', '+'),
    ('NEGATIVE', '-'),
    ('POS', '+'),
    ('NEG', '-'),
    ('+VE', '+'),
    ('-VE', '-'),
)


class RequestKind(models.TextChoices):
    BLOOD = 'BLOOD', 'Blood'
    PLASMA = 'PLASMA', 'Plasma'
    VENTILATOR = 'VENTILATOR', 'Ventilator'

    @property
    def requires_donors(self):
        return self in (RequestKind.BLOOD, RequestKind.PLASMA)


class Urgency(models.TextChoices):
    CRITICAL = 'CRITICAL', 'Critical - Life Threatening'
    URGENT = 'URGENT', 'Urgent - Within 24 Hours'
    NORMAL = 'NORMAL', 'Normal - Within 48 Hours'

    @property
    def rank(self):
        """0 for the most pressing tier"""
        return list(Urgency).index(self)


class RequestStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    APPROVED = 'APPROVED', 'Approved'
    FULFILLED = 'FULFILLED', 'Fulfilled'
    REJECTED = 'REJECTED', 'Rejected'
    CANCELLED = 'CANCELLED', 'Cancelled'

    @property
    def is_terminal(self):
        return not _TRANSITIONS[self]

    @classmethod
    def can_transition(cls, source, target):
        """Status transitions only move forward through the lifecycle"""
        return cls(target) in _TRANSITIONS[cls(source)]

    @classmethod
    def sources_for(cls, target):
        target = cls(target)
        return tuple(source for source, targets in _TRANSITIONS.items() if target in targets)


_TRANSITIONS = {
    RequestStatus.PENDING: frozenset({
        RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED,
    }),
    RequestStatus.APPROVED: frozenset({
        RequestStatus.FULFILLED, RequestStatus.REJECTED, RequestStatus.CANCELLED,
    }),
    RequestStatus.FULFILLED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}


class MatchResponse(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    ACCEPTED = 'ACCEPTED', 'Accepted'
    REJECTED = 'REJECTED', 'Rejected'


class NotificationType(models.TextChoices):
    MATCH = 'MATCH', 'Donor match'
    APPROVAL = 'APPROVAL', 'Request approval'
    GENERAL = 'GENERAL', 'General'


class NotificationPriority(models.TextChoices):
    HIGH = 'HIGH', 'High'
    MEDIUM = 'MEDIUM', 'Medium'
    LOW = 'LOW', 'Low'

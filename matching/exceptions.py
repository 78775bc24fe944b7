# matching/exceptions.py
"""
Error taxonomy for the matching workflow
"""


class MatchingError(Exception):
    """Base class for every error raised by the matching services"""


class NotFoundError(MatchingError):
    """A referenced patient, hospital, request, donor or match does not exist"""


class ValidationError(MatchingError):
    """Malformed input reached the core; upstream validation should have caught it"""


class TransientPersistenceError(MatchingError):
    """A repository call failed for reasons that may go away on retry"""


class NotificationDeliveryError(MatchingError):
    """A notification channel could not deliver a message. Never fatal."""

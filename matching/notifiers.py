# matching/notifiers.py
"""
Notification dispatch contract and its Django implementation.

Every channel is best-effort: send_* methods return True/False and never raise.
"""
import logging
from abc import ABC, abstractmethod

import requests
from django.conf import settings
from django.core.mail import send_mail
from django.db import DatabaseError, transaction
from django.utils.module_loading import import_string
from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from accounts.models import Notification
from matching.choices import NotificationPriority, NotificationType
from matching.conf import get_setting
from matching.exceptions import NotificationDeliveryError, ValidationError
from matching.messages import render_email, render_sms

logger = logging.getLogger(__name__)


class Notifier(ABC):
    @abstractmethod
    def send_in_app(self, user_id, title, body, related_request_id=None,
                    notification_type=NotificationType.MATCH, priority=NotificationPriority.HIGH):
        """Store a notification in the user's inbox"""

    @abstractmethod
    def send_email(self, address, template_args):
        """Render and send an email"""

    @abstractmethod
    def send_sms(self, phone, template_args):
        """Render and send a text message"""


# ---------------------------
# SMS backends
# ---------------------------
class BaseSMSBackend:
    def send(self, phone, message):
        """Deliver one message; raise NotificationDeliveryError on failure"""
        raise NotImplementedError


class ConsoleSMSBackend(BaseSMSBackend):
    """Writes messages to the log instead of sending them"""

    def send(self, phone, message):
        logger.info(f"📱 SMS to {phone}: {message}")


# Messages captured by LocmemSMSBackend, like django.core.mail.outbox
outbox = []


class LocmemSMSBackend(BaseSMSBackend):
    def send(self, phone, message):
        outbox.append((phone, message))


class TwilioSMSBackend(BaseSMSBackend):
    def __init__(self, client=None):
        self.client = client or TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        self.from_number = settings.TWILIO_FROM_NUMBER

    def send(self, phone, message):
        try:
            self.client.messages.create(to=phone, from_=self.from_number, body=message)
        except TwilioException as e:
            raise NotificationDeliveryError(f"Twilio rejected SMS to {phone}: {e}") from e
        except (requests.RequestException, OSError) as e:
            raise NotificationDeliveryError(f"Twilio unreachable for SMS to {phone}: {e}") from e


def get_sms_backend(path=None):
    return import_string(path or get_setting('SMS_BACKEND'))()


# ---------------------------
# Django notifier
# ---------------------------
class DjangoNotifier(Notifier):
    """In-app rows in accounts.Notification, email through Django's mail backend, SMS through the configured backend"""

    def __init__(self, sms_backend=None):
        self.sms_backend = sms_backend or get_sms_backend()

    def send_in_app(self, user_id, title, body, related_request_id=None,
                    notification_type=NotificationType.MATCH, priority=NotificationPriority.HIGH):
        if user_id is None:
            logger.warning(f"In-app notification '{title}' skipped: no recipient")
            return False
        try:
            # Own savepoint: a failed insert must not break the caller's transaction
            with transaction.atomic():
                Notification.objects.create(
                    user_id=user_id,
                    title=title,
                    message=body,
                    notification_type=notification_type,
                    priority=priority,
                    related_request_id=related_request_id,
                )
        except DatabaseError as e:
            logger.warning(f"In-app notification to user {user_id} failed: {e}")
            return False
        logger.info(f"Notification sent to user {user_id} ({notification_type})")
        return True

    def send_email(self, address, template_args):
        if not address:
            logger.warning(f"Email '{template_args.get('template')}' skipped: no address")
            return False
        try:
            subject, body = render_email(template_args)
            send_mail(
                subject=subject,
                message=body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[address],
                fail_silently=False,
            )
        except (ValidationError, KeyError, OSError) as e:
            logger.warning(f"📧 Email to {address} failed: {e}")
            return False
        except Exception:
            logger.exception(f"📧 Email to {address} failed")
            return False
        logger.info(f"📧 Email sent to {address}")
        return True

    def send_sms(self, phone, template_args):
        if not phone:
            logger.warning(f"SMS '{template_args.get('template')}' skipped: no phone number")
            return False
        try:
            message = render_sms(template_args, get_setting('SMS_MAX_LENGTH'))
            self.sms_backend.send(phone, message)
        except (ValidationError, KeyError, NotificationDeliveryError) as e:
            logger.warning(f"📱 SMS to {phone} failed: {e}")
            return False
        except Exception:
            # Backends outside this module may raise their own transport errors
            logger.exception(f"📱 SMS to {phone} failed")
            return False
        return True

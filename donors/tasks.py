# donors/tasks.py
"""
Celery tasks for donor matching that runs outside the request cycle
"""
import logging

from celery import shared_task

from hospitals.models import AidRequest
from matching.factory import build_coordinator

logger = logging.getLogger(__name__)


@shared_task
def match_request_donors(request_id):
    """
    Rank and notify donors for a request that was stored by submit_request
    Queued instead of run inline when VITALAID['ASYNC_MATCHING'] is on
    """
    aid_request = AidRequest.objects.filter(pk=request_id).first()
    if aid_request is None:
        logger.warning(f"Request {request_id} not found")
        return f"Request {request_id} not found"

    notified = build_coordinator().match_and_notify(aid_request)
    return f"✅ Notified {len(notified)} donors for request {request_id}"

"""Complainant notifications sent after a transition succeeded."""
from __future__ import annotations

import logging

from ..integrations.reclamos_api import ReclamosApiClient
from ..integrations.whatsapp import WhatsAppNotifier
from .assignment_transitions import NotificationRequest

logger = logging.getLogger(__name__)


def send_transition_notification(
    request: NotificationRequest,
    *,
    notifier: WhatsAppNotifier,
    reclamos_client: ReclamosApiClient,
) -> bool:
    """Resolve the complainant if needed and send the template. Never raises."""
    phone = request.phone
    name = request.complainant_name
    if not phone:
        try:
            complaint = reclamos_client.get_complaint(request.complaint_id)
        except Exception:
            logger.exception("notify.lookup complaint=%s failed", request.complaint_id)
            return False
        phone = complaint.get("telefono")
        name = name or complaint.get("nombre")

    return notifier.notify(request.complaint_id, phone, request.template, name)

"""
WhatsApp Business template notifications to complainants.

Delivery is best effort: ``WhatsAppNotifier.notify`` never raises, so a
messaging failure cannot change the outcome of the transition that triggered it.
"""
from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any

import requests

from ..config import settings
from ..domain_errors import NotificationError

logger = logging.getLogger(__name__)

DEFAULT_COMPLAINANT_NAME = "Usuario"


def normalize_phone(raw: str, *, country_code: str | None = None) -> str:
    """Strip a leading ``+`` and prefix the country code when missing.

    Idempotent: ``normalize_phone(normalize_phone(x)) == normalize_phone(x)``.
    """
    code = country_code or settings.WHATSAPP_COUNTRY_CODE
    number = (raw or "").strip()
    if number.startswith("+"):
        number = number[1:]
    if not number.startswith(code):
        number = code + number
    return number


def format_notification_date(day: date) -> str:
    """Short es-AR date (D/M/YYYY, no zero padding)."""
    return f"{day.day}/{day.month}/{day.year}"


def build_template_payload(
    *,
    complaint_id: int,
    phone: str,
    template: str,
    complainant_name: str | None,
    today: date,
    language_code: str | None = None,
) -> dict[str, Any]:
    """Template payload: header = complaint id, body = name and date, positionally."""
    return {
        "number": normalize_phone(phone),
        "template": template,
        "languageCode": language_code or settings.WHATSAPP_LANGUAGE_CODE,
        "components": [
            {
                "type": "HEADER",
                "parameters": [{"type": "text", "text": str(complaint_id)}],
            },
            {
                "type": "BODY",
                "parameters": [
                    {"type": "text", "text": complainant_name or DEFAULT_COMPLAINANT_NAME},
                    {"type": "text", "text": format_notification_date(today)},
                ],
            },
        ],
    }


class WhatsAppNotifier:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or settings.WHATSAPP_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.WHATSAPP_API_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def send_template(self, payload: dict[str, Any]) -> None:
        """POST the template; raises NotificationError on any failure."""
        try:
            response = self.session.post(
                f"{self.base_url}/template",
                json=payload,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise NotificationError(message=f"EXCEPTION: {exc}") from exc

        if not response.ok:
            raise NotificationError(
                message=f"HTTP_{response.status_code}: {response.text[:200]}",
                details={"status": response.status_code},
            )

    def notify(
        self,
        complaint_id: int,
        phone: str | None,
        template: str,
        complainant_name: str | None = None,
        *,
        today: date | None = None,
    ) -> bool:
        """Send a template message; log and swallow every failure."""
        if not phone:
            logger.info("whatsapp.notify complaint=%s skipped: no phone", complaint_id)
            return False

        try:
            payload = build_template_payload(
                complaint_id=complaint_id,
                phone=phone,
                template=template,
                complainant_name=complainant_name,
                today=today or date.today(),
            )
            logger.debug("whatsapp.notify payload=%s", json.dumps(payload, ensure_ascii=False))
            self.send_template(payload)
        except NotificationError as exc:
            logger.warning("whatsapp.notify complaint=%s template=%s failed: %s", complaint_id, template, exc)
            return False
        except Exception:
            logger.exception("whatsapp.notify complaint=%s template=%s failed", complaint_id, template)
            return False

        logger.info("whatsapp.notify complaint=%s template=%s sent", complaint_id, template)
        return True


def get_notifier() -> WhatsAppNotifier:
    """FastAPI dependency."""
    return WhatsAppNotifier()

"""Client for the external Reclamos API, owner of the complaint records."""
from __future__ import annotations

import logging
from typing import Any

import requests

from ..config import settings
from ..domain_errors import SyncFailedError

logger = logging.getLogger(__name__)


class ReclamosApiClient:
    """Thin wrapper over the Reclamos REST endpoints used by the dispatcher."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = (base_url or settings.RECLAMOS_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.RECLAMOS_API_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _url(self, complaint_id: int) -> str:
        return f"{self.base_url}/reclamos/{complaint_id}"

    def update_status(self, complaint_id: int, status: str, crew_id: int | None = None) -> None:
        """PATCH the complaint status; ``cuadrillaid`` only travels with assignments."""
        payload: dict[str, Any] = {"estado": status}
        if crew_id is not None:
            payload["cuadrillaid"] = crew_id

        try:
            response = self.session.patch(self._url(complaint_id), json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("reclamos_api.update_status complaint=%s status=%s error=%s", complaint_id, status, exc)
            raise SyncFailedError(
                message="Error updating the complaint status in the external API",
                details={"complaintId": complaint_id, "status": status, "reason": f"EXCEPTION: {exc}"},
            ) from exc

        if not response.ok:
            reason = f"HTTP_{response.status_code}: {response.text[:200]}"
            logger.warning("reclamos_api.update_status complaint=%s status=%s %s", complaint_id, status, reason)
            raise SyncFailedError(
                message="Error updating the complaint status in the external API",
                details={"complaintId": complaint_id, "status": status, "reason": reason},
            )

        logger.info("reclamos_api.update_status complaint=%s status=%s ok", complaint_id, status)

    def get_complaint(self, complaint_id: int) -> dict[str, Any]:
        """Fetch the full complaint, including the complainant's phone and name."""
        response = self.session.get(self._url(complaint_id), timeout=self.timeout)
        response.raise_for_status()
        return response.json()


def get_reclamos_client() -> ReclamosApiClient:
    """FastAPI dependency."""
    return ReclamosApiClient()

"""
Referrals API Client

Thin HTTP client for the backend that persists referrals.

API endpoints:
    POST /api/referrals - create referral (JSON body, any 2xx = accepted)

The base URL is passed in at construction; this module never reads the
environment. Response bodies are not parsed.
"""
import logging
from typing import Dict, Optional

import httpx

from app.services.referrals.exceptions import (
    SubmissionRejectedError,
    TransportFailureError,
)

logger = logging.getLogger(__name__)

REFERRALS_PATH = "/api/referrals"
DEFAULT_TIMEOUT = 10.0


class ReferralApiClient:
    """POSTs referral payloads to {base_url}/api/referrals"""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def __repr__(self) -> str:
        return f"<ReferralApiClient url={self.endpoint} timeout={self.timeout}>"

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}{REFERRALS_PATH}"

    async def create_referral(self, payload: Dict[str, str]) -> int:
        """
        Send one referral to the backend.

        Args:
            payload: Wire dict with referrerName, referrerEmail, refereeName,
                refereeEmail and course

        Returns:
            HTTP status code of the accepted response

        Raises:
            SubmissionRejectedError: Backend answered with a non-2xx status
            TransportFailureError: Request could not complete (connect, timeout, protocol, bad URL)
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    headers={"Content-Type": "application/json"},
                    json=payload,
                )
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            raise TransportFailureError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise SubmissionRejectedError(response.status_code, response.text[:200])

        logger.debug("Referral accepted: status=%s", response.status_code)
        return response.status_code

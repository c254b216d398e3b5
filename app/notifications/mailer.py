"""
Outbound email through the provider's HTTP API
Plain-text only; delivery failures are logged, never raised
"""

import logging
from typing import Iterable, List, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class Mailer:
    """Thin async client for the transactional email API"""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        sender: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_url = settings.EMAIL_API_URL if api_url is None else api_url
        self.api_key = settings.EMAIL_API_KEY if api_key is None else api_key
        self.sender = sender or settings.EMAIL_FROM
        self.timeout = timeout or settings.EMAIL_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_url)

    async def send(self, to: Iterable[str], subject: str, text: str) -> bool:
        """
        Send one message to one or more recipients (sent as BCC-style list)

        Returns:
            True when the provider accepted the message
        """
        recipients: List[str] = sorted({addr for addr in to if addr})
        if not recipients:
            return False

        if not self.enabled:
            logger.info("EMAIL_API_URL not set, skipping mail %r to %d recipient(s)", subject, len(recipients))
            return False

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        payload = {
            "from": self.sender,
            "to": recipients,
            "subject": subject,
            "text": text,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.api_url, json=payload, headers=headers)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to send mail %r: %s", subject, e)
            return False

        logger.info("Mail %r sent to %d recipient(s)", subject, len(recipients))
        return True


_mailer: Optional[Mailer] = None


def get_mailer() -> Mailer:
    """FastAPI dependency returning the shared mailer"""
    global _mailer
    if _mailer is None:
        _mailer = Mailer()
    return _mailer

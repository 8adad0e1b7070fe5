"""Email delivery through the Resend HTTP API."""

from typing import Protocol

import httpx
import structlog

from care_scheduling.config import settings
from care_scheduling.core.exceptions import DependencyException

logger = structlog.get_logger(__name__)


class EmailSender(Protocol):
    """Delivers a rendered message; raises DependencyException on any failure."""

    async def send(self, to: str, subject: str, html: str) -> None:
        """Send one HTML email."""
        ...


class ResendEmailSender:
    """
    Async Resend client.

    Acceptance by the API (2xx) is the only delivery confirmation available.
    Timeouts, transport errors and non-2xx responses all surface as
    DependencyException so callers can treat them as retryable.
    """

    def __init__(
        self,
        api_key: str,
        from_address: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize sender.

        Args:
            api_key: Resend API key
            from_address: Sender shown to recipients
            api_url: Resend emails endpoint
            timeout: Request timeout in seconds
            transport: Optional transport override
        """
        self.api_key = api_key
        self.from_address = from_address
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send(self, to: str, subject: str, html: str) -> None:
        """
        Send one HTML email.

        Args:
            to: Recipient address
            subject: Subject line
            html: Rendered HTML body

        Raises:
            DependencyException: If the API is unreachable, times out or rejects the message
        """
        if not self.api_key:
            raise DependencyException("Email delivery is not configured (RESEND_API_KEY missing)")

        client = await self._get_client()
        payload = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }

        try:
            response = await client.post(self.api_url, json=payload)
        except httpx.TimeoutException as e:
            logger.error("email_send_timeout", subject=subject, error=str(e))
            raise DependencyException("Email provider timed out") from e
        except httpx.HTTPError as e:
            logger.error("email_send_transport_error", subject=subject, error=str(e))
            raise DependencyException(f"Email provider unreachable: {e}") from e

        if response.is_error:
            logger.error(
                "email_send_rejected",
                subject=subject,
                status_code=response.status_code,
                body=response.text,
            )
            raise DependencyException(
                f"Email provider error: {response.status_code} {response.text}"
            )

        logger.info("email_sent", subject=subject, status_code=response.status_code)


_email_sender: ResendEmailSender | None = None


def get_email_sender() -> ResendEmailSender:
    """
    Get or create the process-wide email sender.

    Returns:
        Email sender configured from settings
    """
    global _email_sender

    if _email_sender is None:
        _email_sender = ResendEmailSender(
            api_key=settings.resend_api_key,
            from_address=settings.email_from_address,
            api_url=settings.resend_api_url,
            timeout=settings.email_timeout_seconds,
        )

    return _email_sender


async def close_email_sender() -> None:
    """Close the process-wide email sender."""
    global _email_sender

    if _email_sender is not None:
        await _email_sender.close()
        _email_sender = None

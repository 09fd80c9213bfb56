"""Outbound email for invitations.

``ResendEmailSender`` talks to the Resend HTTP API with httpx and retries
transport failures with tenacity. ``LoggingEmailSender`` only logs and keeps
messages in memory, for development and tests.
"""

import time
from datetime import datetime
from html import escape
from typing import Protocol, runtime_checkable

import httpx
from pydantic import BaseModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from bizcore.config.settings import Settings
from bizcore.core.logging import get_logger, log_external_call
from bizcore.utils.exceptions import BizcoreError, ConfigurationError

logger = get_logger(__name__)


class EmailDeliveryError(BizcoreError):
    """Raised when an email could not be handed to the provider.

    Attributes:
        status_code: HTTP status returned by the provider, if any
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        return f"EmailDeliveryError: {self.args[0]}"


class SentEmail(BaseModel):
    to: str
    subject: str
    html: str
    message_id: str | None = None


@runtime_checkable
class EmailSender(Protocol):
    """Protocol for email delivery."""

    async def send(self, to: str, subject: str, html: str) -> str | None:
        """Send an email.

        Returns:
            Provider message id, if the provider returns one

        Raises:
            EmailDeliveryError: If the email could not be delivered
        """
        ...


class ResendEmailSender:
    """Sends email through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not api_key:
            raise ConfigurationError("Resend API key is required")
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResendEmailSender":
        if settings.RESEND_API_KEY is None:
            raise ConfigurationError("RESEND_API_KEY is not configured")
        return cls(
            api_key=settings.RESEND_API_KEY.get_secret_value(),
            sender=settings.email_from,
            api_url=settings.resend_api_url,
            timeout=settings.email_timeout_seconds,
        )

    async def send(self, to: str, subject: str, html: str) -> str | None:
        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        start = time.perf_counter()
        try:
            message_id = await self._post(payload)
        except httpx.TransportError as e:
            log_external_call(
                logger,
                service="resend",
                operation="send_email",
                duration_ms=(time.perf_counter() - start) * 1000,
                success=False,
                error=str(e),
            )
            raise EmailDeliveryError(f"Email provider unreachable: {e}") from e
        except EmailDeliveryError as e:
            log_external_call(
                logger,
                service="resend",
                operation="send_email",
                duration_ms=(time.perf_counter() - start) * 1000,
                success=False,
                status_code=e.status_code,
            )
            raise

        log_external_call(
            logger,
            service="resend",
            operation="send_email",
            duration_ms=(time.perf_counter() - start) * 1000,
            success=True,
            message_id=message_id,
        )
        return message_id

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _post(self, payload: dict) -> str | None:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self._client is not None:
            response = await self._client.post(self.api_url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)

        if response.status_code >= 400:
            raise EmailDeliveryError(
                f"Email provider rejected message ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            return response.json().get("id")
        except ValueError:
            return None


class LoggingEmailSender:
    """Email sender that logs instead of sending. Keeps sent messages in ``sent``."""

    def __init__(self) -> None:
        self.sent: list[SentEmail] = []

    async def send(self, to: str, subject: str, html: str) -> str | None:
        message_id = f"logged-{len(self.sent) + 1}"
        self.sent.append(SentEmail(to=to, subject=subject, html=html, message_id=message_id))
        logger.info("email_logged", to=to, subject=subject, message_id=message_id)
        return message_id


def build_email_sender(settings: Settings) -> EmailSender:
    """Resend when an API key is configured, otherwise the logging sender."""
    if settings.RESEND_API_KEY is not None:
        return ResendEmailSender.from_settings(settings)
    logger.warning("email_sender_not_configured", fallback="logging")
    return LoggingEmailSender()


def render_invitation_email(
    *,
    product_name: str,
    workspace_name: str,
    invite_url: str,
    expires_at: datetime,
    inviter_name: str | None = None,
    company_name: str | None = None,
    message: str | None = None,
    resent: bool = False,
) -> tuple[str, str]:
    """Render the subject and HTML body of an invitation email.

    All interpolated values are HTML-escaped.
    """
    target = company_name or workspace_name
    subject = f"Invitation to join {target} on {product_name}"
    if resent:
        subject += " (resent)"

    if inviter_name:
        who = f"<strong>{escape(inviter_name)}</strong> has invited you"
    else:
        who = "You have been invited"
    scope = f"<strong>{escape(workspace_name)}</strong>"
    if company_name:
        scope = f"the company <strong>{escape(company_name)}</strong> in {scope}"

    parts = [
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">',
        f"<h1>{escape(product_name)} invitation</h1>",
        f"<p>{who} to join {scope}.</p>",
    ]
    if resent:
        parts.append("<p><em>This invitation was sent again.</em></p>")
    if message:
        parts.append(
            '<p style="font-style: italic; border-left: 3px solid #007cba; padding-left: 15px;">'
            f"&quot;{escape(message)}&quot;</p>"
        )
    parts.extend(
        [
            f'<p><a href="{escape(invite_url, quote=True)}">Accept the invitation</a></p>',
            f"<p>This invitation is valid until {expires_at.strftime('%Y-%m-%d')}.</p>",
            "</div>",
        ]
    )
    return subject, "\n".join(parts)

import logging

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from starlette.concurrency import run_in_threadpool

from slate.core.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """SendGrid did not accept the message."""


def _send(to_email: str, subject: str, body: str) -> int:
    message = Mail(
        from_email=(settings.EMAIL_FROM, settings.EMAIL_FROM_NAME),
        to_emails=to_email,
        subject=subject,
        html_content=body,
    )
    sg = SendGridAPIClient(settings.SENDGRID_API_KEY)
    response = sg.send(message)
    return response.status_code


async def send_email(to_email: str, subject: str, body: str) -> None:
    """
    Send an HTML email through the SendGrid API.

    Raises EmailDeliveryError unless SendGrid answers 202 Accepted, so the
    notification dispatcher can retry.
    """
    if not settings.SENDGRID_API_KEY:
        raise EmailDeliveryError("SENDGRID_API_KEY is not configured")
    try:
        status_code = await run_in_threadpool(_send, to_email, subject, body)
    except Exception as e:
        raise EmailDeliveryError(f"SendGrid request failed: {e.__class__.__name__}") from e
    if status_code != 202:
        raise EmailDeliveryError(f"SendGrid API error: {status_code}")
    logger.info("Email '%s' accepted for delivery", subject)

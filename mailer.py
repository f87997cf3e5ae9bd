"""
Contact form relay.

Forwards a contact form submission to a fixed inbox through the
SendGrid v3 mail API. One request, no retry.
"""

import logging

from curl_cffi.requests import AsyncSession
from curl_cffi.requests import exceptions as requests_exceptions

from review_models import ContactMessage
from scraper_config import MailerConfig, DEFAULT_EMAIL_SUBJECT

logger = logging.getLogger(__name__)


class MailerError(RuntimeError):
    """Delivery failed. The message is the API's response text."""


def build_payload(message: ContactMessage, config: MailerConfig) -> dict:
    """Build the SendGrid request body for a contact message."""
    body = f"Name: {message.name}\nEmail: {message.email}\n\nMessage: {message.message}"
    return {
        "personalizations": [
            {
                "to": [{"email": config.to_email}],
                "subject": message.subject or DEFAULT_EMAIL_SUBJECT,
            }
        ],
        "from": {"email": config.from_email},
        "content": [{"type": "text/plain", "value": body}],
    }


async def send_contact_message(message: ContactMessage, config: MailerConfig,
                               session_factory=AsyncSession, timeout: float = 30) -> None:
    """
    Deliver a contact message.

    Raises:
        MailerError: On a transport failure or a non-2xx response
    """
    headers = {
        "Authorization": f"Bearer {config.api_key}",
        "Content-Type": "application/json",
    }

    try:
        async with session_factory() as http:
            response = await http.post(
                config.api_url, json=build_payload(message, config),
                headers=headers, timeout=timeout
            )
    except requests_exceptions.RequestException as e:
        raise MailerError(f"Email request failed: {e}") from e

    if response.status_code >= 300:
        logger.error(f"Email delivery failed ({response.status_code}): {response.text}")
        raise MailerError(response.text or f"HTTP {response.status_code}")

    logger.info(f"Contact message from {message.email} delivered")

"""Wrapper for Gmail API interactions."""

import base64
from email.mime.text import MIMEText
from typing import Any, Dict, Optional

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError
from google.oauth2.credentials import Credentials

import config
from api_clients import build_service
from utils.error_handler import APIError
from utils.logger import get_logger
from utils.retry import retry_on_exception

logger = get_logger()

RETRYABLE_GMAIL_ERRORS = (HttpError, TimeoutError, ConnectionError)
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)

def should_retry_gmail(e: Exception) -> bool:
    """Retry predicate: only rate limits, server errors and connection problems."""
    if isinstance(e, HttpError):
        return e.resp.status in RETRYABLE_STATUS_CODES
    return isinstance(e, (TimeoutError, ConnectionError))

def create_message(to: str, subject: str, body: str, is_html: bool = False) -> Dict[str, str]:
    """Creates a base64url encoded MIME message for the Gmail send call.

    The sender is left to Gmail, which fills in the authenticated account.
    """
    message = MIMEText(body, 'html' if is_html else 'plain', 'utf-8')
    message['to'] = to
    message['subject'] = subject
    return {'raw': base64.urlsafe_b64encode(message.as_bytes()).decode()}


class GmailService:
    """Provides methods to interact with the Gmail API."""

    SERVICE_NAME = 'gmail'
    VERSION = 'v1'

    def __init__(self, credentials: Optional[Credentials] = None, service: Optional[Resource] = None):
        """Initializes the GmailService.

        Args:
            credentials: Valid Google OAuth 2.0 credentials.
            service: Prebuilt service resource, used instead of building one.

        Raises:
            AuthenticationError: If credentials are invalid.
            APIError: If the Gmail service cannot be built.
        """
        logger.debug("Initializing GmailService...")
        self.service: Resource = service or build_service(self.SERVICE_NAME, self.VERSION, credentials)
        logger.debug("GmailService initialized successfully.")

    @retry_on_exception(exceptions=RETRYABLE_GMAIL_ERRORS, max_attempts=3, should_retry=should_retry_gmail)
    def send_email(self, to_email: str, subject: str, body: str, is_html: bool = False, sender: str = "me") -> Dict[str, Any]:
        """Sends an email from the authenticated user's account.

        Args:
            to_email: The recipient's email address.
            subject: The email subject.
            body: The email body, plain text or HTML.
            is_html: Whether `body` is HTML.
            sender: The sending user id (defaults to "me").

        Returns:
            The response from the Gmail API's send method (contains message ID).

        Raises:
            APIError: If the API call fails after retries.
            ValueError: If the recipient address is invalid.
        """
        if not to_email or '@' not in to_email:
            raise ValueError(f"Invalid recipient email address: {to_email}")

        logger.info(f"Preparing to send email to <{to_email}> with subject: '{subject}'")
        try:
            sent_message = self.service.users().messages().send(
                userId=sender,
                body=create_message(to_email, subject, body, is_html=is_html)
            ).execute()
        except HttpError as e:
            if should_retry_gmail(e):
                raise
            logger.error(f"Failed to send email to <{to_email}>: {e.resp.status} {e.content}", exc_info=config.DEBUG)
            if e.resp.status == 403:
                raise APIError(
                    f"Permission denied (403) sending email from {sender}. Check Gmail API permissions.",
                    status_code=403, service=self.SERVICE_NAME
                ) from e
            raise APIError(
                f"Failed to send email to <{to_email}>: {e.resp.status}",
                status_code=e.resp.status,
                service=self.SERVICE_NAME
            ) from e

        logger.info(f"Successfully sent email to <{to_email}>. Message ID: {sent_message.get('id')}")
        return sent_message

# f2f_booking/services/email.py
"""
Email Service for face-to-face booking notifications.

Sends through the Resend API. Constructed only when an API key is
configured; NotificationService skips delivery otherwise.
"""

import logging
import re
from typing import Any, Dict, Optional

import resend
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from .base import BaseService

logger = logging.getLogger(__name__)


class EmailService(BaseService):
    """
    Service for sending emails using Resend API.

    Extends BaseService for consistent architecture, metrics collection,
    and standardized error handling.
    """

    def __init__(
        self, db: Session, api_key: Optional[str] = None, from_email: Optional[str] = None
    ):
        """
        Initialize email service.

        Args:
            db: Database session (required by BaseService)
            api_key: Resend API key, defaults to settings
            from_email: Sender address, defaults to settings
        """
        super().__init__(db)

        api_key = api_key or settings.resend_api_key
        if not api_key:
            raise ServiceException("Resend API key not configured")

        resend.api_key = api_key
        self.from_email = from_email or settings.from_email

    def _html_to_text(self, html_content: str) -> str:
        """Convert HTML content to plain text for better deliverability"""
        text = re.sub(r"<br\s*/?>", "\n", html_content)
        text = re.sub(r"<[^>]+>", "", text)
        return text.strip()

    @BaseService.measure_operation("send_email")
    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an email using Resend.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML content of the email
            text_content: Optional plain text version

        Returns:
            Dict containing the Resend API response

        Raises:
            ServiceException: If email sending fails
        """
        email_data = {
            "from": self.from_email,
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "text": text_content or self._html_to_text(html_content),
        }

        try:
            response = resend.Emails.send(email_data)
        except Exception as e:
            error_msg = str(e) or "Unknown error"
            self.logger.error(f"Failed to send email to {to_email}: {error_msg}")
            raise ServiceException(f"Email sending failed: {error_msg}") from e

        self.log_operation("email_sent", to_email=to_email, subject=subject)
        return response

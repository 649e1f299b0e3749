# f2f_booking/services/notification_service.py
"""
Notification Service for face-to-face bookings.

Renders the activity's confirmation and cancellation templates with Jinja2
and delivers them by email. Templates are configured per activity by
course staff, so they run in a sandboxed environment. An activity without both
a subject and a message for a kind of notice never sends that notice.

Delivery problems are logged and reported as False; they never undo the
booking change that triggered them.
"""

import logging
from typing import Any, Dict, Optional

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import escape
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.enums import NotificationType
from ..core.exceptions import ServiceException
from ..core.time_utils import ensure_utc
from ..models.facetoface import Facetoface, FacetofaceSession
from ..models.signup import SessionSignup
from ..models.user import User
from .base import BaseService
from .email import EmailService

logger = logging.getLogger(__name__)

DATE_FORMAT = "%A, %d %B %Y, %H:%M %Z"


class NotificationService(BaseService):
    """Sends booking confirmations and cancellation notices."""

    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        """
        Initialize the notification service.

        Args:
            db: Database session
            email_service: Optional EmailService; built from settings when omitted
                and an API key is configured
        """
        super().__init__(db)
        if email_service is None and settings.email_enabled:
            email_service = EmailService(db)
        self.email_service = email_service
        self.env = SandboxedEnvironment(autoescape=False, undefined=StrictUndefined)

    @BaseService.measure_operation("send_booking_confirmation")
    def send_booking_confirmation(self, signup: SessionSignup) -> bool:
        """
        Send the booking confirmation for a signup.

        Returns:
            True if an email was handed to the provider, False otherwise
        """
        session = signup.session
        facetoface = session.facetoface
        if not facetoface.sends_confirmations:
            self.logger.debug(f"Facetoface {facetoface.id} has no confirmation message configured")
            return False

        context = self._build_context(facetoface, session, signup.user, signup)
        return self._deliver(
            signup.user.email,
            facetoface.confirmation_subject,
            facetoface.confirmation_message,
            context,
            kind="confirmation",
        )

    @BaseService.measure_operation("send_cancellation_notice")
    def send_cancellation_notice(
        self,
        session: FacetofaceSession,
        user: User,
        signup: Optional[SessionSignup] = None,
    ) -> bool:
        """
        Send a cancellation notice.

        The user may have had no booking at all; the notice still goes out so
        the attendee knows the upload cancelled them.
        """
        facetoface = session.facetoface
        if not facetoface.sends_cancellations:
            self.logger.debug(f"Facetoface {facetoface.id} has no cancellation message configured")
            return False

        context = self._build_context(facetoface, session, user, signup)
        return self._deliver(
            user.email,
            facetoface.cancellation_subject,
            facetoface.cancellation_message,
            context,
            kind="cancellation",
        )

    def _build_context(
        self,
        facetoface: Facetoface,
        session: FacetofaceSession,
        user: User,
        signup: Optional[SessionSignup],
    ) -> Dict[str, Any]:
        dates = [
            {
                "start": ensure_utc(d.time_start).strftime(DATE_FORMAT),
                "finish": ensure_utc(d.time_finish).strftime(DATE_FORMAT),
            }
            for d in session.dates
        ]
        notification_type = (
            NotificationType(signup.notification_type) if signup else NotificationType.BOTH
        )
        return {
            "first_name": user.first_name,
            "last_name": user.last_name,
            "full_name": user.full_name,
            "email": user.email,
            "activity": facetoface.name,
            "details": session.details or "",
            "dates": dates,
            "session_date": dates[0]["start"] if dates else "",
            "discount_code": (signup.discount_code if signup else None) or "",
            "notification_type": notification_type.name.lower(),
        }

    def _deliver(
        self,
        to_email: str,
        subject_template: str,
        message_template: str,
        context: Dict[str, Any],
        kind: str,
    ) -> bool:
        try:
            subject = self.env.from_string(subject_template).render(**context)
            text_content = self.env.from_string(message_template).render(**context)
        except TemplateError as e:
            self.logger.error(f"Failed to render {kind} template for {to_email}: {str(e)}")
            return False

        if self.email_service is None:
            self.logger.info(f"Email delivery disabled; {kind} for {to_email} not sent")
            return False

        html_content = str(escape(text_content)).replace("\n", "<br>\n")
        try:
            self.email_service.send_email(
                to_email=to_email,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
            )
        except ServiceException as e:
            self.logger.warning(f"Could not send {kind} to {to_email}: {e.message}")
            return False

        self.logger.info(f"Sent booking {kind} to {to_email}")
        return True

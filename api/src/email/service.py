"""Gmail API sender for platform e-mail.

A service account with domain-wide delegation for the
``https://www.googleapis.com/auth/gmail.send`` scope impersonates the
sender address. The Gmail client is blocking, so sends run in a worker
thread.
"""

import asyncio
import base64
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import TYPE_CHECKING

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from src.core.logging import get_logger

from .schemas import (
    EmailDeliveryResult,
    EmailMessage,
    EmailRecipient,
    EmployeeInvitationEmail,
)
from .templates import render_employee_invitation


if TYPE_CHECKING:
    from googleapiclient._apis.gmail.v1 import GmailResource


logger = get_logger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


def invitation_subject(company_name: str) -> str:
    return f'Meghívás: csatlakozz a(z) "{company_name}" csapatához'


class EmailService:
    """Sends e-mail as ``sender_address`` through the Gmail API."""

    def __init__(
        self,
        credentials_path: str,
        sender_address: str,
        sender_name: str = "Elira",
        reply_to: str | None = None,
    ):
        self.credentials_path = credentials_path
        self.sender_address = sender_address
        self.sender_name = sender_name
        self.reply_to = reply_to
        self._gmail: GmailResource | None = None

        if not Path(credentials_path).exists():
            logger.warning("email_credentials_not_found", path=credentials_path)

    def _get_service(self) -> "GmailResource":
        """Gmail resource, built on first use.

        Raises:
            FileNotFoundError: If the service account file is missing
        """
        if self._gmail is None:
            credentials_file = Path(self.credentials_path)
            if not credentials_file.exists():
                msg = f"Credentials file not found: {self.credentials_path}"
                raise FileNotFoundError(msg)

            credentials = service_account.Credentials.from_service_account_file(
                str(credentials_file), scopes=GMAIL_SCOPES
            ).with_subject(self.sender_address)
            self._gmail = build("gmail", "v1", credentials=credentials, cache_discovery=False)
            logger.info("gmail_service_initialized", sender=self.sender_address)
        return self._gmail

    def _create_message(self, message: EmailMessage) -> dict[str, str]:
        """MIME ``multipart/alternative`` encoded as the Gmail ``raw`` payload."""
        mime = MIMEMultipart("alternative")
        mime["From"] = EmailRecipient(email=self.sender_address, name=self.sender_name).formatted()
        mime["To"] = ", ".join(r.formatted() for r in message.to)
        mime["Subject"] = message.subject
        reply_to = message.reply_to or self.reply_to
        if reply_to:
            mime["Reply-To"] = str(reply_to)

        # HTML last: clients render the last alternative they support
        if message.body_text:
            mime.attach(MIMEText(message.body_text, "plain", "utf-8"))
        mime.attach(MIMEText(message.body_html, "html", "utf-8"))

        return {"raw": base64.urlsafe_b64encode(mime.as_bytes()).decode("ascii")}

    def _send_blocking(self, message: EmailMessage) -> dict:
        gmail = self._get_service()
        payload = self._create_message(message)
        return gmail.users().messages().send(userId="me", body=payload).execute()

    async def send(self, message: EmailMessage) -> EmailDeliveryResult:
        """Send one e-mail. Delivery failures are returned, not raised."""
        recipients = [str(r.email) for r in message.to]
        try:
            result = await asyncio.to_thread(self._send_blocking, message)
        except HttpError as e:
            logger.exception("email_send_failed", to=recipients, subject=message.subject[:50])
            return EmailDeliveryResult(success=False, error=f"Gmail API error: {e!s}")
        except FileNotFoundError as e:
            logger.error("email_credentials_missing", error=str(e))
            return EmailDeliveryResult(
                success=False,
                error="Email service not configured: credentials file missing",
            )

        logger.info("email_sent", message_id=result.get("id"), to=recipients)
        return EmailDeliveryResult(
            success=True,
            message_id=result.get("id"),
            thread_id=result.get("threadId"),
        )

    async def send_employee_invitation(
        self, invitation: EmployeeInvitationEmail
    ) -> EmailDeliveryResult:
        """Send the company invitation with its registration link."""
        body_html, body_text = render_employee_invitation(
            first_name=invitation.first_name,
            company_name=invitation.company_name,
            invite_url=str(invitation.invite_url),
            expiry_days=invitation.expiry_days,
        )
        return await self.send(
            EmailMessage(
                to=[EmailRecipient(email=invitation.email, name=invitation.first_name)],
                subject=invitation_subject(invitation.company_name),
                body_html=body_html,
                body_text=body_text,
            )
        )

"""Transactional e-mail (company invitations) via the Gmail API."""

from .schemas import (
    EmailDeliveryResult,
    EmailMessage,
    EmailRecipient,
    EmployeeInvitationEmail,
)
from .service import EmailService


__all__ = [
    "EmailDeliveryResult",
    "EmailMessage",
    "EmailRecipient",
    "EmailService",
    "EmployeeInvitationEmail",
]

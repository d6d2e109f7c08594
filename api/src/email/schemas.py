"""Pydantic schemas for outgoing e-mail."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl


class EmailRecipient(BaseModel):
    email: EmailStr
    name: str | None = None

    def formatted(self) -> str:
        """``Name <address>`` or the bare address."""
        return f"{self.name} <{self.email}>" if self.name else str(self.email)


class EmailMessage(BaseModel):
    """A single e-mail sent through the Gmail API."""

    to: list[EmailRecipient] = Field(..., min_length=1, max_length=50)
    subject: str = Field(..., min_length=1, max_length=998)
    body_html: str = Field(..., min_length=1)
    body_text: str | None = Field(None, description="Plain text alternative")
    reply_to: EmailStr | None = None


class EmployeeInvitationEmail(BaseModel):
    """Data for the company invitation e-mail."""

    email: EmailStr
    first_name: str = Field(..., min_length=1)
    company_name: str = Field(..., min_length=1)
    invite_url: HttpUrl
    expiry_days: int = Field(default=7, ge=1)


class EmailDeliveryResult(BaseModel):
    """Outcome of a send. Failures are reported here, not raised."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    message_id: str | None = Field(None, description="Gmail message ID")
    thread_id: str | None = Field(None, description="Gmail thread ID")
    error: str | None = None

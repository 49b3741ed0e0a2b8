"""Inbound email webhook payload."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MailSender(BaseModel):
    name: str | None = None
    address: str = Field(..., min_length=3, max_length=320)


class MailAttachment(BaseModel):
    """Attachment reference; the provider sends filename/url as key_0/key_1."""

    model_config = ConfigDict(populate_by_name=True)

    filename: str | None = Field(None, alias="key_0")
    url: str | None = Field(None, alias="key_1")


class EmailWebhookPayload(BaseModel):
    id: str = Field(..., min_length=1, max_length=255)
    received_at: str | None = None
    company_name: str | None = None
    mail_sender: list[MailSender] = Field(..., min_length=1)
    mail_attachment: list[MailAttachment] = Field(default_factory=list)

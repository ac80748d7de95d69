from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings
from django.core.mail import send_mail
from twilio.rest import Client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    name: str
    email: str = ""
    phone: str = ""


class EmailMessenger:
    """Envia notificações por e-mail usando o backend de e-mail do Django."""

    def __init__(self, from_email: str | None = None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def send(self, recipients: list[Recipient], subject: str, body: str) -> int:
        emails = [recipient.email for recipient in recipients if recipient.email]
        if not emails:
            logger.info("Nenhum e-mail disponível para '%s'", subject)
            return 0
        send_mail(subject, body, self.from_email, emails, fail_silently=False)
        return len(emails)


class WhatsAppMessenger:
    """Envia notificações por WhatsApp via Twilio."""

    def __init__(self, client: Client | None = None, from_number: str | None = None):
        self.client = client or Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        self.from_number = from_number or settings.TWILIO_WHATSAPP_FROM

    def send(self, recipients: list[Recipient], subject: str, body: str) -> int:
        sent = 0
        for recipient in recipients:
            if not recipient.phone:
                continue
            self.client.messages.create(
                from_=f"whatsapp:{self.from_number}",
                to=f"whatsapp:{recipient.phone}",
                body=f"*{subject}*\n{body}",
            )
            sent += 1
        if not sent:
            logger.info("Nenhum telefone disponível para '%s'", subject)
        return sent


def get_messenger():
    if settings.NOTIFICATION_CHANNEL == "whatsapp":
        return WhatsAppMessenger()
    return EmailMessenger()

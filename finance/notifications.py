from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from core.households import household_owners
from core.logs import record_system_log
from core.messaging import Recipient, get_messenger
from core.models import SystemLog

from .models import Card, Statement
from .store import OrmUsageAggregator

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"BRL": "R$", "USD": "US$", "EUR": "€"}


def format_money(amount, currency_code: str = "BRL") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency_code, currency_code)
    return f"{symbol} {Decimal(amount):.2f}"


def _recipient_for(membership) -> Recipient:
    return Recipient(
        name=membership.display_name,
        email=membership.user.email or "",
        phone=membership.phone_number or "",
    )


def collect_recipients(card: Card) -> list[Recipient]:
    """Dono do cartão (se houver) e todos os owners do household, sem repetição."""
    memberships = []
    if card.owner_id:
        memberships.append(card.owner)
    memberships.extend(household_owners(card.household_id))

    recipients = []
    seen_ids = set()
    seen_emails = set()
    for membership in memberships:
        if membership.pk in seen_ids:
            continue
        seen_ids.add(membership.pk)
        recipient = _recipient_for(membership)
        email = recipient.email.lower()
        if email and email in seen_emails:
            continue
        if email:
            seen_emails.add(email)
        recipients.append(recipient)
    return recipients


def _record_failure(subject, context, exc):
    logger.exception("Falha ao enviar notificação '%s' (%s)", subject, context)
    record_system_log(
        f"Falha ao enviar notificação: {subject}",
        level=SystemLog.LEVEL_WARNING,
        details=f"{context}\n{exc!r}",
    )


def _dispatch(messenger, recipients, subject, body, context) -> bool:
    try:
        messenger.send(recipients, subject, body)
    except Exception as exc:
        _record_failure(subject, context, exc)
        return False
    return True


def credit_limit_reached(card: Card, used: Decimal) -> bool:
    if not card.credit_limit or card.credit_limit <= 0:
        return False
    if card.notify_threshold is None:
        return False
    percent = used / card.credit_limit * 100
    return percent >= card.notify_threshold


def _credit_limit_alert(card: Card, usage_aggregator, messenger) -> bool:
    used = usage_aggregator.aggregate_usage(card.pk).total_outstanding
    if not credit_limit_reached(card, used):
        return False

    recipients = collect_recipients(card)
    if not recipients:
        logger.info("Nenhum destinatário para alerta de limite do cartão %s", card.pk)
        return False

    currency = card.household.currency_code
    available = max(card.credit_limit - used, Decimal("0.00"))
    subject = f"Alerta de limite: {card.name}"
    body = (
        f"O cartão {card.name} atingiu {used / card.credit_limit * 100:.0f}% do limite.\n"
        f"Limite: {format_money(card.credit_limit, currency)}\n"
        f"Utilizado: {format_money(used, currency)}\n"
        f"Disponível: {format_money(available, currency)}"
    )
    return _dispatch(messenger or get_messenger(), recipients, subject, body, f"card={card.pk}")


def notify_credit_limit(card: Card, *, usage_aggregator=None, messenger=None) -> bool:
    """Avisa quando o uso do limite atinge o percentual configurado no cartão.

    Nunca propaga erros (leitura de uso, destinatários ou envio); retorna
    ``True`` apenas quando a mensagem saiu.
    """
    try:
        return _credit_limit_alert(card, usage_aggregator or OrmUsageAggregator(), messenger)
    except Exception as exc:
        _record_failure(f"Alerta de limite: {card.name}", f"card={card.pk}", exc)
        return False


def statement_url_for(statement: Statement) -> str:
    return f"{settings.APP_BASE_URL}/cards/{statement.card_id}/statements/{statement.pk}"


def notify_statement_reminder(statement_id, *, statement_url: str | None = None, messenger=None) -> bool:
    statement = Statement.objects.select_related("card__household", "card__owner__user").get(pk=statement_id)
    card = statement.card

    recipients = collect_recipients(card)
    if not recipients:
        logger.info("Nenhum destinatário para lembrete da fatura %s", statement.pk)
        return False

    subject = f"Lembrete de fatura: {card.name}"
    body = (
        f"A fatura do cartão {card.name} vence em {statement.due_date:%d/%m/%Y}.\n"
        f"Total: {format_money(statement.total_amount, card.household.currency_code)}\n"
        f"Detalhes: {statement_url or statement_url_for(statement)}"
    )
    return _dispatch(
        messenger or get_messenger(), recipients, subject, body, f"statement={statement.pk}"
    )


def statements_due_for_reminder(today: date | None = None) -> list[Statement]:
    today = today or timezone.localdate()
    max_window = timedelta(days=15)
    candidates = Statement.objects.select_related("card").filter(
        status__in=[Statement.Status.OPEN, Statement.Status.CLOSED],
        due_date__gte=today,
        due_date__lte=today + max_window,
    )
    return [
        statement
        for statement in candidates.order_by("due_date", "id")
        if statement.due_date - today <= timedelta(days=statement.card.notify_days_before)
    ]

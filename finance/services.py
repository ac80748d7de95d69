from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .billing import (
    calculate_statement_period,
    from_cents,
    generate_installment_schedule,
    quantize_money,
    to_cents,
)
from .models import Card, CardPurchase, Installment, Statement
from .notifications import notify_credit_limit
from .store import BillingStore, CardUsage, OrmUsageAggregator

logger = logging.getLogger(__name__)


class InvalidStatementTransition(ValidationError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(
            f"Não é possível mudar a fatura de '{current}' para '{target}'.",
            code="invalid_transition",
        )


# Estados de destino permitidos a partir de cada estado da fatura.
ALLOWED_TRANSITIONS = {
    Statement.Status.OPEN: {Statement.Status.CLOSED},
    Statement.Status.CLOSED: {Statement.Status.PAID, Statement.Status.OVERDUE},
    Statement.Status.OVERDUE: {Statement.Status.PAID},
    Statement.Status.PAID: {Statement.Status.OPEN},
}

INSTALLMENT_STATUS_FOR = {
    Statement.Status.CLOSED: Installment.Status.BILLED,
    Statement.Status.PAID: Installment.Status.PAID,
    Statement.Status.OPEN: Installment.Status.PENDING,
}


@dataclass
class PurchaseResult:
    purchase: CardPurchase
    installments: list[Installment]
    statements: list[Statement]


@dataclass(frozen=True)
class StatementTotals:
    total: Decimal
    paid: Decimal


@dataclass
class CardSummary:
    card: Card
    usage: CardUsage
    available_limit: Decimal | None
    next_statement: Statement | None


def create_purchase(
    card: Card,
    amount,
    installments_count: int,
    purchase_date: date,
    *,
    description: str = "",
    merchant: str = "",
    category=None,
    member=None,
    created_by=None,
    store: BillingStore | None = None,
    notify: bool = True,
    usage_aggregator=None,
    messenger=None,
) -> PurchaseResult:
    store = store or BillingStore()
    # Validação acontece aqui, antes de qualquer escrita.
    schedule = generate_installment_schedule(
        purchase_date=purchase_date,
        total_amount=amount,
        installments_count=installments_count,
        due_day=card.due_day,
        closing_offset_days=card.closing_offset_days,
    )

    with transaction.atomic():
        statements_by_month: dict[date, Statement] = {}
        for item in schedule.installments:
            if item.competence_month in statements_by_month:
                continue
            period_start, period_end = calculate_statement_period(
                item.due_date, card.due_day, card.closing_offset_days
            )
            statements_by_month[item.competence_month] = store.upsert_statement(
                card.pk,
                item.competence_month,
                item.due_date,
                period_start,
                period_end,
            )

        purchase = store.insert_purchase(
            card=card,
            statement=statements_by_month.get(schedule.first_installment_month),
            member=member,
            category=category,
            description=description or "",
            merchant=merchant or "",
            amount=schedule.total,
            installments_count=len(schedule.installments),
            purchase_date=purchase_date,
            first_installment_month=schedule.first_installment_month,
            created_by=created_by,
        )

        installments = store.insert_installments(
            [
                Installment(
                    purchase=purchase,
                    statement=statements_by_month[item.competence_month],
                    number=item.number,
                    amount=item.amount,
                    competence_month=item.competence_month,
                    due_date=item.due_date,
                    status=Installment.Status.PENDING,
                )
                for item in schedule.installments
            ]
        )

        statements = list(statements_by_month.values())
        for statement in statements:
            totals = reconcile_statement(statement.pk, store=store)
            statement.total_amount = totals.total
            statement.paid_amount = totals.paid

    logger.info(
        "Compra %s registrada no cartão %s: %s em %sx",
        purchase.pk,
        card.pk,
        purchase.amount,
        purchase.installments_count,
    )

    if notify:
        notify_credit_limit(card, usage_aggregator=usage_aggregator, messenger=messenger)

    return PurchaseResult(purchase=purchase, installments=installments, statements=statements)


def reconcile_statement(statement_id, *, store: BillingStore | None = None) -> StatementTotals:
    """Recalcula total e valor pago da fatura a partir das parcelas atuais."""
    store = store or BillingStore()
    total_cents = 0
    paid_cents = 0
    for installment in store.query_installments(statement_id):
        cents = to_cents(installment.amount)
        if installment.status != Installment.Status.CANCELLED:
            total_cents += cents
        if installment.status == Installment.Status.PAID:
            paid_cents += cents

    totals = StatementTotals(total=from_cents(total_cents), paid=from_cents(paid_cents))
    store.update_statement(statement_id, total_amount=totals.total, paid_amount=totals.paid)
    return totals


def _payment_timestamp(payment_date):
    if payment_date is None:
        return timezone.now()
    if isinstance(payment_date, datetime):
        if timezone.is_naive(payment_date):
            return timezone.make_aware(payment_date)
        return payment_date
    return timezone.make_aware(datetime.combine(payment_date, time.min))


def update_statement_status(
    statement_id,
    target_status: str,
    *,
    paid_amount=None,
    payment_date=None,
    store: BillingStore | None = None,
) -> Statement:
    store = store or BillingStore()
    if target_status not in Statement.Status.values:
        raise ValidationError({"status": [f"Status inválido: {target_status}."]})

    with transaction.atomic():
        statement = store.get_statement(statement_id, for_update=True)
        current = statement.status
        if target_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidStatementTransition(current, target_status)

        if target_status == Statement.Status.PAID and paid_amount is not None:
            totals = reconcile_statement(statement.pk, store=store)
            if quantize_money(paid_amount) != totals.total:
                raise ValidationError(
                    {"paid_amount": ["Pagamento parcial não é suportado: informe o total da fatura."]}
                )

        store.update_statement(statement.pk, status=target_status)

        installment_status = INSTALLMENT_STATUS_FOR.get(target_status)
        if installment_status == Installment.Status.PAID:
            store.update_installments_status(
                statement.pk, installment_status, paid_at=_payment_timestamp(payment_date)
            )
        elif installment_status is not None:
            store.update_installments_status(statement.pk, installment_status, reset_paid_at=True)

        reconcile_statement(statement.pk, store=store)

    logger.info("Fatura %s: %s -> %s", statement.pk, current, target_status)
    return store.get_statement(statement.pk)


def close_statement(statement_id, **kwargs) -> Statement:
    return update_statement_status(statement_id, Statement.Status.CLOSED, **kwargs)


def pay_statement(statement_id, **kwargs) -> Statement:
    return update_statement_status(statement_id, Statement.Status.PAID, **kwargs)


def reopen_statement(statement_id, **kwargs) -> Statement:
    return update_statement_status(statement_id, Statement.Status.OPEN, **kwargs)


def list_statements(card: Card, *, store: BillingStore | None = None) -> list[Statement]:
    store = store or BillingStore()
    return store.list_statements(card.pk)


def cancel_purchase(purchase: CardPurchase, *, store: BillingStore | None = None) -> list:
    """Cancela as parcelas ainda não pagas da compra e recalcula as faturas afetadas."""
    store = store or BillingStore()
    with transaction.atomic():
        statement_ids = sorted(store.cancel_purchase_installments(purchase.pk))
        for statement_id in statement_ids:
            reconcile_statement(statement_id, store=store)
    logger.info("Compra %s cancelada; faturas recalculadas: %s", purchase.pk, statement_ids)
    return statement_ids


def card_usage(card: Card, *, usage_aggregator=None) -> CardUsage:
    usage_aggregator = usage_aggregator or OrmUsageAggregator()
    return usage_aggregator.aggregate_usage(card.pk)


def card_summary(card: Card, *, usage_aggregator=None, store: BillingStore | None = None) -> CardSummary:
    store = store or BillingStore()
    usage = card_usage(card, usage_aggregator=usage_aggregator)
    available = None
    if card.credit_limit is not None:
        available = max(card.credit_limit - usage.total_outstanding, Decimal("0.00"))
    return CardSummary(
        card=card,
        usage=usage,
        available_limit=available,
        next_statement=store.next_statement(card.pk),
    )


def list_cards(household, **kwargs) -> list[CardSummary]:
    cards = Card.objects.filter(household=household).select_related("owner__user").order_by("name")
    return [card_summary(card, **kwargs) for card in cards]

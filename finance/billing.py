from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError

TWOPLACES = Decimal("0.01")


def last_day_of_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def normalize_day(year: int, month: int, day: int) -> date:
    safe_day = min(max(day, 1), last_day_of_month(year, month))
    return date(year, month, safe_day)


def add_months(start: date, months: int, day: int | None = None) -> date:
    """Avança ``months`` meses de calendário, ajustando o dia ao tamanho do mês.

    ``day`` permite ancorar no dia configurado do cartão em vez do dia de
    ``start`` (ex.: vencimento 31 volta a ser 31 depois de um mês de 30 dias).
    """
    total_month = start.month - 1 + months
    year = start.year + total_month // 12
    month = total_month % 12 + 1
    return normalize_day(year, month, start.day if day is None else day)


def month_start(value: date) -> date:
    return value.replace(day=1)


def quantize_money(value) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Valor inválido.", code="invalid_amount")
    if not amount.is_finite():
        raise ValidationError("Valor inválido.", code="invalid_amount")
    return amount.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def to_cents(value: Decimal) -> int:
    return int(quantize_money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(TWOPLACES)


def split_amount(total: Decimal, count: int) -> list[Decimal]:
    """Divide ``total`` em ``count`` parcelas sem perder centavos.

    Os centavos que sobram da divisão vão para as primeiras parcelas.
    """
    if count <= 0:
        raise ValidationError("installments_count must be positive", code="invalid_installments")
    cents = to_cents(total)
    base, remainder = divmod(cents, count)
    return [from_cents(base + (1 if idx < remainder else 0)) for idx in range(count)]


def calculate_first_due_date(purchase_date: date, due_day: int, closing_offset_days: int) -> date:
    due_date = normalize_day(purchase_date.year, purchase_date.month, due_day)
    if due_date <= purchase_date:
        due_date = add_months(due_date, 1, day=due_day)

    # Compra feita no dia do fechamento (ou depois) vai para o ciclo seguinte.
    while due_date - timedelta(days=closing_offset_days) <= purchase_date:
        due_date = add_months(due_date, 1, day=due_day)
    return due_date


def calculate_statement_period(due_date: date, due_day: int, closing_offset_days: int) -> tuple[date, date]:
    period_end = due_date - timedelta(days=closing_offset_days)
    previous_due = add_months(due_date, -1, day=due_day)
    period_start = previous_due - timedelta(days=closing_offset_days) + timedelta(days=1)
    return period_start, period_end


@dataclass(frozen=True)
class ScheduledInstallment:
    number: int
    amount: Decimal
    due_date: date
    competence_month: date


@dataclass(frozen=True)
class InstallmentSchedule:
    first_due_date: date
    installments: list[ScheduledInstallment]

    @property
    def first_installment_month(self) -> date:
        return month_start(self.first_due_date)

    @property
    def total(self) -> Decimal:
        return sum((item.amount for item in self.installments), Decimal("0.00"))


def validate_purchase_input(amount, installments_count, purchase_date) -> tuple[Decimal, int]:
    errors = {}
    try:
        amount = quantize_money(amount)
    except ValidationError as exc:
        errors["amount"] = exc.messages
    else:
        if amount <= 0:
            errors["amount"] = ["Informe um valor maior que zero."]

    max_installments = settings.BILLING_MAX_INSTALLMENTS
    try:
        installments_count = int(installments_count)
    except (TypeError, ValueError):
        errors["installments"] = ["Número de parcelas inválido."]
    else:
        if not 1 <= installments_count <= max_installments:
            errors["installments"] = [f"Informe entre 1 e {max_installments} parcelas."]

    if not isinstance(purchase_date, date):
        errors["purchase_date"] = ["Informe a data da compra."]

    if errors:
        raise ValidationError(errors)
    return amount, installments_count


def generate_installment_schedule(
    *,
    purchase_date: date,
    total_amount,
    installments_count: int,
    due_day: int,
    closing_offset_days: int,
) -> InstallmentSchedule:
    if isinstance(purchase_date, datetime):
        purchase_date = purchase_date.date()
    total_amount, installments_count = validate_purchase_input(
        total_amount, installments_count, purchase_date
    )
    first_due = calculate_first_due_date(purchase_date, due_day, closing_offset_days)
    amounts = split_amount(total_amount, installments_count)

    installments = []
    for idx, amount in enumerate(amounts):
        due_date = add_months(first_due, idx, day=due_day)
        installments.append(
            ScheduledInstallment(
                number=idx + 1,
                amount=amount,
                due_date=due_date,
                competence_month=month_start(due_date),
            )
        )
    return InstallmentSchedule(first_due_date=first_due, installments=installments)

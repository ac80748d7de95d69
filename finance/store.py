"""Acesso ao banco usado pelo motor de faturas.

Os serviços recebem um ``BillingStore`` e um ``UsageAggregator`` por parâmetro;
as implementações abaixo usam o ORM do Django.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.db.models import DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from .billing import TWOPLACES
from .models import CardPurchase, Installment, Statement

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CardUsage:
    pending: Decimal
    billed: Decimal

    @property
    def total_outstanding(self) -> Decimal:
        return self.pending + self.billed


def _sum_by_status(status):
    return Coalesce(
        Sum("amount", filter=Q(status=status)),
        Value(ZERO),
        output_field=DecimalField(max_digits=14, decimal_places=2),
    )


class OrmUsageAggregator:
    def aggregate_usage(self, card_id) -> CardUsage:
        totals = Installment.objects.filter(purchase__card_id=card_id).aggregate(
            pending=_sum_by_status(Installment.Status.PENDING),
            billed=_sum_by_status(Installment.Status.BILLED),
        )
        return CardUsage(
            pending=Decimal(totals["pending"]).quantize(TWOPLACES),
            billed=Decimal(totals["billed"]).quantize(TWOPLACES),
        )


class BillingStore:
    def upsert_statement(
        self,
        card_id,
        reference_month: date,
        due_date: date,
        period_start: date,
        period_end: date,
    ) -> Statement:
        # get_or_create relê a linha vencedora quando a constraint única dispara.
        statement, _ = Statement.objects.get_or_create(
            card_id=card_id,
            reference_month=reference_month,
            defaults={
                "due_date": due_date,
                "period_start": period_start,
                "period_end": period_end,
            },
        )
        return statement

    def get_statement(self, statement_id, *, for_update: bool = False) -> Statement:
        if for_update:
            return Statement.objects.select_for_update().get(pk=statement_id)
        return Statement.objects.select_related("card").get(pk=statement_id)

    def list_statements(self, card_id) -> list[Statement]:
        return list(Statement.objects.filter(card_id=card_id).order_by("due_date", "id"))

    def next_statement(self, card_id) -> Statement | None:
        return (
            Statement.objects.filter(
                card_id=card_id,
                status__in=[Statement.Status.OPEN, Statement.Status.CLOSED],
            )
            .order_by("due_date", "id")
            .first()
        )

    def insert_purchase(self, **fields) -> CardPurchase:
        return CardPurchase.objects.create(**fields)

    def insert_installments(self, installments: list[Installment]) -> list[Installment]:
        for installment in installments:
            installment.save(force_insert=True)
        return installments

    def query_installments(self, statement_id) -> list[Installment]:
        return list(Installment.objects.filter(statement_id=statement_id).order_by("due_date", "number", "id"))

    def update_statement(self, statement_id, **fields) -> int:
        fields.setdefault("updated_at", timezone.now())
        return Statement.objects.filter(pk=statement_id).update(**fields)

    def update_installments_status(
        self,
        statement_id,
        status: str,
        *,
        paid_at=None,
        reset_paid_at: bool = False,
    ) -> int:
        patch = {"status": status, "updated_at": timezone.now()}
        if status == Installment.Status.PAID:
            patch["paid_at"] = paid_at or timezone.now()
        elif reset_paid_at:
            patch["paid_at"] = None
        return (
            Installment.objects.filter(statement_id=statement_id)
            .exclude(status=Installment.Status.CANCELLED)
            .update(**patch)
        )

    def cancel_purchase_installments(self, purchase_id) -> set:
        active = Installment.objects.filter(
            purchase_id=purchase_id,
            status__in=[Installment.Status.PENDING, Installment.Status.BILLED],
        )
        statement_ids = set(active.exclude(statement_id=None).values_list("statement_id", flat=True))
        active.update(status=Installment.Status.CANCELLED, updated_at=timezone.now())
        return statement_ids

from django.core.management.base import BaseCommand

from finance.models import Statement
from finance.services import reconcile_statement


class Command(BaseCommand):
    help = "Recalcula total e valor pago das faturas a partir das parcelas."

    def add_arguments(self, parser):
        parser.add_argument("--card", type=int, help="Limita ao cartão informado.")

    def handle(self, *args, **options):
        statements = Statement.objects.order_by("id")
        if options.get("card"):
            statements = statements.filter(card_id=options["card"])

        changed = 0
        for statement in statements:
            totals = reconcile_statement(statement.pk)
            if (totals.total, totals.paid) != (statement.total_amount, statement.paid_amount):
                changed += 1
                self.stdout.write(
                    f"Fatura {statement.pk}: total {statement.total_amount} -> {totals.total}, "
                    f"pago {statement.paid_amount} -> {totals.paid}"
                )
        self.stdout.write(self.style.SUCCESS(f"Faturas recalculadas: {statements.count()} (corrigidas: {changed})"))

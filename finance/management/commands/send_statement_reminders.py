from datetime import datetime

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from finance.models import Statement
from finance.notifications import notify_statement_reminder, statements_due_for_reminder


class Command(BaseCommand):
    help = "Envia lembretes das faturas que vencem dentro da antecedência configurada em cada cartão."

    def add_arguments(self, parser):
        parser.add_argument("--statement", type=int, help="Envia o lembrete apenas desta fatura.")
        parser.add_argument("--date", help="Data de referência (AAAA-MM-DD); padrão: hoje.")

    def handle(self, *args, **options):
        if options.get("statement"):
            if not Statement.objects.filter(pk=options["statement"]).exists():
                raise CommandError(f"Fatura {options['statement']} não encontrada.")
            statement_ids = [options["statement"]]
        else:
            today = timezone.localdate()
            if options.get("date"):
                try:
                    today = datetime.strptime(options["date"], "%Y-%m-%d").date()
                except ValueError:
                    raise CommandError("Data inválida; use AAAA-MM-DD.")
            statement_ids = [statement.pk for statement in statements_due_for_reminder(today)]

        sent = sum(1 for statement_id in statement_ids if notify_statement_reminder(statement_id))
        self.stdout.write(self.style.SUCCESS(f"Lembretes enviados: {sent} de {len(statement_ids)}"))

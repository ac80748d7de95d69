from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from core.models import SystemLog


class Command(BaseCommand):
    help = "Remove logs antigos do sistema para evitar crescimento excessivo."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Remove logs com mais de X dias (padrão: 30).",
        )
        parser.add_argument(
            "--resolved-only",
            action="store_true",
            help="Remove apenas logs já marcados como resolvidos.",
        )

    def handle(self, *args, **options):
        cutoff = timezone.now() - timedelta(days=options["days"])
        logs = SystemLog.objects.filter(created_at__lt=cutoff)
        if options["resolved_only"]:
            logs = logs.filter(is_resolved=True)
        deleted, _ = logs.delete()
        self.stdout.write(self.style.SUCCESS(f"{deleted} logs antigos removidos."))

import secrets

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.utils.text import slugify

from core.models import Household, HouseholdMembership


def _split(value):
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Command(BaseCommand):
    help = "Cria household e vincula usuários informados (owners e membros)"

    def add_arguments(self, parser):
        parser.add_argument("--household-name", required=True)
        parser.add_argument("--owners", default="", help="Usuários administradores, separados por vírgula")
        parser.add_argument("--members", default="", help="Demais membros, separados por vírgula")
        parser.add_argument("--currency", default="BRL")

    def handle(self, *args, **options):
        household_name = options["household_name"].strip()
        owners = _split(options["owners"])
        members = [username for username in _split(options["members"]) if username not in owners]
        if not owners:
            raise CommandError("Informe ao menos um owner em --owners.")

        household, created = Household.objects.get_or_create(
            slug=slugify(household_name),
            defaults={"name": household_name, "currency_code": options["currency"].upper()},
        )
        if created:
            self.stdout.write(self.style.SUCCESS(f"Household criado: {household.name}"))
        else:
            self.stdout.write(f"Household existente: {household.name}")

        for username in owners:
            self._link(household, username, HouseholdMembership.Role.OWNER)
        for username in members:
            self._link(household, username, HouseholdMembership.Role.MEMBER)

    def _link(self, household, username, role):
        User = get_user_model()
        user, was_created = User.objects.get_or_create(username=username)
        if was_created:
            password = secrets.token_urlsafe(10)
            user.set_password(password)
            user.save()
            self.stdout.write(
                self.style.WARNING(f"Usuário criado: {username} | senha temporária: {password}")
            )

        membership, membership_created = HouseholdMembership.objects.get_or_create(
            user=user,
            household=household,
            defaults={"role": role},
        )
        if membership_created:
            if not HouseholdMembership.objects.filter(user=user, is_primary=True).exists():
                membership.is_primary = True
                membership.save(update_fields=["is_primary"])
            self.stdout.write(self.style.SUCCESS(f"Vínculo criado: {username} -> {household.name} ({role})"))
        elif membership.role != role:
            membership.role = role
            membership.save(update_fields=["role"])
            self.stdout.write(f"Papel atualizado: {username} -> {role}")
        else:
            self.stdout.write(f"Vínculo já existe: {username} -> {household.name}")

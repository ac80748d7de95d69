from datetime import date
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.management import CommandError, call_command
from django.test import TestCase, override_settings

from core.models import Household, HouseholdMembership
from finance.models import Card, Statement
from finance.services import create_purchase


class FinanceCommandTestMixin:
    def setUp(self):
        user = get_user_model().objects.create_user(username="ana", password="pass1234", email="ana@example.com")
        self.household = Household.objects.create(name="Casa", slug="casa")
        self.owner = HouseholdMembership.objects.create(
            user=user, household=self.household, role=HouseholdMembership.Role.OWNER, is_primary=True
        )
        self.card = Card.objects.create(household=self.household, name="Nubank", notify_days_before=5)
        create_purchase(self.card, Decimal("300.00"), 3, date(2024, 1, 20), notify=False)


class ReconcileStatementsCommandTests(FinanceCommandTestMixin, TestCase):
    def test_fixes_only_drifted_statements(self):
        drifted = Statement.objects.filter(card=self.card).first()
        Statement.objects.filter(pk=drifted.pk).update(total_amount=Decimal("1.00"))

        out = StringIO()
        call_command("reconcile_statements", stdout=out)

        drifted.refresh_from_db()
        self.assertEqual(drifted.total_amount, Decimal("100.00"))
        self.assertIn(f"Fatura {drifted.pk}", out.getvalue())
        self.assertIn("Faturas recalculadas: 3 (corrigidas: 1)", out.getvalue())

    def test_card_filter(self):
        out = StringIO()
        call_command("reconcile_statements", card=self.card.pk + 1, stdout=out)
        self.assertIn("Faturas recalculadas: 0", out.getvalue())


@override_settings(NOTIFICATION_CHANNEL="email")
class SendStatementRemindersCommandTests(FinanceCommandTestMixin, TestCase):
    def test_sends_reminders_due_on_date(self):
        out = StringIO()
        call_command("send_statement_reminders", date="2024-03-06", stdout=out)

        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("10/03/2024", mail.outbox[0].body)
        self.assertIn("Lembretes enviados: 1 de 1", out.getvalue())

    def test_single_statement(self):
        statement = Statement.objects.filter(card=self.card).last()
        call_command("send_statement_reminders", statement=statement.pk, stdout=StringIO())
        self.assertEqual(len(mail.outbox), 1)

    def test_unknown_statement(self):
        with self.assertRaises(CommandError):
            call_command("send_statement_reminders", statement=9999, stdout=StringIO())

    def test_invalid_date(self):
        with self.assertRaises(CommandError):
            call_command("send_statement_reminders", date="06/03/2024", stdout=StringIO())

import json
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse

from core.models import Household, HouseholdMembership
from finance.models import Card, CardPurchase, Installment, Statement
from finance.services import close_statement, create_purchase


class BillingApiTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.household = Household.objects.create(name="Casa", slug="casa")
        self.owner_user = User.objects.create_user(username="ana", password="pass1234")
        self.owner = HouseholdMembership.objects.create(
            user=self.owner_user,
            household=self.household,
            role=HouseholdMembership.Role.OWNER,
            is_primary=True,
        )
        self.member_user = User.objects.create_user(username="bia", password="pass1234")
        self.member = HouseholdMembership.objects.create(
            user=self.member_user, household=self.household, is_primary=True
        )
        self.card = Card.objects.create(
            household=self.household,
            owner=self.owner,
            name="Nubank",
            credit_limit=Decimal("2000.00"),
        )

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json")

    def purchase_url(self, card=None):
        return reverse("finance:purchase-create", args=[(card or self.card).pk])

    def test_owner_registers_purchase(self):
        self.client.login(username="ana", password="pass1234")
        response = self.post_json(
            self.purchase_url(),
            {"amount": "1.000,00", "installments": 3, "purchase_date": "2024-01-20", "description": "TV"},
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["purchase"]["amount"], "1000.00")
        self.assertEqual(data["purchase"]["member_id"], self.owner.pk)
        self.assertEqual([item["amount"] for item in data["installments"]], ["333.34", "333.33", "333.33"])
        self.assertEqual([item["due_date"] for item in data["statements"]], ["2024-02-10", "2024-03-10", "2024-04-10"])
        self.assertEqual(CardPurchase.objects.get().created_by, self.owner_user)

    def test_member_cannot_use_someone_elses_card(self):
        self.client.login(username="bia", password="pass1234")
        response = self.post_json(
            self.purchase_url(), {"amount": "10", "installments": 1, "purchase_date": "2024-01-20"}
        )
        self.assertEqual(response.status_code, 403)
        self.assertFalse(CardPurchase.objects.exists())

    def test_member_can_use_own_card(self):
        card = Card.objects.create(household=self.household, owner=self.member, name="Inter")
        self.client.login(username="bia", password="pass1234")
        response = self.post_json(
            self.purchase_url(card), {"amount": "10", "installments": 1, "purchase_date": "2024-01-20"}
        )
        self.assertEqual(response.status_code, 201)

    def test_invalid_purchase_returns_field_errors(self):
        self.client.login(username="ana", password="pass1234")
        response = self.post_json(
            self.purchase_url(), {"amount": "0", "installments": 0, "purchase_date": "ontem"}
        )
        self.assertEqual(response.status_code, 400)
        details = response.json()["details"]
        self.assertEqual(set(details), {"amount", "installments", "purchase_date"})
        self.assertFalse(Statement.objects.exists())

    def test_malformed_body_is_bad_request(self):
        self.client.login(username="ana", password="pass1234")
        bodies = [
            b"\xff\xfe\x00",
            json.dumps([{"amount": "10", "installments": 1, "purchase_date": "2024-01-20"}]),
            "{amount: 10",
        ]
        for body in bodies:
            with self.subTest(body=body):
                response = self.client.post(self.purchase_url(), data=body, content_type="application/json")
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["error"], "JSON inválido.")
        self.assertFalse(CardPurchase.objects.exists())

    def test_card_from_other_household_is_not_found(self):
        other = Household.objects.create(name="Outra", slug="outra")
        card = Card.objects.create(household=other, name="Visa")
        self.client.login(username="ana", password="pass1234")
        response = self.post_json(
            self.purchase_url(card), {"amount": "10", "installments": 1, "purchase_date": "2024-01-20"}
        )
        self.assertEqual(response.status_code, 404)

    def test_user_without_household(self):
        get_user_model().objects.create_user(username="solo", password="pass1234")
        self.client.login(username="solo", password="pass1234")
        response = self.client.get(reverse("finance:cards-api"))
        self.assertEqual(response.status_code, 403)

    def test_anonymous_user_is_redirected_to_login(self):
        response = self.client.get(reverse("finance:cards-api"))
        self.assertEqual(response.status_code, 302)

    def test_cards_summary(self):
        create_purchase(self.card, Decimal("500.00"), 2, date(2024, 1, 20), notify=False)
        self.client.login(username="bia", password="pass1234")
        response = self.client.get(reverse("finance:cards-api"))

        self.assertEqual(response.status_code, 200)
        card = response.json()["cards"][0]
        self.assertEqual(card["usage"]["pending_amount"], "500.00")
        self.assertEqual(card["available_limit"], "1500.00")
        self.assertEqual(card["next_statement"]["due_date"], "2024-02-10")

    def test_statement_list(self):
        create_purchase(self.card, Decimal("90.00"), 3, date(2024, 1, 20), notify=False)
        self.client.login(username="bia", password="pass1234")
        response = self.client.get(reverse("finance:statement-list", args=[self.card.pk]))
        statements = response.json()["statements"]
        self.assertEqual([item["total_amount"] for item in statements], ["30.00"] * 3)


@override_settings(NOTIFICATION_CHANNEL="email")
class StatementApiTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.household = Household.objects.create(name="Casa", slug="casa")
        User.objects.create_user(username="ana", password="pass1234")
        User.objects.create_user(username="bia", password="pass1234", email="bia@example.com")
        self.owner = HouseholdMembership.objects.create(
            user=User.objects.get(username="ana"),
            household=self.household,
            role=HouseholdMembership.Role.OWNER,
            is_primary=True,
        )
        self.member = HouseholdMembership.objects.create(
            user=User.objects.get(username="bia"), household=self.household, is_primary=True
        )
        self.card = Card.objects.create(household=self.household, owner=self.member, name="Nubank")
        self.result = create_purchase(self.card, Decimal("100.00"), 1, date(2024, 1, 20), notify=False)
        self.statement = self.result.statements[0]

    def patch_json(self, statement, payload):
        return self.client.patch(
            reverse("finance:statement-update", args=[statement.pk]),
            data=json.dumps(payload),
            content_type="application/json",
        )

    def test_owner_closes_statement(self):
        self.client.login(username="ana", password="pass1234")
        response = self.patch_json(self.statement, {"status": "closed"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["statement"]["status"], "closed")
        self.assertEqual(Installment.objects.get().status, Installment.Status.BILLED)

    def test_status_body_must_be_an_object(self):
        self.client.login(username="ana", password="pass1234")
        response = self.client.patch(
            reverse("finance:statement-update", args=[self.statement.pk]),
            data=json.dumps(["closed"]),
            content_type="application/json",
        )
        self.assertEqual(response.status_code, 400)
        self.statement.refresh_from_db()
        self.assertEqual(self.statement.status, Statement.Status.OPEN)

    def test_member_cannot_change_statement(self):
        self.client.login(username="bia", password="pass1234")
        response = self.patch_json(self.statement, {"status": "closed"})
        self.assertEqual(response.status_code, 403)

    def test_illegal_transition_is_bad_request(self):
        self.client.login(username="ana", password="pass1234")
        response = self.patch_json(self.statement, {"status": "paid"})
        self.assertEqual(response.status_code, 400)
        self.statement.refresh_from_db()
        self.assertEqual(self.statement.status, Statement.Status.OPEN)

    def test_partial_payment_is_bad_request(self):
        close_statement(self.statement.pk)
        self.client.login(username="ana", password="pass1234")
        response = self.patch_json(self.statement, {"status": "paid", "paid_amount": "10,00"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("paid_amount", response.json()["details"])

    def test_full_payment(self):
        close_statement(self.statement.pk)
        self.client.login(username="ana", password="pass1234")
        response = self.patch_json(
            self.statement, {"status": "paid", "paid_amount": "100.00", "payment_date": "2024-02-09"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["statement"]["paid_amount"], "100.00")

    def test_notify_statement(self):
        self.client.login(username="bia", password="pass1234")
        response = self.client.post(reverse("finance:statement-notify", args=[self.statement.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"success": True})

    def test_cancel_purchase(self):
        self.client.login(username="bia", password="pass1234")
        response = self.client.post(reverse("finance:purchase-cancel", args=[self.result.purchase.pk]))
        self.assertEqual(response.json(), {"cancelled": True, "statements": [self.statement.pk]})
        self.statement.refresh_from_db()
        self.assertEqual(self.statement.total_amount, Decimal("0.00"))

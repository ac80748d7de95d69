from django.contrib.auth import get_user_model
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.models import Household, HouseholdMembership

User = get_user_model()


class Category(models.Model):
    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name="categories")
    name = models.CharField(max_length=120)
    color = models.CharField(max_length=20, default="#64748b")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["household", "name"], name="unique_category_household")
        ]

    def __str__(self):
        return self.name


class Card(models.Model):
    household = models.ForeignKey(Household, on_delete=models.CASCADE, related_name="cards")
    owner = models.ForeignKey(
        HouseholdMembership,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cards",
    )
    name = models.CharField(max_length=120)
    nickname = models.CharField(max_length=60, blank=True)
    brand = models.CharField(max_length=40, blank=True)
    is_active = models.BooleanField(default=True)
    credit_limit = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    billing_day = models.PositiveIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(31)]
    )
    due_day = models.PositiveIntegerField(
        default=10, validators=[MinValueValidator(1), MaxValueValidator(31)]
    )
    closing_offset_days = models.PositiveIntegerField(
        default=7, validators=[MinValueValidator(1), MaxValueValidator(20)]
    )
    notify_threshold = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    notify_days_before = models.PositiveIntegerField(
        default=5, validators=[MinValueValidator(1), MaxValueValidator(15)]
    )
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="finance_cards_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(fields=["household", "name"], name="unique_card_household")
        ]

    def __str__(self):
        return self.name


class Statement(models.Model):
    class Status(models.TextChoices):
        OPEN = "open", "Open"
        CLOSED = "closed", "Closed"
        PAID = "paid", "Paid"
        OVERDUE = "overdue", "Overdue"

    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name="statements")
    reference_month = models.DateField()
    period_start = models.DateField()
    period_end = models.DateField()
    due_date = models.DateField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["due_date", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["card", "reference_month"], name="unique_statement_card_month"
            )
        ]
        indexes = [
            models.Index(fields=["card", "status"], name="statement_card_status_idx"),
        ]

    def __str__(self):
        return f"{self.card} {self.reference_month:%m/%Y}"


class CardPurchase(models.Model):
    card = models.ForeignKey(Card, on_delete=models.CASCADE, related_name="purchases")
    statement = models.ForeignKey(
        Statement,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchases",
    )
    member = models.ForeignKey(
        HouseholdMembership,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="card_purchases",
    )
    category = models.ForeignKey(
        Category,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="card_purchases",
    )
    description = models.CharField(max_length=180, blank=True)
    merchant = models.CharField(max_length=120, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    installments_count = models.PositiveIntegerField(default=1)
    purchase_date = models.DateField()
    first_installment_month = models.DateField()
    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="finance_card_purchases_created",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-purchase_date", "-id"]

    def __str__(self):
        return self.description or self.merchant or f"Compra {self.pk}"


class Installment(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        BILLED = "billed", "Billed"
        PAID = "paid", "Paid"
        CANCELLED = "cancelled", "Cancelled"

    purchase = models.ForeignKey(CardPurchase, on_delete=models.CASCADE, related_name="installments")
    statement = models.ForeignKey(
        Statement,
        on_delete=models.RESTRICT,
        null=True,
        blank=True,
        related_name="installments",
    )
    number = models.PositiveIntegerField()
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    competence_month = models.DateField()
    due_date = models.DateField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.PENDING)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["due_date", "number"]
        constraints = [
            models.UniqueConstraint(fields=["purchase", "number"], name="unique_installment_purchase_number")
        ]
        indexes = [
            models.Index(fields=["statement", "status"], name="installment_stmt_status_idx"),
        ]

    def __str__(self):
        return f"{self.purchase} {self.number}/{self.purchase.installments_count}"

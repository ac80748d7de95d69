import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django import forms
from django.conf import settings

from core.models import HouseholdMembership

from .models import Category, Statement

THOUSANDS_ONLY = re.compile(r"^-?[1-9]\d{0,2}(\.\d{3})+$")


def parse_currency(value):
    """Aceita 1234.56, "1234.56" ou o formato brasileiro "1.234,56" / "1.234"."""
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    cleaned = str(value or "").strip().replace(" ", "").replace("R$", "")
    if "," in cleaned:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif THOUSANDS_ONLY.match(cleaned):
        # só separador de milhar, sem centavos
        cleaned = cleaned.replace(".", "")
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        raise forms.ValidationError("Valor inválido.")


class CurrencyField(forms.Field):
    def to_python(self, value):
        if value in self.empty_values:
            return None
        amount = parse_currency(value)
        if not amount.is_finite():
            raise forms.ValidationError("Valor inválido.")
        return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class HouseholdScopedForm(forms.Form):
    household = None

    def __init__(self, *args, household=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.household = household

        if "category" in self.fields:
            self.fields["category"].queryset = Category.objects.filter(
                household=household, is_active=True
            )
        if "member" in self.fields:
            self.fields["member"].queryset = HouseholdMembership.objects.filter(household=household)


class CardPurchaseForm(HouseholdScopedForm):
    amount = CurrencyField()
    installments = forms.IntegerField(min_value=1)
    purchase_date = forms.DateField()
    description = forms.CharField(max_length=180, required=False)
    merchant = forms.CharField(max_length=120, required=False)
    category = forms.ModelChoiceField(queryset=Category.objects.none(), required=False)
    member = forms.ModelChoiceField(queryset=HouseholdMembership.objects.none(), required=False)

    def clean_amount(self):
        amount = self.cleaned_data.get("amount")
        if amount is None or amount <= 0:
            raise forms.ValidationError("Informe um valor maior que zero.")
        return amount

    def clean_installments(self):
        installments = self.cleaned_data.get("installments")
        max_installments = settings.BILLING_MAX_INSTALLMENTS
        if installments is not None and installments > max_installments:
            raise forms.ValidationError(f"Parcela máxima é {max_installments}.")
        return installments


class StatementStatusForm(forms.Form):
    status = forms.ChoiceField(choices=Statement.Status.choices)
    paid_amount = CurrencyField(required=False)
    payment_date = forms.DateField(required=False)

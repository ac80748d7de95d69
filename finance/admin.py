from django.contrib import admin, messages
from django.core.exceptions import ValidationError

from .models import Card, CardPurchase, Category, Installment, Statement
from .services import (
    cancel_purchase,
    close_statement,
    pay_statement,
    reconcile_statement,
    reopen_statement,
)


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "household", "is_active")
    list_filter = ("household", "is_active")
    search_fields = ("name",)


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "household",
        "owner",
        "due_day",
        "closing_offset_days",
        "credit_limit",
        "notify_threshold",
        "is_active",
    )
    list_filter = ("household", "is_active")
    search_fields = ("name", "nickname", "brand")


class InstallmentInline(admin.TabularInline):
    model = Installment
    extra = 0
    can_delete = False
    fields = ("number", "amount", "competence_month", "due_date", "status", "paid_at", "statement")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(CardPurchase)
class CardPurchaseAdmin(admin.ModelAdmin):
    list_display = (
        "__str__",
        "card",
        "amount",
        "installments_count",
        "purchase_date",
        "first_installment_month",
        "member",
    )
    list_filter = ("card__household", "card")
    search_fields = ("description", "merchant")
    date_hierarchy = "purchase_date"
    list_select_related = ("card", "member__user")
    inlines = [InstallmentInline]
    actions = ["cancel_selected"]

    @admin.action(description="Cancelar parcelas em aberto das compras selecionadas")
    def cancel_selected(self, request, queryset):
        touched = set()
        for purchase in queryset:
            touched.update(cancel_purchase(purchase))
        self.message_user(
            request,
            f"{queryset.count()} compra(s) canceladas; {len(touched)} fatura(s) recalculadas.",
            level=messages.SUCCESS,
        )


@admin.register(Installment)
class InstallmentAdmin(admin.ModelAdmin):
    list_display = ("purchase", "number", "amount", "due_date", "status", "statement", "paid_at")
    list_filter = ("status", "purchase__card")
    date_hierarchy = "due_date"
    list_select_related = ("purchase", "statement")
    readonly_fields = ("purchase", "number", "amount", "competence_month", "due_date", "statement")

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        if obj.statement_id:
            reconcile_statement(obj.statement_id)


@admin.register(Statement)
class StatementAdmin(admin.ModelAdmin):
    list_display = (
        "card",
        "reference_month",
        "period_start",
        "period_end",
        "due_date",
        "status",
        "total_amount",
        "paid_amount",
    )
    list_filter = ("status", "card__household", "card")
    date_hierarchy = "due_date"
    list_select_related = ("card",)
    readonly_fields = (
        "card",
        "reference_month",
        "period_start",
        "period_end",
        "due_date",
        "status",
        "total_amount",
        "paid_amount",
    )
    actions = ["close_selected", "pay_selected", "reopen_selected", "reconcile_selected"]

    def _apply(self, request, queryset, transition, label):
        done = 0
        for statement in queryset:
            try:
                transition(statement.pk)
            except ValidationError as exc:
                self.message_user(request, f"{statement}: {' '.join(exc.messages)}", level=messages.WARNING)
            else:
                done += 1
        if done:
            self.message_user(request, f"{done} fatura(s) {label}.", level=messages.SUCCESS)

    @admin.action(description="Fechar faturas selecionadas")
    def close_selected(self, request, queryset):
        self._apply(request, queryset, close_statement, "fechadas")

    @admin.action(description="Marcar faturas selecionadas como pagas")
    def pay_selected(self, request, queryset):
        self._apply(request, queryset, pay_statement, "pagas")

    @admin.action(description="Reabrir faturas selecionadas")
    def reopen_selected(self, request, queryset):
        self._apply(request, queryset, reopen_statement, "reabertas")

    @admin.action(description="Recalcular totais")
    def reconcile_selected(self, request, queryset):
        for statement in queryset:
            reconcile_statement(statement.pk)
        self.message_user(request, f"{queryset.count()} fatura(s) recalculadas.", level=messages.SUCCESS)

import json
import logging
import uuid

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from core.households import get_current_membership

from .forms import CardPurchaseForm, StatementStatusForm
from .models import Card, CardPurchase, Statement
from .notifications import notify_statement_reminder
from .services import (
    cancel_purchase,
    create_purchase,
    list_cards,
    list_statements,
    update_statement_status,
)

logger = logging.getLogger(__name__)


def _json_body(request):
    """Corpo JSON como dict; ``None`` quando não é um objeto JSON válido."""
    try:
        payload = json.loads(request.body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _error(message, status, **extra):
    return JsonResponse({"error": message, **extra}, status=status)


def _validation_error(exc):
    details = exc.message_dict if hasattr(exc, "error_dict") else {"__all__": exc.messages}
    return _error("Dados inválidos.", 400, details=details)


def _form_errors(form):
    return {
        field: [item["message"] for item in items]
        for field, items in form.errors.get_json_data().items()
    }


def _server_error(message, **context):
    error_id = uuid.uuid4().hex
    logger.exception("%s [error_id=%s] %s", message, error_id, context)
    return _error(message, 500, error_id=error_id)


def _can_manage_card(membership, card):
    return membership.is_owner or card.owner_id == membership.pk


def serialize_statement(statement):
    return {
        "id": statement.pk,
        "card_id": statement.card_id,
        "reference_month": statement.reference_month,
        "period_start": statement.period_start,
        "period_end": statement.period_end,
        "due_date": statement.due_date,
        "status": statement.status,
        "total_amount": statement.total_amount,
        "paid_amount": statement.paid_amount,
    }


def serialize_installment(installment):
    return {
        "id": installment.pk,
        "purchase_id": installment.purchase_id,
        "statement_id": installment.statement_id,
        "number": installment.number,
        "amount": installment.amount,
        "competence_month": installment.competence_month,
        "due_date": installment.due_date,
        "status": installment.status,
        "paid_at": installment.paid_at,
    }


def serialize_purchase(purchase):
    return {
        "id": purchase.pk,
        "card_id": purchase.card_id,
        "statement_id": purchase.statement_id,
        "member_id": purchase.member_id,
        "category_id": purchase.category_id,
        "description": purchase.description,
        "merchant": purchase.merchant,
        "amount": purchase.amount,
        "installments": purchase.installments_count,
        "purchase_date": purchase.purchase_date,
        "first_installment_month": purchase.first_installment_month,
    }


def serialize_card_summary(summary):
    card = summary.card
    return {
        "id": card.pk,
        "name": card.name,
        "nickname": card.nickname,
        "brand": card.brand,
        "owner_id": card.owner_id,
        "credit_limit": card.credit_limit,
        "billing_day": card.billing_day,
        "due_day": card.due_day,
        "closing_offset_days": card.closing_offset_days,
        "notify_threshold": card.notify_threshold,
        "notify_days_before": card.notify_days_before,
        "usage": {
            "pending_amount": summary.usage.pending,
            "billed_amount": summary.usage.billed,
            "total_outstanding": summary.usage.total_outstanding,
        },
        "available_limit": summary.available_limit,
        "next_statement": serialize_statement(summary.next_statement) if summary.next_statement else None,
    }


@login_required
@require_http_methods(["GET"])
def cards_api(request):
    membership = get_current_membership(request)
    if membership is None:
        return _error("Usuário sem household.", 403)
    summaries = list_cards(membership.household)
    return JsonResponse({"cards": [serialize_card_summary(summary) for summary in summaries]})


@login_required
@require_http_methods(["POST"])
def purchase_create_api(request, card_id):
    membership = get_current_membership(request)
    if membership is None:
        return _error("Usuário sem household.", 403)

    card = get_object_or_404(Card, pk=card_id, household=membership.household)
    if not _can_manage_card(membership, card):
        return _error("Você não tem permissão para registrar compras neste cartão.", 403)

    payload = _json_body(request)
    if payload is None:
        return _error("JSON inválido.", 400)

    form = CardPurchaseForm(payload, household=membership.household)
    if not form.is_valid():
        return _error("Dados inválidos.", 400, details=_form_errors(form))

    data = form.cleaned_data
    try:
        result = create_purchase(
            card,
            data["amount"],
            data["installments"],
            data["purchase_date"],
            description=data["description"],
            merchant=data["merchant"],
            category=data["category"],
            member=data["member"] or membership,
            created_by=request.user,
        )
    except ValidationError as exc:
        return _validation_error(exc)
    except Exception:
        return _server_error("Não foi possível registrar a compra.", card_id=card.pk)

    return JsonResponse(
        {
            "purchase": serialize_purchase(result.purchase),
            "installments": [serialize_installment(item) for item in result.installments],
            "statements": [serialize_statement(item) for item in result.statements],
        },
        status=201,
    )


@login_required
@require_http_methods(["GET"])
def statement_list_api(request, card_id):
    membership = get_current_membership(request)
    if membership is None:
        return _error("Usuário sem household.", 403)
    card = get_object_or_404(Card, pk=card_id, household=membership.household)
    return JsonResponse({"statements": [serialize_statement(item) for item in list_statements(card)]})


@login_required
@require_http_methods(["PATCH"])
def statement_update_api(request, statement_id):
    membership = get_current_membership(request)
    if membership is None:
        return _error("Usuário sem household.", 403)
    statement = get_object_or_404(Statement, pk=statement_id, card__household=membership.household)
    if not membership.is_owner:
        return _error("Apenas administradores podem atualizar faturas.", 403)

    payload = _json_body(request)
    if payload is None:
        return _error("JSON inválido.", 400)

    form = StatementStatusForm(payload)
    if not form.is_valid():
        return _error("Dados inválidos.", 400, details=_form_errors(form))

    try:
        updated = update_statement_status(
            statement.pk,
            form.cleaned_data["status"],
            paid_amount=form.cleaned_data["paid_amount"],
            payment_date=form.cleaned_data["payment_date"],
        )
    except ValidationError as exc:
        return _validation_error(exc)
    except Exception:
        return _server_error("Não foi possível atualizar a fatura.", statement_id=statement.pk)

    return JsonResponse({"statement": serialize_statement(updated)})


@login_required
@require_http_methods(["POST"])
def statement_notify_api(request, statement_id):
    membership = get_current_membership(request)
    if membership is None:
        return _error("Usuário sem household.", 403)
    statement = get_object_or_404(
        Statement.objects.select_related("card"),
        pk=statement_id,
        card__household=membership.household,
    )
    if not _can_manage_card(membership, statement.card):
        return _error("Você não tem permissão para enviar notificações desta fatura.", 403)

    payload = _json_body(request)
    if payload is None:
        return _error("JSON inválido.", 400)
    sent = notify_statement_reminder(statement.pk, statement_url=payload.get("statement_url"))
    return JsonResponse({"success": sent})


@login_required
@require_http_methods(["POST"])
def purchase_cancel_api(request, purchase_id):
    membership = get_current_membership(request)
    if membership is None:
        return _error("Usuário sem household.", 403)
    purchase = get_object_or_404(
        CardPurchase.objects.select_related("card"),
        pk=purchase_id,
        card__household=membership.household,
    )
    if not _can_manage_card(membership, purchase.card):
        return _error("Você não tem permissão para cancelar esta compra.", 403)

    statement_ids = cancel_purchase(purchase)
    return JsonResponse({"cancelled": True, "statements": statement_ids})

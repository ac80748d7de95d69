from django.urls import path

from . import views

app_name = "finance"

urlpatterns = [
    path("api/cards/", views.cards_api, name="cards-api"),
    path("api/cards/<int:card_id>/purchases/", views.purchase_create_api, name="purchase-create"),
    path("api/cards/<int:card_id>/statements/", views.statement_list_api, name="statement-list"),
    path("api/statements/<int:statement_id>/", views.statement_update_api, name="statement-update"),
    path("api/statements/<int:statement_id>/notify/", views.statement_notify_api, name="statement-notify"),
    path("api/purchases/<int:purchase_id>/cancel/", views.purchase_cancel_api, name="purchase-cancel"),
]

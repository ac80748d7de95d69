from django.contrib import admin, messages

from .models import Household, HouseholdMembership, SystemLog


class HouseholdMembershipInline(admin.TabularInline):
    model = HouseholdMembership
    extra = 0
    fields = ("user", "role", "is_primary", "phone_number")


@admin.register(Household)
class HouseholdAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "currency_code", "created_at")
    search_fields = ("name", "slug")
    inlines = [HouseholdMembershipInline]


@admin.register(HouseholdMembership)
class HouseholdMembershipAdmin(admin.ModelAdmin):
    list_display = ("user", "household", "role", "is_primary", "phone_number")
    list_filter = ("household", "role")
    search_fields = ("user__username", "user__email")


@admin.register(SystemLog)
class SystemLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "level", "source", "message", "is_resolved")
    list_filter = ("level", "source", "is_resolved")
    search_fields = ("message",)
    actions = ["mark_resolved"]

    @admin.action(description="Marcar logs selecionados como resolvidos")
    def mark_resolved(self, request, queryset):
        updated = queryset.update(is_resolved=True)
        self.message_user(request, f"{updated} log(s) marcados como resolvidos.", level=messages.SUCCESS)

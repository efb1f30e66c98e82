from django.contrib import admin

from clients_core.models import Client

from ..services.audit_helper import log_action


# Register `Client` model
@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("ref", "name", "client_type", "portfolio_code", "status", "main_email")
    list_filter = ("portfolio_code", "status", "client_type")
    search_fields = ("ref", "name", "main_email", "registered_number")
    ordering = ("ref",)

    # A ref typed here is a hand-assigned reference; the allocator skips it later.
    # Existing refs change only through update_client_ref.
    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ("ref", "portfolio_code", "created_at", "updated_at")
        return ("created_at", "updated_at")

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        log_action(
            action="update" if change else "create",
            instance=obj,
            user=request.user,
            changes={"fields": form.changed_data},
        )

from django.contrib import admin

from clients_core.models import AuditLog

from .ReadOnly import ReadOnlyAdmin


# Register `AuditLog` model
@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = (
        "id",
        "user",
        "action",
        "object_type",
        "object_id",
        "created_at",
    )
    search_fields = ("object_type", "object_id", "user__username")
    list_filter = ("action", "created_at")

    # Fetch users in the same query
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("user")

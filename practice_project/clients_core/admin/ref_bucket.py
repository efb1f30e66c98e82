from django.conf import settings
from django.contrib import admin

from clients_core.models import RefBucket

from .ReadOnly import ReadOnlyAdmin


# Register `RefBucket` model; counters only move through the allocator
@admin.register(RefBucket)
class RefBucketAdmin(ReadOnlyAdmin):
    list_display = ("portfolio_code", "alpha", "next_index", "is_full", "updated_at")
    list_filter = ("portfolio_code",)
    ordering = ("portfolio_code", "alpha")

    @admin.display(boolean=True, description="Full")
    def is_full(self, obj):
        return not obj.has_capacity(getattr(settings, "CLIENT_REF_MAX_INDEX", 999))

from django.conf import settings  # To access global project settings
from django.db import models


# ---------- Audit / Event log ----------
class AuditLog(models.Model):
    # Which user performed the action
    # (null for imports and background jobs)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # create, update, ref_change, delete
    action = models.CharField(max_length=50)
    # e.g. "Client"
    object_type = models.CharField(max_length=100)
    # Primary key of the affected object (a client reference)
    object_id = models.CharField(max_length=100)
    # Before/after details in JSON
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=["object_type", "object_id"], name="clients_cor_object__3f2a9c_idx"),
            models.Index(fields=["created_at"], name="clients_cor_created_7e4d10_idx"),
        ]

    def __str__(self):
        return f"[{self.created_at:%Y-%m-%d %H:%M}] {self.user} {self.action} {self.object_type}({self.object_id})"

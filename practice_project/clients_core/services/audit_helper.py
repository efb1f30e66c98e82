from ..models import AuditLog


def log_action(*, action: str, instance, user=None, changes: dict | None = None, object_id=None):
    """
    Central audit logger.
    `object_id` overrides instance.pk, e.g. for a client whose ref just changed.
    """
    if user is not None and not getattr(user, "is_authenticated", False):
        # AnonymousUser cannot be stored on the FK
        user = None

    return AuditLog.objects.create(
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(object_id if object_id is not None else instance.pk),
        changes=changes,
    )

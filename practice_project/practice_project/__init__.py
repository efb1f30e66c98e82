# Expose the Celery app so `celery -A practice_project worker` finds it
# and shared_task decorators bind to it when Django starts.
from .celery import celery_app

__all__ = ("celery_app",)

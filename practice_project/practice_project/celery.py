"""Celery application for background jobs (bulk client imports)."""
from __future__ import annotations
import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "practice_project.settings")

celery_app = Celery("practice_project")

# every CELERY_* entry in settings.py configures the worker
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# picks up clients_core.tasks
celery_app.autodiscover_tasks()

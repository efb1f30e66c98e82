from celery import shared_task


@shared_task  # register this function as a Celery task
def import_clients_csv_task(csv_text, user_id=None):
    # import lazily to avoid loading models when the worker module is imported
    from django.contrib.auth import get_user_model

    from .services.csv_import import import_clients_csv

    user = None
    if user_id is not None:
        user = get_user_model().objects.filter(pk=user_id).first()

    # {"created": n, "errors": [...]} is JSON-serialisable for the result backend
    return import_clients_csv(csv_text, user=user)

from django.apps import AppConfig


class ClientsCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "clients_core"
    verbose_name = "Clients"

    # ensure receivers are registered
    def ready(self):
        import clients_core.signals  # noqa: F401

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'core'
    verbose_name = '3D Print Marketplace'

    services = None

    def ready(self):
        # Register signal receivers
        from . import signals  # noqa: F401
        from .services import build_services

        self.services = build_services()

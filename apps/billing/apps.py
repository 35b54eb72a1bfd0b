"""
Django app configuration for Billing app
"""

from django.apps import AppConfig


class BillingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.billing"
    verbose_name = "Billing"

    def ready(self) -> None:
        """Register payment gateways with the factory."""
        from . import gateways  # noqa: F401,PLC0415

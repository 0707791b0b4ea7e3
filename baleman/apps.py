"""Django app configuration for Baleman."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class BalemanConfig(AppConfig):
    """Configuration for Baleman app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "baleman"
    verbose_name = _("Bale Warehouse")

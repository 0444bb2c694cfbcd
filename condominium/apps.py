from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class CondominiumConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "condominium"
    verbose_name = _("Condominium")

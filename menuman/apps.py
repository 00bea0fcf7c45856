from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class MenumanConfig(AppConfig):
    name = "menuman"
    verbose_name = _("Menu Customization")

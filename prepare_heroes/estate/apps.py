from django.apps import AppConfig


class EstateConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'estate'
    verbose_name = 'Estate Planning'

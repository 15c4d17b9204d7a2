from django.apps import AppConfig


class ReadingConfig(AppConfig):
    name = "reading"
    verbose_name = "Reading progress"
    default_auto_field = "django.db.models.BigAutoField"

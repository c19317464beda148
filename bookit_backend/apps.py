from django.apps import AppConfig
from typing import ClassVar


class BookitBackendConfig(AppConfig):
    default_auto_field: ClassVar[str] = "django.db.models.BigAutoField"
    name = "bookit_backend"
    verbose_name = "BookIt Backend"

from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


class ReportsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "reports"
    verbose_name = "Reports"

    #: Municipal boundary, loaded once in ``ready()``.
    boundary = None

    def ready(self):
        from .boundary import BoundaryError, BoundaryValidator

        try:
            self.boundary = BoundaryValidator.from_file(settings.MUNICIPAL_BOUNDARY_PATH)
        except BoundaryError as exc:
            raise ImproperlyConfigured(
                f"MUNICIPAL_BOUNDARY_PATH is not a usable boundary: {exc}"
            ) from exc

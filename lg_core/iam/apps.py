from django.apps import AppConfig


class IamConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "lg_core.iam"
    verbose_name = "Identity & access"

    def ready(self) -> None:
        # registers the portal auth scheme with drf-spectacular
        from lg_core.iam import auth  # noqa: F401

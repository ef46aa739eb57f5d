from django.apps import AppConfig


class WebsiteConfig(AppConfig):
    name = 'website'
    verbose_name = 'Site'

    def ready(self):  # pragma: no cover
        from . import signals  # noqa: F401

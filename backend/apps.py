from django.apps import AppConfig
from django.conf import settings


class BackendConfig(AppConfig):
    name = 'backend'
    verbose_name = 'REST backend'

    def ready(self):
        from .cache import ResponseCache
        # Shared by every ApiClient in this process
        self.response_cache = ResponseCache(ttl=settings.Y4C_CACHE_TTL)

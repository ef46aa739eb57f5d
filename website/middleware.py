from datetime import datetime

from django.utils import timezone
from django.utils.deprecation import MiddlewareMixin

from .signals import FAIL_KEY, LOCK_UNTIL_KEY


class LoginAttemptMiddleware(MiddlewareMixin):
    """Exposes the failed-login counter and lock state for the admin login page."""

    def process_request(self, request):
        fail_count = request.session.get(FAIL_KEY, 0)
        lock_until_ts = request.session.get(LOCK_UNTIL_KEY)
        locked = False
        remaining_seconds = 0
        if lock_until_ts:
            try:
                lock_until = datetime.fromisoformat(lock_until_ts)
            except ValueError:
                request.session.pop(LOCK_UNTIL_KEY, None)
            else:
                now = timezone.now()
                if now < lock_until:
                    locked = True
                    remaining_seconds = int((lock_until - now).total_seconds())
                else:
                    # Lock expired: start counting again
                    request.session.pop(LOCK_UNTIL_KEY, None)
                    request.session[FAIL_KEY] = 0
                    fail_count = 0
        request.login_fail_count = fail_count
        request.login_locked = locked
        request.login_lock_remaining = remaining_seconds

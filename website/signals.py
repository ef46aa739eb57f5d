from datetime import datetime, timedelta

from django.conf import settings
from django.dispatch import Signal, receiver
from django.utils import timezone

FAIL_KEY = 'admin_login_fail_count'
LOCK_UNTIL_KEY = 'admin_login_lock_until'

# Sent by the admin login view; the backend owns the actual credential check
admin_login_failed = Signal()
admin_logged_in = Signal()


@receiver(admin_login_failed)
def login_failed(sender, request, **kwargs):
    if request is None:
        return
    # Already locked: do not extend the lock
    lock_until = request.session.get(LOCK_UNTIL_KEY)
    if lock_until:
        try:
            if timezone.now() < datetime.fromisoformat(lock_until):
                return
        except ValueError:
            request.session.pop(LOCK_UNTIL_KEY, None)
    count = request.session.get(FAIL_KEY, 0) + 1
    request.session[FAIL_KEY] = count
    if count >= settings.ADMIN_LOGIN_FAIL_THRESHOLD:
        lock_time = timezone.now() + timedelta(minutes=settings.ADMIN_LOGIN_LOCK_MINUTES)
        request.session[LOCK_UNTIL_KEY] = lock_time.isoformat()


@receiver(admin_logged_in)
def login_success(sender, request, **kwargs):
    if request is None:
        return
    for key in (FAIL_KEY, LOCK_UNTIL_KEY):
        request.session.pop(key, None)

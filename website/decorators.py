import logging
from functools import wraps

from django.contrib import messages
from django.shortcuts import redirect
from django.urls import reverse

from backend.client import BACKEND_COOKIES_KEY
from backend.exceptions import ApiError

logger = logging.getLogger(__name__)

ADMIN_SESSION_KEY = 'admin'


def forget_admin(request):
    request.session.pop(ADMIN_SESSION_KEY, None)
    request.session.pop(BACKEND_COOKIES_KEY, None)


def admin_required(view):
    """Back-office gate: needs a backend login stored in the session.

    A 401/403 from the backend means that login has expired; the local
    session is dropped and the admin is sent back to the login page.
    """
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.session.get(ADMIN_SESSION_KEY):
            return redirect(f"{reverse('website:admin_login')}?next={request.path}")
        try:
            return view(request, *args, **kwargs)
        except ApiError as exc:
            if exc.status not in (401, 403):
                raise
            logger.info('Backend rejected admin session: %s', exc)
            forget_admin(request)
            messages.warning(request, 'Your session has expired. Please sign in again.')
            return redirect(f"{reverse('website:admin_login')}?next={request.path}")
    return wrapper


def report_backend_error(request, exc):
    """Flash a backend failure to the admin; expired logins go back to ``admin_required``."""
    if isinstance(exc, ApiError) and exc.status in (401, 403):
        raise exc
    messages.error(request, exc.message)

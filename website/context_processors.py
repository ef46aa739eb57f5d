from .decorators import ADMIN_SESSION_KEY


def admin_session(request):
    session = getattr(request, 'session', None)
    return {'current_admin': session.get(ADMIN_SESSION_KEY) if session is not None else None}

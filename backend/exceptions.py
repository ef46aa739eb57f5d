GENERIC_ERROR = 'Something went wrong. Please try again.'
NETWORK_ERROR = 'Unable to reach the server. Please check your connection and try again.'


class BackendError(Exception):
    """Base class for every failure talking to the REST backend."""

    def __init__(self, message=GENERIC_ERROR):
        super().__init__(message)
        self.message = message


class NetworkError(BackendError):
    """Timeout or connection failure; the request never got a response."""

    def __init__(self, message=NETWORK_ERROR):
        super().__init__(message)


class ApiError(BackendError):
    """Non-2xx response. ``message`` is the server's own error text when it sent one."""

    def __init__(self, status, message=GENERIC_ERROR, payload=None):
        super().__init__(message or GENERIC_ERROR)
        self.status = status
        self.payload = payload or {}

    def __str__(self):
        return f"{self.status}: {self.message}"

"""Error types raised by the store gateway and the request pipelines.

Every error carries the HTTP status it maps to, so the API layer can turn
any of them into a ``{"error": ..., "details": ...}`` JSON response without
knowing where it came from.
"""


class APIError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class AuthError(APIError):
    status_code = 401


class ValidationError(APIError):
    status_code = 400


class ForbiddenError(APIError):
    status_code = 403


class NotFoundError(APIError):
    status_code = 404


class MethodError(APIError):
    status_code = 405


class ConfigError(APIError):
    status_code = 500


class StoreError(APIError):
    """Failure reported by the persistent store.

    ``code`` is the backend's error code when it supplies one (for example
    ``PGRST116`` for "no rows").
    """

    status_code = 500

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code

    @property
    def is_permission_error(self) -> bool:
        text = (self.message or "").lower()
        return "permission denied" in text or "policy" in text

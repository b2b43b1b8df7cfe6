# royaltymeds/core/errors.py
from typing import Optional


class ServiceError(Exception):
    """Business-rule failure carrying the HTTP status it should surface as."""

    status_code = 500

    def __init__(self, msg: str, status_code: Optional[int] = None, extra: Optional[dict] = None):
        super().__init__(msg)
        self.msg = msg
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra


class ValidationFailed(ServiceError):
    status_code = 400


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409

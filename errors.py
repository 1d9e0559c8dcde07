"""
Service errors surfaced to API callers as `{"error": message}`.
"""


class ServiceError(Exception):
    """Base error with the HTTP status it maps to."""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(ServiceError):
    """A collaborator is missing its credentials. Raised before any network call."""
    status_code = 500


class InvalidRequestError(ServiceError):
    status_code = 400


class UpstreamServiceError(ServiceError):
    """The remote caption or image service failed."""
    status_code = 502

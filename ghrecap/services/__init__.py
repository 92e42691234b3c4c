"""Service layer — business logic orchestration and its error types."""


class ServiceError(Exception):
    """Base service exception."""


class NotFoundError(ServiceError):
    """Resource not found (-> HTTP 404)."""


class ValidationError(ServiceError):
    """Bad caller input, rejected before any network call (-> HTTP 422)."""


class UpstreamError(ServiceError):
    """GitHub or the summary model failed (-> HTTP 502)."""


class SummaryError(UpstreamError):
    """Summary generation failed; aggregation results are unaffected."""

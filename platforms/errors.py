class PublishError(RuntimeError):
    """Base class for anything that stops a post from being published."""

    kind = "upstream"
    http_status = 500


class ValidationError(PublishError):
    """Raised before any network call when the post cannot be published as composed."""

    kind = "validation"
    http_status = 400


class UpstreamError(PublishError):
    """Raised when a platform answers with a non-2xx response."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ProcessingError(PublishError):
    """Raised when asynchronous media processing reports a failed state."""

    kind = "processing"


class MediaTransferError(PublishError):
    """Raised when a media item cannot be downloaded or uploaded."""

    kind = "media"


class MaxRetriesExceeded(PublishError):
    """Raised when every attempt of a retried request timed out."""

    kind = "network"

class CollectorError(Exception):
    """Base class for errors raised by the collection services."""


class ValidationError(CollectorError):
    """Malformed input: box geometry, missing fields, empty labels."""


class NotFoundError(CollectorError):
    """Unknown session, image or annotation id."""


class UploadError(CollectorError):
    """Upload batch that cannot be processed at all."""


class RenderError(CollectorError):
    """Source image cannot be decoded or the composite cannot be encoded."""


class PackagingError(CollectorError):
    """Export archive cannot be assembled."""

"""Error taxonomy for the video ingestion pipeline.

Each error carries the HTTP status it maps to so routers can convert it
without a lookup table.
"""


class VideoPipelineError(Exception):
    """Base class for classified pipeline failures."""

    status_code = 500


class BadRequest(VideoPipelineError):
    """Malformed route, or missing/oversized/wrong-type payload."""

    status_code = 400


class AuthFailure(VideoPipelineError):
    """Missing or invalid bearer credential."""

    status_code = 401


class Forbidden(VideoPipelineError):
    """Authenticated user does not own the target record."""

    status_code = 403


class NotFound(VideoPipelineError):
    status_code = 404


class ProbeFailure(VideoPipelineError):
    """ffprobe exited non-zero or returned no usable geometry."""


class RemuxFailure(VideoPipelineError):
    """ffmpeg fast-start remux exited non-zero."""


class StorageWriteFailure(VideoPipelineError):
    """Object store rejected or failed the write."""


class RecordStoreFailure(VideoPipelineError):
    """Video record could not be persisted."""


class ProcessingTimeout(VideoPipelineError):
    """An external tool or the object store exceeded its deadline."""

    status_code = 504

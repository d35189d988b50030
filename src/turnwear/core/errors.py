"""Error taxonomy for the outfit generation pipeline.

Every failure the pipeline can report is a :class:`PipelineError`.  The
``message`` is written for the end user and is returned verbatim by the API;
``status_code`` is the HTTP status the API layer answers with and is not
consulted anywhere else.

Hierarchy::

    PipelineError
    ├── InvalidInputError        bad caller input, nothing attempted
    ├── Unauthorized             missing or unverifiable identity
    ├── DesignCreationError      durable store unavailable before generation
    ├── GenerationError          one angle's generation call failed
    │   ├── RateLimited          gateway 429
    │   ├── PaymentRequired      gateway 402
    │   ├── UpstreamError        any other gateway or transport failure
    │   └── NoImageReturned      response parsed but carried no image
    ├── StorageWriteError        frame upload failed (warning only)
    └── MetadataCommitError      frame rows failed to commit (warning only)

``StorageWriteError`` and ``MetadataCommitError`` are never raised out of the
orchestrator.  They are collected on ``PipelineResult.warnings``.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    status_code: int = 500
    default_message: str = "Outfit generation failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(PipelineError):
    """The caller's prompt or reference image was unusable."""

    status_code = 400
    default_message = "Please upload an image and describe your outfit."


class Unauthorized(PipelineError):
    """The request carried no verifiable identity."""

    status_code = 401
    default_message = "Authentication required."


class DesignCreationError(PipelineError):
    """The parent design record could not be created."""

    status_code = 503
    default_message = "Could not start a new design, please try again."


class GenerationError(PipelineError):
    """Base class for failures of a single angle's generation call.

    Attributes:
        angle: Name of the angle being generated when the failure occurred.
    """

    status_code = 502

    def __init__(self, message: str | None = None, *, angle: str | None = None) -> None:
        self.angle = angle
        super().__init__(message)


class RateLimited(GenerationError):
    """The gateway signalled capacity exhaustion (HTTP 429)."""

    status_code = 429
    default_message = "Rate limits exceeded, please try again later."


class PaymentRequired(GenerationError):
    """The gateway signalled billing exhaustion (HTTP 402)."""

    status_code = 402
    default_message = "Payment required, please add credits to your AI workspace."


class UpstreamError(GenerationError):
    """Any other non-success outcome of a generation call.

    Attributes:
        upstream_status: HTTP status returned by the gateway, or ``None``
            when the call never produced a response (timeout, connection
            error, missing credentials).
        body: Raw response body (or transport error text) for diagnostics.
    """

    default_message = "The image generation service returned an error."

    def __init__(
        self,
        message: str | None = None,
        *,
        angle: str | None = None,
        upstream_status: int | None = None,
        body: str = "",
    ) -> None:
        self.upstream_status = upstream_status
        self.body = body
        super().__init__(message, angle=angle)


class NoImageReturned(GenerationError):
    """The gateway answered successfully but the response held no image."""

    default_message = "The image generation service returned no image."


class StorageWriteError(PipelineError):
    """A generated frame could not be uploaded to the blob store.

    Attributes:
        angle: Angle of the frame that was not persisted.
        path: Storage path the upload targeted.
    """

    default_message = "A generated frame could not be saved."

    def __init__(self, message: str | None = None, *, angle: str, path: str) -> None:
        self.angle = angle
        self.path = path
        super().__init__(message)


class MetadataCommitError(PipelineError):
    """Staged frame records could not be committed to the durable store.

    Attributes:
        design_id: Design the records belonged to.
        record_count: Number of records that were lost.
    """

    default_message = "Generated frames could not be added to your gallery."

    def __init__(self, message: str | None = None, *, design_id: str, record_count: int) -> None:
        self.design_id = design_id
        self.record_count = record_count
        super().__init__(message)

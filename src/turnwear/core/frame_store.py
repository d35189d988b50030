"""Persistence of generated frames to the blob store.

A storage failure never aborts a turntable.  The frame is still handed back
to the orchestrator (the user already paid for the render and should see
it); it is simply left out of the durable metadata so the gallery never
points at a missing blob.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from turnwear.core.angles import AngleDescriptor
from turnwear.core.errors import NoImageReturned, StorageWriteError
from turnwear.core.images import ImageDecodeError, decode_data_url, to_png
from turnwear.core.stores import BlobStore, FrameRecord

logger = logging.getLogger(__name__)


def storage_path(owner_id: str, design_id: str, angle_name: str) -> str:
    """Derive the blob path of a frame.

    Depends only on owner, design and angle, so re-rendering an angle of the
    same design overwrites the previous object instead of orphaning it.
    Frames are always stored as PNG.

    Example:
        >>> storage_path("user-1", "design-9", "45-left")
        'user-1/design-9/45-left.png'
    """
    return f"{owner_id}/{design_id}/{angle_name}.png"


@dataclass
class GeneratedFrame:
    """A successfully generated frame.

    Attributes:
        angle: Catalog angle name.
        image_bytes: Decoded image, re-encoded as PNG when needed.
        content_type: MIME type of ``image_bytes``, always ``image/png``.
        image_url: Data URL of the image, as returned to the caller.
        stored_path: Blob path the frame was (or would have been) written to.
        persisted: Whether the upload succeeded.
    """

    angle: str
    image_bytes: bytes
    content_type: str
    image_url: str
    stored_path: str
    persisted: bool = False

    def to_record(self, design_id: str) -> FrameRecord:
        return FrameRecord(design_id=design_id, angle=self.angle, stored_path=self.stored_path)


@dataclass
class FrameWriteOutcome:
    """Result of writing one frame.

    ``record`` is ``None`` and ``warning`` is set when the upload failed.
    """

    frame: GeneratedFrame
    record: FrameRecord | None
    warning: StorageWriteError | None = None


class FrameStoreWriter:
    """Decodes gateway images and uploads them to the blob store."""

    def __init__(self, blob_store: BlobStore) -> None:
        self._blob_store = blob_store

    def write(
        self, owner_id: str, design_id: str, angle: AngleDescriptor, image_url: str
    ) -> FrameWriteOutcome:
        """Decode and persist one frame.

        Args:
            owner_id: Owner of the design.
            design_id: Design the frame belongs to.
            angle: Catalog angle of the frame.
            image_url: Data URL returned by the generation client.

        Returns:
            The frame plus its staged metadata record, or a warning when the
            upload failed.

        Raises:
            NoImageReturned: If the data URL cannot be decoded as an image.
        """
        try:
            payload = to_png(decode_data_url(image_url))
        except ImageDecodeError as e:
            raise NoImageReturned(f"No image generated for {angle.name}.", angle=angle.name) from e

        path = storage_path(owner_id, design_id, angle.name)
        frame = GeneratedFrame(
            angle=angle.name,
            image_bytes=payload.data,
            content_type=payload.content_type,
            image_url=image_url,
            stored_path=path,
        )

        try:
            self._blob_store.put_object(path, payload.data, payload.content_type)
        except Exception as e:
            logger.warning(f"Failed to upload {angle.name} frame to {path}: {e}")
            warning = StorageWriteError(
                f"The {angle.name} view could not be saved to your gallery.",
                angle=angle.name,
                path=path,
            )
            warning.__cause__ = e
            return FrameWriteOutcome(frame=frame, record=None, warning=warning)

        frame.persisted = True
        return FrameWriteOutcome(frame=frame, record=frame.to_record(design_id))

"""Gallery helpers: listing, fetching and deleting stored designs.

The gallery is the read side of the pipeline's durable output.  It has to
tolerate every state the pipeline can leave behind:

- a design with all eight frames
- a design with fewer frames (aborted run, or an individual upload failed)
- a design with zero frames (aborted on the first angle, or the metadata
  commit failed)

Frames are always presented in catalog order regardless of row order in the
database, and each frame carries a signed URL.  A signed-URL failure blanks
that frame's ``url`` rather than failing the listing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from turnwear.core.angles import catalog_index
from turnwear.core.stores import BlobStore, DesignRow, DesignStore

logger = logging.getLogger(__name__)


@dataclass
class GalleryFrame:
    angle: str
    storage_path: str
    url: str | None


@dataclass
class GalleryDesign:
    id: str
    prompt: str
    created_at: str
    frames: list[GalleryFrame] = field(default_factory=list)


def paginate(items: list, page: int, per_page: int) -> dict:
    """Paginate *items* and clamp the requested page to valid bounds.

    Clamping matters after deletes.  If a user is viewing the last gallery
    page and removes the final design on it, the previous page becomes the
    new last page.

    Args:
        items: Items in display order.
        page: Requested one-based page number.
        per_page: Requested items per page (values below 1 are treated as 1).

    Returns:
        Dictionary containing ``total``, ``page``, ``per_page``, ``pages``,
        and ``items`` for the resolved page.
    """
    per_page = max(per_page, 1)
    total = len(items)
    pages = (total + per_page - 1) // per_page if total > 0 else 1
    resolved_page = min(max(page, 1), pages)

    start = (resolved_page - 1) * per_page
    end = start + per_page

    return {
        "total": total,
        "page": resolved_page,
        "per_page": per_page,
        "pages": pages,
        "items": items[start:end],
    }


class DesignGallery:
    """Owner-scoped view over stored designs."""

    def __init__(self, store: DesignStore, blob_store: BlobStore, signed_url_ttl: int = 3600) -> None:
        self._store = store
        self._blob_store = blob_store
        self._signed_url_ttl = signed_url_ttl

    def _signed_url(self, path: str) -> str | None:
        try:
            return self._blob_store.create_signed_url(path, self._signed_url_ttl)
        except Exception as e:
            logger.warning(f"Could not sign URL for {path}: {e}")
            return None

    def _present(self, row: DesignRow) -> GalleryDesign:
        ordered = sorted(row.frames, key=lambda frame: catalog_index(frame.angle))
        return GalleryDesign(
            id=row.id,
            prompt=row.prompt,
            created_at=row.created_at,
            frames=[
                GalleryFrame(
                    angle=frame.angle,
                    storage_path=frame.stored_path,
                    url=self._signed_url(frame.stored_path),
                )
                for frame in ordered
            ],
        )

    def list_designs(self, owner_id: str, page: int = 1, per_page: int = 12) -> dict:
        """Return one page of the owner's designs, newest first.

        Only designs on the resolved page are signed, so listing cost does
        not grow with the size of the whole gallery.
        """
        rows = self._store.list_designs(owner_id)
        result = paginate(rows, page, per_page)
        designs = [self._present(row) for row in result.pop("items")]
        return {**result, "designs": designs}

    def get_design(self, owner_id: str, design_id: str) -> GalleryDesign | None:
        row = self._store.get_design(owner_id, design_id)
        return self._present(row) if row is not None else None

    def delete_design(self, owner_id: str, design_id: str) -> bool:
        """Delete a design and, best-effort, its stored frames.

        Returns:
            ``False`` if the owner has no such design.
        """
        row = self._store.get_design(owner_id, design_id)
        if row is None:
            return False

        deleted = self._store.delete_design(owner_id, design_id)
        if not deleted:
            return False

        paths = [frame.stored_path for frame in row.frames]
        try:
            self._blob_store.remove_objects(paths)
        except Exception as e:
            # The design row is already gone; leftover blobs are only garbage.
            logger.warning(f"Failed to remove {len(paths)} objects for design {design_id}: {e}")
        return True

"""Creation and commit of design metadata.

The design row is created before any rendering so every frame has a parent
to belong to.  Frame rows are staged during the run and committed once at
the end, whether the run completed or aborted.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from turnwear.core.errors import DesignCreationError, MetadataCommitError
from turnwear.core.stores import DesignStore, FrameRecord

logger = logging.getLogger(__name__)


class DesignRecordManager:
    """Sole writer of design and frame rows."""

    def __init__(self, store: DesignStore) -> None:
        self._store = store

    def create_design(self, owner_id: str, prompt: str) -> str:
        """Create the parent design record.

        Raises:
            DesignCreationError: If the durable store rejects the insert.
        """
        try:
            design_id = self._store.insert_design(owner_id, prompt)
        except Exception as e:
            logger.error(f"Failed to create design for user {owner_id}: {e}")
            raise DesignCreationError() from e

        if not design_id:
            logger.error(f"Durable store returned no id for new design of user {owner_id}")
            raise DesignCreationError()
        return str(design_id)

    def commit_frames(
        self, design_id: str, records: Sequence[FrameRecord]
    ) -> MetadataCommitError | None:
        """Commit staged frame records.

        Failures are logged and returned, never raised: the user still gets
        the frames rendered in this request.

        Returns:
            ``None`` on success (or when there is nothing to commit), else
            the :class:`MetadataCommitError` describing the lost records.
        """
        if not records:
            logger.info(f"No frame records to commit for design {design_id}")
            return None

        try:
            self._store.insert_frame_records(list(records))
        except Exception as e:
            logger.warning(f"Failed to commit {len(records)} frame records for {design_id}: {e}")
            warning = MetadataCommitError(design_id=design_id, record_count=len(records))
            warning.__cause__ = e
            return warning

        logger.info(f"Committed {len(records)} frame records for design {design_id}")
        return None

"""Supabase implementations of the store and identity interfaces.

Tables
------
``outfit_designs``: ``id`` (uuid, generated), ``user_id``, ``prompt``,
``created_at`` (generated).

``outfit_frames``: ``design_id`` (fk, cascade on delete), ``angle``,
``storage_path``.

Storage
-------
Frames live in the ``outfit-images`` bucket at
``<user_id>/<design_id>/<angle>.<ext>``.

Table and bucket names come from :class:`~turnwear.core.config.TurnwearConfig`.
"""

from __future__ import annotations

import logging
from typing import Any

from supabase import Client

from turnwear.core.config import TurnwearConfig
from turnwear.core.errors import Unauthorized
from turnwear.core.stores import DesignRow, FrameRecord

logger = logging.getLogger(__name__)


class SupabaseDesignStore:
    """Design and frame rows in Supabase Postgres."""

    def __init__(self, client: Client, config: TurnwearConfig) -> None:
        self._client = client
        self._designs_table = config.designs_table
        self._frames_table = config.frames_table

    # ==================== WRITES ====================

    def insert_design(self, owner_id: str, prompt: str) -> str:
        """Insert a design row.

        Returns:
            Design UUID assigned by the database
        """
        response = (
            self._client.table(self._designs_table)
            .insert({"user_id": owner_id, "prompt": prompt})
            .execute()
        )
        design_id = response.data[0]["id"]

        logger.info(f"Created design {design_id} for user {owner_id}")
        return design_id

    def insert_frame_records(self, records: list[FrameRecord]) -> None:
        """Insert all frame rows of a design in a single statement."""
        rows = [
            {
                "design_id": record.design_id,
                "angle": record.angle,
                "storage_path": record.stored_path,
            }
            for record in records
        ]
        self._client.table(self._frames_table).insert(rows).execute()
        logger.info(f"Saved {len(rows)} frame records")

    def delete_design(self, owner_id: str, design_id: str) -> bool:
        """Delete a design owned by *owner_id*."""
        response = (
            self._client.table(self._designs_table)
            .delete()
            .eq("id", design_id)
            .eq("user_id", owner_id)
            .execute()
        )
        deleted = bool(response.data)
        if deleted:
            logger.info(f"Deleted design {design_id}")
        return deleted

    # ==================== READS ====================

    def _select(self) -> Any:
        columns = f"id, user_id, prompt, created_at, {self._frames_table}(angle, storage_path)"
        return self._client.table(self._designs_table).select(columns)

    def _to_row(self, raw: dict) -> DesignRow:
        frames = [
            FrameRecord(design_id=raw["id"], angle=f["angle"], stored_path=f["storage_path"])
            for f in raw.get(self._frames_table) or []
        ]
        return DesignRow(
            id=raw["id"],
            owner_id=raw.get("user_id", ""),
            prompt=raw.get("prompt", ""),
            created_at=raw.get("created_at", ""),
            frames=frames,
        )

    def list_designs(self, owner_id: str) -> list[DesignRow]:
        """Return the owner's designs with their frames, newest first."""
        response = self._select().eq("user_id", owner_id).order("created_at", desc=True).execute()
        return [self._to_row(raw) for raw in response.data or []]

    def get_design(self, owner_id: str, design_id: str) -> DesignRow | None:
        """Return a single design owned by *owner_id*."""
        response = self._select().eq("id", design_id).eq("user_id", owner_id).execute()
        return self._to_row(response.data[0]) if response.data else None


class SupabaseBlobStore:
    """Frame images in a Supabase Storage bucket."""

    def __init__(self, client: Client, config: TurnwearConfig) -> None:
        self._client = client
        self._bucket = config.storage_bucket

    def put_object(self, path: str, data: bytes, content_type: str) -> None:
        """Upload with upsert so a retried angle overwrites its previous blob."""
        self._client.storage.from_(self._bucket).upload(
            path=path,
            file=data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        logger.info(f"Uploaded file to {self._bucket}/{path}")

    def create_signed_url(self, path: str, expires_in: int) -> str:
        response = self._client.storage.from_(self._bucket).create_signed_url(path, expires_in)
        # storage3 has returned both spellings across releases.
        url = response.get("signedURL") or response.get("signedUrl")
        if not url:
            raise ValueError(f"No signed URL returned for {self._bucket}/{path}")
        return url

    def remove_objects(self, paths: list[str]) -> None:
        if not paths:
            return
        self._client.storage.from_(self._bucket).remove(paths)
        logger.info(f"Removed {len(paths)} objects from {self._bucket}")


class SupabaseIdentityProvider:
    """Verifies access tokens with Supabase Auth."""

    def __init__(self, client: Client) -> None:
        self._client = client

    def verify_identity(self, access_token: str) -> str:
        """Return the user id the token belongs to.

        Raises:
            Unauthorized: If the token is missing, expired or rejected.
        """
        if not access_token:
            raise Unauthorized()

        try:
            response = self._client.auth.get_user(access_token)
        except Exception as e:
            logger.warning(f"Access token rejected: {e}")
            raise Unauthorized("Invalid or expired session, please sign in again.") from e

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise Unauthorized("Invalid or expired session, please sign in again.")
        return str(user.id)

"""Collaborator interfaces for durable metadata, blobs and identity.

The pipeline only knows these shapes.  :mod:`turnwear.core.supabase_store`
implements them against Supabase; tests substitute in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class FrameRecord:
    """Metadata row linking a design, an angle and a stored blob."""

    design_id: str
    angle: str
    stored_path: str


@dataclass
class DesignRow:
    """A stored design with whatever frame rows were committed for it."""

    id: str
    owner_id: str
    prompt: str
    created_at: str
    frames: list[FrameRecord] = field(default_factory=list)


class DesignStore(Protocol):
    """Relational store for designs and frame metadata."""

    def insert_design(self, owner_id: str, prompt: str) -> str:
        """Insert a design row and return its generated id."""
        ...

    def insert_frame_records(self, records: list[FrameRecord]) -> None:
        """Insert frame rows in one call."""
        ...

    def list_designs(self, owner_id: str) -> list[DesignRow]:
        """Return the owner's designs, newest first."""
        ...

    def get_design(self, owner_id: str, design_id: str) -> DesignRow | None:
        """Return one of the owner's designs, or ``None``."""
        ...

    def delete_design(self, owner_id: str, design_id: str) -> bool:
        """Delete one of the owner's designs; ``True`` if a row was removed."""
        ...


class BlobStore(Protocol):
    """Object storage for rendered frames."""

    def put_object(self, path: str, data: bytes, content_type: str) -> None:
        """Create or replace the object at *path*.  Raises on failure."""
        ...

    def create_signed_url(self, path: str, expires_in: int) -> str:
        """Return a time-limited URL for *path*."""
        ...

    def remove_objects(self, paths: list[str]) -> None:
        """Delete the objects at *paths*."""
        ...


class IdentityProvider(Protocol):
    """Verifies request credentials."""

    def verify_identity(self, access_token: str) -> str:
        """Return the owner id for *access_token* or raise ``Unauthorized``."""
        ...

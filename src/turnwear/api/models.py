"""Pydantic request and response models for the Turnwear API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.  Field names follow the frontend's camelCase
convention on the wire via aliases.

Models
------
GenerateOutfitRequest
    Payload for ``POST /api/generate-outfit``.
GenerateOutfitResponse
    Successful turntable: design id, ordered frames, warnings.
GalleryPage
    Paginated listing returned by ``GET /api/gallery``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from turnwear.core.errors import PipelineError
from turnwear.core.gallery import GalleryDesign
from turnwear.core.pipeline import PipelineResult


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GenerateOutfitRequest(_CamelModel):
    """Request body for the ``POST /api/generate-outfit`` endpoint.

    Attributes:
        image_base64: Reference photo as a data URL or bare base64.
        prompt: Free-text outfit description.
    """

    image_base64: str = Field(
        ...,
        alias="imageBase64",
        description="Reference photo as a data URL or bare base64 string.",
    )
    prompt: str = Field(
        ...,
        description="Description of the desired outfit.",
    )


class FrameOut(_CamelModel):
    angle: str = Field(..., description="Catalog angle name.")
    image_url: str = Field(..., alias="imageUrl", description="Data URL of the rendered frame.")


class WarningOut(BaseModel):
    kind: str = Field(..., description="Warning class, e.g. 'StorageWriteError'.")
    message: str = Field(..., description="User-facing description.")


class GenerateOutfitResponse(_CamelModel):
    """Response body of a successful ``POST /api/generate-outfit``."""

    design_id: str = Field(..., alias="designId")
    frames: list[FrameOut]
    warnings: list[WarningOut] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: PipelineResult) -> GenerateOutfitResponse:
        return cls(
            design_id=result.design_id or "",
            frames=[FrameOut(angle=f.angle, image_url=f.image_url) for f in result.frames],
            warnings=[warning_out(w) for w in result.warnings],
        )


def warning_out(warning: PipelineError) -> WarningOut:
    return WarningOut(kind=type(warning).__name__, message=warning.message)


class AngleOut(BaseModel):
    name: str
    instruction: str


class GalleryFrameOut(_CamelModel):
    angle: str
    storage_path: str = Field(..., alias="storagePath")
    url: str | None = None


class GalleryDesignOut(_CamelModel):
    id: str
    prompt: str
    created_at: str = Field(..., alias="createdAt")
    frames: list[GalleryFrameOut]

    @classmethod
    def from_design(cls, design: GalleryDesign) -> GalleryDesignOut:
        return cls(
            id=design.id,
            prompt=design.prompt,
            created_at=design.created_at,
            frames=[
                GalleryFrameOut(angle=f.angle, storage_path=f.storage_path, url=f.url)
                for f in design.frames
            ],
        )


class GalleryPage(_CamelModel):
    """Paginated gallery listing."""

    total: int
    page: int
    per_page: int = Field(..., alias="perPage")
    pages: int
    designs: list[GalleryDesignOut]

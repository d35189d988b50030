"""Turnwear — FastAPI Application.

This module is the single entry point for the web application.  It defines
the FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
- **Generation** is performed by :class:`~turnwear.core.pipeline.OutfitPipeline`,
  which renders the eight angles sequentially through the image gateway.
- **Persistence** goes to Supabase: frame images to Storage, design and
  frame rows to Postgres.
- **Identity** is a Supabase access token in the ``Authorization`` header.
- All collaborators are built once in the lifespan handler and stored on
  ``app.state``.

Endpoints
---------
========  ==============================  ==================================
Method    Path                            Purpose
========  ==============================  ==================================
GET       ``/health``                     Liveness probe
GET       ``/api/angles``                 The rotation catalog
POST      ``/api/generate-outfit``        Render and persist a turntable
GET       ``/api/gallery``                Paginated designs of the caller
GET       ``/api/gallery/{id}``           One design with signed frame URLs
DELETE    ``/api/gallery/{id}``           Delete a design and its frames
========  ==============================  ==================================

Usage
-----
CLI (installed entry point)::

    turnwear

Direct invocation::

    python -m turnwear.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from turnwear import __version__
from turnwear.api.auth import get_owner_id
from turnwear.api.models import (
    AngleOut,
    GalleryDesignOut,
    GalleryPage,
    GenerateOutfitRequest,
    GenerateOutfitResponse,
)
from turnwear.core.angles import angles
from turnwear.core.config import TurnwearConfig, config
from turnwear.core.design_records import DesignRecordManager
from turnwear.core.frame_store import FrameStoreWriter
from turnwear.core.gallery import DesignGallery
from turnwear.core.generation_client import GenerationClient
from turnwear.core.pipeline import OutfitPipeline
from turnwear.core.stores import IdentityProvider
from turnwear.core.supabase_client import get_supabase
from turnwear.core.supabase_store import (
    SupabaseBlobStore,
    SupabaseDesignStore,
    SupabaseIdentityProvider,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Collaborators shared by all requests."""

    pipeline: OutfitPipeline
    gallery: DesignGallery
    identity: IdentityProvider
    client: GenerationClient


def build_services(cfg: TurnwearConfig) -> Services:
    """Wire the Supabase adapters, gateway client, pipeline and gallery.

    Raises:
        ValueError: If Supabase credentials are missing.
    """
    supabase = get_supabase(cfg)
    design_store = SupabaseDesignStore(supabase, cfg)
    blob_store = SupabaseBlobStore(supabase, cfg)
    client = GenerationClient(cfg)

    pipeline = OutfitPipeline(
        cfg,
        client,
        DesignRecordManager(design_store),
        FrameStoreWriter(blob_store),
    )
    gallery = DesignGallery(design_store, blob_store, signed_url_ttl=cfg.signed_url_ttl)
    return Services(
        pipeline=pipeline,
        gallery=gallery,
        identity=SupabaseIdentityProvider(supabase),
        client=client,
    )


# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build shared services on startup and release them on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    services = build_services(config)
    app.state.pipeline = services.pipeline
    app.state.gallery = services.gallery
    app.state.identity = services.identity
    logger.info(f"Turnwear {__version__} ready (model: {config.generation_model})")

    yield

    services.client.close()
    logger.info("Generation client closed on shutdown.")


app = FastAPI(
    title="Turnwear",
    description="Renders a 360° outfit turntable from one photo and a text prompt.",
    version=__version__,
    lifespan=lifespan,
)

# The original frontend calls the API from a separate origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/health")
async def health() -> dict:
    """Liveness probe."""
    return {"status": "ok", "version": __version__}


@app.get("/api/angles", response_model=list[AngleOut])
async def list_angles() -> list[AngleOut]:
    """Return the rotation catalog in display order."""
    return [AngleOut(name=a.name, instruction=a.instruction) for a in angles()]


@app.post("/api/generate-outfit", response_model=GenerateOutfitResponse)
def generate_outfit(
    req: GenerateOutfitRequest,
    request: Request,
    owner_id: str = Depends(get_owner_id),
):
    """Render the eight-angle turntable for the caller.

    Declared as a plain ``def`` so FastAPI runs the blocking gateway calls
    in its threadpool.

    Returns:
        :class:`GenerateOutfitResponse` on success.  On failure, a JSON body
        ``{"detail", "designId", "framesCompleted"}`` with the error's status
        code (400, 402, 429, 502 or 503).
    """
    pipeline: OutfitPipeline = request.app.state.pipeline
    result = pipeline.generate_outfit(owner_id, req.image_base64, req.prompt)

    if result.error is not None:
        return JSONResponse(
            status_code=result.error.status_code,
            content={
                "detail": result.error.message,
                "designId": result.design_id,
                "framesCompleted": result.frames_completed,
            },
        )

    return GenerateOutfitResponse.from_result(result)


@app.get("/api/gallery", response_model=GalleryPage)
def get_gallery(
    request: Request,
    page: int = 1,
    per_page: int = 12,
    owner_id: str = Depends(get_owner_id),
) -> GalleryPage:
    """Return a page of the caller's designs, newest first.

    Args:
        page: Page number (1-indexed, clamped into range).
        per_page: Designs per page.
    """
    gallery: DesignGallery = request.app.state.gallery
    result = gallery.list_designs(owner_id, page=page, per_page=per_page)
    return GalleryPage(
        total=result["total"],
        page=result["page"],
        per_page=result["per_page"],
        pages=result["pages"],
        designs=[GalleryDesignOut.from_design(d) for d in result["designs"]],
    )


@app.get("/api/gallery/{design_id}", response_model=GalleryDesignOut)
def get_design(
    design_id: str,
    request: Request,
    owner_id: str = Depends(get_owner_id),
) -> GalleryDesignOut:
    """Return one design with signed frame URLs.

    Raises:
        HTTPException: 404 if the caller has no such design.
    """
    gallery: DesignGallery = request.app.state.gallery
    design = gallery.get_design(owner_id, design_id)
    if design is None:
        raise HTTPException(status_code=404, detail="Design not found")
    return GalleryDesignOut.from_design(design)


@app.delete("/api/gallery/{design_id}")
def delete_design(
    design_id: str,
    request: Request,
    owner_id: str = Depends(get_owner_id),
) -> dict:
    """Delete a design, its frame rows and its stored frames.

    Raises:
        HTTPException: 404 if the caller has no such design.
    """
    gallery: DesignGallery = request.app.state.gallery
    if not gallery.delete_design(owner_id, design_id):
        raise HTTPException(status_code=404, detail="Design not found")
    return {"success": True, "deleted": design_id}


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~turnwear.core.config.config`
    (``TURNWEAR_SERVER_HOST`` / ``TURNWEAR_SERVER_PORT``).

    This function is registered as the ``turnwear`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    uvicorn.run(
        "turnwear.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()

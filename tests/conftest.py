"""Shared pytest fixtures for Turnwear tests.

No test touches the network: the image gateway is an ``httpx.MockTransport``
and the durable store, blob store and identity provider are in-memory fakes.
"""

from __future__ import annotations

import base64
import io
import json
import shutil
import tempfile
import uuid
from collections.abc import Generator
from pathlib import Path

import httpx
import pytest
from PIL import Image

from turnwear.core.config import TurnwearConfig
from turnwear.core.design_records import DesignRecordManager
from turnwear.core.errors import Unauthorized
from turnwear.core.frame_store import FrameStoreWriter
from turnwear.core.generation_client import GenerationClient
from turnwear.core.pipeline import OutfitPipeline
from turnwear.core.stores import DesignRow, FrameRecord

GATEWAY_URL = "https://gateway.test/v1/chat/completions"


# ---------------------------------------------------------------------------
# Image helpers.
# ---------------------------------------------------------------------------


def make_image_bytes(image_format: str = "JPEG", color=(200, 30, 30)) -> bytes:
    """Encode a small solid-colour image."""
    buffer = io.BytesIO()
    Image.new("RGB", (32, 48), color=color).save(buffer, format=image_format)
    return buffer.getvalue()


def to_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def gateway_image_response(image_url: str) -> dict:
    """A chat-completions body in the shape the gateway returns."""
    return {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": "Here is the outfit.",
                    "images": [{"type": "image_url", "image_url": {"url": image_url}}],
                }
            }
        ]
    }


# ---------------------------------------------------------------------------
# Fakes.
# ---------------------------------------------------------------------------


class FakeGateway:
    """``httpx.MockTransport`` handler standing in for the image gateway.

    Every call succeeds with ``image_url`` unless ``failures`` maps the
    zero-based call index to an ``httpx.Response`` or an exception.
    """

    def __init__(self, image_url: str) -> None:
        self.image_url = image_url
        self.failures: dict[int, httpx.Response | Exception] = {}
        self.requests: list[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def payloads(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        index = len(self.requests)
        self.requests.append(request)

        failure = self.failures.get(index)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return failure
        return httpx.Response(200, json=gateway_image_response(self.image_url))


class FakeDesignStore:
    """In-memory design and frame tables."""

    def __init__(self) -> None:
        self.designs: dict[str, DesignRow] = {}
        self.insert_calls: list[list[FrameRecord]] = []
        self.fail_insert_design = False
        self.fail_insert_frames = False

    def insert_design(self, owner_id: str, prompt: str) -> str:
        if self.fail_insert_design:
            raise ConnectionError("database unavailable")
        design_id = str(uuid.uuid4())
        created_at = f"2026-10-17T12:00:{len(self.designs):02d}+00:00"
        self.designs[design_id] = DesignRow(
            id=design_id, owner_id=owner_id, prompt=prompt, created_at=created_at
        )
        return design_id

    def insert_frame_records(self, records: list[FrameRecord]) -> None:
        self.insert_calls.append(list(records))
        if self.fail_insert_frames:
            raise ConnectionError("database unavailable")
        for record in records:
            self.designs[record.design_id].frames.append(record)

    def list_designs(self, owner_id: str) -> list[DesignRow]:
        rows = [row for row in self.designs.values() if row.owner_id == owner_id]
        return sorted(rows, key=lambda row: row.created_at, reverse=True)

    def get_design(self, owner_id: str, design_id: str) -> DesignRow | None:
        row = self.designs.get(design_id)
        return row if row is not None and row.owner_id == owner_id else None

    def delete_design(self, owner_id: str, design_id: str) -> bool:
        if self.get_design(owner_id, design_id) is None:
            return False
        del self.designs[design_id]
        return True


class FakeBlobStore:
    """In-memory object storage with per-path upload failures."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.put_calls: list[str] = []
        self.fail_paths: set[str] = set()
        self.fail_all = False
        self.removed: list[str] = []

    def put_object(self, path: str, data: bytes, content_type: str) -> None:
        self.put_calls.append(path)
        if self.fail_all or path in self.fail_paths:
            raise OSError(f"upload failed for {path}")
        self.objects[path] = (data, content_type)

    def create_signed_url(self, path: str, expires_in: int) -> str:
        if path not in self.objects:
            raise FileNotFoundError(path)
        return f"https://storage.test/{path}?ttl={expires_in}"

    def remove_objects(self, paths: list[str]) -> None:
        for path in paths:
            self.objects.pop(path, None)
            self.removed.append(path)


class FakeIdentity:
    """Maps known tokens to owner ids."""

    def __init__(self, tokens: dict[str, str]) -> None:
        self.tokens = tokens

    def verify_identity(self, access_token: str) -> str:
        if access_token not in self.tokens:
            raise Unauthorized("Invalid or expired session, please sign in again.")
        return self.tokens[access_token]


# ---------------------------------------------------------------------------
# Fixtures.
# ---------------------------------------------------------------------------


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config() -> TurnwearConfig:
    """Configuration pointing at the fake gateway, isolated from .env."""
    return TurnwearConfig(
        _env_file=None,
        gateway_url=GATEWAY_URL,
        gateway_api_key="test-key",
        generation_model="test/image-model",
        per_angle_timeout=5.0,
        supabase_url=None,
        supabase_key=None,
    )


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes("JPEG")


@pytest.fixture
def reference_image(jpeg_bytes: bytes) -> str:
    """A valid JPEG reference image as a data URL."""
    return to_data_url(jpeg_bytes, "image/jpeg")


@pytest.fixture
def rendered_image_url() -> str:
    """A PNG data URL as the gateway would return it."""
    return to_data_url(make_image_bytes("PNG", color=(20, 20, 160)), "image/png")


@pytest.fixture
def gateway(rendered_image_url: str) -> FakeGateway:
    return FakeGateway(rendered_image_url)


@pytest.fixture
def generation_client(
    test_config: TurnwearConfig, gateway: FakeGateway
) -> Generator[GenerationClient, None, None]:
    http_client = httpx.Client(transport=httpx.MockTransport(gateway))
    client = GenerationClient(test_config, http_client=http_client)
    try:
        yield client
    finally:
        http_client.close()


@pytest.fixture
def design_store() -> FakeDesignStore:
    return FakeDesignStore()


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def pipeline(
    test_config: TurnwearConfig,
    generation_client: GenerationClient,
    design_store: FakeDesignStore,
    blob_store: FakeBlobStore,
) -> OutfitPipeline:
    return OutfitPipeline(
        test_config,
        generation_client,
        DesignRecordManager(design_store),
        FrameStoreWriter(blob_store),
    )


@pytest.fixture
def test_client(
    monkeypatch: pytest.MonkeyPatch,
    pipeline: OutfitPipeline,
    generation_client: GenerationClient,
    design_store: FakeDesignStore,
    blob_store: FakeBlobStore,
):
    """FastAPI TestClient whose lifespan wires the in-memory fakes.

    ``valid-token`` authenticates as ``user-1`` and ``other-token`` as
    ``user-2``.
    """
    from fastapi.testclient import TestClient

    import turnwear.api.main as main_module
    from turnwear.core.gallery import DesignGallery

    services = main_module.Services(
        pipeline=pipeline,
        gallery=DesignGallery(design_store, blob_store, signed_url_ttl=600),
        identity=FakeIdentity({"valid-token": "user-1", "other-token": "user-2"}),
        client=generation_client,
    )
    monkeypatch.setattr(main_module, "build_services", lambda cfg: services)

    with TestClient(main_module.app) as client:
        yield client

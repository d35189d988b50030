"""Tests for turnwear.core.pipeline — orchestration and state machine.

Covers:
- Full successful runs (eight frames, catalog order, all persisted).
- Abort at any angle: later angles never requested, earlier frames
  committed, caller gets the error only.
- Input validation and design creation short-circuits.
- Storage and metadata failures degrading to warnings.
"""

from __future__ import annotations

import httpx
import pytest

from turnwear.core.angles import ANGLE_NAMES
from turnwear.core.errors import (
    DesignCreationError,
    InvalidInputError,
    MetadataCommitError,
    NoImageReturned,
    PaymentRequired,
    RateLimited,
    StorageWriteError,
    UpstreamError,
)
from turnwear.core.pipeline import PipelineState, _Run


class TestSuccessfulRun:
    def test_eight_frames_in_catalog_order(self, pipeline, reference_image):
        result = pipeline.generate_outfit("user-1", reference_image, "red formal suit")

        assert result.ok is True
        assert result.state is PipelineState.COMPLETED
        assert [f.angle for f in result.frames] == [
            "front",
            "45-left",
            "left",
            "135-left",
            "back",
            "135-right",
            "right",
            "45-right",
        ]
        assert result.frames_completed == 8
        assert result.warnings == []
        assert result.error is None

    def test_one_gateway_call_per_angle(self, pipeline, gateway, reference_image):
        pipeline.generate_outfit("user-1", reference_image, "red formal suit")

        assert gateway.call_count == 8
        texts = [p["messages"][0]["content"][0]["text"] for p in gateway.payloads()]
        assert all("red formal suit" in text for text in texts)
        # Each request names its own angle's orientation.
        assert "facing directly forward" in texts[0]
        assert "complete back view" in texts[4]

    def test_all_frames_stored_and_committed(self, pipeline, design_store, blob_store, reference_image):
        result = pipeline.generate_outfit("user-1", reference_image, "red formal suit")

        design = design_store.designs[result.design_id]
        assert design.owner_id == "user-1"
        assert design.prompt == "red formal suit"
        assert [r.angle for r in design.frames] == list(ANGLE_NAMES)
        assert len(design_store.insert_calls) == 1
        assert sorted(blob_store.objects) == sorted(
            f"user-1/{result.design_id}/{name}.png" for name in ANGLE_NAMES
        )

    def test_prompt_stored_stripped(self, pipeline, design_store, reference_image):
        result = pipeline.generate_outfit("user-1", reference_image, "  linen summer dress  ")
        assert design_store.designs[result.design_id].prompt == "linen summer dress"

    def test_each_run_creates_fresh_design(self, pipeline, reference_image):
        first = pipeline.generate_outfit("user-1", reference_image, "suit")
        second = pipeline.generate_outfit("user-1", reference_image, "suit")
        assert first.design_id != second.design_id


class TestAbort:
    def test_rate_limited_at_back(self, pipeline, gateway, design_store, reference_image):
        gateway.failures[4] = httpx.Response(429, json={"error": "rate limited"})

        result = pipeline.generate_outfit("user-1", reference_image, "red formal suit")

        assert isinstance(result.error, RateLimited)
        assert result.error.angle == "back"
        assert result.state is PipelineState.ABORTED
        assert result.ok is False
        # Caller gets the error, not a partial frame list.
        assert result.frames == []
        assert result.frames_completed == 4
        # No call for angles 6-8.
        assert gateway.call_count == 5
        # Frames 1-4 were committed.
        committed = design_store.designs[result.design_id].frames
        assert [r.angle for r in committed] == ["front", "45-left", "left", "135-left"]

    @pytest.mark.parametrize("failing_index", range(8))
    def test_failure_at_any_angle(self, pipeline, gateway, design_store, reference_image, failing_index):
        gateway.failures[failing_index] = httpx.Response(500, text="boom")

        result = pipeline.generate_outfit("user-1", reference_image, "suit")

        assert isinstance(result.error, UpstreamError)
        assert gateway.call_count == failing_index + 1
        assert result.frames_completed == failing_index
        assert len(design_store.designs[result.design_id].frames) == failing_index
        assert len(design_store.insert_calls) == (1 if failing_index else 0)

    @pytest.mark.parametrize(
        "response, error_cls",
        [
            (httpx.Response(402, json={}), PaymentRequired),
            (httpx.Response(502, text="bad gateway"), UpstreamError),
            (httpx.Response(200, json={"choices": []}), NoImageReturned),
        ],
    )
    def test_error_classes_propagate(self, pipeline, gateway, reference_image, response, error_cls):
        gateway.failures[2] = response
        result = pipeline.generate_outfit("user-1", reference_image, "suit")
        assert isinstance(result.error, error_cls)
        assert result.state is PipelineState.ABORTED

    def test_first_angle_failure_leaves_empty_design(self, pipeline, gateway, design_store, reference_image):
        gateway.failures[0] = httpx.Response(429)
        result = pipeline.generate_outfit("user-1", reference_image, "suit")

        assert result.design_id in design_store.designs
        assert design_store.designs[result.design_id].frames == []


class TestShortCircuit:
    def test_empty_prompt_no_network(self, pipeline, gateway, design_store, reference_image):
        result = pipeline.generate_outfit("user-1", reference_image, "")

        assert isinstance(result.error, InvalidInputError)
        assert result.state is PipelineState.IDLE
        assert result.design_id is None
        assert gateway.call_count == 0
        assert design_store.designs == {}

    def test_invalid_image_no_network(self, pipeline, gateway, design_store):
        result = pipeline.generate_outfit("user-1", "data:image/png;base64,AAAA", "suit")

        assert isinstance(result.error, InvalidInputError)
        assert gateway.call_count == 0
        assert design_store.designs == {}

    def test_oversized_image_rejected(self, pipeline, gateway, reference_image, test_config):
        pipeline._config = test_config.model_copy(update={"max_reference_image_bytes": 10})
        result = pipeline.generate_outfit("user-1", reference_image, "suit")

        assert isinstance(result.error, InvalidInputError)
        assert gateway.call_count == 0

    def test_design_creation_failure_no_generation(self, pipeline, gateway, design_store, reference_image):
        design_store.fail_insert_design = True

        result = pipeline.generate_outfit("user-1", reference_image, "suit")

        assert isinstance(result.error, DesignCreationError)
        assert result.state is PipelineState.IDLE
        assert gateway.call_count == 0
        assert design_store.insert_calls == []


class TestWarnings:
    def test_storage_failure_does_not_abort(self, pipeline, blob_store, design_store, reference_image):
        # Fail only the "left" upload; the path is known once the design id is.
        original_put = blob_store.put_object

        def put_object(path, data, content_type):
            if path.endswith("/left.png"):
                raise OSError("disk full")
            original_put(path, data, content_type)

        blob_store.put_object = put_object

        result = pipeline.generate_outfit("user-1", reference_image, "suit")

        assert result.ok is True
        assert len(result.frames) == 8
        assert [type(w) for w in result.warnings] == [StorageWriteError]
        assert result.warnings[0].angle == "left"
        left = next(f for f in result.frames if f.angle == "left")
        assert left.persisted is False
        assert left.image_url
        committed = [r.angle for r in design_store.designs[result.design_id].frames]
        assert "left" not in committed
        assert len(committed) == 7

    def test_metadata_failure_does_not_change_outcome(self, pipeline, design_store, reference_image):
        design_store.fail_insert_frames = True

        result = pipeline.generate_outfit("user-1", reference_image, "suit")

        assert result.ok is True
        assert len(result.frames) == 8
        assert [type(w) for w in result.warnings] == [MetadataCommitError]
        assert len(design_store.insert_calls) == 1

    def test_metadata_failure_on_abort_keeps_generation_error(
        self, pipeline, gateway, design_store, reference_image
    ):
        gateway.failures[3] = httpx.Response(429)
        design_store.fail_insert_frames = True

        result = pipeline.generate_outfit("user-1", reference_image, "suit")

        assert isinstance(result.error, RateLimited)
        assert [type(w) for w in result.warnings] == [MetadataCommitError]


class TestStateMachine:
    def test_legal_path(self):
        run = _Run()
        run.transition(PipelineState.DESIGN_CREATED)
        for index in range(8):
            run.transition(PipelineState.GENERATING, index)
        run.transition(PipelineState.COMPLETED)
        assert run.state is PipelineState.COMPLETED

    @pytest.mark.parametrize(
        "path",
        [
            [PipelineState.GENERATING],
            [PipelineState.COMPLETED],
            [PipelineState.DESIGN_CREATED, PipelineState.COMPLETED],
            [PipelineState.DESIGN_CREATED, PipelineState.GENERATING, PipelineState.ABORTED,
             PipelineState.GENERATING],
        ],
    )
    def test_illegal_transitions_raise(self, path):
        run = _Run()
        with pytest.raises(RuntimeError, match="Illegal pipeline transition"):
            for state in path:
                run.transition(state, 0 if state is PipelineState.GENERATING else None)

    def test_terminal_states_have_no_exits(self):
        run = _Run()
        run.transition(PipelineState.DESIGN_CREATED)
        run.transition(PipelineState.GENERATING, 0)
        run.transition(PipelineState.ABORTED)
        for state in PipelineState:
            with pytest.raises(RuntimeError):
                run.transition(state)

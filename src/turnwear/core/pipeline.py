"""Outfit turntable generation pipeline.

:class:`OutfitPipeline` turns one reference photo and one outfit prompt into
eight frames, one per catalog angle, persisting each as it goes.

State Machine
-------------
Each invocation walks this machine exactly once::

    IDLE ──create_design──▶ DESIGN_CREATED ──▶ GENERATING(0) ──▶ ... ──▶ GENERATING(7)
     │                                              │                        │
     └─ invalid input / design                      └── generation error ──▶ ABORTED
        creation failure (stays IDLE)                                        │
                                                             8th success ──▶ COMPLETED

- Angles run strictly in catalog order, one request in flight at a time.
- A generation error for angle *k* stops the run; angles after *k* are never
  requested.
- Staged frame records are committed once after the loop ends, on both the
  COMPLETED and the ABORTED path.
- An ABORTED run reports the error only; the frames rendered before the
  failure are persisted but not returned.
- Storage and metadata failures are warnings on the result, not errors.

Usage
-----
::

    pipeline = OutfitPipeline(config, client, DesignRecordManager(store), FrameStoreWriter(blobs))
    result = pipeline.generate_outfit(owner_id, image_b64, "red formal suit")
    if result.ok:
        frames = result.frames
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from turnwear.core.angles import ANGLES, AngleDescriptor
from turnwear.core.config import TurnwearConfig
from turnwear.core.design_records import DesignRecordManager
from turnwear.core.errors import GenerationError, PipelineError
from turnwear.core.frame_store import FrameStoreWriter, GeneratedFrame
from turnwear.core.generation_client import GenerationClient
from turnwear.core.images import ImagePayload
from turnwear.core.prompt_builder import build_request, prepare_reference_image, validate_prompt
from turnwear.core.stores import FrameRecord

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Lifecycle states of one pipeline invocation."""

    IDLE = "idle"
    DESIGN_CREATED = "design_created"
    GENERATING = "generating"
    COMPLETED = "completed"
    ABORTED = "aborted"


_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.DESIGN_CREATED}),
    PipelineState.DESIGN_CREATED: frozenset({PipelineState.GENERATING}),
    PipelineState.GENERATING: frozenset(
        {PipelineState.GENERATING, PipelineState.COMPLETED, PipelineState.ABORTED}
    ),
    PipelineState.COMPLETED: frozenset(),
    PipelineState.ABORTED: frozenset(),
}


@dataclass
class PipelineResult:
    """Outcome of one :meth:`OutfitPipeline.generate_outfit` call.

    Attributes:
        state: Terminal state reached (``IDLE`` when nothing was attempted).
        design_id: Id of the design row, if one was created.
        frames: All frames in catalog order on success; empty otherwise.
        frames_completed: Number of angles rendered before the run ended.
        warnings: Non-fatal storage and metadata failures.
        error: The fatal error, or ``None`` on success.
    """

    state: PipelineState
    design_id: str | None = None
    frames: list[GeneratedFrame] = field(default_factory=list)
    frames_completed: int = 0
    warnings: list[PipelineError] = field(default_factory=list)
    error: PipelineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.state is PipelineState.COMPLETED


class _Run:
    """Mutable state of a single invocation.  Never shared between calls."""

    def __init__(self) -> None:
        self.state = PipelineState.IDLE
        self.angle_index: int | None = None
        self.design_id: str | None = None
        self.frames: list[GeneratedFrame] = []
        self.staged: list[FrameRecord] = []
        self.warnings: list[PipelineError] = []
        self.error: PipelineError | None = None

    def transition(self, new_state: PipelineState, angle_index: int | None = None) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {new_state.value}")

        self.state = new_state
        self.angle_index = angle_index
        label = f"{new_state.value}({angle_index})" if angle_index is not None else new_state.value
        logger.debug(f"Design {self.design_id}: -> {label}")

    def result(self) -> PipelineResult:
        completed = self.state is PipelineState.COMPLETED
        return PipelineResult(
            state=self.state,
            design_id=self.design_id,
            frames=list(self.frames) if completed else [],
            frames_completed=len(self.frames),
            warnings=list(self.warnings),
            error=self.error,
        )


class OutfitPipeline:
    """Sequences design creation, per-angle generation, storage and commit.

    The pipeline holds no per-request state; one instance can serve
    concurrent requests as long as its collaborators can.

    Attributes:
        _config (TurnwearConfig):
            Supplies ``max_reference_image_bytes``.
        _client (GenerationClient):
            Renders one angle per call.
        _records (DesignRecordManager):
            Creates the design row and commits frame rows.
        _writer (FrameStoreWriter):
            Uploads each rendered frame.
        _catalog (Sequence[AngleDescriptor]):
            Angles to render, in order.
    """

    def __init__(
        self,
        config: TurnwearConfig,
        client: GenerationClient,
        records: DesignRecordManager,
        writer: FrameStoreWriter,
        catalog: Sequence[AngleDescriptor] = ANGLES,
    ) -> None:
        self._config = config
        self._client = client
        self._records = records
        self._writer = writer
        self._catalog = tuple(catalog)

    def generate_outfit(self, owner_id: str, reference_image: str, prompt: str) -> PipelineResult:
        """Render and persist a full turntable.

        Args:
            owner_id: Verified identity of the requesting user.
            reference_image: Data URL or bare base64 of the source photo.
            prompt: Free-text outfit description.

        Returns:
            A :class:`PipelineResult`.  ``result.ok`` is ``True`` only when
            every angle rendered; otherwise ``result.error`` holds the
            cause.  Errors are returned, not raised.
        """
        run = _Run()

        # --- Validate before touching any collaborator ----------------------
        try:
            user_prompt = validate_prompt(prompt)
            reference = prepare_reference_image(
                reference_image, max_bytes=self._config.max_reference_image_bytes
            )
        except PipelineError as e:
            logger.info(f"Rejected outfit request from {owner_id}: {e.message}")
            run.error = e
            return run.result()

        # --- IDLE -> DESIGN_CREATED -----------------------------------------
        try:
            run.design_id = self._records.create_design(owner_id, user_prompt)
        except PipelineError as e:
            run.error = e
            return run.result()
        run.transition(PipelineState.DESIGN_CREATED)

        logger.info(f"Generating {len(self._catalog)}-angle outfit rotation for design {run.design_id}")
        started = time.monotonic()

        try:
            self._generate_angles(run, owner_id, user_prompt, reference)
        finally:
            # Best-effort persistence of whatever was staged, on every path.
            warning = self._records.commit_frames(run.design_id, run.staged)
            if warning is not None:
                run.warnings.append(warning)

        elapsed = time.monotonic() - started
        if run.state is PipelineState.COMPLETED:
            logger.info(
                f"Design {run.design_id} completed: {len(run.frames)} frames in {elapsed:.1f}s "
                f"({len(run.warnings)} warnings)"
            )
        else:
            logger.warning(
                f"Design {run.design_id} aborted after {len(run.frames)} frames in {elapsed:.1f}s: "
                f"{run.error}"
            )
        return run.result()

    def _generate_angles(
        self, run: _Run, owner_id: str, user_prompt: str, reference: ImagePayload
    ) -> None:
        """Drive GENERATING(0..n-1) and land in COMPLETED or ABORTED."""
        for index, angle in enumerate(self._catalog):
            run.transition(PipelineState.GENERATING, index)
            logger.info(f"Generating {angle.name} view...")

            request = build_request(user_prompt, reference, angle)
            try:
                image_url = self._client.generate(request)
                outcome = self._writer.write(owner_id, run.design_id, angle, image_url)
            except GenerationError as e:
                logger.error(f"Generation failed at {angle.name} ({index + 1}/{len(self._catalog)}): {e}")
                run.error = e
                run.transition(PipelineState.ABORTED)
                return

            run.frames.append(outcome.frame)
            if outcome.record is not None:
                run.staged.append(outcome.record)
            if outcome.warning is not None:
                run.warnings.append(outcome.warning)

            logger.info(f"Successfully generated {angle.name} view")

        run.transition(PipelineState.COMPLETED)

"""Core functionality for outfit turntable generation.

This package holds the generation-and-persistence pipeline and the adapters
it talks through:

- **angles**: The fixed eight-angle rotation catalog
- **prompt_builder**: Per-angle instruction and request compilation
- **generation_client**: HTTP client for the image gateway, with failure
  classification
- **frame_store**: Decoding and upload of rendered frames
- **design_records**: Design creation and frame metadata commit
- **pipeline**: The orchestrator and its state machine
- **gallery**: Listing, fetching and deleting stored designs
- **supabase_store**: Supabase-backed store, blob and identity adapters
- **config**: Configuration management using Pydantic Settings

Usage Example
-------------
::

    from turnwear.core import OutfitPipeline, config
    from turnwear.core.design_records import DesignRecordManager
    from turnwear.core.frame_store import FrameStoreWriter
    from turnwear.core.generation_client import GenerationClient

    with GenerationClient(config) as client:
        pipeline = OutfitPipeline(
            config,
            client,
            DesignRecordManager(design_store),
            FrameStoreWriter(blob_store),
        )
        result = pipeline.generate_outfit(user_id, image_b64, "red formal suit")
"""

from turnwear.core.angles import ANGLES, AngleDescriptor, angles
from turnwear.core.config import TurnwearConfig, config
from turnwear.core.pipeline import OutfitPipeline, PipelineResult, PipelineState

__all__ = [
    "ANGLES",
    "AngleDescriptor",
    "angles",
    "OutfitPipeline",
    "PipelineResult",
    "PipelineState",
    "TurnwearConfig",
    "config",
]

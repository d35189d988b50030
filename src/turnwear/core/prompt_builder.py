"""Per-angle generation request compilation.

Each angle of a turntable is rendered from the same reference photo with an
instruction that names the desired outfit, pins the person's body, names
the camera orientation, and asks for photorealism.  The instruction is
composed from four sections:

    [Transform directive naming the user's outfit prompt]

    [Fixed: identity-preservation constraint]

    [Angle instruction from the catalog]

    [Fixed: photorealism / lighting-consistency directive]

Sections are joined with single spaces so the model reads a single
paragraph, matching what the gateway's image models respond to best.

Usage
-----
::

    reference = prepare_reference_image(image_b64)
    request = build_request("red formal suit", reference, ANGLES[0])
    payload = request.to_payload(model="google/gemini-2.5-flash-image-preview")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from turnwear.core.angles import AngleDescriptor
from turnwear.core.errors import InvalidInputError
from turnwear.core.images import ImageDecodeError, ImagePayload, decode_reference_image

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Fixed instruction sections.
# Constants rather than configuration: they are what keeps the eight renders
# of one design recognisably the same person.
# ---------------------------------------------------------------------------

_IDENTITY_CONSTRAINT = (
    "Keep the person's body shape, height, and proportions exactly the same. "
    "Only change the clothing to match the description."
)

_REALISM_DIRECTIVE = (
    "Maintain realistic lighting, textures, and shadows. "
    "Make it photorealistic and consistent with other angles."
)

DEFAULT_MODALITIES: tuple[str, ...] = ("image", "text")


@dataclass(frozen=True)
class GenerationRequest:
    """One angle's generation request.

    Attributes:
        angle: Name of the angle this request renders.
        instruction: Fully composed instruction text.
        reference_image: The decoded reference photo.
        modalities: Output modalities requested from the model.
    """

    angle: str
    instruction: str
    reference_image: ImagePayload
    modalities: tuple[str, ...] = DEFAULT_MODALITIES

    def to_payload(self, model: str) -> dict[str, Any]:
        """Build the chat-completions JSON body for the gateway."""
        return {
            "model": model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.instruction},
                        {
                            "type": "image_url",
                            "image_url": {"url": self.reference_image.to_data_url()},
                        },
                    ],
                }
            ],
            "modalities": list(self.modalities),
        }


def validate_prompt(user_prompt: str | None) -> str:
    """Return the stripped prompt or raise :class:`InvalidInputError`."""
    if user_prompt is None or not user_prompt.strip():
        raise InvalidInputError("Please describe the outfit you want to see.")
    return user_prompt.strip()


def prepare_reference_image(
    reference_image: str | None, *, max_bytes: int | None = None
) -> ImagePayload:
    """Decode and validate the caller's reference image once per run.

    Args:
        reference_image: Data URL or bare base64 string.
        max_bytes: Optional upper bound on the decoded size.

    Raises:
        InvalidInputError: If the image is missing, not decodable, or too
            large.
    """
    try:
        payload = decode_reference_image(reference_image or "")
    except ImageDecodeError as e:
        logger.info(f"Rejected reference image: {e}")
        raise InvalidInputError("Please upload a valid image file.") from e

    if max_bytes is not None and len(payload.data) > max_bytes:
        raise InvalidInputError(
            f"Image is too large ({len(payload.data)} bytes, limit {max_bytes})."
        )
    return payload


def build_instruction(user_prompt: str, angle: AngleDescriptor) -> str:
    """Compose the instruction text for one angle.

    Args:
        user_prompt: The user's outfit description (already validated).
        angle: Catalog entry whose ``instruction`` is embedded verbatim.

    Returns:
        The instruction paragraph sent to the model.
    """
    parts = [
        f"Transform this person's outfit to: {user_prompt}.",
        _IDENTITY_CONSTRAINT,
        f"Show the person {angle.instruction}.",
        _REALISM_DIRECTIVE,
    ]
    return " ".join(parts)


def build_request(
    user_prompt: str, reference_image: ImagePayload, angle: AngleDescriptor
) -> GenerationRequest:
    """Build the :class:`GenerationRequest` for one angle.

    Raises:
        InvalidInputError: If the prompt is empty or the reference image has
            no bytes.
    """
    prompt = validate_prompt(user_prompt)
    if not reference_image.data:
        raise InvalidInputError("Please upload a valid image file.")

    return GenerationRequest(
        angle=angle.name,
        instruction=build_instruction(prompt, angle),
        reference_image=reference_image,
    )

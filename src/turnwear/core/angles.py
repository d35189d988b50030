"""The fixed rotation sequence of a turntable.

A turntable is eight renders of the same person, one per 45° step around
the body.  The order below is the order frames are generated, committed and
displayed; the ``name`` doubles as the display label and the file name
stem in storage.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AngleDescriptor:
    """One camera/body orientation of the turntable.

    Attributes:
        name: Stable identifier (``"front"``, ``"45-left"``, ...).
        instruction: Fragment describing the orientation, embedded verbatim
            into the generation prompt.
    """

    name: str
    instruction: str


ANGLES: tuple[AngleDescriptor, ...] = (
    AngleDescriptor("front", "facing directly forward"),
    AngleDescriptor("45-left", "rotated 45 degrees to the left, showing left side profile"),
    AngleDescriptor("left", "complete left side profile view"),
    AngleDescriptor("135-left", "rotated 135 degrees to the left, showing left back"),
    AngleDescriptor("back", "complete back view"),
    AngleDescriptor("135-right", "rotated 135 degrees to the right, showing right back"),
    AngleDescriptor("right", "complete right side profile view"),
    AngleDescriptor("45-right", "rotated 45 degrees to the right, showing right side profile"),
)

ANGLE_NAMES: tuple[str, ...] = tuple(angle.name for angle in ANGLES)


def angles() -> tuple[AngleDescriptor, ...]:
    """Return the ordered angle catalog."""
    return ANGLES


def catalog_index(name: str) -> int:
    """Return the catalog position of an angle name.

    Unknown names sort after every known angle so that stray rows in the
    frames table never reorder a turntable.
    """
    try:
        return ANGLE_NAMES.index(name)
    except ValueError:
        return len(ANGLE_NAMES)

"""Turnwear - 360° outfit turntable generation and persistence."""

__version__ = "0.1.0"

from turnwear.core.angles import ANGLES, AngleDescriptor, angles
from turnwear.core.config import TurnwearConfig, config

__all__ = [
    "ANGLES",
    "AngleDescriptor",
    "angles",
    "TurnwearConfig",
    "config",
]

"""
Frame Source Domain Models

Kinds of visual input the collector can sample from.
"""

from dataclasses import dataclass
from enum import Enum


class SourceKind(Enum):
    """The three media sources a session can switch between."""
    CAMERA = "camera"
    IMAGE = "image"
    VIDEO = "video"


@dataclass(frozen=True)
class SourceStatus:
    """
    Snapshot of the active source.

    Attributes:
        kind: Which source is active
        width: Native frame width in pixels (fixed per activation)
        height: Native frame height in pixels (fixed per activation)
        mirrored: Whether the rendered output is flipped horizontally
        paused: Whether continuous sampling is suspended (video only)
    """
    kind: SourceKind
    width: int
    height: int
    mirrored: bool = False
    paused: bool = False

"""Provider interfaces; the Gemini adapters live in ``gemini_client``"""

from .base import (
    DeckWriter, ImageProvider, ImageRefiner, LayoutVisionProvider,
    OperationStatus, VideoProvider,
)

__all__ = [
    'DeckWriter',
    'ImageProvider',
    'ImageRefiner',
    'LayoutVisionProvider',
    'OperationStatus',
    'VideoProvider',
]

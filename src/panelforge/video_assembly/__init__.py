"""
Video Assembly

Stitches panels into strips and grids, and turns still cards into animated
clips:
- provider video generation with a cached raw clip
- still-to-animation crossfade and fade to black
- optional background music
"""

from .card_animator import CardAnimator
from .compositor import MediaCompositor
from .stitcher import PanelStitcher
from .video_models import AnimationRequest, AnimationResult

__all__ = [
    'CardAnimator',
    'MediaCompositor',
    'PanelStitcher',
    'AnimationRequest',
    'AnimationResult',
]

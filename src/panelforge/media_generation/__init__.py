"""
Media Generation

Image synthesis with caching and retries, auto-layout text extraction,
image refinement and style sheets. The batch entry points live in
``media_pipeline``.
"""

from .artifact_cache import ArtifactCache
from .auto_layout import AutoLayoutPipeline
from .image_generator import ImageGenerator
from .layout_extractor import Canvas, LayoutExtractor, refine_text_layout
from .media_models import (
    BatchReport, CardRequest, Job, PanelRequest, SlideRequest, SlideSpec,
    StitchLayout, TextLayoutElement, VideoCardsReport,
)
from .style_sheet import StyleSheet

__all__ = [
    'ArtifactCache',
    'AutoLayoutPipeline',
    'ImageGenerator',
    'Canvas',
    'LayoutExtractor',
    'refine_text_layout',
    'BatchReport',
    'CardRequest',
    'Job',
    'PanelRequest',
    'SlideRequest',
    'SlideSpec',
    'StitchLayout',
    'TextLayoutElement',
    'VideoCardsReport',
    'StyleSheet',
]

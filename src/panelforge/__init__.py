"""
panelforge

Batch generative-media orchestration: slide decks, image cards, animated
video cards, comic strips and infographics built from prompt lists, with
cached, retried and bounded-concurrency calls to the image, vision and video
providers.
"""

from .media_generation.media_pipeline import MediaPipeline
from .utils.config import Config
from .utils.logger import setup_logging

__version__ = "0.1.0"

__all__ = [
    'MediaPipeline',
    'Config',
    'setup_logging',
]

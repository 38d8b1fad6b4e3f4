from .config import Config
from .errors import (
    CompositorError, ConfigurationError, LayoutExtractionError,
    RefinementError, RefinementTimeout, VideoGenerationError,
)
from .logger import LoggerMixin, setup_logging

__all__ = [
    'Config',
    'CompositorError',
    'ConfigurationError',
    'LayoutExtractionError',
    'RefinementError',
    'RefinementTimeout',
    'VideoGenerationError',
    'LoggerMixin',
    'setup_logging',
]

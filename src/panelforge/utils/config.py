"""Configuration management for the panelforge engine"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from .errors import ConfigurationError

# Load .env.local once at import
load_dotenv(dotenv_path=os.path.join(os.getcwd(), ".env.local"))


def resolve_key(value: Optional[str]) -> Optional[str]:
    """Resolve a literal key or an ``env:VAR_NAME`` reference"""
    if not value:
        return None
    if value.startswith("env:"):
        return os.getenv(value[4:])
    return value


class PathsConfig(BaseModel):
    """Storage paths configuration"""
    output: str = "./output"
    styles: str = "./styles"
    logs: str = "./logs"


class GenerationConfig(BaseModel):
    gen_model: str = "gemini-3-pro-image-preview"
    vision_model: str = "gemini-2.5-flash"
    video_model: str = "veo-3.1-generate-preview"
    image_size: Optional[str] = None  # "1K" | "2K" | "4K"
    ref_image_size: Optional[str] = None
    slide_aspect_ratio: str = "16:9"
    card_aspect_ratio: str = "9:16"
    comic_image_size: str = "2K"
    infographic_image_size: str = "2K"
    infographic_aspect_ratio: str = "16:9"
    slide_concurrency: int = Field(default=5, ge=1)
    card_concurrency: int = Field(default=5, ge=1)
    video_card_concurrency: int = Field(default=3, ge=1)
    comic_concurrency: int = Field(default=3, ge=1)
    infographic_concurrency: int = Field(default=3, ge=1)


class CacheConfig(BaseModel):
    # Anything at or below this is treated as a truncated or error placeholder
    min_bytes: int = Field(default=10000, ge=0)


class RetryConfig(BaseModel):
    max_attempts: int = Field(default=3, ge=1)
    backoff_seconds: float = Field(default=15.0, ge=0.0)


class LayoutConfig(BaseModel):
    """Logical canvas used for text overlays, in inches"""
    canvas_width: float = Field(default=13.333, gt=0)
    canvas_height: float = Field(default=7.5, gt=0)
    margin: float = Field(default=0.3, ge=0)


class VideoConfig(BaseModel):
    still_duration: float = Field(default=2.0, gt=0)
    crossfade_duration: float = Field(default=1.0, gt=0)
    fade_out_duration: float = Field(default=1.5, ge=0)
    music_volume: float = Field(default=0.3, ge=0.0, le=1.0)
    music_fade_in: float = Field(default=2.0, ge=0)
    poll_interval: float = Field(default=10.0, ge=0)
    fps: int = Field(default=24, ge=1)
    crf: int = Field(default=20, ge=0, le=51)
    preset: str = "medium"
    audio_bitrate: str = "128k"

    @field_validator("crossfade_duration")
    @classmethod
    def _crossfade_within_still(cls, v, info):
        still = info.data.get("still_duration")
        if still is not None and v > still:
            raise ValueError("crossfade_duration cannot exceed still_duration")
        return v


class StitchConfig(BaseModel):
    comic_gutter: int = Field(default=20, ge=0)
    infographic_gutter: int = Field(default=0, ge=0)


class RefineConfig(BaseModel):
    model: str = "qwen-image-edit-max-2026-01-16"
    submit_url: str = "https://dashscope.aliyuncs.com/api/v1/services/aigc/image2image/image-synthesis"
    task_url: str = "https://dashscope.aliyuncs.com/api/v1/tasks/{task_id}"
    poll_interval: float = Field(default=5.0, ge=0)
    max_polls: int = Field(default=60, ge=1)
    request_timeout: float = Field(default=60.0, gt=0)


class ApiKeysConfig(BaseModel):
    gemini: Optional[str] = "env:GEMINI_API_KEY"
    dashscope: Optional[str] = "env:DASHSCOPE_API_KEY"

    def require(self, name: str) -> str:
        """Return a resolved key or fail loudly"""
        key = resolve_key(getattr(self, name))
        if not key:
            raise ConfigurationError(
                f"{name} API key required. Set api_keys.{name} in the config "
                f"or the {name.upper()}_API_KEY environment variable"
            )
        return key

    def optional(self, name: str) -> Optional[str]:
        return resolve_key(getattr(self, name))


class Config(BaseModel):
    paths: PathsConfig = PathsConfig()
    generation: GenerationConfig = GenerationConfig()
    cache: CacheConfig = CacheConfig()
    retry: RetryConfig = RetryConfig()
    layout: LayoutConfig = LayoutConfig()
    video: VideoConfig = VideoConfig()
    stitch: StitchConfig = StitchConfig()
    refine: RefineConfig = RefineConfig()
    api_keys: ApiKeysConfig = ApiKeysConfig()
    logging: Dict[str, Any] = {}

    @classmethod
    def load(cls, config_path: str) -> "Config":
        """Load configuration from YAML file"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def save(self, config_path: str):
        """Save configuration to YAML file"""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.model_dump(), f, default_flow_style=False)

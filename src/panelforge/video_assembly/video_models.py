"""
Video Assembly Data Models

Pydantic models for the stitch and card-animation pipelines.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


class OperationState(str, Enum):
    """Lifecycle of a long-running provider operation"""
    SUBMITTED = "submitted"
    POLLING = "polling"
    DONE = "done"
    FAILED = "failed"


class ClipProbe(BaseModel):
    duration: float
    width: int
    height: int


class AnimationRequest(BaseModel):
    """Turn one still image into an animated clip with optional music"""
    image_path: Path
    output_path: Path
    anim_prompt: str
    bgm_path: Optional[Path] = None
    still_duration: float = Field(default=2.0, gt=0)
    crossfade_duration: float = Field(default=1.0, gt=0)
    fade_out_duration: float = Field(default=1.5, ge=0)
    music_volume: float = Field(default=0.3, ge=0.0, le=1.0)
    music_fade_in: float = Field(default=2.0, ge=0)
    label: Optional[str] = None

    @property
    def base_name(self) -> str:
        return self.image_path.stem

    @property
    def tag(self) -> str:
        return self.label or self.base_name


class VideoAssemblyState(BaseModel):
    """On-disk artifacts of one animation run, keyed by the source image's base name"""
    raw_clip: Path
    still_clip: Path
    anim_clip: Path
    silent_composite: Path
    final: Path

    @classmethod
    def for_request(cls, request: AnimationRequest) -> "VideoAssemblyState":
        directory = request.output_path.parent
        base = request.base_name
        return cls(
            raw_clip=directory / f"{base}-raw.mp4",
            still_clip=directory / f"{base}-still.mp4",
            anim_clip=directory / f"{base}-anim.mp4",
            silent_composite=directory / f"{base}-noaudio.mp4",
            final=request.output_path,
        )

    @property
    def intermediates(self) -> List[Path]:
        """Everything removed once the final artifact exists; the raw clip is kept"""
        return [self.still_clip, self.anim_clip, self.silent_composite]


class AnimationResult(BaseModel):
    output_path: Path
    raw_clip: Path
    raw_duration: float
    total_duration: float
    width: int
    height: int
    used_cached_raw: bool = False
    has_music: bool = False

"""
Card Animator

Turns one still card into an animated clip with optional background music.
The provider-generated raw clip is the checkpoint: when it is already on disk
the provider is not called again, and every other intermediate is removed
once the final video exists.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from .compositor import Compositor
from .video_effects import (
    EncodeProfile, crossfade_command, music_mix_command,
    reencode_command, still_clip_command,
)
from .video_models import (
    AnimationRequest, AnimationResult, OperationState, VideoAssemblyState,
)
from ..media_generation.artifact_cache import ArtifactCache
from ..providers.base import VideoProvider
from ..utils.errors import VideoGenerationError

Sleep = Callable[[float], Awaitable[None]]


class VideoOperation:
    """Submitted -> Polling -> Done | Failed, with an injectable sleep"""

    def __init__(self, provider: VideoProvider, poll_interval: float, sleep: Sleep, label: str = ""):
        self.provider = provider
        self.poll_interval = poll_interval
        self.sleep = sleep
        self.label = label
        self.state: Optional[OperationState] = None
        self.handle: Any = None
        self.polls = 0
        self.logger = logging.getLogger('panelforge.video_operation')

    async def run(self, image_bytes: bytes, prompt: str, model: str) -> bytes:
        self.handle = await self.provider.submit(image_bytes, prompt, model)
        self.state = OperationState.SUBMITTED

        status = await self.provider.poll(self.handle)
        while not status.done:
            self.state = OperationState.POLLING
            self.polls += 1
            if self.polls % 6 == 0:
                self.logger.info(f"[{self.label}] Still generating ({self.polls} polls)")
            await self.sleep(self.poll_interval)
            status = await self.provider.poll(self.handle)

        if status.error:
            self.state = OperationState.FAILED
            raise VideoGenerationError(f"[{self.label}] video generation failed: {status.error}")

        self.state = OperationState.DONE
        return await self.provider.download(self.handle)


class CardAnimator:
    """Sequential still -> animated video pipeline"""

    def __init__(self,
                 provider: VideoProvider,
                 compositor: Compositor,
                 cache: Optional[ArtifactCache] = None,
                 model: str = "veo-3.1-generate-preview",
                 poll_interval: float = 10.0,
                 profile: Optional[EncodeProfile] = None,
                 sleep: Optional[Sleep] = None):
        self.provider = provider
        self.compositor = compositor
        self.cache = cache or ArtifactCache()
        self.model = model
        self.poll_interval = poll_interval
        self.profile = profile or EncodeProfile()
        self.sleep = sleep or asyncio.sleep
        self.logger = logging.getLogger('panelforge.card_animator')

    @classmethod
    def from_config(cls, config, provider: VideoProvider, compositor: Compositor,
                    sleep: Optional[Sleep] = None) -> "CardAnimator":
        return cls(
            provider,
            compositor,
            cache=ArtifactCache.from_config(config),
            model=config.generation.video_model,
            poll_interval=config.video.poll_interval,
            profile=EncodeProfile.from_config(config),
            sleep=sleep,
        )

    async def animate(self, request: AnimationRequest) -> AnimationResult:
        tag = request.tag
        if not request.image_path.exists():
            raise FileNotFoundError(f"Card image not found: {request.image_path}")

        state = VideoAssemblyState.for_request(request)
        state.final.parent.mkdir(parents=True, exist_ok=True)

        # Step 1: raw clip from the provider, unless a previous run left one
        used_cached = self.cache.is_hit(state.raw_clip)
        if used_cached:
            self.logger.info(f"[{tag}] Step 1: Using cached raw video")
        else:
            self.logger.info(f"[{tag}] Step 1: Generating video with {self.model}...")
            operation = VideoOperation(self.provider, self.poll_interval, self.sleep, label=tag)
            data = await operation.run(request.image_path.read_bytes(), request.anim_prompt, self.model)
            state.raw_clip.write_bytes(data)
            self.logger.info(f"[{tag}] Video generated ({len(data) / 1024 / 1024:.1f}MB)")

        probe = await self.compositor.probe(state.raw_clip)
        total = request.still_duration + probe.duration
        fade_out_start = total - request.fade_out_duration
        has_music = bool(request.bgm_path and request.bgm_path.exists())

        self.logger.info(
            f"[{tag}] Step 2: Compositing ({probe.duration:.1f}s anim + {request.still_duration}s still)..."
        )
        try:
            await self.compositor.run(still_clip_command(
                request.image_path, state.still_clip, request.still_duration,
                probe.width, probe.height, self.profile,
            ))
            await self.compositor.run(reencode_command(state.raw_clip, state.anim_clip, self.profile))
            await self.compositor.run(crossfade_command(
                state.still_clip, state.anim_clip, state.silent_composite,
                request.still_duration, request.crossfade_duration,
                fade_out_start, request.fade_out_duration, self.profile,
            ))

            if has_music:
                await self.compositor.run(music_mix_command(
                    state.silent_composite, request.bgm_path, state.final,
                    request.music_fade_in, fade_out_start, request.fade_out_duration,
                    request.music_volume, self.profile,
                ))
            else:
                state.silent_composite.replace(state.final)
        finally:
            for path in state.intermediates:
                path.unlink(missing_ok=True)

        size_mb = state.final.stat().st_size / 1024 / 1024 if state.final.exists() else 0.0
        self.logger.info(f"[{tag}] Done: {state.final} ({size_mb:.1f}MB)")

        return AnimationResult(
            output_path=state.final,
            raw_clip=state.raw_clip,
            raw_duration=probe.duration,
            total_duration=total,
            width=probe.width,
            height=probe.height,
            used_cached_raw=used_cached,
            has_music=has_music,
        )

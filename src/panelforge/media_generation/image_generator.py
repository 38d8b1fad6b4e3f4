"""Retrying image synthesis client"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Tuple

from .artifact_cache import ArtifactCache
from .media_models import ImageSynthesisRequest
from ..providers.base import ImageProvider

Sleep = Callable[[float], Awaitable[None]]


def mime_type_for(path: str) -> str:
    """Mime type sent alongside a reference image"""
    ext = Path(path).suffix.lower()
    return "image/jpeg" if ext in (".jpg", ".jpeg") else "image/png"


def load_reference_images(paths: List[str]) -> List[Tuple[bytes, str]]:
    refs = []
    for p in paths:
        refs.append((Path(p).read_bytes(), mime_type_for(p)))
    return refs


class ImageGenerator:
    """
    Wraps one image-provider call with the artifact cache and a bounded retry.

    ``synthesize`` never raises for provider trouble: an attempt that errors is
    logged and followed by a backoff sleep, an attempt that returns no image
    moves straight on to the next one, and exhausting every attempt yields
    ``None``.
    """

    def __init__(self,
                 provider: ImageProvider,
                 cache: Optional[ArtifactCache] = None,
                 max_attempts: int = 3,
                 backoff_seconds: float = 15.0,
                 default_model: Optional[str] = None,
                 sleep: Optional[Sleep] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.provider = provider
        self.cache = cache or ArtifactCache()
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.default_model = default_model
        self.sleep = sleep or asyncio.sleep
        self.logger = logging.getLogger('panelforge.image_generator')

    @classmethod
    def from_config(cls, config, provider: ImageProvider,
                    sleep: Optional[Sleep] = None) -> "ImageGenerator":
        return cls(
            provider,
            cache=ArtifactCache.from_config(config),
            max_attempts=config.retry.max_attempts,
            backoff_seconds=config.retry.backoff_seconds,
            default_model=config.generation.gen_model,
            sleep=sleep,
        )

    async def synthesize(self, request: ImageSynthesisRequest) -> Optional[str]:
        """Produce ``request.output_path`` or return ``None`` after the last failed attempt"""
        out = Path(request.output_path)
        tag = request.label or out.stem
        model = request.model or self.default_model

        if self.cache.is_hit(out):
            self.logger.info(f"Cached: {tag}")
            return str(out)

        out.parent.mkdir(parents=True, exist_ok=True)
        # Missing reference images are a caller error, not a provider failure
        references = load_reference_images(request.reference_images)

        for attempt in range(1, self.max_attempts + 1):
            try:
                data = await self.provider.generate(
                    request.prompt,
                    image_size=request.image_size,
                    aspect_ratio=request.aspect_ratio,
                    reference_images=references,
                    model=model,
                )
            except Exception as e:
                self.logger.warning(f"{tag}: error {attempt}/{self.max_attempts} - {str(e)[:200]}")
                if attempt < self.max_attempts:
                    await self.sleep(self.backoff_seconds)
                continue

            if not data:
                self.logger.info(f"{tag}: no image, attempt {attempt}/{self.max_attempts}")
                continue

            out.write_bytes(data)
            self.logger.info(f"{tag} [{model}]: {len(data) / 1024:.0f}KB")
            return str(out)

        self.logger.error(f"{tag}: FAILED after {self.max_attempts} attempts")
        return None

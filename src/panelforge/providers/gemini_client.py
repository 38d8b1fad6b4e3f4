"""Gemini adapters for image, video and vision calls"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from google import genai
from google.genai import types

from .base import OperationStatus, ReferenceImage
from ..utils.errors import VideoGenerationError

_clients = {}


def get_gemini_client(config) -> genai.Client:
    """Shared client per API key; raises ConfigurationError when no key is set"""
    api_key = config.api_keys.require("gemini")
    if api_key not in _clients:
        _clients[api_key] = genai.Client(api_key=api_key)
    return _clients[api_key]


class GeminiImageProvider:
    """Image synthesis through ``generate_content`` with an IMAGE modality"""

    def __init__(self, client: genai.Client, default_model: str):
        self.client = client
        self.default_model = default_model
        self.logger = logging.getLogger('panelforge.providers.gemini_image')

    async def generate(self,
                       prompt: str,
                       image_size: Optional[str] = None,
                       aspect_ratio: Optional[str] = None,
                       reference_images: Sequence[ReferenceImage] = (),
                       model: Optional[str] = None) -> Optional[bytes]:
        config = types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"])
        if image_size or aspect_ratio:
            config.image_config = types.ImageConfig(
                aspect_ratio=aspect_ratio or "16:9",
                image_size=image_size,
            )

        parts = [types.Part.from_bytes(data=data, mime_type=mime) for data, mime in reference_images]
        parts.append(types.Part.from_text(text=prompt))

        response = await self.client.aio.models.generate_content(
            model=model or self.default_model,
            contents=[types.Content(role="user", parts=parts)],
            config=config,
        )

        for candidate in (response.candidates or [])[:1]:
            content = candidate.content
            for part in (content.parts if content and content.parts else []):
                if part.inline_data and part.inline_data.data:
                    return part.inline_data.data
        return None


@dataclass
class GeminiVideoHandle:
    operation: Any


class GeminiVideoProvider:
    """Image-to-video generation as a long-running operation"""

    def __init__(self, client: genai.Client):
        self.client = client

    async def submit(self, image_bytes: bytes, prompt: str, model: str) -> GeminiVideoHandle:
        operation = await self.client.aio.models.generate_videos(
            model=model,
            prompt=prompt,
            image=types.Image(image_bytes=image_bytes, mime_type="image/png"),
        )
        return GeminiVideoHandle(operation=operation)

    async def poll(self, handle: GeminiVideoHandle) -> OperationStatus:
        handle.operation = await self.client.aio.operations.get(handle.operation)
        error = handle.operation.error
        return OperationStatus(done=bool(handle.operation.done), error=str(error) if error else None)

    async def download(self, handle: GeminiVideoHandle) -> bytes:
        response = handle.operation.response
        videos = response.generated_videos if response else None
        if not videos or not videos[0].video:
            raise VideoGenerationError("Video operation finished without a generated video")
        return await self.client.aio.files.download(file=videos[0].video)


class GeminiVisionProvider:
    """Layout analysis with a JSON response"""

    def __init__(self, client: genai.Client, default_model: str):
        self.client = client
        self.default_model = default_model

    async def analyze(self, image_bytes: bytes, mime_type: str,
                      instruction: str, model: Optional[str] = None) -> Optional[str]:
        response = await self.client.aio.models.generate_content(
            model=model or self.default_model,
            contents=[types.Content(role="user", parts=[
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                types.Part.from_text(text=instruction),
            ])],
            config=types.GenerateContentConfig(response_mime_type="application/json"),
        )
        return response.text

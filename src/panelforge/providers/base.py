"""Interfaces for the external generative-media collaborators"""

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

# (bytes, mime type)
ReferenceImage = Tuple[bytes, str]


@runtime_checkable
class ImageProvider(Protocol):
    async def generate(self,
                       prompt: str,
                       image_size: Optional[str] = None,
                       aspect_ratio: Optional[str] = None,
                       reference_images: Sequence[ReferenceImage] = (),
                       model: Optional[str] = None) -> Optional[bytes]:
        """Return encoded image bytes, or None when the response carried no image"""
        ...


@dataclass
class OperationStatus:
    done: bool
    error: Optional[str] = None


@runtime_checkable
class VideoProvider(Protocol):
    async def submit(self, image_bytes: bytes, prompt: str, model: str) -> Any:
        ...

    async def poll(self, handle: Any) -> OperationStatus:
        ...

    async def download(self, handle: Any) -> bytes:
        ...


@runtime_checkable
class LayoutVisionProvider(Protocol):
    async def analyze(self, image_bytes: bytes, mime_type: str,
                      instruction: str, model: Optional[str] = None) -> Optional[str]:
        """Return the raw response text (expected to be a JSON array)"""
        ...


@runtime_checkable
class ImageRefiner(Protocol):
    async def edit(self, image_path: str, instruction: str, output_path: str) -> str:
        ...


@runtime_checkable
class DeckWriter(Protocol):
    def write(self, slides: List[Any], output_path: str) -> None:
        ...

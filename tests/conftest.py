"""Shared fakes and fixtures for panelforge tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import pytest

from panelforge.providers.base import OperationStatus
from panelforge.utils.config import ApiKeysConfig, Config
from panelforge.video_assembly.video_models import ClipProbe

# Comfortably above the 10000-byte cache threshold
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 20000
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 20000


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeImageProvider:
    """Replays ``script`` entries per call: bytes, None, or an Exception to raise."""

    def __init__(self, script: Optional[List[Any]] = None, default: Any = PNG_BYTES):
        self.script = list(script or [])
        self.default = default
        self.calls: List[dict] = []

    async def generate(self, prompt, image_size=None, aspect_ratio=None,
                       reference_images=(), model=None):
        self.calls.append({
            "prompt": prompt,
            "image_size": image_size,
            "aspect_ratio": aspect_ratio,
            "reference_images": list(reference_images),
            "model": model,
        })
        outcome = self.script.pop(0) if self.script else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeVisionProvider:
    def __init__(self, response: Any = "[]"):
        self.response = response
        self.calls: List[dict] = []

    async def analyze(self, image_bytes, mime_type, instruction, model=None):
        self.calls.append({"mime_type": mime_type, "instruction": instruction, "model": model})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


class FakeVideoProvider:
    """Finishes after ``polls_until_done`` polls; ``error`` makes the operation fail."""

    def __init__(self, polls_until_done: int = 0, error: Optional[str] = None,
                 data: bytes = MP4_BYTES):
        self.polls_until_done = polls_until_done
        self.error = error
        self.data = data
        self.submitted: List[dict] = []
        self.polls = 0
        self.downloads = 0

    async def submit(self, image_bytes, prompt, model):
        self.submitted.append({"prompt": prompt, "model": model, "size": len(image_bytes)})
        return "op-1"

    async def poll(self, handle):
        done = self.polls >= self.polls_until_done
        self.polls += 1
        return OperationStatus(done=done, error=self.error if done else None)

    async def download(self, handle):
        self.downloads += 1
        return self.data


class FakeCompositor:
    """Records commands and creates each command's output file."""

    def __init__(self, probe: Optional[ClipProbe] = None):
        self.commands: List[List[str]] = []
        self.probes: List[str] = []
        self.clip = probe or ClipProbe(duration=8.0, width=720, height=1280)

    async def run(self, command):
        cmd = [str(c) for c in command]
        self.commands.append(cmd)
        for arg in reversed(cmd):
            if not arg.startswith("-"):
                out = Path(arg)
                out.parent.mkdir(parents=True, exist_ok=True)
                out.write_bytes(MP4_BYTES if out.suffix == ".mp4" else PNG_BYTES)
                break

    async def probe(self, path):
        self.probes.append(str(path))
        return self.clip


class FakeRefiner:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[tuple] = []

    async def edit(self, image_path, instruction, output_path):
        self.calls.append((image_path, instruction, output_path))
        if self.fail:
            raise RuntimeError("refine backend down")
        Path(output_path).write_bytes(PNG_BYTES)
        return output_path


class FakeDeckWriter:
    def __init__(self):
        self.written: List[tuple] = []

    def write(self, slides, output_path):
        self.written.append((list(slides), output_path))


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def config(tmp_path) -> Config:
    """Config pointing at tmp dirs with no real API keys."""
    return Config(
        paths={"output": str(tmp_path / "out"), "styles": str(tmp_path / "styles"),
               "logs": str(tmp_path / "logs")},
        api_keys=ApiKeysConfig(gemini=None, dashscope=None),
    )

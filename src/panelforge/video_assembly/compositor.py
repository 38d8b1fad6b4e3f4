"""
Media compositor

Runs ImageMagick and FFmpeg commands as async subprocesses and probes clips
with ffprobe. A failed command is fatal to the step that issued it.
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import List, Protocol, Sequence, Union

import ffmpeg

from .video_models import ClipProbe
from ..utils.errors import CompositorError


class Compositor(Protocol):
    async def run(self, command: Sequence[str]) -> None:
        ...

    async def probe(self, path: Union[str, Path]) -> ClipProbe:
        ...


class MediaCompositor:
    """Subprocess-backed compositor"""

    def __init__(self):
        self.logger = logging.getLogger('panelforge.compositor')

    def check_dependencies(self) -> List[str]:
        """Names of the required tools missing from PATH"""
        return [tool for tool in ('ffmpeg', 'ffprobe', 'magick') if shutil.which(tool) is None]

    async def run(self, command: Sequence[str]) -> None:
        cmd = [str(part) for part in command]
        self.logger.debug(f"Running: {' '.join(cmd)}")

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        _, stderr = await process.communicate()

        if process.returncode != 0:
            message = stderr.decode(errors='replace')
            self.logger.error(f"{cmd[0]} failed: {message[-1000:]}")
            raise CompositorError(cmd, process.returncode, message)

    async def probe(self, path: Union[str, Path]) -> ClipProbe:
        """Duration and first video stream dimensions"""
        try:
            info = await asyncio.to_thread(ffmpeg.probe, str(path))
        except ffmpeg.Error as e:
            error_msg = e.stderr.decode(errors='replace') if e.stderr else str(e)
            raise CompositorError(['ffprobe', str(path)], 1, error_msg) from e

        video_streams = [s for s in info.get('streams', []) if s.get('codec_type') == 'video']
        if not video_streams:
            raise CompositorError(['ffprobe', str(path)], 1, "no video stream")
        stream = video_streams[0]
        duration = info.get('format', {}).get('duration') or stream.get('duration')
        if duration is None:
            raise CompositorError(['ffprobe', str(path)], 1, "no duration reported")

        return ClipProbe(
            duration=float(duration),
            width=int(stream['width']),
            height=int(stream['height']),
        )

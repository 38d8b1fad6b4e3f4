"""Panel stitching into one strip or grid image"""

import math
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .compositor import Compositor
from ..media_generation.media_models import StitchLayout
from ..utils.logger import LoggerMixin


def grid_columns(count: int) -> int:
    """Columns used for a grid of ``count`` panels"""
    if count < 1:
        raise ValueError("grid needs at least one panel")
    return math.ceil(math.sqrt(count))


def build_stitch_command(panels: Sequence[str], output_path: str,
                         layout: Union[StitchLayout, str], gutter: int) -> List[str]:
    """ImageMagick command for the requested layout and gutter"""
    layout = StitchLayout(layout)
    inputs = [str(p) for p in panels]

    if layout is StitchLayout.HORIZONTAL:
        return ['magick', *inputs, '+smush', str(gutter), output_path]
    if layout is StitchLayout.VERTICAL:
        return ['magick', *inputs, '-smush', str(gutter), output_path]

    cols = grid_columns(len(inputs))
    return ['magick', 'montage', *inputs, '-tile', f'{cols}x',
            '-geometry', f'+{gutter}+{gutter}', output_path]


class PanelStitcher(LoggerMixin):
    """Combines produced panels; failed (None) panels are dropped first"""

    def __init__(self, compositor: Compositor):
        self.compositor = compositor

    async def stitch(self,
                     panels: Sequence[Optional[str]],
                     output_path: Union[str, Path],
                     layout: Union[StitchLayout, str] = StitchLayout.HORIZONTAL,
                     gutter: int = 20) -> Optional[str]:
        """Returns the output path, or None when there was nothing to stitch"""
        layout = StitchLayout(layout)
        valid = [p for p in panels if p]
        if not valid:
            self.logger.info("No panels generated, nothing to stitch")
            return None

        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Stitching {len(valid)} panels ({layout.value})...")
        await self.compositor.run(build_stitch_command(valid, str(out), layout, gutter))

        if out.exists():
            self.logger.info(f"Done: {out} ({out.stat().st_size / 1024:.0f}KB)")
        return str(out)

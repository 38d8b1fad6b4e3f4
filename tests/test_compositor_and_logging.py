from __future__ import annotations

import logging

import pytest

from panelforge.utils.config import Config
from panelforge.utils.errors import CompositorError
from panelforge.utils.logger import LoggerMixin, setup_logging
from panelforge.video_assembly.compositor import MediaCompositor


@pytest.mark.asyncio
async def test_compositor_runs_command(tmp_path):
    marker = tmp_path / "ran.txt"
    await MediaCompositor().run(["sh", "-c", f"echo ok > {marker}"])
    assert marker.read_text().strip() == "ok"


@pytest.mark.asyncio
async def test_compositor_raises_on_nonzero_exit():
    with pytest.raises(CompositorError) as exc_info:
        await MediaCompositor().run(["sh", "-c", "echo boom >&2; exit 3"])
    assert exc_info.value.returncode == 3
    assert "boom" in exc_info.value.stderr
    assert exc_info.value.command[0] == "sh"


def test_setup_logging_writes_to_rotating_file(tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    config = Config(logging={"level": "DEBUG", "file": str(log_file), "backup_count": 2})
    logger = setup_logging(config)

    assert logger.name == "panelforge"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    logging.getLogger("panelforge.test").info("hello from the test")
    for handler in logger.handlers:
        handler.flush()
    assert "hello from the test" in log_file.read_text(encoding="utf-8")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


def test_logger_mixin_names_after_class():
    class Stitcher(LoggerMixin):
        pass

    assert Stitcher().logger.name == "panelforge.Stitcher"

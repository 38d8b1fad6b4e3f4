from __future__ import annotations

import pytest

from panelforge.video_assembly.card_animator import CardAnimator, VideoOperation
from panelforge.video_assembly.video_models import AnimationRequest, OperationState
from panelforge.utils.errors import VideoGenerationError

from conftest import MP4_BYTES, PNG_BYTES, FakeCompositor, FakeVideoProvider


@pytest.fixture
def card(tmp_path):
    img = tmp_path / "card-fox.png"
    img.write_bytes(PNG_BYTES)
    return img


def _request(card, bgm=None) -> AnimationRequest:
    return AnimationRequest(
        image_path=card,
        output_path=card.parent / "card-fox-animated.mp4",
        anim_prompt="ink wash drifts across the fox",
        bgm_path=bgm,
        label="fox",
    )


def _intermediates(directory):
    return [directory / f"card-fox-{s}.mp4" for s in ("still", "anim", "noaudio")]


@pytest.mark.asyncio
async def test_operation_polls_until_done(sleep):
    provider = FakeVideoProvider(polls_until_done=3)
    op = VideoOperation(provider, poll_interval=10, sleep=sleep, label="fox")

    data = await op.run(b"img", "prompt", "veo")
    assert data == MP4_BYTES
    assert op.state is OperationState.DONE
    assert op.polls == 3
    assert sleep.delays == [10, 10, 10]


@pytest.mark.asyncio
async def test_operation_error_is_raised(sleep):
    op = VideoOperation(FakeVideoProvider(error="safety filter"), poll_interval=10, sleep=sleep)
    with pytest.raises(VideoGenerationError):
        await op.run(b"img", "prompt", "veo")
    assert op.state is OperationState.FAILED


@pytest.mark.asyncio
async def test_animate_without_music(card, sleep):
    provider = FakeVideoProvider(polls_until_done=1)
    compositor = FakeCompositor()
    animator = CardAnimator(provider, compositor, model="veo-test", poll_interval=10, sleep=sleep)

    result = await animator.animate(_request(card))

    assert result.output_path.exists()
    assert result.raw_clip == card.parent / "card-fox-raw.mp4"
    assert result.raw_clip.read_bytes() == MP4_BYTES
    assert result.total_duration == pytest.approx(2.0 + 8.0)
    assert (result.width, result.height) == (720, 1280)
    assert not result.used_cached_raw
    assert not result.has_music
    assert provider.submitted[0]["model"] == "veo-test"
    assert len(compositor.commands) == 3
    for path in _intermediates(card.parent):
        assert not path.exists()


@pytest.mark.asyncio
async def test_animate_with_music(card, sleep):
    bgm = card.parent / "bgm.mp3"
    bgm.write_bytes(b"mp3")
    compositor = FakeCompositor()
    animator = CardAnimator(FakeVideoProvider(), compositor, sleep=sleep)

    result = await animator.animate(_request(card, bgm=bgm))

    assert result.has_music
    assert result.output_path.exists()
    assert len(compositor.commands) == 4
    mix = " ".join(compositor.commands[-1])
    assert str(bgm) in mix
    assert "volume=0.3" in mix
    for path in _intermediates(card.parent):
        assert not path.exists()


@pytest.mark.asyncio
async def test_missing_music_file_is_ignored(card, sleep):
    compositor = FakeCompositor()
    animator = CardAnimator(FakeVideoProvider(), compositor, sleep=sleep)
    result = await animator.animate(_request(card, bgm=card.parent / "nope.mp3"))
    assert not result.has_music
    assert len(compositor.commands) == 3


@pytest.mark.asyncio
async def test_cached_raw_clip_skips_provider(card, sleep):
    (card.parent / "card-fox-raw.mp4").write_bytes(MP4_BYTES)
    provider = FakeVideoProvider()
    animator = CardAnimator(provider, FakeCompositor(), sleep=sleep)

    result = await animator.animate(_request(card))
    assert result.used_cached_raw
    assert provider.submitted == []
    assert provider.polls == 0
    assert provider.downloads == 0
    assert result.raw_duration == pytest.approx(8.0)
    assert result.total_duration == pytest.approx(2.0 + 8.0)
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_missing_image_raises(tmp_path, sleep):
    animator = CardAnimator(FakeVideoProvider(), FakeCompositor(), sleep=sleep)
    with pytest.raises(FileNotFoundError):
        await animator.animate(_request(tmp_path / "card-fox.png"))


@pytest.mark.asyncio
async def test_compositor_failure_still_cleans_up(card, sleep):
    class BrokenCompositor(FakeCompositor):
        async def run(self, command):
            await super().run(command)
            if len(self.commands) == 2:
                raise RuntimeError("ffmpeg exploded")

    animator = CardAnimator(FakeVideoProvider(), BrokenCompositor(), sleep=sleep)
    with pytest.raises(RuntimeError):
        await animator.animate(_request(card))
    for path in _intermediates(card.parent):
        assert not path.exists()
    assert (card.parent / "card-fox-raw.mp4").exists()

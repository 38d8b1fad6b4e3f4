from __future__ import annotations

from panelforge.video_assembly.video_effects import (
    EncodeProfile, crossfade_command, music_mix_command, reencode_command, still_clip_command,
)

PROFILE = EncodeProfile()


def test_still_clip_letterboxes_to_target():
    cmd = still_clip_command("card.png", "still.mp4", 2.0, 720, 1280, PROFILE)
    joined = " ".join(cmd)
    assert cmd[0] == "ffmpeg"
    assert "-loop 1" in joined
    assert "force_original_aspect_ratio=decrease" in joined
    assert "pad=720:1280" in joined
    assert "-t 2.0" in joined
    assert "-an" in cmd
    assert cmd[-2:] == ["still.mp4", "-y"]


def test_reencode_uses_shared_profile():
    joined = " ".join(reencode_command("raw.mp4", "anim.mp4", PROFILE))
    assert "-vcodec libx264" in joined
    assert "-crf 20" in joined
    assert "-r 24" in joined
    assert "-pix_fmt yuv420p" in joined


def test_crossfade_ends_at_still_duration():
    joined = " ".join(crossfade_command("still.mp4", "anim.mp4", "out.mp4", 2.0, 1.0, 8.5, 1.5, PROFILE))
    assert "xfade=duration=1.0:offset=1.0:transition=fade" in joined
    assert "fade=d=1.5:st=8.5:t=out" in joined
    assert "-movflags +faststart" in joined


def test_crossfade_without_fade_out():
    joined = " ".join(crossfade_command("still.mp4", "anim.mp4", "out.mp4", 2.0, 1.0, 10.0, 0, PROFILE))
    assert "fade=d=" not in joined


def test_music_mix_copies_video_and_attenuates():
    cmd = music_mix_command("silent.mp4", "bgm.mp3", "final.mp4", 2.0, 8.5, 1.5, 0.3, PROFILE)
    joined = " ".join(cmd)
    assert "-vcodec copy" in joined
    assert "-acodec aac" in joined
    assert "-b:a 128k" in joined
    assert "-shortest" in cmd
    assert "afade=d=2.0:t=in" in joined
    assert "afade=d=1.5:st=8.5:t=out" in joined
    assert "volume=0.3" in joined

"""
Video effect commands

FFmpeg command lines for the card-animation steps, built with ffmpeg-python:
- still image clip letterboxed to a target resolution
- re-encode to a common codec/frame-rate profile
- crossfade still -> animation with a fade to black
- background music mix with fades and attenuation
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

import ffmpeg

PathLike = Union[str, Path]


@dataclass(frozen=True)
class EncodeProfile:
    """Shared encoder settings so every clip can be crossfaded cleanly"""
    fps: int = 24
    crf: int = 20
    preset: str = "medium"
    pix_fmt: str = "yuv420p"
    audio_bitrate: str = "128k"

    @classmethod
    def from_config(cls, config) -> "EncodeProfile":
        video = config.video
        return cls(fps=video.fps, crf=video.crf, preset=video.preset, audio_bitrate=video.audio_bitrate)


def still_clip_command(image_path: PathLike, output_path: PathLike, duration: float,
                       width: int, height: int, profile: EncodeProfile) -> List[str]:
    """Loop a still image for ``duration`` seconds, scaled to fit and padded to width x height"""
    stream = (
        ffmpeg
        .input(str(image_path), loop=1)
        .filter('scale', width, height, force_original_aspect_ratio='decrease')
        .filter('pad', width, height, '(ow-iw)/2', '(oh-ih)/2')
        .filter('setsar', 1)
        .output(str(output_path), t=duration, vcodec='libx264', preset=profile.preset,
                crf=profile.crf, r=profile.fps, pix_fmt=profile.pix_fmt, an=None)
        .overwrite_output()
    )
    return stream.compile()


def reencode_command(input_path: PathLike, output_path: PathLike, profile: EncodeProfile) -> List[str]:
    stream = (
        ffmpeg
        .input(str(input_path))
        .output(str(output_path), vcodec='libx264', preset=profile.preset, crf=profile.crf,
                r=profile.fps, pix_fmt=profile.pix_fmt, an=None)
        .overwrite_output()
    )
    return stream.compile()


def crossfade_command(still_path: PathLike, anim_path: PathLike, output_path: PathLike,
                      still_duration: float, crossfade_duration: float,
                      fade_out_start: float, fade_out_duration: float,
                      profile: EncodeProfile) -> List[str]:
    """Crossfade ending exactly at ``still_duration``, then fade to black at ``fade_out_start``"""
    still = ffmpeg.input(str(still_path)).video
    anim = ffmpeg.input(str(anim_path)).video
    video = ffmpeg.filter(
        [still, anim], 'xfade',
        transition='fade',
        duration=crossfade_duration,
        offset=still_duration - crossfade_duration,
    )
    if fade_out_duration > 0:
        video = video.filter('fade', t='out', st=fade_out_start, d=fade_out_duration)

    stream = ffmpeg.output(
        video, str(output_path),
        vcodec='libx264', preset=profile.preset, crf=profile.crf,
        movflags='+faststart', an=None,
    ).overwrite_output()
    return stream.compile()


def music_mix_command(video_path: PathLike, music_path: PathLike, output_path: PathLike,
                      fade_in: float, fade_out_start: float, fade_out_duration: float,
                      volume: float, profile: EncodeProfile) -> List[str]:
    """Mux attenuated background music under the silent composite, copying the video stream"""
    video = ffmpeg.input(str(video_path)).video
    audio = ffmpeg.input(str(music_path)).audio
    if fade_in > 0:
        audio = audio.filter('afade', t='in', d=fade_in)
    if fade_out_duration > 0:
        audio = audio.filter('afade', t='out', st=fade_out_start, d=fade_out_duration)
    audio = audio.filter('volume', volume)

    stream = ffmpeg.output(
        video, audio, str(output_path),
        vcodec='copy', acodec='aac', audio_bitrate=profile.audio_bitrate,
        shortest=None, movflags='+faststart',
    ).overwrite_output()
    return stream.compile()

"""
FFmpeg Utilities Module
Command building and output parsing for the ffprobe duration query and the
target-bitrate ffmpeg encode
"""

import math
import logging
from typing import Dict, List, Optional, Tuple

from .error_handler import ErrorKind, ToolError

logger = logging.getLogger(__name__)

KEEP_ORIGINAL = 'original'
VIDEO_CODEC = 'libx264'
AUDIO_CODEC = 'aac'

# Maximum (width, height) per resolution label
RESOLUTION_BOUNDS: Dict[str, Tuple[int, int]] = {
    '1080': (1920, 1080),
    '720': (1280, 720),
    '480': (854, 480),
}

PRESETS = ['ultrafast', 'fast', 'medium', 'slow', 'veryslow']


class FFmpegUtils:
    """Shared utilities for FFmpeg operations"""

    @staticmethod
    def build_probe_command(probe_path: str, input_path: str) -> List[str]:
        """ffprobe invocation printing only the container duration in seconds"""
        return [
            probe_path,
            '-v', 'error',
            '-show_entries', 'format=duration',
            '-of', 'default=noprint_wrappers=1:nokey=1',
            str(input_path),
        ]

    @staticmethod
    def parse_duration(output: str) -> Optional[float]:
        """Parse ffprobe's duration output; None unless positive and finite"""
        text = (output or '').strip()
        if not text:
            return None
        try:
            duration = float(text.split()[0])
        except ValueError:
            return None
        if not math.isfinite(duration) or duration <= 0:
            return None
        return duration

    @staticmethod
    def compute_video_bitrate(target_size_bytes: int, duration_seconds: float) -> int:
        """Video bitrate in kbps spending the whole size budget over the duration.

        The audio track is encoded on top of this, so the output overshoots the
        target by roughly audio_kbps * duration.
        """
        return math.floor(target_size_bytes * 8 / duration_seconds / 1000)

    @staticmethod
    def scale_filter(max_resolution: str) -> Optional[str]:
        """Downscale+pad filter bounded by a resolution label, None to keep original.

        Scaling preserves aspect ratio and never upscales; the pad rounds both
        output dimensions up to even numbers as libx264 requires.
        """
        if max_resolution == KEEP_ORIGINAL:
            return None
        bounds = RESOLUTION_BOUNDS.get(max_resolution)
        if bounds is None:
            raise ToolError(ErrorKind.INVALID_CONFIG, f"unknown max resolution '{max_resolution}'")
        width, height = bounds
        return (f"scale='min(iw,{width})':'min(ih,{height})':force_original_aspect_ratio=decrease,"
                f"pad=ceil(iw/2)*2:ceil(ih/2)*2")

    @staticmethod
    def build_encode_command(encoder_path: str, input_path: str, output_path: str,
                             video_bitrate_kbps: int, audio_bitrate_kbps: int,
                             preset: str, max_resolution: str = KEEP_ORIGINAL) -> List[str]:
        """Single-pass constrained-bitrate H.264/AAC encode"""
        cmd = [
            encoder_path,
            '-y',
            '-i', str(input_path),
            '-c:v', VIDEO_CODEC,
            '-b:v', f"{video_bitrate_kbps}k",
            '-maxrate', f"{video_bitrate_kbps}k",
            '-bufsize', f"{video_bitrate_kbps * 2}k",
            '-preset', preset,
        ]

        video_filter = FFmpegUtils.scale_filter(max_resolution)
        if video_filter:
            cmd.extend(['-vf', video_filter])

        cmd.extend([
            '-c:a', AUDIO_CODEC,
            '-b:a', f"{audio_bitrate_kbps}k",
            '-map_metadata', '0',
            '-movflags', '+faststart',
            str(output_path),
        ])
        return cmd

    @staticmethod
    def tail_text(text: str, limit: int = 2000) -> str:
        """Last ``limit`` characters of a (possibly huge) stderr capture"""
        text = (text or '').strip()
        if len(text) <= limit:
            return text
        return '…' + text[-limit:]

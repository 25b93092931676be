"""
Bitrate Validation Module
Refuses encodes whose computed video bitrate falls under the quality floor
"""

import logging
from dataclasses import dataclass

from .error_handler import ErrorKind, ToolError

logger = logging.getLogger(__name__)

DEFAULT_MIN_VIDEO_BITRATE_KBPS = 100


@dataclass
class ValidationResult:
    """Result of bitrate validation"""
    is_valid: bool
    current_bitrate: int
    minimum_required: int
    message: str


class BitrateValidator:
    """Validates computed video bitrates against a fixed floor"""

    def __init__(self, min_video_bitrate_kbps: int = DEFAULT_MIN_VIDEO_BITRATE_KBPS):
        if min_video_bitrate_kbps <= 0:
            raise ValueError(f"Invalid bitrate floor: {min_video_bitrate_kbps} (must be positive)")
        self.min_video_bitrate_kbps = min_video_bitrate_kbps

    def validate_bitrate(self, bitrate_kbps: int) -> ValidationResult:
        if bitrate_kbps >= self.min_video_bitrate_kbps:
            return ValidationResult(
                is_valid=True,
                current_bitrate=bitrate_kbps,
                minimum_required=self.min_video_bitrate_kbps,
                message=f"{bitrate_kbps}kbps meets minimum requirement ({self.min_video_bitrate_kbps}kbps)",
            )
        return ValidationResult(
            is_valid=False,
            current_bitrate=bitrate_kbps,
            minimum_required=self.min_video_bitrate_kbps,
            message=f"target bitrate too low ({bitrate_kbps}k)",
        )

    def ensure_valid(self, bitrate_kbps: int) -> int:
        """Return ``bitrate_kbps`` or raise BITRATE_TOO_LOW"""
        result = self.validate_bitrate(bitrate_kbps)
        if not result.is_valid:
            logger.warning(f"Bitrate {bitrate_kbps}kbps below floor {result.minimum_required}kbps, refusing to encode")
            raise ToolError(ErrorKind.BITRATE_TOO_LOW, result.message)
        return bitrate_kbps


def estimate_output_bytes(video_bitrate_kbps: int, audio_bitrate_kbps: int, duration_seconds: float) -> int:
    """Expected container payload size; exceeds the target by the audio budget"""
    return int((video_bitrate_kbps + audio_bitrate_kbps) * 1000 * duration_seconds / 8)

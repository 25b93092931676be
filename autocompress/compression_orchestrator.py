"""
Compression Orchestrator
Compresses one media file to a target size: probe duration, derive a video
bitrate, run ffmpeg under a deadline and hand back the encoded bytes.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .binary_locator import BinaryLocator, ToolKind
from .bitrate_validator import BitrateValidator, DEFAULT_MIN_VIDEO_BITRATE_KBPS, estimate_output_bytes
from .error_handler import ErrorKind, ToolError
from .ffmpeg_utils import FFmpegUtils, KEEP_ORIGINAL
from .process_runner import run_process
from .temp_file_manager import ArtifactRole, TempArtifact, TempFileManager, extension_for

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_BITRATE_KBPS = 128
BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class CompressionRequest:
    input_bytes: bytes = field(repr=False)
    file_name: str
    target_size_bytes: int
    preset: str = 'medium'
    max_resolution: str = KEEP_ORIGINAL
    timeout_ms: int = 10_000
    probe_path: Optional[str] = None
    encoder_path: Optional[str] = None

    @classmethod
    def from_settings(cls, data: bytes, file_name: str, target_size_mb: float, preset: str,
                      max_resolution: str, timeout_seconds: float,
                      probe_path: Optional[str] = None,
                      encoder_path: Optional[str] = None) -> 'CompressionRequest':
        """Build a request from user-facing units (MB, seconds)"""
        return cls(
            input_bytes=data,
            file_name=file_name,
            target_size_bytes=int(target_size_mb * BYTES_PER_MB),
            preset=preset,
            max_resolution=max_resolution,
            timeout_ms=int(timeout_seconds * 1000),
            probe_path=probe_path or None,
            encoder_path=encoder_path or None,
        )


@dataclass
class CompressionOutcome:
    success: bool
    data: Optional[bytes] = field(default=None, repr=False)
    reason: Optional[ErrorKind] = None
    detail: str = ''

    @classmethod
    def succeeded(cls, data: bytes) -> 'CompressionOutcome':
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, reason: ErrorKind, detail: str) -> 'CompressionOutcome':
        return cls(success=False, reason=reason, detail=detail)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {'success': True, 'data': self.data}
        return {'success': False, 'error': self.detail}


@dataclass
class ToolCheckResult:
    success: bool
    error: Optional[str] = None
    reason: Optional[ErrorKind] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {'success': True}
        return {'success': False, 'error': self.error}


class CompressionOrchestrator:
    """Runs compress-to-target-size requests against a shared BinaryLocator"""

    def __init__(self, locator: BinaryLocator, temp_dir: Optional[str] = None,
                 audio_bitrate_kbps: int = DEFAULT_AUDIO_BITRATE_KBPS,
                 min_video_bitrate_kbps: int = DEFAULT_MIN_VIDEO_BITRATE_KBPS):
        self.locator = locator
        self.temp_dir = temp_dir
        self.audio_bitrate_kbps = audio_bitrate_kbps
        self.bitrate_validator = BitrateValidator(min_video_bitrate_kbps)

    async def test_tools(self, probe_path: Optional[str] = None,
                         encoder_path: Optional[str] = None) -> ToolCheckResult:
        """Resolve both tools without compressing anything"""
        try:
            await self.locator.resolve(encoder_path, ToolKind.ENCODER)
            await self.locator.resolve(probe_path, ToolKind.PROBE)
        except ToolError as e:
            logger.error(f"Tool check failed: {e}")
            return ToolCheckResult(success=False, error=e.detail, reason=e.kind)
        return ToolCheckResult(success=True)

    async def compress(self, request: CompressionRequest) -> CompressionOutcome:
        if request.target_size_bytes <= 0:
            return CompressionOutcome.failed(ErrorKind.INVALID_CONFIG, "target size must be positive")
        if request.timeout_ms <= 0:
            return CompressionOutcome.failed(ErrorKind.INVALID_CONFIG, "timeout must be positive")

        temp_files = TempFileManager(self.temp_dir)
        extension = extension_for(request.file_name)
        input_file = temp_files.allocate(ArtifactRole.INPUT, extension)
        output_file = temp_files.allocate(ArtifactRole.OUTPUT, extension)

        logger.info(f"Compressing {request.file_name} ({len(request.input_bytes) / BYTES_PER_MB:.2f}MB) "
                    f"to {request.target_size_bytes / BYTES_PER_MB:.2f}MB")
        try:
            data = await self._run(request, input_file, output_file)
        except ToolError as e:
            logger.warning(f"Compression of {request.file_name} failed ({e.kind.value}): {e.detail}")
            return CompressionOutcome.failed(e.kind, e.detail)
        finally:
            await temp_files.cleanup()

        logger.info(f"Compressed {request.file_name}: {len(data) / BYTES_PER_MB:.2f}MB")
        return CompressionOutcome.succeeded(data)

    async def probe_duration(self, media_path: str) -> float:
        """Media duration in seconds as reported by ffprobe"""
        cmd = FFmpegUtils.build_probe_command(self.locator.current_path(ToolKind.PROBE), media_path)
        try:
            result = await run_process(cmd)
        except OSError as e:
            raise ToolError(ErrorKind.SPAWN_FAILED, f"failed to spawn ffprobe: {e}") from e

        if result.returncode != 0:
            raise ToolError(ErrorKind.PROBE_FAILED,
                            f"ffprobe exited with {result.returncode}, {FFmpegUtils.tail_text(result.stderr_text)}")

        duration = FFmpegUtils.parse_duration(result.stdout_text)
        if duration is None:
            raise ToolError(ErrorKind.PROBE_FAILED, f"ffprobe invalid data: {result.stdout_text.strip()!r}")
        return duration

    async def _run(self, request: CompressionRequest, input_file: TempArtifact,
                   output_file: TempArtifact) -> bytes:
        try:
            await asyncio.to_thread(input_file.path.write_bytes, request.input_bytes)
        except OSError as e:
            raise ToolError(ErrorKind.PROBE_FAILED, f"could not write temporary input: {e}") from e

        await self.locator.resolve(request.probe_path, ToolKind.PROBE)
        duration = await self.probe_duration(str(input_file.path))

        video_bitrate = FFmpegUtils.compute_video_bitrate(request.target_size_bytes, duration)
        self.bitrate_validator.ensure_valid(video_bitrate)
        logger.debug(f"{request.file_name}: {duration:.2f}s, video {video_bitrate}kbps + audio "
                     f"{self.audio_bitrate_kbps}kbps, expected ~"
                     f"{estimate_output_bytes(video_bitrate, self.audio_bitrate_kbps, duration) / BYTES_PER_MB:.2f}MB")

        await self.locator.resolve(request.encoder_path, ToolKind.ENCODER)
        cmd = FFmpegUtils.build_encode_command(
            self.locator.current_path(ToolKind.ENCODER),
            input_file.path,
            output_file.path,
            video_bitrate,
            self.audio_bitrate_kbps,
            request.preset,
            request.max_resolution,
        )

        try:
            result = await run_process(cmd, timeout_ms=request.timeout_ms)
        except OSError as e:
            raise ToolError(ErrorKind.SPAWN_FAILED, f"ffmpeg spawn error {e}") from e

        if result.timed_out:
            raise ToolError(ErrorKind.TIMEOUT,
                            f"ffmpeg exceeded allotted time of {request.timeout_ms / 1000:g}s")
        if result.returncode != 0:
            raise ToolError(ErrorKind.ENCODE_FAILED,
                            f"ffmpeg exited with code {result.returncode}, "
                            f"{FFmpegUtils.tail_text(result.stderr_text)}")

        try:
            return await asyncio.to_thread(output_file.path.read_bytes)
        except OSError as e:
            raise ToolError(ErrorKind.ENCODE_FAILED, f"could not read ffmpeg output: {e}") from e

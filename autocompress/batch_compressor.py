"""
Batch Compressor
Decides which files need compressing, fans them out to the orchestrator
concurrently and writes the results next to (or away from) the inputs.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from tqdm import tqdm

from .compression_orchestrator import BYTES_PER_MB, CompressionOrchestrator, CompressionRequest
from .config_manager import ConfigManager
from .error_handler import ErrorHandler, ErrorKind
from .temp_file_manager import extension_for

logger = logging.getLogger(__name__)

# Container types worth handing to ffmpeg, keyed by extension
COMPRESSIBLE_FORMATS = {
    '.mp4': 'video/mp4',
    '.mov': 'video/quicktime',
    '.avi': 'video/x-msvideo',
    '.mkv': 'video/x-matroska',
    '.webm': 'video/webm',
    '.mp3': 'audio/mpeg',
    '.wav': 'audio/wav',
    '.flac': 'audio/flac',
}


@dataclass
class FileResult:
    source: Path
    success: bool
    output: Optional[Path] = None
    size_mb: float = 0.0
    reason: Optional[ErrorKind] = None
    error: str = ''


@dataclass
class BatchReport:
    compressed: List[FileResult] = field(default_factory=list)
    failed: List[FileResult] = field(default_factory=list)
    passed_through: List[Path] = field(default_factory=list)
    aborted: Optional[str] = None

    @property
    def attempted(self) -> int:
        return len(self.compressed) + len(self.failed)

    def status(self) -> str:
        """'success', 'partial' or 'failed' for the batch as a whole"""
        if self.aborted or (self.failed and not self.compressed):
            return 'failed'
        if self.failed:
            return 'partial'
        return 'success'

    def message(self) -> str:
        if self.aborted:
            return f"Failed validation with: {self.aborted}"
        if self.attempted == 0:
            return "No files needed compression"
        message = f"Compressed {len(self.compressed)}/{self.attempted} file(s)"
        if self.failed:
            message += "\nFailed: " + ", ".join(f"{r.source.name} ({r.error})" for r in self.failed)
        return message


def is_compressible(path: Path, threshold_mb: float) -> bool:
    """True for a supported media file strictly larger than the threshold"""
    if path.suffix.lower() not in COMPRESSIBLE_FORMATS:
        return False
    try:
        size_mb = path.stat().st_size / BYTES_PER_MB
    except OSError:
        return False
    return size_mb > threshold_mb


class BatchCompressor:
    def __init__(self, orchestrator: CompressionOrchestrator, config: ConfigManager,
                 error_handler: Optional[ErrorHandler] = None, show_progress: bool = True):
        self.orchestrator = orchestrator
        self.config = config
        self.error_handler = error_handler or ErrorHandler()
        self.show_progress = show_progress

    async def run(self, paths: Iterable[Path], output_dir: Optional[Path] = None,
                  suffix: str = '_compressed') -> BatchReport:
        settings = self.config.get_compression_settings()
        tools = self.config.get_tool_settings()
        report = BatchReport()

        compressible = []
        for path in (Path(p) for p in paths):
            if is_compressible(path, settings['threshold_mb']):
                compressible.append(path)
            else:
                report.passed_through.append(path)

        if not compressible:
            logger.info("No files above the compression threshold")
            return report

        claimed = {}
        for path in compressible:
            output = self._output_path(path, output_dir, suffix).resolve()
            if output == path.resolve():
                raise ValueError(f"Output for {path} would overwrite the input; use a suffix or output dir")
            first = claimed.setdefault(output, path)
            if first is not path:
                raise ValueError(f"{first} and {path} would both be written to {output}")

        check = await self.orchestrator.test_tools(tools['ffprobe_path'], tools['ffmpeg_path'])
        if not check.success:
            report.aborted = check.error
            return report

        logger.info(f"Preparing to compress {len(compressible)}/{len(compressible) + len(report.passed_through)} file(s)")

        max_parallel = settings['max_parallel']
        semaphore = asyncio.Semaphore(max_parallel) if max_parallel else None
        tasks = [
            asyncio.ensure_future(self._process_file(path, settings, tools, output_dir, suffix, semaphore))
            for path in compressible
        ]

        results = []
        with tqdm(total=len(tasks), desc="Compressing", unit="file", disable=not self.show_progress) as pbar:
            for next_done in asyncio.as_completed(tasks):
                results.append(await next_done)
                pbar.update(1)

        order = {path: index for index, path in enumerate(compressible)}
        for result in sorted(results, key=lambda r: order[r.source]):
            if result.success:
                report.compressed.append(result)
            else:
                report.failed.append(result)
                self.error_handler.handle_error(result.reason or ErrorKind.ENCODE_FAILED, result.error,
                                                str(result.source))

        self.error_handler.log_batch_summary(report.attempted, len(report.compressed))
        return report

    async def _process_file(self, path: Path, settings, tools, output_dir: Optional[Path], suffix: str,
                            semaphore: Optional[asyncio.Semaphore]) -> FileResult:
        if semaphore is None:
            return await self._compress_one(path, settings, tools, output_dir, suffix)
        async with semaphore:
            return await self._compress_one(path, settings, tools, output_dir, suffix)

    async def _compress_one(self, path: Path, settings, tools, output_dir: Optional[Path],
                            suffix: str) -> FileResult:
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            return FileResult(source=path, success=False, reason=ErrorKind.NOT_FOUND, error=str(e))

        request = CompressionRequest.from_settings(
            data,
            path.name,
            settings['target_size_mb'],
            settings['preset'],
            settings['max_resolution'],
            settings['timeout_seconds'],
            probe_path=tools['ffprobe_path'],
            encoder_path=tools['ffmpeg_path'],
        )
        outcome = await self.orchestrator.compress(request)
        if not outcome.success:
            return FileResult(source=path, success=False, reason=outcome.reason, error=outcome.detail)

        output = self._output_path(path, output_dir, suffix)
        try:
            output.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(output.write_bytes, outcome.data)
        except OSError as e:
            return FileResult(source=path, success=False, reason=ErrorKind.ENCODE_FAILED,
                              error=f"could not write {output}: {e}")

        size_mb = len(outcome.data) / BYTES_PER_MB
        logger.info(f"{path.name} -> {output} ({size_mb:.2f}MB)")
        return FileResult(source=path, success=True, output=output, size_mb=size_mb)

    @staticmethod
    def _output_path(path: Path, output_dir: Optional[Path], suffix: str) -> Path:
        directory = Path(output_dir) if output_dir else path.parent
        return directory / f"{path.stem}{suffix}{extension_for(path.name)}"

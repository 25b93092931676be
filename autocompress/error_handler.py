"""
Error Handling Module
Error taxonomy for tool resolution and compression, plus batch-level
failure tracking and reporting.
"""

import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """Kinds of failure a resolution or compression request can end with"""
    INVALID_CONFIG = "invalid_config"
    NOT_FOUND = "not_found"
    INVALID_BINARY = "invalid_binary"
    VALIDATION_TIMEOUT = "validation_timeout"
    SPAWN_FAILED = "spawn_failed"
    NOT_RESOLVED = "not_resolved"
    PROBE_FAILED = "probe_failed"
    BITRATE_TOO_LOW = "bitrate_too_low"
    ENCODE_FAILED = "encode_failed"
    TIMEOUT = "timeout"


# Kinds that cannot succeed on a retry without the user changing something
NON_RETRYABLE_KINDS = frozenset({
    ErrorKind.INVALID_CONFIG,
    ErrorKind.NOT_FOUND,
    ErrorKind.INVALID_BINARY,
    ErrorKind.BITRATE_TOO_LOW,
})

SUGGESTIONS: Dict[ErrorKind, List[str]] = {
    ErrorKind.INVALID_CONFIG: [
        "Use an absolute path for --ffmpeg-path / --ffprobe-path",
        "Check preset and max resolution values with 'autocompress config validate'",
    ],
    ErrorKind.NOT_FOUND: [
        "Check the configured tool path for typos",
        "Clear the path to fall back to auto-discovery",
    ],
    ErrorKind.INVALID_BINARY: [
        "Point the path at the real ffmpeg/ffprobe executable",
        "Reinstall FFmpeg",
    ],
    ErrorKind.VALIDATION_TIMEOUT: [
        "Check that the tool starts from a terminal",
        "Retry once the system is less loaded",
    ],
    ErrorKind.SPAWN_FAILED: [
        "Check execute permissions on the tool",
        "Check that the tool matches this platform/architecture",
    ],
    ErrorKind.NOT_RESOLVED: [
        "Install FFmpeg in a standard location",
        "Set an explicit path with --ffmpeg-path / --ffprobe-path",
    ],
    ErrorKind.PROBE_FAILED: [
        "Check file integrity",
        "Make sure the file is a media container ffprobe understands",
    ],
    ErrorKind.BITRATE_TOO_LOW: [
        "Increase the target size",
        "Trim the media; it is too long for the target size",
    ],
    ErrorKind.ENCODE_FAILED: [
        "Check the ffmpeg output in the log",
        "Try a different max resolution or preset",
    ],
    ErrorKind.TIMEOUT: [
        "Increase the timeout (--timeout)",
        "Use a faster preset or a lower max resolution",
    ],
}


class ToolError(Exception):
    """Failure raised inside the core; converted to a result at public boundaries"""

    def __init__(self, kind: ErrorKind, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail

    def __repr__(self) -> str:
        return f"ToolError({self.kind.value}, {self.detail!r})"


@dataclass
class ProcessingError:
    """Structured representation of one failed file"""
    kind: ErrorKind
    message: str
    file_path: str
    severity: str  # 'warning', 'error', 'critical'
    suggestions: List[str] = field(default_factory=list)
    retryable: bool = True

    def get_short_description(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def get_detailed_description(self) -> str:
        """Get detailed error description with suggestions"""
        base = f"Error in {self.file_path}: {self.message}"
        if self.suggestions:
            base += "\nSuggestions:\n" + "\n".join(f"  • {s}" for s in self.suggestions)
        return base


class ErrorHandler:
    """Collects and reports failures across a batch of files"""

    def __init__(self):
        self.error_counts = {kind: 0 for kind in ErrorKind}
        self.processed_errors: List[ProcessingError] = []

    def categorize(self, kind: ErrorKind, message: str, file_path: str) -> ProcessingError:
        if kind in (ErrorKind.NOT_RESOLVED, ErrorKind.SPAWN_FAILED, ErrorKind.INVALID_BINARY):
            severity = 'critical'
        elif kind in (ErrorKind.TIMEOUT, ErrorKind.BITRATE_TOO_LOW):
            severity = 'warning'
        else:
            severity = 'error'

        return ProcessingError(
            kind=kind,
            message=message,
            file_path=file_path,
            severity=severity,
            suggestions=list(SUGGESTIONS.get(kind, [])),
            retryable=kind not in NON_RETRYABLE_KINDS,
        )

    def handle_error(self, kind: ErrorKind, message: str, file_path: str) -> ProcessingError:
        """Record a failure and log it according to its severity"""
        error = self.categorize(kind, message, file_path)
        self.processed_errors.append(error)
        self.error_counts[error.kind] += 1

        if error.severity == 'critical':
            logger.error(f"CRITICAL ERROR: {error.get_short_description()}")
            logger.error(f"Details: {error.get_detailed_description()}")
        elif error.severity == 'error':
            logger.error(f"ERROR: {error.get_short_description()}")
            logger.info(f"Suggestions: {'; '.join(error.suggestions[:2])}")
        else:
            logger.warning(f"WARNING: {error.get_short_description()}")

        return error

    def get_error_summary(self) -> Dict[str, Any]:
        total_errors = len(self.processed_errors)
        if total_errors == 0:
            return {'total_errors': 0, 'categories': {}}

        category_counts = {kind.value: count for kind, count in self.error_counts.items() if count > 0}
        severity_counts: Dict[str, int] = {}
        for error in self.processed_errors:
            severity_counts[error.severity] = severity_counts.get(error.severity, 0) + 1
        retryable_count = sum(1 for error in self.processed_errors if error.retryable)

        return {
            'total_errors': total_errors,
            'categories': category_counts,
            'severity_distribution': severity_counts,
            'most_common_category': max(category_counts.items(), key=lambda x: x[1])[0],
            'critical_errors': severity_counts.get('critical', 0),
            'retryable_errors': retryable_count,
            'non_retryable_errors': total_errors - retryable_count,
        }

    def get_top_failures(self, limit: int = 3) -> List[Dict[str, Any]]:
        """Return ranked failure kinds with a representative message"""
        if limit <= 0 or not self.processed_errors:
            return []
        counts: Dict[str, int] = {}
        sample_messages: Dict[str, str] = {}
        for error in self.processed_errors:
            key = error.kind.value
            counts[key] = counts.get(key, 0) + 1
            sample_messages[key] = error.message
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:limit]
        return [
            {'category': kind, 'count': count, 'sample_message': sample_messages.get(kind, '')}
            for kind, count in ranked
        ]

    def log_batch_summary(self, total_files: int, successful_files: int):
        failed_files = total_files - successful_files
        success_rate = (successful_files / total_files * 100) if total_files > 0 else 0

        logger.info("=== BATCH COMPRESSION SUMMARY ===")
        logger.info(f"Total files: {total_files}, Successful: {successful_files}, Failed: {failed_files}")
        logger.info(f"Success rate: {success_rate:.1f}%")

        if failed_files == 0:
            return

        logger.error("Failures by kind:")
        for kind, count in self.error_counts.items():
            if count > 0:
                logger.error(f"  • {kind.value}: {count} file(s)")
                for suggestion in self.get_suggestions(kind)[:1]:
                    logger.info(f"    {suggestion}")

    def get_suggestions(self, kind: ErrorKind) -> List[str]:
        return SUGGESTIONS.get(kind, ["Check the logs for more details"])

    def reset(self):
        self.error_counts = {kind: 0 for kind in ErrorKind}
        self.processed_errors.clear()


def describe(error: Optional[BaseException]) -> str:
    """Human readable text for an error, never empty"""
    if error is None:
        return "unknown error"
    text = str(error)
    return text or type(error).__name__

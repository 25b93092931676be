"""
Binary Locator
Finds, validates and caches the ffmpeg/ffprobe executables.

Discovery never consults PATH: an explicit absolute path from the user is
tried alone, otherwise a fixed per-platform list of install locations is
walked in order. A candidate is only trusted after it has been run with
``-version`` and identified itself as the expected tool.
"""

import logging
import os
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .error_handler import ErrorKind, ToolError
from .process_runner import run_process

logger = logging.getLogger(__name__)

DEFAULT_VALIDATION_TIMEOUT_MS = 5000


class ToolKind(Enum):
    PROBE = "ffprobe"
    ENCODER = "ffmpeg"

    @property
    def binary_name(self) -> str:
        return self.value


@dataclass(frozen=True)
class ResolvedBinary:
    kind: ToolKind
    path: str
    validated_at: float


@dataclass
class ResolutionResult:
    """Outcome of a resolution attempt"""
    success: bool
    kind: ToolKind
    path: Optional[str] = None
    error: Optional[ToolError] = None

    def to_dict(self) -> Dict[str, object]:
        if self.success:
            return {'success': True, 'path': self.path}
        return {'success': False, 'error': str(self.error)}


def candidate_paths(kind: ToolKind, platform: str) -> List[str]:
    """Ordered install locations checked for ``kind`` on ``platform`` (a sys.platform value)"""
    name = kind.binary_name
    if platform == 'win32':
        return [
            f"C:\\ffmpeg\\bin\\{name}.exe",
            f"C:\\Program Files\\ffmpeg\\bin\\{name}.exe",
            f"C:\\Program Files (x86)\\ffmpeg\\bin\\{name}.exe",
        ]
    if platform == 'darwin':
        return [
            f"/opt/homebrew/bin/{name}",
            f"/usr/local/bin/{name}",
            f"/usr/bin/{name}",
        ]
    return [
        f"/usr/bin/{name}",
        f"/usr/local/bin/{name}",
        f"/bin/{name}",
        f"/snap/bin/{name}",
        f"/app/bin/{name}",
    ]


class BinaryLocator:
    """Process-lifetime cache of validated tool paths.

    One instance is created at startup and shared by every request. The cache
    is write-once per tool kind and is only mutated through ``resolve``.
    """

    def __init__(self, platform: Optional[str] = None,
                 validation_timeout_ms: int = DEFAULT_VALIDATION_TIMEOUT_MS,
                 candidate_provider: Callable[[ToolKind, str], List[str]] = candidate_paths):
        self.platform = platform or sys.platform
        self.validation_timeout_ms = validation_timeout_ms
        self._candidate_provider = candidate_provider
        self._cache: Dict[ToolKind, ResolvedBinary] = {}

    def resolved(self) -> Dict[ToolKind, ResolvedBinary]:
        return dict(self._cache)

    def current_path(self, kind: ToolKind) -> str:
        """Path of an already resolved tool"""
        entry = self._cache.get(kind)
        if entry is None:
            raise ToolError(ErrorKind.NOT_RESOLVED, f"{kind.binary_name} has not been resolved")
        return entry.path

    async def resolve(self, user_path: Optional[str], kind: ToolKind) -> ResolvedBinary:
        cached = self._cache.get(kind)
        if cached is not None:
            return cached

        name = kind.binary_name
        if user_path:
            if not os.path.isabs(user_path):
                raise ToolError(ErrorKind.INVALID_CONFIG, f"{name} path must be absolute: {user_path}")
            if not os.path.exists(user_path):
                raise ToolError(ErrorKind.NOT_FOUND, f"{name} not found at {user_path}")
            # An explicit path that fails validation is final; no fallback to discovery
            await self.validate(user_path, kind)
            return self._store(kind, user_path)

        searched = []
        for candidate in self._candidate_provider(kind, self.platform):
            searched.append(candidate)
            if not os.path.exists(candidate):
                continue
            try:
                await self.validate(candidate, kind)
            except ToolError as e:
                logger.debug(f"Rejected {name} candidate {candidate}: {e}")
                continue
            return self._store(kind, candidate)

        raise ToolError(
            ErrorKind.NOT_RESOLVED,
            f"{name} not found, either needs installation or define a custom path "
            f"(searched: {', '.join(searched) or 'nothing'})",
        )

    async def try_resolve(self, user_path: Optional[str], kind: ToolKind) -> ResolutionResult:
        try:
            entry = await self.resolve(user_path, kind)
        except ToolError as e:
            logger.warning(f"Could not resolve {kind.binary_name}: {e}")
            return ResolutionResult(success=False, kind=kind, error=e)
        return ResolutionResult(success=True, kind=kind, path=entry.path)

    async def validate(self, path: str, kind: ToolKind):
        """Run ``path -version`` and check it identifies as ``kind``"""
        name = kind.binary_name
        try:
            result = await run_process([path, '-version'], timeout_ms=self.validation_timeout_ms)
        except OSError as e:
            raise ToolError(ErrorKind.SPAWN_FAILED, f"failed to spawn {path}: {e}") from e

        if result.timed_out:
            raise ToolError(
                ErrorKind.VALIDATION_TIMEOUT,
                f"{path} validation timed out after {self.validation_timeout_ms}ms",
            )
        if result.returncode != 0 or name not in result.stdout_text.lower():
            raise ToolError(ErrorKind.INVALID_BINARY, f"{path} is not a valid {name} binary")

        logger.debug(f"Validated {name} at {path}")

    def _store(self, kind: ToolKind, path: str) -> ResolvedBinary:
        # Concurrent resolutions may both validate; the first one stored wins
        entry = self._cache.setdefault(kind, ResolvedBinary(kind, path, time.monotonic()))
        if entry.path == path:
            logger.info(f"Resolved {kind.binary_name}: {path}")
        return entry

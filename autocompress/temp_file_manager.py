# temp_file_manager.py
import asyncio
import logging
import os
import secrets
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = '.mp4'


class ArtifactRole(Enum):
    INPUT = "in"
    OUTPUT = "out"


@dataclass(frozen=True)
class TempArtifact:
    path: Path
    role: ArtifactRole


def extension_for(file_name: str) -> str:
    """Extension of ``file_name`` including the dot, ``.mp4`` when it has none."""
    return os.path.splitext(file_name)[1] or DEFAULT_EXTENSION


class TempFileManager:
    """Owns the temporary files of a single request and ensures cleanup."""

    def __init__(self, temp_dir: Optional[str] = None, prefix: str = 'ac'):
        self.temp_dir = Path(temp_dir or tempfile.gettempdir())
        self.prefix = prefix
        self._temp_files: List[TempArtifact] = []

    def allocate(self, role: ArtifactRole, extension: str = DEFAULT_EXTENSION) -> TempArtifact:
        """Reserve a unique path for an artifact; the file itself is not created."""
        # Nanosecond timestamp plus a random suffix keeps concurrent requests apart
        name = f"{self.prefix}_{role.value}_{time.time_ns()}_{secrets.token_hex(4)}{extension}"
        artifact = TempArtifact(self.temp_dir / name, role)
        self.register(artifact)
        return artifact

    def register(self, artifact: TempArtifact):
        """Register a temporary file for cleanup."""
        if artifact not in self._temp_files:
            self._temp_files.append(artifact)

    def unregister(self, artifact: TempArtifact):
        """Unregister a temporary file (if it was moved or already cleaned)."""
        try:
            self._temp_files.remove(artifact)
        except ValueError:
            pass

    async def cleanup(self):
        """Delete every registered artifact. Failures are logged, never raised."""
        for artifact in list(self._temp_files):
            try:
                await asyncio.to_thread(artifact.path.unlink)
                logger.debug(f"Cleaned up temporary file: {artifact.path}")
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Failed to clean up temporary file {artifact.path}: {e}")
            self.unregister(artifact)

    def get_temp_count(self) -> int:
        return len(self._temp_files)

    def list_temp_files(self) -> List[TempArtifact]:
        return list(self._temp_files)

"""
Process Runner
Spawns external tools without a shell and waits for them with an optional deadline
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Terminal state of one child process"""
    argv: List[str]
    returncode: Optional[int]
    stdout: bytes = b""
    stderr: bytes = b""
    timed_out: bool = False

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode('utf-8', errors='replace')

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode('utf-8', errors='replace')


def kill_process_tree(pid: int):
    """Forcibly kill a process and all of its descendants (best effort)"""
    try:
        parent = psutil.Process(pid)
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        return

    for child in children:
        try:
            child.kill()
        except psutil.NoSuchProcess:
            pass
    try:
        parent.kill()
    except psutil.NoSuchProcess:
        pass


async def _reap(process: asyncio.subprocess.Process):
    if process.returncode is None:
        kill_process_tree(process.pid)
    await process.wait()


async def run_process(argv: Sequence[str], timeout_ms: Optional[int] = None) -> ProcessResult:
    """Run ``argv`` to completion and collect its output.

    The call settles exactly once. When the deadline fires first the process
    tree is killed and a ``timed_out`` result is returned; whatever exit status
    the killed process reports afterwards is discarded. Spawn failures raise
    ``OSError`` for the caller to classify.
    """
    argv = [str(arg) for arg in argv]
    logger.debug(f"Spawning: {' '.join(argv)}")

    process = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    timeout = timeout_ms / 1000 if timeout_ms is not None else None
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{argv[0]} (pid {process.pid}) exceeded {timeout_ms}ms, killing")
        await _reap(process)
        return ProcessResult(argv=argv, returncode=None, timed_out=True)
    finally:
        # Cancellation of the awaiting task must not leave the child running
        if process.returncode is None:
            await asyncio.shield(_reap(process))

    logger.debug(f"{argv[0]} exited with code {process.returncode}")
    return ProcessResult(argv=argv, returncode=process.returncode, stdout=stdout, stderr=stderr)

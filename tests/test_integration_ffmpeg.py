"""
Round trip through a real ffmpeg/ffprobe install; skipped when none is available
"""

import asyncio
import shutil
import subprocess

import pytest

from autocompress.binary_locator import BinaryLocator
from autocompress.compression_orchestrator import CompressionOrchestrator, CompressionRequest
from autocompress.ffmpeg_utils import FFmpegUtils

FFMPEG = shutil.which('ffmpeg')
FFPROBE = shutil.which('ffprobe')


def _has_libx264() -> bool:
    if not FFMPEG:
        return False
    result = subprocess.run([FFMPEG, '-hide_banner', '-encoders'], capture_output=True, text=True, timeout=30)
    return 'libx264' in result.stdout


pytestmark = pytest.mark.skipif(not (FFMPEG and FFPROBE and _has_libx264()),
                                reason="ffmpeg with libx264 and ffprobe required")


@pytest.fixture
def sample_clip(tmp_path):
    path = tmp_path / 'sample.mp4'
    subprocess.run([
        FFMPEG, '-y', '-hide_banner', '-loglevel', 'error',
        '-f', 'lavfi', '-i', 'testsrc=duration=3:size=1280x720:rate=25',
        '-f', 'lavfi', '-i', 'sine=frequency=440:duration=3',
        '-c:v', 'libx264', '-b:v', '4M', '-c:a', 'aac', '-shortest', str(path),
    ], check=True, timeout=120)
    return path


def _probe(path, entries, stream=None):
    cmd = [FFPROBE, '-v', 'error']
    if stream:
        cmd += ['-select_streams', stream]
    cmd += ['-show_entries', entries, '-of', 'default=noprint_wrappers=1:nokey=1', str(path)]
    return subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=30).stdout


def test_real_round_trip(sample_clip, tmp_path):
    work = tmp_path / 'work'
    work.mkdir()
    orchestrator = CompressionOrchestrator(BinaryLocator(), temp_dir=str(work))
    request = CompressionRequest(
        input_bytes=sample_clip.read_bytes(),
        file_name=sample_clip.name,
        target_size_bytes=1024 * 1024,
        preset='ultrafast',
        max_resolution='480',
        timeout_ms=120_000,
        probe_path=FFPROBE,
        encoder_path=FFMPEG,
    )

    outcome = asyncio.run(orchestrator.compress(request))

    assert outcome.success, outcome.detail
    output = tmp_path / 'result.mp4'
    output.write_bytes(outcome.data)
    assert FFmpegUtils.parse_duration(_probe(output, 'format=duration')) == pytest.approx(3.0, abs=0.2)
    width, height = (int(v) for v in _probe(output, 'stream=width,height', 'v:0').split())
    assert width <= 854 and height <= 480
    assert width % 2 == 0 and height % 2 == 0
    assert list(work.iterdir()) == []

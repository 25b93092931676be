"""
Shared fixtures: fake ffmpeg/ffprobe executables.

Each fake is a /bin/sh wrapper exec'ing a Python script, so the process seen by
the code under test is a single pid. Every invocation appends its argv to
``<logs>/<name>.calls`` and writes its pid to ``<logs>/<name>.pid``.
"""

import json
import logging
import os
import stat
import sys
from pathlib import Path

import pytest

from autocompress.logger_setup import ROOT_LOGGER

FAKE_TOOL_TEMPLATE = '''\
import json, os, shutil, sys, time

CONFIG = {config!r}

args = sys.argv[1:]
with open(os.path.join(CONFIG['log_dir'], CONFIG['name'] + '.calls'), 'a') as f:
    f.write(json.dumps(args) + '\\n')
with open(os.path.join(CONFIG['log_dir'], CONFIG['name'] + '.pid'), 'w') as f:
    f.write(str(os.getpid()))

if args == ['-version']:
    time.sleep(CONFIG['version_sleep'])
    sys.stdout.write(CONFIG['version_output'])
    sys.stdout.flush()
    sys.exit(CONFIG['version_exit'])

time.sleep(CONFIG['run_sleep'])
sys.stdout.write(CONFIG['stdout'])
sys.stderr.write(CONFIG['stderr'])
sys.stdout.flush()
sys.stderr.flush()
if CONFIG['exit_code'] != 0:
    sys.exit(CONFIG['exit_code'])
if CONFIG['copy_input']:
    shutil.copyfile(args[args.index('-i') + 1], args[-1])
sys.exit(0)
'''


def _defaults(name: str) -> dict:
    return {
        'name': name,
        'version_output': f"{name} version 6.1-fake Copyright (c) 2000-2023 the FFmpeg developers\n",
        'version_exit': 0,
        'version_sleep': 0,
        'run_sleep': 0,
        'stdout': '120.000000\n' if name == 'ffprobe' else '',
        'stderr': '',
        'exit_code': 0,
        'copy_input': name == 'ffmpeg',
    }


@pytest.fixture
def tool_logs(tmp_path) -> Path:
    logs = tmp_path / 'tool_logs'
    logs.mkdir()
    return logs


@pytest.fixture
def make_tool(tmp_path, tool_logs):
    """Create a fake tool; returns its absolute path as a string."""
    def _make(name: str, directory: Path = None, **overrides) -> str:
        directory = Path(directory) if directory else tmp_path / 'bin'
        directory.mkdir(parents=True, exist_ok=True)
        config = _defaults(name)
        config['log_dir'] = str(tool_logs)
        config.update(overrides)

        script = directory / f"{name}_impl.py"
        script.write_text(FAKE_TOOL_TEMPLATE.format(config=config), encoding='utf-8')
        wrapper = directory / name
        wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n', encoding='utf-8')
        wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(wrapper)
    return _make


@pytest.fixture
def tool_calls(tool_logs):
    """List of argv lists a fake tool was invoked with."""
    def _calls(name: str) -> list:
        path = tool_logs / f"{name}.calls"
        if not path.exists():
            return []
        return [json.loads(line) for line in path.read_text(encoding='utf-8').splitlines() if line]
    return _calls


@pytest.fixture
def tool_pid(tool_logs):
    def _pid(name: str) -> int:
        return int((tool_logs / f"{name}.pid").read_text(encoding='utf-8'))
    return _pid


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    directory = tmp_path / 'work'
    directory.mkdir()
    return directory


def pytest_collection_modifyitems(config, items):
    if os.name != 'nt':
        return
    skip = pytest.mark.skip(reason="fake tools are POSIX shell wrappers")
    for item in items:
        if 'make_tool' in getattr(item, 'fixturenames', ()):
            item.add_marker(skip)


@pytest.fixture
def reset_logging():
    """Drop handlers installed by setup_logging; they hold one test's captured stdout."""
    root = logging.getLogger()
    existing = list(root.handlers)
    yield
    for logger in (logging.getLogger(ROOT_LOGGER), root):
        for handler in list(logger.handlers):
            if logger is root and handler in existing:
                continue
            logger.removeHandler(handler)
            handler.close()
    logging.getLogger(ROOT_LOGGER).propagate = True

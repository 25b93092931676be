#!/usr/bin/env python3
"""
AutoCompress - Main Entry Point
Compress oversized videos and audio to a target size before upload

Locates a trusted ffmpeg/ffprobe pair (explicit path or standard install
locations, never PATH), then re-encodes every file above the threshold to fit
the target size. Output files are written next to the inputs unless -o is given.
"""

import sys
import os

# Force UTF-8 encoding for console output
if sys.platform.startswith('win'):
    if hasattr(sys.stdout, 'reconfigure'):
        sys.stdout.reconfigure(encoding='utf-8')
    if hasattr(sys.stderr, 'reconfigure'):
        sys.stderr.reconfigure(encoding='utf-8')

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from autocompress.cli import main

if __name__ == '__main__':
    main()

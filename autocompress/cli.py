"""
Command Line Interface for AutoCompress
Main entry point with argument parsing and command execution
"""

import argparse
import asyncio
import glob
import platform
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional

import psutil

from .batch_compressor import BatchCompressor
from .binary_locator import BinaryLocator, ToolKind
from .compression_orchestrator import CompressionOrchestrator
from .config_manager import ConfigManager, get_package_config_dir
from .error_handler import ErrorHandler, describe
from .ffmpeg_utils import KEEP_ORIGINAL, PRESETS, RESOLUTION_BOUNDS
from .logger_setup import setup_logging

logger = None  # Will be initialized after logging setup


class AutoCompressCLI:
    def __init__(self):
        self.config: Optional[ConfigManager] = None
        self.locator: Optional[BinaryLocator] = None
        self.orchestrator: Optional[CompressionOrchestrator] = None

    def main(self, argv: Optional[List[str]] = None) -> int:
        """Main entry point, returns the process exit status"""
        global logger
        try:
            args = self._parse_arguments(argv)
            effective_level = 'DEBUG' if args.debug else args.log_level
            logger = setup_logging(log_level=effective_level, logs_dir=args.logs_dir)

            self._initialize_components(args)
            return self._execute_command(args)

        except KeyboardInterrupt:
            if logger:
                logger.info("Operation cancelled by user")
            return 1
        except Exception as e:
            if logger:
                logger.error(f"Unexpected error: {describe(e)}")
                logger.debug(traceback.format_exc())
            else:
                print(f"Error: {describe(e)}")
            return 1

    def _parse_arguments(self, argv: Optional[List[str]] = None) -> argparse.Namespace:
        parser = argparse.ArgumentParser(
            prog='autocompress',
            description="AutoCompress - shrink oversized media to an upload size limit with ffmpeg",
            epilog="Examples:\n"
                   "  %(prog)s c clip.mp4 -s 9\n"
                   "  %(prog)s c \"*.mov\" -o compressed/ --max-resolution 720\n"
                   "  %(prog)s tools --ffmpeg-path /opt/ffmpeg/bin/ffmpeg\n"
                   "  %(prog)s config validate\n",
            formatter_class=argparse.RawDescriptionHelpFormatter
        )

        parser.add_argument('--config-dir', default=get_package_config_dir(),
                            help='Configuration directory containing autocompress.yaml')
        parser.add_argument('--logs-dir', default='logs', help='Directory for log files (default: logs)')
        parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                            default=None, help='Console logging level (default: WARNING)')
        parser.add_argument('-v', '--debug', action='store_true',
                            help='Enable verbose debug output in console and logs')
        parser.add_argument('--ffmpeg-path', help='Absolute path to the ffmpeg binary (default: auto-discover)')
        parser.add_argument('--ffprobe-path', help='Absolute path to the ffprobe binary (default: auto-discover)')

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        compress_parser = subparsers.add_parser('compress', aliases=['c'],
                                                help='Compress media file(s) above the size threshold')
        compress_parser.add_argument('inputs', nargs='+', help='Input files or glob patterns')
        compress_parser.add_argument('-o', '--output-dir', help='Output directory (default: next to each input)')
        compress_parser.add_argument('-s', '--target-size', type=float, metavar='MB',
                                     help='File size to target with compression')
        compress_parser.add_argument('--threshold', type=float, metavar='MB',
                                     help='Maximum file size before compression is used')
        compress_parser.add_argument('--preset', choices=PRESETS, help='Encoding speed/quality tradeoff')
        compress_parser.add_argument('--max-resolution', choices=[KEEP_ORIGINAL] + list(RESOLUTION_BOUNDS),
                                     help='Maximum output resolution')
        compress_parser.add_argument('--timeout', type=float, metavar='SECONDS',
                                     help='Time allowed per file before ffmpeg is killed')
        compress_parser.add_argument('--suffix', default='_compressed',
                                     help='Suffix for output files (default: _compressed)')
        compress_parser.add_argument('-j', '--parallel', type=int, metavar='N',
                                     help='Maximum files compressed at once (default: all)')
        compress_parser.add_argument('--no-progress', action='store_true', help='Disable the progress bar')

        subparsers.add_parser('check-tools', aliases=['tools'],
                              help='Locate and validate ffmpeg/ffprobe')

        config_parser = subparsers.add_parser('config', aliases=['cfg'], help='Configuration management')
        config_subparsers = config_parser.add_subparsers(dest='config_action')
        config_subparsers.add_parser('show', help='Show current configuration')
        config_subparsers.add_parser('validate', help='Validate configuration values')

        args = parser.parse_args(argv)
        if not args.command:
            parser.print_help()
            parser.exit(1)
        return args

    def _initialize_components(self, args: argparse.Namespace):
        self.config = ConfigManager(args.config_dir)
        self.config.update_from_args(self._extract_config_overrides(args))

        tools = self.config.get_tool_settings()
        compression = self.config.get_compression_settings()
        self.locator = BinaryLocator(validation_timeout_ms=tools['validation_timeout_ms'])
        self.orchestrator = CompressionOrchestrator(
            self.locator,
            temp_dir=self.config.get_temp_dir(),
            audio_bitrate_kbps=compression['audio_bitrate_kbps'],
            min_video_bitrate_kbps=compression['min_video_bitrate_kbps'],
        )

    def _extract_config_overrides(self, args: argparse.Namespace) -> Dict[str, Any]:
        return {
            'autocompress.tools.ffmpeg_path': args.ffmpeg_path,
            'autocompress.tools.ffprobe_path': args.ffprobe_path,
            'autocompress.compression.target_size_mb': getattr(args, 'target_size', None),
            'autocompress.compression.threshold_mb': getattr(args, 'threshold', None),
            'autocompress.compression.preset': getattr(args, 'preset', None),
            'autocompress.compression.max_resolution': getattr(args, 'max_resolution', None),
            'autocompress.compression.timeout_seconds': getattr(args, 'timeout', None),
            'autocompress.compression.max_parallel': getattr(args, 'parallel', None),
        }

    def _execute_command(self, args: argparse.Namespace) -> int:
        command = args.command
        if command == 'c':
            command = 'compress'
        elif command == 'tools':
            command = 'check-tools'
        elif command == 'cfg':
            command = 'config'

        if command == 'compress':
            return self._compress(args)
        if command == 'check-tools':
            return self._check_tools()
        if command == 'config':
            return self._handle_config_command(args)

        logger.error(f"Unknown command: {command}")
        return 1

    def _expand_inputs(self, inputs: List[str]) -> List[Path]:
        paths = []
        for item in inputs:
            if any(char in item for char in ['*', '?', '[']):
                matches = sorted(glob.glob(item))
                if not matches:
                    logger.warning(f"No files match pattern: {item}")
                paths.extend(Path(match) for match in matches)
            else:
                paths.append(Path(item))
        return paths

    def _compress(self, args: argparse.Namespace) -> int:
        issues = self.config.validate_configuration_values()
        if issues:
            for issue in issues:
                print(f"Configuration error: {issue}")
            return 1
        for warning in self.config.get_configuration_warnings():
            logger.warning(warning)

        paths = self._expand_inputs(args.inputs)
        missing = [p for p in paths if not p.is_file()]
        for path in missing:
            print(f"Input not found: {path}")
        paths = [p for p in paths if p.is_file()]
        if not paths:
            return 1

        batch = BatchCompressor(self.orchestrator, self.config, ErrorHandler(),
                                show_progress=not args.no_progress)
        output_dir = Path(args.output_dir) if args.output_dir else None
        report = asyncio.run(batch.run(paths, output_dir=output_dir, suffix=args.suffix))

        print(report.message())
        for result in report.compressed:
            print(f"  {result.source.name} -> {result.output} ({result.size_mb:.2f}MB)")
        if report.passed_through:
            print(f"Left untouched: {', '.join(p.name for p in report.passed_through)}")
        return 0 if report.status() == 'success' and not missing else 1

    def _check_tools(self) -> int:
        tools = self.config.get_tool_settings()
        result = asyncio.run(self.orchestrator.test_tools(tools['ffprobe_path'], tools['ffmpeg_path']))

        print(f"Platform: {platform.system()} {platform.machine()}, "
              f"{psutil.cpu_count()} CPUs, {psutil.virtual_memory().total / (1024 ** 3):.1f}GB RAM")
        for kind in ToolKind:
            entry = self.locator.resolved().get(kind)
            print(f"  {kind.binary_name}: {entry.path if entry else 'not resolved'}")
        if not result.success:
            print(f"Tool check failed: {result.error}")
            return 1
        print("Tools OK")
        return 0

    def _handle_config_command(self, args: argparse.Namespace) -> int:
        action = getattr(args, 'config_action', None) or 'show'
        if action == 'show':
            self.config.log_active_configuration()
            print(f"Source: {self.config.loaded_from}")
            for key, value in self.config.get_compression_settings().items():
                print(f"  {key}: {value}")
            for key, value in self.config.get_tool_settings().items():
                print(f"  {key}: {value if value is not None else 'auto-discover'}")
            return 0

        issues = self.config.validate_configuration_values()
        if issues:
            print("Configuration issues:")
            for issue in issues:
                print(f"  - {issue}")
            return 1
        for warning in self.config.get_configuration_warnings():
            print(f"Warning: {warning}")
        print("Configuration OK")
        return 0


def main(argv: Optional[List[str]] = None):
    sys.exit(AutoCompressCLI().main(argv))

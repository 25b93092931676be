"""
Configuration Manager for AutoCompress
Handles loading and managing configuration from YAML files and CLI arguments
"""

import os
import logging
from typing import Dict, Any, List, Optional

import yaml

from .ffmpeg_utils import KEEP_ORIGINAL, PRESETS, RESOLUTION_BOUNDS

logger = logging.getLogger(__name__)

CONFIG_FILE = 'autocompress.yaml'


def get_package_config_dir() -> str:
    return os.path.join(os.path.abspath(os.path.dirname(__file__)), 'config')


class ConfigManager:
    def __init__(self, config_dir: Optional[str] = None):
        self.config_dir = config_dir or get_package_config_dir()
        self.config: Dict[str, Any] = {}
        self.loaded_from: Optional[str] = None
        self._load_config()

    def _load_config(self):
        """Load the configuration file, preferring the config dir over packaged defaults"""
        # Packaged defaults first so a partial user file only overrides what it names
        packaged_path = os.path.join(get_package_config_dir(), CONFIG_FILE)
        if os.path.exists(packaged_path):
            self._merge_file(packaged_path)
            self.loaded_from = packaged_path
        else:
            logger.warning(f"Packaged default config missing: {packaged_path}")

        config_path = os.path.join(self.config_dir, CONFIG_FILE)
        if os.path.abspath(config_path) != os.path.abspath(packaged_path) and os.path.exists(config_path):
            self._merge_file(config_path)
            self.loaded_from = config_path
            logger.debug(f"Loaded config from {config_path}")

    def _merge_file(self, path: str):
        try:
            with open(path, 'r', encoding='utf-8') as file:
                config_data = yaml.safe_load(file) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading configuration from {path}: {e}")
            raise
        if not isinstance(config_data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        _deep_merge(self.config, config_data)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: get('autocompress.compression.preset')
        """
        value = self.config
        try:
            for key in key_path.split('.'):
                value = value[key]
            return value
        except (KeyError, TypeError):
            logger.debug(f"Configuration key '{key_path}' not found, using default: {default}")
            return default

    def update_from_args(self, args_dict: Dict[str, Any]):
        """Update configuration with command line arguments"""
        applied = 0
        for key, value in args_dict.items():
            if value is not None:
                old_value = self.get(key)
                self._set_nested_value(key, value)
                applied += 1
                logger.info(f"Configuration override applied: {key} = {value} (was: {old_value})")

        if applied:
            logger.info(f"Applied {applied} CLI configuration overrides")

    def _set_nested_value(self, key_path: str, value: Any):
        keys = key_path.split('.')
        config_section = self.config
        for key in keys[:-1]:
            if not isinstance(config_section.get(key), dict):
                config_section[key] = {}
            config_section = config_section[key]
        config_section[keys[-1]] = value

    def get_compression_settings(self) -> Dict[str, Any]:
        return {
            'target_size_mb': self.get('autocompress.compression.target_size_mb', 9),
            'threshold_mb': self.get('autocompress.compression.threshold_mb', 10),
            'preset': self.get('autocompress.compression.preset', 'medium'),
            'max_resolution': str(self.get('autocompress.compression.max_resolution', KEEP_ORIGINAL)),
            'timeout_seconds': self.get('autocompress.compression.timeout_seconds', 10),
            'audio_bitrate_kbps': self.get('autocompress.compression.audio_bitrate_kbps', 128),
            'min_video_bitrate_kbps': self.get('autocompress.compression.min_video_bitrate_kbps', 100),
            'max_parallel': self.get('autocompress.compression.max_parallel', 0) or 0,
        }

    def get_tool_settings(self) -> Dict[str, Any]:
        return {
            'ffmpeg_path': self.get('autocompress.tools.ffmpeg_path') or None,
            'ffprobe_path': self.get('autocompress.tools.ffprobe_path') or None,
            'validation_timeout_ms': self.get('autocompress.tools.validation_timeout_ms', 5000),
        }

    def get_temp_dir(self) -> Optional[str]:
        return self.get('autocompress.temp_dir') or None

    def validate_configuration_values(self) -> List[str]:
        """Validate configuration values and return list of issues"""
        issues = []
        compression = self.get_compression_settings()
        tools = self.get_tool_settings()

        for key in ('target_size_mb', 'threshold_mb', 'timeout_seconds',
                    'audio_bitrate_kbps', 'min_video_bitrate_kbps'):
            value = compression[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                issues.append(f"Invalid {key}: {value} (must be positive number)")

        if compression['preset'] not in PRESETS:
            issues.append(f"Invalid preset: {compression['preset']} (must be one of: {', '.join(PRESETS)})")

        resolutions = [KEEP_ORIGINAL] + list(RESOLUTION_BOUNDS)
        if compression['max_resolution'] not in resolutions:
            issues.append(f"Invalid max_resolution: {compression['max_resolution']} "
                          f"(must be one of: {', '.join(resolutions)})")

        max_parallel = compression['max_parallel']
        if not isinstance(max_parallel, int) or max_parallel < 0:
            issues.append(f"Invalid max_parallel: {max_parallel} (must be 0 or a positive integer)")

        for key in ('ffmpeg_path', 'ffprobe_path'):
            path = tools[key]
            if path and not os.path.isabs(path):
                issues.append(f"Invalid {key}: {path} (must be an absolute path)")

        timeout_ms = tools['validation_timeout_ms']
        if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
            issues.append(f"Invalid validation_timeout_ms: {timeout_ms} (must be positive integer)")

        return issues

    def get_configuration_warnings(self) -> List[str]:
        """Suspicious but usable settings; these never block compression"""
        warnings = []
        compression = self.get_compression_settings()
        target = compression['target_size_mb']
        threshold = compression['threshold_mb']
        if not self.validate_configuration_values() and target > threshold:
            warnings.append(f"target_size_mb ({target}) is above threshold_mb ({threshold}); "
                            f"files between the two may grow")
        return warnings

    def log_active_configuration(self):
        """Log active configuration values for debugging"""
        logger.info("=== Active Configuration Values ===")
        logger.info(f"Configuration source: {self.loaded_from or 'built-in defaults'}")
        for key, value in self.get_compression_settings().items():
            logger.info(f"  {key}: {value}")
        for key, value in self.get_tool_settings().items():
            logger.info(f"  {key}: {value if value is not None else 'auto-discover'}")
        logger.info("=== End Configuration ===")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]):
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value

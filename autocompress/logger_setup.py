"""
Logging Setup for AutoCompress
Initializes logging configuration from YAML file
"""

import os
import logging
import logging.config
from typing import Optional

import yaml
from colorama import init, Fore, Style

# Initialize colorama for Windows compatibility
init(autoreset=True)

ROOT_LOGGER = 'autocompress'
CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(message)s'
FILE_FORMAT = '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'


class ColoredFormatter(logging.Formatter):
    """Custom formatter to add colors to console output"""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA + Style.BRIGHT,
    }

    def format(self, record):
        # Color a copy so file handlers sharing the record keep the plain level name
        record = logging.makeLogRecord(record.__dict__)
        if record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{Style.RESET_ALL}"
        return super().format(record)


def _file_handler(logs_dir: str, filename: str, level: str) -> dict:
    return {
        'class': 'logging.FileHandler',
        'level': level,
        'formatter': 'detailed',
        'filename': os.path.join(logs_dir, filename),
        'mode': 'a',
        'encoding': 'utf-8',
    }


def _default_config(logs_dir: str) -> dict:
    """Used when the YAML file is missing or has no ``logging`` key; mirrors config/logging.yaml"""
    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'detailed': {'format': FILE_FORMAT, 'datefmt': '%Y-%m-%d %H:%M:%S'},
            'console': {'format': CONSOLE_FORMAT, 'datefmt': '%H:%M:%S'},
        },
        'handlers': {
            'console': {'class': 'logging.StreamHandler', 'level': 'WARNING',
                        'formatter': 'console', 'stream': 'ext://sys.stdout'},
            'file': _file_handler(logs_dir, 'autocompress.log', 'DEBUG'),
            'error_file': _file_handler(logs_dir, 'errors.log', 'ERROR'),
        },
        'loggers': {
            ROOT_LOGGER: {'level': 'DEBUG', 'handlers': ['console', 'file', 'error_file'], 'propagate': False},
        },
        'root': {'level': 'WARNING', 'handlers': ['console']},
    }


def setup_logging(config_path: Optional[str] = None, log_level: Optional[str] = None,
                  logs_dir: str = "logs") -> logging.Logger:
    """
    Setup logging configuration from YAML file

    Args:
        config_path: Path to logging configuration file (packaged default when omitted)
        log_level: Override console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logs_dir: Directory receiving the log files
    """
    if config_path is None:
        config_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config', 'logging.yaml')

    try:
        os.makedirs(logs_dir, exist_ok=True)

        if os.path.exists(config_path):
            with open(config_path, 'r', encoding='utf-8') as file:
                config_data = yaml.safe_load(file) or {}
            logging_config = config_data.get('logging', _default_config(logs_dir))
        else:
            logging_config = _default_config(logs_dir)

        # File handlers always write under logs_dir
        for handler in logging_config.get('handlers', {}).values():
            if 'filename' in handler:
                handler['filename'] = os.path.join(logs_dir, os.path.basename(handler['filename']))

        if log_level:
            log_level = log_level.upper()
            console_handler = logging_config.get('handlers', {}).get('console')
            if console_handler:
                console_handler['level'] = log_level

        logging.config.dictConfig(logging_config)
    except Exception as e:
        # Fallback to basic logging if configuration fails
        logging.basicConfig(
            level=logging.INFO,
            format=CONSOLE_FORMAT,
            datefmt='%H:%M:%S'
        )
        logger = logging.getLogger(ROOT_LOGGER)
        logger.error(f"Failed to load logging configuration: {e}")
        logger.info("Using basic logging configuration")
        return logger

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setFormatter(ColoredFormatter(
                fmt=CONSOLE_FORMAT, datefmt='%H:%M:%S'))

    logger.debug("Logging initialized")
    return logger


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance"""
    if name:
        return logging.getLogger(f'{ROOT_LOGGER}.{name}')
    return logging.getLogger(ROOT_LOGGER)

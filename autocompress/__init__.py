"""AutoCompress package root.

Export primary classes and CLI for convenience when installed via pip.
"""

from .cli import main as cli_main  # noqa: F401
from .binary_locator import BinaryLocator, ToolKind, ResolvedBinary, ResolutionResult, candidate_paths  # noqa: F401
from .compression_orchestrator import CompressionOrchestrator, CompressionRequest, CompressionOutcome, ToolCheckResult  # noqa: F401
from .batch_compressor import BatchCompressor, BatchReport  # noqa: F401
from .error_handler import ErrorKind, ToolError, ErrorHandler  # noqa: F401
from .config_manager import ConfigManager  # noqa: F401

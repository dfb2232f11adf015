"""
utils package for ghkit

Shared helpers for console output, file handling and version information.
"""

from .console import (
    ConsoleLogger,
    colorize,
    emit_workflow_command,
    escape_data,
    escape_property,
    workflow_command,
)
from .file_handler import append_to_file, find_latest_file, safe_write_file
from .version import __version__, get_version, get_version_info

__all__ = [
    "ConsoleLogger",
    "colorize",
    "emit_workflow_command",
    "escape_data",
    "escape_property",
    "workflow_command",
    "append_to_file",
    "find_latest_file",
    "safe_write_file",
    "__version__",
    "get_version",
    "get_version_info",
]

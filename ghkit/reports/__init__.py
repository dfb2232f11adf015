"""
reports package for ghkit

This package contains reporting functionality for presenting scan results
in console, JSON and Markdown (job summary) formats.
"""

from .report import OUTPUT_FORMATS, generate_report, print_report, save_report

from .console import format_console_report, format_finding, format_summary, print_console_report

from .json import generate_json_report, save_json_report

from .markdown import generate_markdown_report

__all__ = [
    "OUTPUT_FORMATS",
    "generate_report",
    "save_report",
    "print_report",
    "format_console_report",
    "print_console_report",
    "format_finding",
    "format_summary",
    "generate_json_report",
    "save_json_report",
    "generate_markdown_report",
]

"""
report.py - Main reporting interface for ghkit

This module provides a unified interface for generating reports in different formats.
"""

from typing import Any, Dict, List

import click

from ..core.findings import Finding
from .console import format_console_report
from .json import generate_json_report
from .markdown import generate_markdown_report

OUTPUT_FORMATS = ["text", "json", "markdown"]


def generate_report(
    findings: List[Finding],
    stats: Dict[str, Any],
    format: str = "text",
    verbose: bool = False,
) -> str:
    """
    Generate a report in the specified format

    Args:
        findings: List of findings
        stats: Statistics dictionary
        format: Output format ('text', 'json', 'markdown')
        verbose: Whether to include additional details (text format)

    Returns:
        Generated report as a string

    Raises:
        ValueError: If an invalid format is specified
    """
    if format == "text":
        return format_console_report(findings, stats, verbose=verbose)
    elif format == "json":
        return generate_json_report(findings, stats)
    elif format == "markdown":
        return generate_markdown_report(findings, stats)
    else:
        raise ValueError(f"Invalid report format: {format}")


def save_report(
    findings: List[Finding],
    stats: Dict[str, Any],
    output_path: str,
    format: str = "text",
    verbose: bool = False,
) -> None:
    """Generate a report and write it to ``output_path``"""
    report = generate_report(findings, stats, format=format, verbose=verbose)

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report)


def print_report(
    findings: List[Finding],
    stats: Dict[str, Any],
    format: str = "text",
    verbose: bool = False,
) -> None:
    """Generate a report and print it to stdout"""
    click.echo(generate_report(findings, stats, format=format, verbose=verbose), nl=False)

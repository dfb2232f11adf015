"""
console.py - Console output helpers

This module provides tagged, colour-coded log lines and GitHub Actions
workflow commands. Everything is written with click so output can be captured
by click's test runner.
"""

import os
from typing import Optional

import click

# Severity colors
SEVERITY_COLORS = {
    "CRITICAL": "bright_red",
    "HIGH": "red",
    "MEDIUM": "yellow",
    "LOW": "blue",
    "INFO": "green",
}

# Severity symbols
SEVERITY_SYMBOLS = {
    "CRITICAL": "🚨",
    "HIGH": "❗",
    "MEDIUM": "⚠️",
    "LOW": "ℹ️",
    "INFO": "✓",
}


def supports_color() -> bool:
    """
    Check whether colored output is allowed

    Returns:
        False if NO_COLOR or GHKIT_NO_COLOR is set, True otherwise
    """
    if os.environ.get("NO_COLOR") is not None:
        return False

    if os.environ.get("GHKIT_NO_COLOR") is not None:
        return False

    return True


def colorize(text: str, color: str, bold: bool = False) -> str:
    """
    Apply color to text if color output is enabled

    Args:
        text: Text to colorize
        color: click color name
        bold: Whether to also render the text bold

    Returns:
        Colorized text or original text if color is disabled
    """
    if not supports_color():
        return text

    return click.style(text, fg=color, bold=bold)


def format_severity(severity: str) -> str:
    """Format a severity level with color and symbol"""
    symbol = SEVERITY_SYMBOLS.get(severity, "•")
    color = SEVERITY_COLORS.get(severity, "white")

    return f"{symbol} {colorize(severity, color)}"


class ConsoleLogger:
    """Tagged logger used by every command

    Each line is prefixed with a fixed tag: ``[Tag]`` for information,
    ``[Tag Warning]`` for warnings and ``[Tag Error]`` for errors. Errors go
    to stderr.
    """

    def __init__(self, tag: str) -> None:
        self.tag = tag

    def _prefix(self, suffix: str, color: str) -> str:
        label = f"[{self.tag}{suffix}]"
        return colorize(label, color)

    def info(self, message: str) -> None:
        click.echo(f"{self._prefix('', 'green')} {message}")

    def warning(self, message: str) -> None:
        click.echo(f"{self._prefix(' Warning', 'yellow')} {message}")

    def error(self, message: str) -> None:
        click.echo(f"{self._prefix(' Error', 'red')} {message}", err=True)


def escape_data(value: str) -> str:
    """Escape a workflow command payload the way the runner decodes it"""
    # "%" first so the other escapes are not double encoded
    return str(value).replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: str) -> str:
    """Escape a workflow command property value"""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def workflow_command(command: str, value: str = "", **properties: Optional[str]) -> str:
    """
    Build a GitHub Actions workflow command line

    Args:
        command: Command name, e.g. "add-mask" or "warning"
        value: Command payload
        properties: Optional command properties such as file or line

    Returns:
        The formatted ``::command props::value`` line, with the payload and
        property values escaped
    """
    value = escape_data(value)
    props = ",".join(
        f"{key}={escape_property(val)}" for key, val in properties.items() if val is not None
    )
    if props:
        return f"::{command} {props}::{value}"
    return f"::{command}::{value}"


def emit_workflow_command(command: str, value: str = "", **properties: Optional[str]) -> None:
    """Write a workflow command to stdout"""
    click.echo(workflow_command(command, value, **properties))


def start_group(title: str) -> None:
    emit_workflow_command("group", title)


def end_group() -> None:
    emit_workflow_command("endgroup")

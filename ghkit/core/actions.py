"""
actions.py - GitHub Actions runtime channels

This module wraps the files and workflow commands the Actions runner uses to
pass data between steps: the environment-export file (GITHUB_ENV), the
output file (GITHUB_OUTPUT), the step summary (GITHUB_STEP_SUMMARY) and the
``::add-mask::`` log redaction directive.
"""

import os
import re
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import click

from ..utils.console import workflow_command
from ..utils.file_handler import append_to_file
from .errors import ActionError, InputError

NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

TRUE_VALUES = {"true", "True", "TRUE"}
FALSE_VALUES = {"false", "False", "FALSE"}


def _echo(line: str) -> None:
    click.echo(line)


def _append(path: str, channel: str, content: str) -> None:
    try:
        append_to_file(path, content)
    except OSError as e:
        raise ActionError(f"Cannot write to {channel} ({path}): {e}")


def _check_writable(path: str, channel: str) -> str:
    """Open ``path`` for append so an unusable channel fails before anything is written"""
    _append(path, channel, "")
    return path


@dataclass
class ActionContext:
    """Paths and helpers provided by the GitHub Actions runner"""

    env_file: Optional[str] = None
    output_file: Optional[str] = None
    summary_file: Optional[str] = None
    echo: Callable[[str], None] = field(default=_echo, repr=False)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ActionContext":
        environ = os.environ if environ is None else environ
        return cls(
            env_file=environ.get("GITHUB_ENV") or None,
            output_file=environ.get("GITHUB_OUTPUT") or None,
            summary_file=environ.get("GITHUB_STEP_SUMMARY") or None,
        )

    def require_env_file(self) -> str:
        """Return the GITHUB_ENV path, failing unless it is set and writable"""
        if not self.env_file:
            raise ActionError("GITHUB_ENV is not set; cannot export environment variables")
        return _check_writable(self.env_file, "GITHUB_ENV")

    def require_output_file(self) -> str:
        """Return the GITHUB_OUTPUT path, failing unless it is set and writable"""
        if not self.output_file:
            raise ActionError("GITHUB_OUTPUT is not set; cannot set step outputs")
        return _check_writable(self.output_file, "GITHUB_OUTPUT")

    def mask(self, value: str) -> None:
        """Ask the runner to redact ``value`` from all later log output"""
        mask_value(value, echo=self.echo)

    def export_env_var(self, name: str, value: str) -> None:
        """Make ``name`` visible as an environment variable in later steps"""
        validate_env_name(name)
        _append(self.require_env_file(), "GITHUB_ENV", format_key_value(name, value))

    def set_output(self, name: str, value: str) -> None:
        """Expose ``name`` as a step output"""
        _append(self.require_output_file(), "GITHUB_OUTPUT", format_key_value(name, value))

    def set_outputs(self, outputs: Dict[str, str]) -> None:
        for name, value in outputs.items():
            self.set_output(name, value)

    def append_summary(self, markdown: str) -> bool:
        """
        Append Markdown to the job summary

        Returns:
            True if written, False when the summary channel is unavailable
        """
        if not self.summary_file:
            return False
        if not markdown.endswith("\n"):
            markdown += "\n"
        _append(self.summary_file, "GITHUB_STEP_SUMMARY", markdown)
        return True


def mask_value(value: str, echo: Callable[[str], None] = _echo) -> None:
    """Emit one ``::add-mask::`` directive per non-blank line of ``value``"""
    for line in value.splitlines():
        if line.strip():
            echo(workflow_command("add-mask", line))


def validate_name(name: str) -> str:
    """Ensure an env var or output name can be written to a channel file"""
    if not name or not NAME_PATTERN.match(name):
        raise InputError(f"Invalid variable name: {name!r}")
    return name


def validate_env_name(name: str) -> str:
    """Ensure ``name`` is a valid environment variable identifier"""
    if not name or not ENV_NAME_PATTERN.match(name):
        raise InputError(f"Invalid environment variable name: {name!r}")
    return name


def format_key_value(name: str, value: str) -> str:
    """
    Format one entry for GITHUB_ENV / GITHUB_OUTPUT

    Single-line values use ``name=value``. Values containing a newline use
    the heredoc form with a delimiter that does not occur in the value.
    """
    validate_name(name)

    if "\n" not in value and "\r" not in value:
        return f"{name}={value}\n"

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    while delimiter in value:
        delimiter = f"ghadelimiter_{uuid.uuid4()}"

    return f"{name}<<{delimiter}\n{value}\n{delimiter}\n"



def parse_boolean(value: str, name: str = "input") -> bool:
    """
    Parse a boolean-like input using the Actions boolean grammar

    Raises:
        InputError: If the value is not one of true/True/TRUE/false/False/FALSE
    """
    value = value.strip()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise InputError(
        f"Input '{name}' must be a boolean (true or false), got {value!r}"
    )

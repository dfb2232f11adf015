"""
ghkit - GitHub Actions CI toolkit

Helpers behind a set of CI steps: GitHub App authentication and git identity,
Claude API key retrieval from raw input, Doppler or 1Password, debugging
metadata from CLI session logs, template rendering and security scanning.
"""

from ghkit.utils.version import __version__, get_version, get_version_info

from .core import (
    SEVERITY_LEVELS,
    ActionContext,
    ActionError,
    CommandFailedError,
    ConfigurationError,
    Finding,
    Host,
    InputError,
    Provider,
    SubprocessRunner,
    authenticate,
    generate_default_config,
    load_config,
)
from .core.github_app import authenticate_app, create_app_jwt
from .core.session_log import parse_session_log
from .core.template import render_file, render_template
from .reports import generate_report, print_report, save_report
from .scanners import run_scanners

__all__ = [
    "__version__",
    "get_version",
    "get_version_info",
    "ActionContext",
    "ActionError",
    "CommandFailedError",
    "ConfigurationError",
    "InputError",
    "Finding",
    "SEVERITY_LEVELS",
    "Host",
    "Provider",
    "SubprocessRunner",
    "authenticate",
    "authenticate_app",
    "create_app_jwt",
    "parse_session_log",
    "render_template",
    "render_file",
    "run_scanners",
    "load_config",
    "generate_default_config",
    "generate_report",
    "save_report",
    "print_report",
]


def main() -> None:
    """Main entry point for the ghkit CLI tool"""
    from .cli import cli

    cli()

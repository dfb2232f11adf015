"""
core package for ghkit

This package contains the GitHub Actions channels, command execution, secret
retrieval, App authentication, session log and template functionality.
"""

from .actions import ActionContext
from .config import ConfigurationError, generate_default_config, load_config
from .errors import (
    ActionError,
    CommandFailedError,
    InputError,
    InstallError,
    UnsupportedPlatformError,
    UnsupportedProviderError,
)
from .findings import SEVERITY_LEVELS, Finding, Severity
from .runner import CommandResult, CommandRunner, SubprocessRunner
from .secrets import Host, Provider, authenticate, build_source, publish_secret, resolve_secret

__all__ = [
    "ActionContext",
    "load_config",
    "generate_default_config",
    "ConfigurationError",
    "ActionError",
    "CommandFailedError",
    "InputError",
    "InstallError",
    "UnsupportedPlatformError",
    "UnsupportedProviderError",
    "Finding",
    "Severity",
    "SEVERITY_LEVELS",
    "CommandResult",
    "CommandRunner",
    "SubprocessRunner",
    "Host",
    "Provider",
    "authenticate",
    "build_source",
    "resolve_secret",
    "publish_secret",
]

"""
errors.py - Exception types for ghkit

Every failure a command can hit is an ActionError. The CLI turns these into an
error log line and exit status 1.
"""

from typing import Optional


class ActionError(Exception):
    """Base class for all ghkit failures"""

    pass


class InputError(ActionError):
    """A required input is missing or malformed"""

    pass


class UnsupportedProviderError(ActionError):
    """The requested secret provider is not known"""

    pass


class UnsupportedPlatformError(ActionError):
    """The host operating system is not supported for an operation"""

    pass


class InstallError(ActionError):
    """Automatic installation of an external tool failed"""

    pass


class CommandFailedError(ActionError):
    """An external tool or API call failed or produced no result

    Args:
        message: Human-readable summary
        command: The attempted command, reference or URL
        details: Diagnostic output from the tool (never its stdout payload)
        label: How ``command`` is introduced when reported, e.g. "Reference"
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        details: Optional[str] = None,
        label: str = "Command",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.details = details
        self.label = label


class ConfigurationError(ActionError):
    """Exception raised for configuration errors"""

    pass

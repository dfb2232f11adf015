"""
secrets.py - API key retrieval from pluggable secret backends

A run selects exactly one provider. Its source validates the provider's
required inputs, fetches the secret (installing the backend CLI when needed)
and hands back a non-empty string. publish_secret() then masks it and writes
it to the environment-export and output channels.

Either a single secret is produced and emitted, or an ActionError is raised
before anything is emitted.
"""

import shlex
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, List, Mapping, Optional, Type

import requests

from ..utils.console import ConsoleLogger
from .actions import ActionContext, validate_env_name
from .errors import CommandFailedError, InputError, UnsupportedProviderError
from .installers import install_doppler_cli, install_onepassword_cli
from .runner import CommandRunner

LOG_TAG = "Claude Auth"
DEFAULT_ENV_VAR = "ANTHROPIC_API_KEY"
OUTPUT_KEY = "api-key"


class Provider(Enum):
    """Supported secret backends"""

    RAW = "raw"
    DOPPLER = "doppler"
    ONEPASSWORD = "1password"

    @property
    def label(self) -> str:
        return {"raw": "raw", "doppler": "Doppler", "1password": "1Password"}[self.value]

    @classmethod
    def supported(cls) -> List[str]:
        return [provider.value for provider in cls]

    @classmethod
    def parse(cls, tag: str) -> "Provider":
        """
        Parse a provider tag

        Tags are case-insensitive and "onepassword" is accepted as an alias
        of "1password".

        Raises:
            UnsupportedProviderError: If the tag names no known provider
        """
        normalized = (tag or "").strip().lower()
        if normalized == "onepassword":
            normalized = cls.ONEPASSWORD.value

        for provider in cls:
            if provider.value == normalized:
                return provider

        raise UnsupportedProviderError(
            f"Unknown provider: {tag}. Supported providers: {', '.join(cls.supported())}"
        )


@dataclass
class Host:
    """Execution host collaborators used while fetching a secret"""

    runner: CommandRunner
    system: Optional[str] = None
    session: Optional[requests.Session] = None


def _require(inputs: Mapping[str, str], name: str, provider: Provider) -> str:
    value = (inputs.get(name) or "").strip()
    if not value:
        raise InputError(f"{name} input is required when using {provider.value} provider")
    return value


def _optional(inputs: Mapping[str, str], name: str) -> Optional[str]:
    value = (inputs.get(name) or "").strip()
    return value or None


def _strip_trailing_newlines(text: str) -> str:
    return text.rstrip("\r\n")


def _is_blank(secret: str) -> bool:
    # whitespace cannot be masked, so it never counts as a secret
    return not secret or not secret.strip()


class SecretSource(ABC):
    """One provider's required inputs and how to fetch the secret with them"""

    provider: ClassVar[Provider]

    @classmethod
    @abstractmethod
    def from_inputs(cls, inputs: Mapping[str, str]) -> "SecretSource":
        """Validate the provider's inputs and build the source"""
        pass

    @abstractmethod
    def fetch(self, host: Host, logger: ConsoleLogger) -> str:
        """Return the secret, raising CommandFailedError on failure"""
        pass


@dataclass(frozen=True)
class RawSource(SecretSource):
    """The key is supplied directly as an input"""

    provider: ClassVar[Provider] = Provider.RAW

    api_key: str

    def __repr__(self) -> str:
        return "RawSource(api_key=***)"

    @classmethod
    def from_inputs(cls, inputs: Mapping[str, str]) -> "RawSource":
        value = inputs.get("api-key") or ""
        if not value.strip():
            raise InputError("api-key input is required when using raw provider")
        return cls(api_key=value)

    def fetch(self, host: Host, logger: ConsoleLogger) -> str:
        logger.info("API key loaded from raw input")
        return self.api_key


@dataclass(frozen=True)
class DopplerSource(SecretSource):
    """The key is read with ``doppler secrets get``"""

    provider: ClassVar[Provider] = Provider.DOPPLER

    token: str
    key_name: str
    project: Optional[str] = None
    config: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"DopplerSource(token=***, key_name={self.key_name!r}, "
            f"project={self.project!r}, config={self.config!r})"
        )

    @classmethod
    def from_inputs(cls, inputs: Mapping[str, str]) -> "DopplerSource":
        return cls(
            token=_require(inputs, "doppler-token", cls.provider),
            key_name=_require(inputs, "doppler-key-name", cls.provider),
            project=_optional(inputs, "doppler-project"),
            config=_optional(inputs, "doppler-config"),
        )

    def command(self) -> List[str]:
        args = ["doppler", "secrets", "get", self.key_name, "--plain"]
        if self.project:
            args += ["--project", self.project]
        if self.config:
            args += ["--config", self.config]
        return args

    def fetch(self, host: Host, logger: ConsoleLogger) -> str:
        if not host.runner.which("doppler"):
            logger.info("Installing Doppler CLI...")
            install_doppler_cli(host.runner, session=host.session)

        args = self.command()
        logger.info("Fetching secret from Doppler...")
        result = host.runner.run(args, env={"DOPPLER_TOKEN": self.token})
        secret = _strip_trailing_newlines(result.stdout)

        if not result.ok or _is_blank(secret):
            raise CommandFailedError(
                "Failed to fetch secret from Doppler",
                command=shlex.join(args),
                details=result.stderr.strip() or f"exit status {result.returncode}",
            )

        logger.info("API key successfully retrieved from Doppler")
        return secret


@dataclass(frozen=True)
class OnePasswordSource(SecretSource):
    """The key is read with ``op read`` using a secret reference"""

    provider: ClassVar[Provider] = Provider.ONEPASSWORD

    token: str
    item: str
    field: str
    vault: Optional[str] = None

    def __repr__(self) -> str:
        return f"OnePasswordSource(token=***, reference={self.reference!r})"

    @classmethod
    def from_inputs(cls, inputs: Mapping[str, str]) -> "OnePasswordSource":
        return cls(
            token=_require(inputs, "onepassword-service-account-token", cls.provider),
            item=_require(inputs, "onepassword-item", cls.provider),
            field=_require(inputs, "onepassword-field", cls.provider),
            vault=_optional(inputs, "onepassword-vault"),
        )

    @property
    def reference(self) -> str:
        if self.vault:
            return f"op://{self.vault}/{self.item}/{self.field}"
        return f"op://{self.item}/{self.field}"

    def fetch(self, host: Host, logger: ConsoleLogger) -> str:
        if not host.runner.which("op"):
            logger.info("Installing 1Password CLI...")
            install_onepassword_cli(host.runner, system=host.system, session=host.session)

        reference = self.reference
        logger.info("Fetching secret from 1Password...")
        logger.info(f"Reference: {reference}")
        result = host.runner.run(
            ["op", "read", reference], env={"OP_SERVICE_ACCOUNT_TOKEN": self.token}
        )
        secret = _strip_trailing_newlines(result.stdout)

        if not result.ok or _is_blank(secret):
            raise CommandFailedError(
                "Failed to fetch secret from 1Password",
                command=reference,
                details=result.stderr.strip() or f"exit status {result.returncode}",
                label="Reference",
            )

        logger.info("API key successfully retrieved from 1Password")
        return secret


SOURCE_TYPES: Dict[Provider, Type[SecretSource]] = {
    Provider.RAW: RawSource,
    Provider.DOPPLER: DopplerSource,
    Provider.ONEPASSWORD: OnePasswordSource,
}


def build_source(provider: Provider, inputs: Mapping[str, str]) -> SecretSource:
    """
    Build the source for ``provider`` from named action inputs

    Args:
        provider: Selected provider
        inputs: Input values keyed by their action.yml names (e.g. "api-key")

    Raises:
        InputError: If a required input for the provider is missing
    """
    return SOURCE_TYPES[provider].from_inputs(inputs)


def resolve_secret(source: SecretSource, host: Host, logger: ConsoleLogger) -> str:
    """
    Fetch the secret from a source and check it is non-empty

    Raises:
        CommandFailedError: If retrieval fails or yields an empty value
    """
    secret = source.fetch(host, logger)
    if _is_blank(secret):
        raise CommandFailedError("API key is empty after retrieval")
    return secret


def publish_secret(
    secret: str,
    context: ActionContext,
    logger: ConsoleLogger,
    env_var_name: str = DEFAULT_ENV_VAR,
    set_github_output: bool = True,
) -> None:
    """
    Mask the secret, then export it and optionally set it as a step output

    The mask directive is always emitted before the value is written
    anywhere else.
    """
    if _is_blank(secret):
        raise CommandFailedError("API key is empty after retrieval")

    context.mask(secret)

    context.export_env_var(env_var_name, secret)
    logger.info(f"Exported {env_var_name} to environment")

    if set_github_output:
        context.set_output(OUTPUT_KEY, secret)
        logger.info("API key set as GitHub output (masked)")


def authenticate(
    provider_tag: str,
    inputs: Mapping[str, str],
    context: ActionContext,
    host: Host,
    logger: Optional[ConsoleLogger] = None,
    env_var_name: str = DEFAULT_ENV_VAR,
    set_github_output: bool = True,
) -> str:
    """
    Retrieve the API key from the selected provider and publish it

    Args:
        provider_tag: One of raw, doppler, 1password, onepassword
        inputs: Provider inputs keyed by action input name
        context: Actions runtime channels
        host: Command runner and platform overrides
        logger: Tagged console logger
        env_var_name: Environment variable that receives the key
        set_github_output: Whether to also set the ``api-key`` output

    Returns:
        The retrieved secret

    Raises:
        ActionError: On any validation, installation or retrieval failure
    """
    logger = logger or ConsoleLogger(LOG_TAG)
    logger.info(f"Using provider: {provider_tag}")

    provider = Provider.parse(provider_tag)
    logger.info(f"Using {provider.label} secret provider")

    source = build_source(provider, inputs)

    validate_env_name(env_var_name)
    context.require_env_file()
    if set_github_output:
        context.require_output_file()

    secret = resolve_secret(source, host, logger)
    publish_secret(
        secret,
        context,
        logger,
        env_var_name=env_var_name,
        set_github_output=set_github_output,
    )

    logger.info("✓ Authentication successful!")
    return secret

"""
cli.py - Command-line interface for ghkit

This module provides the command-line interface for the ghkit tool. Each
command is one CI step: fetching the Claude API key from a secret provider,
minting a GitHub App token, summarising a CLI session log, rendering a
template and running security scanners. Options fall back to the matching
INPUT_* variables so the commands can back composite actions directly.
"""

import json
import os
import sys
from typing import Any, Dict, List, NoReturn, Optional, Tuple

import click

from .core import (
    ActionContext,
    ActionError,
    CommandFailedError,
    ConfigurationError,
    Host,
    SubprocessRunner,
    authenticate,
    generate_default_config,
    load_config,
)
from .core.actions import parse_boolean
from .core.config import FAIL_ON_CHOICES
from .core.findings import count_at_or_above
from .core.github_app import LOG_TAG as APP_LOG_TAG
from .core.github_app import authenticate_app
from .core.secrets import LOG_TAG as AUTH_LOG_TAG
from .core.session_log import (
    find_session_log,
    format_session_summary,
    parse_session_log,
    project_log_dir,
    publish_session_metadata,
)
from .core.template import render_file
from .reports import OUTPUT_FORMATS, generate_markdown_report, print_report, save_json_report
from .scanners import SCANNER_CLASSES, list_scanners, run_scanners
from .utils.console import ConsoleLogger
from .utils.version import __version__


def _fail(logger: ConsoleLogger, error: Exception) -> NoReturn:
    """Log an error (with command details when present) and exit 1"""
    logger.error(str(error))
    if isinstance(error, CommandFailedError):
        if error.command:
            logger.error(f"{error.label}: {error.command}")
        if error.details:
            logger.error(f"Error: {error.details}")
    sys.exit(1)


def _load_settings(config: Optional[str], logger: ConsoleLogger) -> Dict[str, Any]:
    try:
        return load_config(config)
    except ConfigurationError as e:
        _fail(logger, e)


def _boolean(value: Optional[str], name: str, default: bool, logger: ConsoleLogger) -> bool:
    if value is None or value.strip() == "":
        return default
    try:
        return parse_boolean(value, name)
    except ActionError as e:
        _fail(logger, e)


def _split_list(values: Tuple[str, ...]) -> List[str]:
    """Flatten repeated and comma/space separated option values"""
    items: List[str] = []
    for value in values:
        for part in value.replace(",", " ").split():
            if part not in items:
                items.append(part)
    return items


def _make_runner() -> SubprocessRunner:
    return SubprocessRunner()


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """ghkit - GitHub Actions CI toolkit

    Secret retrieval, GitHub App authentication, session log metadata,
    template rendering and security scanning for CI workflows.
    """
    if ctx.invoked_subcommand is None:
        click.echo(f"ghkit {__version__}")
        click.echo("Use `ghkit --help` for available commands.")


@cli.command()
@click.option("--provider", envvar="INPUT_PROVIDER", help="Secret provider: raw, doppler, 1password")
@click.option("--api-key", envvar="INPUT_API_KEY", help="API key (raw provider)")
@click.option("--doppler-token", envvar="INPUT_DOPPLER_TOKEN", help="Doppler service token")
@click.option("--doppler-key-name", envvar="INPUT_DOPPLER_KEY_NAME", help="Secret name in Doppler")
@click.option("--doppler-project", envvar="INPUT_DOPPLER_PROJECT", help="Doppler project")
@click.option("--doppler-config", envvar="INPUT_DOPPLER_CONFIG", help="Doppler config")
@click.option(
    "--onepassword-service-account-token",
    envvar="INPUT_ONEPASSWORD_SERVICE_ACCOUNT_TOKEN",
    help="1Password service account token",
)
@click.option("--onepassword-vault", envvar="INPUT_ONEPASSWORD_VAULT", help="1Password vault")
@click.option("--onepassword-item", envvar="INPUT_ONEPASSWORD_ITEM", help="1Password item")
@click.option("--onepassword-field", envvar="INPUT_ONEPASSWORD_FIELD", help="1Password field")
@click.option(
    "--export-env-var",
    envvar="INPUT_EXPORT_ENV_VAR",
    help="Environment variable receiving the key",
)
@click.option(
    "--set-github-output",
    envvar="INPUT_SET_GITHUB_OUTPUT",
    help="Also set the api-key step output (true/false)",
)
@click.option("--config", type=click.Path(), help="Path to YAML config file")
def auth(
    provider: Optional[str],
    api_key: Optional[str],
    doppler_token: Optional[str],
    doppler_key_name: Optional[str],
    doppler_project: Optional[str],
    doppler_config: Optional[str],
    onepassword_service_account_token: Optional[str],
    onepassword_vault: Optional[str],
    onepassword_item: Optional[str],
    onepassword_field: Optional[str],
    export_env_var: Optional[str],
    set_github_output: Optional[str],
    config: Optional[str],
) -> None:
    """Fetch the Claude API key and publish it to later steps"""
    logger = ConsoleLogger(AUTH_LOG_TAG)
    settings = _load_settings(config, logger)["auth"]

    inputs = {
        "api-key": api_key or "",
        "doppler-token": doppler_token or "",
        "doppler-key-name": doppler_key_name or settings["doppler_key_name"],
        "doppler-project": doppler_project or "",
        "doppler-config": doppler_config or "",
        "onepassword-service-account-token": onepassword_service_account_token or "",
        "onepassword-vault": onepassword_vault or "",
        "onepassword-item": onepassword_item or "",
        "onepassword-field": onepassword_field or "",
    }
    publish_output = _boolean(
        set_github_output, "set-github-output", settings["set_github_output"], logger
    )

    try:
        authenticate(
            provider or settings["provider"],
            inputs,
            ActionContext.from_env(),
            Host(runner=_make_runner()),
            logger=logger,
            env_var_name=export_env_var or settings["export_env_var"],
            set_github_output=publish_output,
        )
    except ActionError as e:
        _fail(logger, e)


@cli.command("app-token")
@click.option("--app-id", envvar="INPUT_APP_ID", help="GitHub App ID")
@click.option("--private-key", envvar="INPUT_PRIVATE_KEY", help="GitHub App private key (PEM)")
@click.option(
    "--installation-id",
    envvar="INPUT_INSTALLATION_ID",
    type=int,
    help="Installation ID (looked up from the repository when omitted)",
)
@click.option(
    "--repository",
    envvar=["INPUT_REPOSITORY", "GITHUB_REPOSITORY"],
    help="owner/repo used to locate the installation",
)
@click.option(
    "--repositories",
    envvar="INPUT_REPOSITORIES",
    multiple=True,
    help="Limit the token to these repositories",
)
@click.option(
    "--configure-git",
    envvar="INPUT_CONFIGURE_GIT",
    help="Configure git user.name/user.email as the App bot (true/false)",
)
@click.option(
    "--export-env-var",
    envvar="INPUT_EXPORT_ENV_VAR",
    help="Environment variable receiving the token",
)
@click.option("--config", type=click.Path(), help="Path to YAML config file")
def app_token(
    app_id: Optional[str],
    private_key: Optional[str],
    installation_id: Optional[int],
    repository: Optional[str],
    repositories: Tuple[str, ...],
    configure_git: Optional[str],
    export_env_var: Optional[str],
    config: Optional[str],
) -> None:
    """Mint a GitHub App installation token and set up the git identity"""
    logger = ConsoleLogger(APP_LOG_TAG)
    settings = _load_settings(config, logger)["app_token"]

    try:
        authenticate_app(
            app_id or "",
            private_key or "",
            ActionContext.from_env(),
            _make_runner(),
            logger=logger,
            installation_id=installation_id,
            repository=repository,
            repositories=_split_list(repositories) or None,
            configure_git=_boolean(
                configure_git, "configure-git", settings["configure_git"], logger
            ),
            export_env_var=export_env_var or settings["export_env_var"],
        )
    except ActionError as e:
        _fail(logger, e)


@cli.command("session-info")
@click.option(
    "--project",
    envvar="INPUT_PROJECT",
    type=click.Path(),
    help="Project directory the session ran in (defaults to the current directory)",
)
@click.option("--session-id", envvar="INPUT_SESSION_ID", help="Session to read (newest when omitted)")
@click.option(
    "--log-file", envvar="INPUT_LOG_FILE", type=click.Path(), help="Read this log file directly"
)
@click.option("--cli-home", envvar="INPUT_CLI_HOME", help="CLI home directory")
@click.option(
    "--format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
@click.option("--summary", is_flag=True, help="Append a table to the job summary")
@click.option("--config", type=click.Path(), help="Path to YAML config file")
def session_info(
    project: Optional[str],
    session_id: Optional[str],
    log_file: Optional[str],
    cli_home: Optional[str],
    format: str,
    summary: bool,
    config: Optional[str],
) -> None:
    """Extract debugging metadata from a CLI session log"""
    logger = ConsoleLogger("Session Info")
    settings = _load_settings(config, logger)["session"]

    try:
        if not log_file:
            directory = project_log_dir(project or os.getcwd(), cli_home or settings["cli_home"])
            log_file = find_session_log(directory, session_id)
        meta = parse_session_log(log_file)

        context = ActionContext.from_env()
        if context.output_file:
            publish_session_metadata(meta, context, summary=summary)
        elif summary:
            context.append_summary(format_session_summary(meta))
    except ActionError as e:
        _fail(logger, e)

    if meta.skipped_lines:
        logger.warning(f"Skipped {meta.skipped_lines} malformed line(s) in {log_file}")

    if format == "json":
        click.echo(json.dumps(meta.to_dict(), indent=2, sort_keys=True))
    else:
        click.echo(f"Log file: {meta.log_file}")
        click.echo(f"Session: {meta.session_id or 'unknown'}")
        click.echo(f"CLI version: {meta.cli_version or 'unknown'}")
        click.echo(f"Model: {meta.model or 'unknown'}")
        click.echo(f"Messages: {meta.user_messages} user / {meta.assistant_messages} assistant")
        click.echo(f"Tool calls: {meta.total_tool_calls} ({meta.tool_errors} errors)")
        for name, count in sorted(meta.tool_calls.items()):
            click.echo(f" - {name}: {count}")
        click.echo(f"Total tokens: {meta.total_tokens}")


@cli.command()
@click.argument("template", type=click.Path())
@click.option("--output", "-o", type=click.Path(), help="Write the rendered text to this file")
@click.option("--strict", is_flag=True, help="Fail on undefined variables")
@click.option("--set-output", "output_name", help="Also expose the rendered text as this step output")
@click.option("--config", type=click.Path(), help="Path to YAML config file")
def render(
    template: str,
    output: Optional[str],
    strict: bool,
    output_name: Optional[str],
    config: Optional[str],
) -> None:
    """Interpolate environment variables into a text template

    TEMPLATE: Path to the template file
    """
    logger = ConsoleLogger("Render")
    settings = _load_settings(config, logger)["template"]

    try:
        rendered = render_file(template, output, strict=strict or settings["strict"])
        if output_name:
            ActionContext.from_env().set_output(output_name, rendered)
    except ActionError as e:
        _fail(logger, e)

    if output:
        logger.info(f"Rendered {template} to {output}")
    elif not output_name:
        click.echo(rendered, nl=False)


@cli.command()
@click.argument("target", type=click.Path(exists=True, file_okay=False), default=".")
@click.option(
    "--tool",
    "tools",
    envvar="INPUT_TOOLS",
    multiple=True,
    help="Scanner to run (repeatable; defaults to the configured set)",
)
@click.option("--report-dir", envvar="INPUT_REPORT_DIR", type=click.Path(), help="Raw report directory")
@click.option(
    "--fail-on",
    envvar="INPUT_FAIL_ON",
    type=click.Choice(FAIL_ON_CHOICES, case_sensitive=False),
    help="Fail when a finding is at or above this severity",
)
@click.option(
    "--output",
    type=click.Choice(OUTPUT_FORMATS),
    default="text",
    help="Output format for results",
)
@click.option("--output-file", type=click.Path(), help="Also write a JSON report to this file")
@click.option("--summary", is_flag=True, help="Append a Markdown table to the job summary")
@click.option("--verbose", is_flag=True, help="Show detailed information for each finding")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("--config", type=click.Path(), help="Path to YAML config file")
def scan(
    target: str,
    tools: Tuple[str, ...],
    report_dir: Optional[str],
    fail_on: Optional[str],
    output: str,
    output_file: Optional[str],
    summary: bool,
    verbose: bool,
    no_color: bool,
    config: Optional[str],
) -> None:
    """Run security scanners and surface their results

    TARGET: Directory to scan (defaults to the current directory)
    """
    if no_color:
        os.environ["NO_COLOR"] = "1"

    logger = ConsoleLogger("Security Scan")
    settings = _load_settings(config, logger)["scan"]

    selected = _split_list(tools) or list(settings["tools"])
    unknown = [name for name in selected if name not in SCANNER_CLASSES]
    if unknown:
        valid = ", ".join(SCANNER_CLASSES)
        _fail(logger, ActionError(f"Unknown scanner(s): {', '.join(unknown)}. Must be one of: {valid}"))

    threshold = (fail_on or settings["fail_on"]).upper()

    _, findings, stats = run_scanners(
        target, selected, report_dir or settings["report_dir"], _make_runner(), logger=logger
    )

    print_report(findings, stats, format=output, verbose=verbose)

    if output_file:
        try:
            save_json_report(findings, stats, output_file)
        except OSError as e:
            _fail(logger, ActionError(f"Cannot write {output_file}: {e}"))
        logger.info(f"Results written to {output_file}")

    context = ActionContext.from_env()
    try:
        if context.output_file:
            outputs = {"total-findings": str(stats["total_findings"])}
            for name, info in stats["tools"].items():
                outputs[f"{name}-findings"] = str(info["findings"])
            context.set_outputs(outputs)
        if summary:
            context.append_summary(generate_markdown_report(findings, stats))
    except ActionError as e:
        _fail(logger, e)

    failed = stats["failed_tools"]
    if failed:
        logger.error(f"Scanner(s) failed: {', '.join(failed)}")
        sys.exit(1)

    if threshold != "NEVER":
        severe = count_at_or_above(findings, threshold)
        if severe:
            logger.error(f"{severe} finding(s) at or above {threshold}")
            sys.exit(1)


@cli.command()
@click.option("--config", type=click.Path(exists=True), help="Path to YAML config file to validate")
@click.option("--generate", is_flag=True, help="Generate a default config file")
@click.option("--output", type=click.Path(), help="Output path for generated config")
def config(config: Optional[str], generate: bool, output: Optional[str]) -> None:
    """View or validate current config"""
    if generate:
        try:
            config_str = generate_default_config(output_path=output)
        except ConfigurationError as e:
            click.echo(f"❌ {e}", err=True)
            sys.exit(1)

        if output:
            click.echo(f"Default config written to {output}")
        else:
            click.echo(config_str)
        return

    try:
        config_data = load_config(config)
    except ConfigurationError as e:
        click.echo(f"❌ Config validation failed: {e}", err=True)
        sys.exit(1)

    click.echo("✅ Config loaded and valid.")
    for section, values in config_data.items():
        click.echo(f"{section}:")
        for key, value in values.items():
            if isinstance(value, list):
                value = ", ".join(str(v) for v in value)
            click.echo(f" - {key}: {value}")


@cli.command()
@click.option(
    "--format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
def scanners(format: str) -> None:
    """List the available security scanners"""
    scanner_list = list_scanners()

    if format == "json":
        click.echo(json.dumps(scanner_list, indent=2))
        return

    click.echo("🔍 ghkit supports the following scanners:")
    for scanner in scanner_list:
        category = click.style(f"[{scanner['category']}]", fg="cyan")
        click.echo(f" - {scanner['id']}: {category} requires `{scanner['binary']}`")
        click.echo(f"   {scanner['description']}")


if __name__ == "__main__":
    cli()

"""
test_secrets.py - Tests for secret retrieval and publication
"""

import os
from unittest.mock import MagicMock, patch

import pytest

from ghkit.core.actions import ActionContext
from ghkit.core.errors import (
    ActionError,
    CommandFailedError,
    InputError,
    UnsupportedProviderError,
)
from ghkit.core.runner import CommandResult
from ghkit.core.secrets import (
    DopplerSource,
    Host,
    OnePasswordSource,
    Provider,
    RawSource,
    authenticate,
    build_source,
    publish_secret,
    resolve_secret,
)
from ghkit.utils.console import ConsoleLogger

DOPPLER_INPUTS = {
    "doppler-token": "dp.st.prd.xxxx",
    "doppler-key-name": "ANTHROPIC_API_KEY",
}

ONEPASSWORD_INPUTS = {
    "onepassword-service-account-token": "ops_xxxx",
    "onepassword-vault": "CI",
    "onepassword-item": "Anthropic",
    "onepassword-field": "credential",
}


@pytest.fixture
def logger(clean_inputs):
    return ConsoleLogger("Claude Auth")


def _run_auth(provider, inputs, context, runner, **kwargs):
    host = Host(runner=runner, system="Linux", session=MagicMock())
    return authenticate(provider, inputs, context, host, **kwargs)


@pytest.mark.parametrize(
    "tag, expected",
    [
        ("raw", Provider.RAW),
        ("RAW", Provider.RAW),
        ("doppler", Provider.DOPPLER),
        ("1password", Provider.ONEPASSWORD),
        ("onepassword", Provider.ONEPASSWORD),
        ("OnePassword", Provider.ONEPASSWORD),
        (" 1Password ", Provider.ONEPASSWORD),
    ],
)
def test_provider_parse(tag, expected):
    assert Provider.parse(tag) is expected


def test_unknown_provider_lists_supported_set():
    with pytest.raises(UnsupportedProviderError) as exc_info:
        Provider.parse("vault")

    message = str(exc_info.value)
    assert "Unknown provider: vault" in message
    assert "raw, doppler, 1password" in message


def test_build_source_types():
    assert isinstance(build_source(Provider.RAW, {"api-key": "k"}), RawSource)
    assert isinstance(build_source(Provider.DOPPLER, DOPPLER_INPUTS), DopplerSource)
    assert isinstance(build_source(Provider.ONEPASSWORD, ONEPASSWORD_INPUTS), OnePasswordSource)


@pytest.mark.parametrize(
    "provider, inputs, missing",
    [
        (Provider.RAW, {}, "api-key"),
        (Provider.RAW, {"api-key": "   "}, "api-key"),
        (Provider.DOPPLER, {"doppler-key-name": "KEY"}, "doppler-token"),
        (Provider.DOPPLER, {"doppler-token": "t", "doppler-key-name": ""}, "doppler-key-name"),
        (
            Provider.ONEPASSWORD,
            {"onepassword-item": "i", "onepassword-field": "f"},
            "onepassword-service-account-token",
        ),
        (
            Provider.ONEPASSWORD,
            {"onepassword-service-account-token": "t", "onepassword-field": "f"},
            "onepassword-item",
        ),
    ],
)
def test_build_source_requires_inputs(provider, inputs, missing):
    with pytest.raises(InputError, match=f"{missing} input is required when using"):
        build_source(provider, inputs)


def test_sources_hide_tokens_in_repr():
    doppler = DopplerSource.from_inputs(DOPPLER_INPUTS)
    onepassword = OnePasswordSource.from_inputs(ONEPASSWORD_INPUTS)
    raw = RawSource(api_key="sk-ant-secret")

    assert "dp.st.prd.xxxx" not in repr(doppler)
    assert "ops_xxxx" not in repr(onepassword)
    assert "sk-ant-secret" not in repr(raw)


def test_doppler_command_qualifiers():
    source = DopplerSource(token="t", key_name="KEY", project="backend", config="prd")

    assert source.command() == [
        "doppler", "secrets", "get", "KEY", "--plain", "--project", "backend", "--config", "prd",
    ]
    assert DopplerSource(token="t", key_name="KEY").command() == [
        "doppler", "secrets", "get", "KEY", "--plain",
    ]


def test_onepassword_reference():
    assert OnePasswordSource.from_inputs(ONEPASSWORD_INPUTS).reference == "op://CI/Anthropic/credential"
    assert OnePasswordSource(token="t", item="Item", field="f").reference == "op://Item/f"


# Raw provider


def test_raw_exports_and_outputs_unchanged(action_env, fake_runner, logger):
    secret = _run_auth("raw", {"api-key": "sk-ant-api03-abc"}, action_env.context, fake_runner, logger=logger)

    assert secret == "sk-ant-api03-abc"
    assert action_env.env_file.read_text() == "ANTHROPIC_API_KEY=sk-ant-api03-abc\n"
    assert action_env.output_file.read_text() == "api-key=sk-ant-api03-abc\n"
    assert fake_runner.calls == []


def test_raw_custom_env_var_and_no_output(action_env, fake_runner, logger):
    _run_auth(
        "raw",
        {"api-key": "sk-ant"},
        action_env.context,
        fake_runner,
        logger=logger,
        env_var_name="CLAUDE_KEY",
        set_github_output=False,
    )

    assert action_env.env_file.read_text() == "CLAUDE_KEY=sk-ant\n"
    assert action_env.output_file.read_text() == ""


@pytest.mark.parametrize("inputs", [{}, {"api-key": ""}])
def test_raw_missing_key_emits_nothing(action_env, fake_runner, logger, capsys, inputs):
    with pytest.raises(InputError):
        _run_auth("raw", inputs, action_env.context, fake_runner, logger=logger)

    assert action_env.env_file.read_text() == ""
    assert action_env.output_file.read_text() == ""
    assert "::add-mask::" not in capsys.readouterr().out


def test_raw_is_idempotent(temp_dir, fake_runner, logger):
    runs = []
    for attempt in ("a", "b"):
        env_file = os.path.join(temp_dir, f"env_{attempt}")
        output_file = os.path.join(temp_dir, f"out_{attempt}")
        context = ActionContext(env_file=env_file, output_file=output_file, echo=lambda line: None)
        _run_auth("raw", {"api-key": "sk-ant-same"}, context, fake_runner, logger=logger)
        with open(env_file) as f1, open(output_file) as f2:
            runs.append((f1.read(), f2.read()))

    assert runs[0] == runs[1]


def test_mask_emitted_before_export(action_env, fake_runner, logger):
    """Test the mask directive precedes every write of the secret."""
    events = []

    def echo(line):
        events.append(("echo", line, action_env.env_file.read_text(), action_env.output_file.read_text()))

    context = ActionContext(
        env_file=str(action_env.env_file), output_file=str(action_env.output_file), echo=echo
    )
    _run_auth("raw", {"api-key": "sk-ant-ordered"}, context, fake_runner, logger=logger)

    assert events[0][1] == "::add-mask::sk-ant-ordered"
    assert events[0][2] == ""
    assert events[0][3] == ""
    assert "sk-ant-ordered" in action_env.env_file.read_text()


def test_multiline_secret_masks_every_line(action_env, fake_runner, logger):
    lines = []
    context = ActionContext(
        env_file=str(action_env.env_file),
        output_file=str(action_env.output_file),
        echo=lines.append,
    )
    publish_secret("line-one\nline-two", context, logger)

    assert lines == ["::add-mask::line-one", "::add-mask::line-two"]
    assert action_env.env_file.read_text().startswith("ANTHROPIC_API_KEY<<ghadelimiter_")


def test_missing_channel_checked_before_retrieval(fake_runner_class, logger):
    """Test an absent GITHUB_ENV fails before any command runs."""
    runner = fake_runner_class(installed=["doppler"])
    context = ActionContext(echo=lambda line: None)

    with pytest.raises(Exception, match="GITHUB_ENV is not set"):
        _run_auth("doppler", DOPPLER_INPUTS, context, runner, logger=logger)

    assert runner.calls == []


def test_unwritable_output_checked_before_retrieval(action_env, fake_runner_class, logger, temp_dir, capsys):
    """Test an output channel that cannot be written fails before anything is published."""
    runner = fake_runner_class(installed=["doppler"])
    context = ActionContext(env_file=str(action_env.env_file), output_file=temp_dir)

    with pytest.raises(ActionError, match="Cannot write to GITHUB_OUTPUT"):
        _run_auth("doppler", DOPPLER_INPUTS, context, runner, logger=logger)

    assert runner.calls == []
    assert action_env.env_file.read_text() == ""
    assert "::add-mask::" not in capsys.readouterr().out


def test_unknown_provider_fails_without_output(action_env, fake_runner, logger):
    with pytest.raises(UnsupportedProviderError, match="raw, doppler, 1password"):
        _run_auth("aws", {"api-key": "x"}, action_env.context, fake_runner, logger=logger)

    assert action_env.env_file.read_text() == ""


# Doppler provider


def test_doppler_success_with_scoped_token(action_env, fake_runner_class, logger):
    runner = fake_runner_class(
        results={"doppler": CommandResult([], 0, "sk-ant-from-doppler\n")},
        installed=["doppler"],
    )

    secret = _run_auth(
        "doppler",
        dict(DOPPLER_INPUTS, **{"doppler-project": "ci", "doppler-config": "prd"}),
        action_env.context,
        runner,
        logger=logger,
    )

    assert secret == "sk-ant-from-doppler"
    call = runner.calls[0]
    assert call["args"][:5] == ["doppler", "secrets", "get", "ANTHROPIC_API_KEY", "--plain"]
    assert call["env"] == {"DOPPLER_TOKEN": "dp.st.prd.xxxx"}
    assert "dp.st.prd.xxxx" not in " ".join(call["args"])
    assert action_env.env_file.read_text() == "ANTHROPIC_API_KEY=sk-ant-from-doppler\n"


def test_doppler_missing_token_makes_no_calls(action_env, fake_runner, logger):
    with patch("ghkit.core.secrets.install_doppler_cli") as mock_install:
        with pytest.raises(InputError, match="doppler-token"):
            _run_auth("doppler", {"doppler-key-name": "KEY"}, action_env.context, fake_runner, logger=logger)

    mock_install.assert_not_called()
    assert fake_runner.calls == []


@pytest.mark.parametrize(
    "result",
    [
        CommandResult([], 1, "", "Doppler Error: Could not find requested secret"),
        CommandResult([], 0, "\n", ""),
        CommandResult([], 0, "   \n", ""),
        CommandResult([], 0, "\t \r\n", ""),
    ],
)
def test_doppler_failure_exports_nothing(action_env, fake_runner_class, logger, capsys, result):
    runner = fake_runner_class(results={"doppler": result}, installed=["doppler"])

    with pytest.raises(CommandFailedError) as exc_info:
        _run_auth("doppler", DOPPLER_INPUTS, action_env.context, runner, logger=logger)

    assert exc_info.value.command == "doppler secrets get ANTHROPIC_API_KEY --plain"
    assert action_env.env_file.read_text() == ""
    assert action_env.output_file.read_text() == ""
    assert "::add-mask::" not in capsys.readouterr().out


def test_doppler_failure_never_reports_stdout(fake_runner_class, logger):
    runner = fake_runner_class(
        results={"doppler": CommandResult([], 2, "partial-secret", "")}, installed=["doppler"]
    )
    source = DopplerSource.from_inputs(DOPPLER_INPUTS)

    with pytest.raises(CommandFailedError) as exc_info:
        resolve_secret(source, Host(runner=runner), logger)

    assert exc_info.value.details == "exit status 2"
    assert "partial-secret" not in str(exc_info.value)


def test_doppler_installed_when_missing(action_env, fake_runner_class, logger):
    runner = fake_runner_class(results={"doppler": CommandResult([], 0, "sk-ant\n")})

    with patch("ghkit.core.secrets.install_doppler_cli") as mock_install:
        _run_auth("doppler", DOPPLER_INPUTS, action_env.context, runner, logger=logger)

    mock_install.assert_called_once()
    assert mock_install.call_args.args[0] is runner


# 1Password provider


def test_onepassword_success(action_env, fake_runner_class, logger):
    runner = fake_runner_class(
        results={"op": CommandResult([], 0, "sk-ant-from-op\n")}, installed=["op"]
    )

    secret = _run_auth("onepassword", ONEPASSWORD_INPUTS, action_env.context, runner, logger=logger)

    assert secret == "sk-ant-from-op"
    assert runner.calls[0]["args"] == ["op", "read", "op://CI/Anthropic/credential"]
    assert runner.calls[0]["env"] == {"OP_SERVICE_ACCOUNT_TOKEN": "ops_xxxx"}
    assert action_env.output_file.read_text() == "api-key=sk-ant-from-op\n"


def test_onepassword_failure_reports_reference(action_env, fake_runner_class, logger):
    runner = fake_runner_class(
        results={"op": CommandResult([], 1, "", "[ERROR] item not found")}, installed=["op"]
    )

    with pytest.raises(CommandFailedError) as exc_info:
        _run_auth("1password", ONEPASSWORD_INPUTS, action_env.context, runner, logger=logger)

    assert exc_info.value.label == "Reference"
    assert exc_info.value.command == "op://CI/Anthropic/credential"
    assert exc_info.value.details == "[ERROR] item not found"
    assert action_env.env_file.read_text() == ""


def test_onepassword_whitespace_value_exports_nothing(action_env, fake_runner_class, logger, capsys):
    runner = fake_runner_class(results={"op": CommandResult([], 0, "  \n", "")}, installed=["op"])

    with pytest.raises(CommandFailedError, match="Failed to fetch secret from 1Password"):
        _run_auth("1password", ONEPASSWORD_INPUTS, action_env.context, runner, logger=logger)

    assert action_env.env_file.read_text() == ""
    assert action_env.output_file.read_text() == ""
    assert "::add-mask::" not in capsys.readouterr().out


def test_onepassword_missing_token_makes_no_calls(action_env, fake_runner, logger):
    inputs = dict(ONEPASSWORD_INPUTS)
    del inputs["onepassword-service-account-token"]

    with patch("ghkit.core.secrets.install_onepassword_cli") as mock_install:
        with pytest.raises(InputError):
            _run_auth("1password", inputs, action_env.context, fake_runner, logger=logger)

    mock_install.assert_not_called()
    assert fake_runner.calls == []


def test_onepassword_installed_when_missing(action_env, fake_runner_class, logger):
    runner = fake_runner_class(results={"op": CommandResult([], 0, "sk-ant\n")})

    with patch("ghkit.core.secrets.install_onepassword_cli") as mock_install:
        _run_auth("1password", ONEPASSWORD_INPUTS, action_env.context, runner, logger=logger)

    mock_install.assert_called_once()
    assert mock_install.call_args.kwargs["system"] == "Linux"


@pytest.mark.parametrize("secret", ["", "   ", " \n \n"])
def test_publish_secret_rejects_empty(action_env, logger, capsys, secret):
    with pytest.raises(CommandFailedError, match="empty"):
        publish_secret(secret, action_env.context, logger)

    assert "::add-mask::" not in capsys.readouterr().out

    assert action_env.env_file.read_text() == ""


def test_logs_are_tagged(action_env, fake_runner, capsys, clean_inputs):
    _run_auth("raw", {"api-key": "sk-ant"}, action_env.context, fake_runner)

    out = capsys.readouterr().out
    assert "[Claude Auth] Using provider: raw" in out
    assert "[Claude Auth] ✓ Authentication successful!" in out

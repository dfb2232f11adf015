"""
conftest.py - Pytest fixtures for ghkit tests
"""

import json
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

import pytest

from ghkit.core.actions import ActionContext
from ghkit.core.runner import CommandResult, CommandRunner


class FakeRunner(CommandRunner):
    """CommandRunner that records calls and returns scripted results

    ``results`` maps a program name to a CommandResult, a list of results
    consumed in order, or a callable taking the argument list. Unscripted
    programs succeed with empty output. A leading ``sudo`` is skipped when
    looking up the program.
    """

    def __init__(self, results=None, installed=()):
        self.results = dict(results or {})
        self.installed = set(installed)
        self.calls = []

    def run(self, args, env=None, input=None, cwd=None):
        args = list(args)
        self.calls.append({"args": args, "env": env, "input": input, "cwd": cwd})

        program = args[1] if args[0] == "sudo" and len(args) > 1 else args[0]
        scripted = self.results.get(program)

        if callable(scripted):
            return scripted(args)
        if isinstance(scripted, list):
            scripted = scripted.pop(0) if scripted else None
        if scripted is None:
            return CommandResult(args, 0)
        return CommandResult(args, scripted.returncode, scripted.stdout, scripted.stderr)

    def which(self, name):
        return f"/usr/bin/{name}" if name in self.installed else None

    @property
    def commands(self):
        return [call["args"] for call in self.calls]


@pytest.fixture
def temp_dir():
    """Create a temporary directory that is removed after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def fake_runner_class():
    """The FakeRunner class, for tests that build several runners."""
    return FakeRunner


@pytest.fixture
def fake_runner():
    """A FakeRunner with no tools installed."""
    return FakeRunner()


@pytest.fixture
def action_env(temp_dir, monkeypatch):
    """GitHub Actions channel files wired up through the environment."""
    env_file = Path(temp_dir) / "github_env"
    output_file = Path(temp_dir) / "github_output"
    summary_file = Path(temp_dir) / "step_summary"
    for path in (env_file, output_file, summary_file):
        path.write_text("")

    monkeypatch.setenv("GITHUB_ENV", str(env_file))
    monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))
    monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary_file))

    return SimpleNamespace(
        env_file=env_file,
        output_file=output_file,
        summary_file=summary_file,
        context=ActionContext(
            env_file=str(env_file),
            output_file=str(output_file),
            summary_file=str(summary_file),
        ),
    )


@pytest.fixture
def clean_inputs(monkeypatch):
    """Remove any INPUT_* and channel variables inherited from the environment."""
    for name in list(os.environ):
        if name.startswith("INPUT_") or name in (
            "GITHUB_ENV",
            "GITHUB_OUTPUT",
            "GITHUB_STEP_SUMMARY",
            "GITHUB_REPOSITORY",
        ):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NO_COLOR", "1")


@pytest.fixture
def session_entries():
    """Entries of a small but representative session log."""
    return [
        {"type": "summary", "summary": "Fix flaky test", "leafUuid": "abc"},
        {
            "type": "user",
            "sessionId": "sess-123",
            "version": "1.0.51",
            "cwd": "/work/repo",
            "gitBranch": "main",
            "timestamp": "2025-07-01T10:00:00Z",
            "message": {"role": "user", "content": "Run the tests"},
        },
        {
            "type": "assistant",
            "sessionId": "sess-123",
            "version": "1.0.51",
            "timestamp": "2025-07-01T10:00:05Z",
            "message": {
                "role": "assistant",
                "model": "claude-sonnet-4-20250514",
                "content": [
                    {"type": "text", "text": "Running tests"},
                    {"type": "tool_use", "id": "t1", "name": "Bash", "input": {"command": "pytest"}},
                ],
                "usage": {
                    "input_tokens": 100,
                    "output_tokens": 20,
                    "cache_creation_input_tokens": 5,
                    "cache_read_input_tokens": 0,
                },
            },
        },
        {
            "type": "user",
            "sessionId": "sess-123",
            "timestamp": "2025-07-01T10:00:10Z",
            "message": {
                "role": "user",
                "content": [
                    {"type": "tool_result", "tool_use_id": "t1", "is_error": True, "content": "1 failed"}
                ],
            },
        },
        {
            "type": "assistant",
            "sessionId": "sess-123",
            "timestamp": "2025-07-01T10:00:20Z",
            "message": {
                "role": "assistant",
                "model": "claude-opus-4-20250514",
                "content": [
                    {"type": "tool_use", "id": "t2", "name": "Read", "input": {}},
                    {"type": "tool_use", "id": "t3", "name": "Bash", "input": {}},
                ],
                "usage": {"input_tokens": 50, "output_tokens": 10},
            },
        },
    ]


@pytest.fixture
def session_log_file(temp_dir, session_entries):
    """Write the sample session log, with one malformed line, to disk."""
    path = Path(temp_dir) / "sess-123.jsonl"
    lines = [json.dumps(entry) for entry in session_entries]
    lines.insert(2, "{not json")
    lines.append("")
    path.write_text("\n".join(lines) + "\n")
    return str(path)


@pytest.fixture
def gitleaks_report():
    return [
        {
            "Description": "AWS Access Key",
            "StartLine": 12,
            "File": "config/settings.py",
            "Commit": "a1b2c3",
            "RuleID": "aws-access-token",
            "Fingerprint": "a1b2c3:config/settings.py:aws-access-token:12",
            "Secret": "REDACTED",
        }
    ]


@pytest.fixture
def trivy_report():
    return {
        "SchemaVersion": 2,
        "Results": [
            {
                "Target": "requirements.txt",
                "Vulnerabilities": [
                    {
                        "VulnerabilityID": "CVE-2023-32681",
                        "PkgName": "requests",
                        "InstalledVersion": "2.30.0",
                        "FixedVersion": "2.31.0",
                        "Severity": "MEDIUM",
                        "Title": "Unintended leak of Proxy-Authorization header",
                    },
                    {
                        "VulnerabilityID": "CVE-2024-0001",
                        "PkgName": "libfoo",
                        "Severity": "CRITICAL",
                    },
                ],
            },
            {"Target": "package-lock.json"},
        ],
    }


@pytest.fixture
def syft_report():
    return {
        "bomFormat": "CycloneDX",
        "components": [{"name": "click"}, {"name": "requests"}, {"name": "PyYAML"}],
    }


@pytest.fixture
def checkov_report():
    return {
        "check_type": "terraform",
        "results": {
            "passed_checks": [],
            "failed_checks": [
                {
                    "check_id": "CKV_AWS_20",
                    "check_name": "S3 Bucket has an ACL defined which allows public READ access.",
                    "file_path": "/main.tf",
                    "file_line_range": [1, 8],
                    "resource": "aws_s3_bucket.data",
                    "severity": None,
                    "guideline": "https://docs.prismacloud.io/ckv-aws-20",
                }
            ],
        },
    }


@pytest.fixture
def mock_findings():
    """Create mock findings for testing reporting functions."""
    from ghkit.core import Finding

    return [
        Finding(
            rule_id="aws-access-token",
            severity="HIGH",
            message="AWS Access Key",
            file_path="config/settings.py",
            tool="gitleaks",
            line_number=12,
            remediation="Rotate the exposed credential",
        ),
        Finding(
            rule_id="CVE-2024-0001",
            severity="CRITICAL",
            message="libfoo: CVE-2024-0001",
            file_path="requirements.txt",
            tool="trivy",
        ),
        Finding(
            rule_id="CKV_AWS_20",
            severity="LOW",
            message="S3 Bucket | public READ",
            file_path="/main.tf",
            tool="checkov",
            line_number=1,
            context={"framework": "terraform"},
        ),
    ]


@pytest.fixture
def mock_stats(mock_findings):
    """Statistics matching mock_findings, shaped like run_scanners output."""
    from ghkit.core.findings import build_stats

    stats = build_stats(mock_findings, target="/work/repo")
    stats["tools"] = {
        "gitleaks": {"status": "success", "findings": 1, "report": "r/gitleaks.json", "error": None},
        "trivy": {"status": "success", "findings": 1, "report": "r/trivy.json", "error": None},
        "syft": {
            "status": "success",
            "findings": 0,
            "report": "r/sbom.cdx.json",
            "error": None,
            "components": 3,
        },
        "checkov": {
            "status": "failed",
            "findings": 1,
            "report": None,
            "error": "checkov exited with status 2",
        },
    }
    stats["failed_tools"] = ["checkov"]
    return stats

"""
test_findings.py - Tests for findings and statistics
"""

import pytest

from ghkit.core.findings import (
    SEVERITY_LEVELS,
    Finding,
    Severity,
    build_stats,
    count_at_or_above,
    normalize_severity,
    severity_at_least,
)


def test_severity_levels_ordered():
    assert SEVERITY_LEVELS == ["LOW", "MEDIUM", "HIGH", "CRITICAL"]


@pytest.mark.parametrize(
    "value, expected",
    [
        ("critical", "CRITICAL"),
        ("HIGH", "HIGH"),
        ("moderate", "MEDIUM"),
        ("error", "HIGH"),
        ("UNKNOWN", "LOW"),
        ("negligible", "LOW"),
        (None, "LOW"),
        (Severity.MEDIUM, "MEDIUM"),
    ],
)
def test_normalize_severity(value, expected):
    assert normalize_severity(value) == expected


def test_finding_validates_severity():
    finding = Finding(rule_id="r", severity=Severity.HIGH, message="m", file_path="f")
    assert finding.severity == "HIGH"

    with pytest.raises(ValueError, match="Invalid severity"):
        Finding(rule_id="r", severity="URGENT", message="m", file_path="f")


def test_severity_at_least():
    assert severity_at_least("CRITICAL", "HIGH")
    assert severity_at_least("HIGH", "HIGH")
    assert not severity_at_least("MEDIUM", "HIGH")


def test_build_stats(mock_findings):
    stats = build_stats(mock_findings, target="/work/repo")

    assert stats["target"] == "/work/repo"
    assert stats["total_findings"] == 3
    assert stats["severity_counts"] == {"LOW": 1, "MEDIUM": 0, "HIGH": 1, "CRITICAL": 1}
    assert stats["tool_counts"] == {"gitleaks": 1, "trivy": 1, "checkov": 1}
    assert stats["rule_counts"]["CVE-2024-0001"] == 1


def test_count_at_or_above(mock_findings):
    assert count_at_or_above(mock_findings, "LOW") == 3
    assert count_at_or_above(mock_findings, "HIGH") == 2
    assert count_at_or_above(mock_findings, "CRITICAL") == 1
    assert count_at_or_above([], "LOW") == 0

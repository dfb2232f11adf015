"""
findings.py - Findings produced by the security scanners

Every scanner converts its tool-specific report into Finding objects so that
reporting and threshold checks work the same way for all tools.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union


class Severity(Enum):
    """Enumeration of finding severity levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


SEVERITY_LEVELS = [level.value for level in Severity]


def normalize_severity(value: Any) -> str:
    """
    Map a tool-reported severity onto the ghkit levels

    Tools use slightly different vocabularies ("moderate", "UNKNOWN",
    "NEGLIGIBLE", null). Anything not recognised becomes LOW.
    """
    if isinstance(value, Severity):
        return value.value

    text = str(value or "").strip().upper()
    if text in SEVERITY_LEVELS:
        return text
    if text == "MODERATE":
        return Severity.MEDIUM.value
    if text in ("ERROR", "SEVERE"):
        return Severity.HIGH.value
    return Severity.LOW.value


@dataclass
class Finding:
    """Represents a single issue reported by a scanner"""

    rule_id: str
    severity: Union[str, Severity]
    message: str
    file_path: str
    tool: str = ""
    line_number: Optional[int] = None
    remediation: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate severity level"""
        if isinstance(self.severity, Severity):
            self.severity = self.severity.value
        if self.severity not in SEVERITY_LEVELS:
            raise ValueError(f"Invalid severity level: {self.severity}")


def severity_at_least(severity: str, threshold: str) -> bool:
    """Return True if ``severity`` is at or above ``threshold``"""
    return SEVERITY_LEVELS.index(severity) >= SEVERITY_LEVELS.index(threshold)


def build_stats(findings: Iterable[Finding], target: str = "") -> Dict[str, Any]:
    """
    Build summary statistics for a list of findings

    Args:
        findings: Findings to summarise
        target: Scanned path, recorded for reports

    Returns:
        Statistics dictionary with totals, severity, rule and tool counts
    """
    stats: Dict[str, Any] = {
        "generated_at": datetime.now().isoformat(),
        "target": target,
        "total_findings": 0,
        "severity_counts": {level: 0 for level in SEVERITY_LEVELS},
        "rule_counts": {},
        "tool_counts": {},
    }

    for finding in findings:
        stats["total_findings"] += 1
        stats["severity_counts"][finding.severity] += 1
        stats["rule_counts"][finding.rule_id] = stats["rule_counts"].get(finding.rule_id, 0) + 1
        stats["tool_counts"][finding.tool] = stats["tool_counts"].get(finding.tool, 0) + 1

    return stats


def count_at_or_above(findings: List[Finding], threshold: str) -> int:
    """Count findings whose severity meets ``threshold``"""
    return sum(1 for f in findings if severity_at_least(str(f.severity), threshold))

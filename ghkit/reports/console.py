"""
console.py - Console/terminal reporting for ghkit

Human-readable scan output: findings grouped by severity (most severe
first), followed by a summary with the status of every scanner that ran.
"""

import sys
from typing import Any, Dict, List, Optional, TextIO

from ..core.findings import SEVERITY_LEVELS, Finding
from ..utils.console import SEVERITY_COLORS, colorize, format_severity

RULE = "=" * 50


def _location(finding: Finding) -> str:
    if finding.line_number is None:
        return finding.file_path
    return f"{finding.file_path}:{finding.line_number}"


def format_finding(finding: Finding, verbose: bool = False, show_remediation: bool = True) -> str:
    """
    Format a single finding for console output

    Args:
        finding: Finding to format
        verbose: Also show the tool-specific context
        show_remediation: Whether to include remediation advice

    Returns:
        Formatted finding as string
    """
    lines = [
        f"{format_severity(str(finding.severity))}: {finding.message}",
        f"  Tool: {finding.tool}  Rule: {finding.rule_id}",
        f"  File: {_location(finding)}",
    ]

    if show_remediation and finding.remediation:
        lines.append(f"  Remediation: {finding.remediation}")

    if verbose and finding.context:
        details = ", ".join(f"{key}={value}" for key, value in finding.context.items())
        lines.append(f"  Context: {details}")

    return "\n".join(lines) + "\n"


def format_findings_by_severity(
    findings: List[Finding], verbose: bool = False, show_remediation: bool = True
) -> str:
    """Format findings grouped by severity, most severe first"""
    if not findings:
        return "No issues found.\n"

    groups: Dict[str, List[Finding]] = {level: [] for level in SEVERITY_LEVELS}
    for finding in findings:
        groups[str(finding.severity)].append(finding)

    sections = []
    for level in reversed(SEVERITY_LEVELS):
        if not groups[level]:
            continue
        header = colorize(f"{level} Severity Issues ({len(groups[level])})", SEVERITY_COLORS[level])
        body = "\n".join(format_finding(f, verbose, show_remediation) for f in groups[level])
        sections.append(f"\n{header}\n{RULE}\n{body}")

    return "".join(sections)


def format_tool_status(name: str, info: Dict[str, Any]) -> List[str]:
    """Lines describing one scanner run: status, counts, report path and error"""
    ok = info.get("status") == "success"
    mark = colorize("✓", "green") if ok else colorize("✗", "red")

    line = f"  {mark} {name}: {info.get('status')} ({info.get('findings', 0)} findings)"
    if "components" in info:
        line += f", {info['components']} components"

    lines = [line]
    if info.get("report"):
        lines.append(f"      report: {info['report']}")
    if info.get("error"):
        lines.append(f"      error: {info['error']}")
    return lines


def format_summary(stats: Dict[str, Any]) -> str:
    """Format summary statistics and per-scanner status"""
    counts = stats.get("severity_counts", {})
    breakdown = ", ".join(
        f"{colorize(level, SEVERITY_COLORS[level])} {counts[level]}"
        for level in reversed(SEVERITY_LEVELS)
        if counts.get(level)
    )

    lines = [
        "",
        colorize("Scan Summary", "white", bold=True),
        RULE,
        f"Target: {stats.get('target', '')}",
        f"Total issues found: {stats.get('total_findings', 0)}",
    ]
    if breakdown:
        lines.append(f"By severity: {breakdown}")

    tools = stats.get("tools", {})
    if tools:
        lines.append("Scanners:")
        for name, info in tools.items():
            lines.extend(format_tool_status(name, info))

    return "\n".join(lines) + "\n"


def format_console_report(
    findings: List[Finding],
    stats: Dict[str, Any],
    verbose: bool = False,
    show_remediation: bool = True,
    show_summary: bool = True,
) -> str:
    """Generate a complete console report"""
    report = format_findings_by_severity(findings, verbose, show_remediation)
    if show_summary:
        report += format_summary(stats)
    return report


def print_console_report(
    findings: List[Finding],
    stats: Dict[str, Any],
    verbose: bool = False,
    output_stream: Optional[TextIO] = None,
) -> None:
    """Print console report to output stream (defaults to sys.stdout)"""
    stream = output_stream or sys.stdout
    stream.write(format_console_report(findings, stats, verbose=verbose))
    stream.flush()

"""
json.py - JSON reporting for ghkit

The JSON report is what later workflow steps (and `--output-file`) consume:
findings ordered most severe first, each scanner's run status with the path
of its raw report, and the aggregate statistics.
"""

import json
from datetime import datetime
from typing import Any, Dict, List

from ..core.findings import SEVERITY_LEVELS, Finding
from ..utils.file_handler import safe_write_file
from ..utils.version import __version__

# Omitted from the output when unset
OPTIONAL_FIELDS = ("line_number", "remediation", "context")


def finding_to_dict(finding: Finding) -> Dict[str, Any]:
    """
    Convert a Finding object to a dictionary suitable for JSON serialization

    Args:
        finding: Finding to convert

    Returns:
        Dictionary representation of the finding
    """
    data: Dict[str, Any] = {
        "tool": finding.tool,
        "rule_id": finding.rule_id,
        "severity": str(finding.severity),
        "message": finding.message,
        "file_path": finding.file_path,
    }

    for name in OPTIONAL_FIELDS:
        value = getattr(finding, name)
        if value is not None and value != "" and value != {}:
            data[name] = value

    return data


def _tool_results(findings: List[Finding], stats: Dict[str, Any]) -> Dict[str, Any]:
    tools: Dict[str, Any] = {}
    for name, info in (stats.get("tools") or {}).items():
        tools[name] = {
            "status": info.get("status"),
            "report": info.get("report"),
            "error": info.get("error"),
            "rules": sorted({f.rule_id for f in findings if f.tool == name}),
        }
    return tools


def generate_json_report(
    findings: List[Finding], stats: Dict[str, Any], include_stats: bool = True
) -> str:
    """
    Generate a JSON report of findings and statistics

    Args:
        findings: List of findings
        stats: Statistics dictionary from run_scanners
        include_stats: Whether to include statistics in the output

    Returns:
        JSON string representation of the report
    """
    ordered = sorted(findings, key=lambda f: -SEVERITY_LEVELS.index(str(f.severity)))

    report: Dict[str, Any] = {
        "ghkit_version": __version__,
        "generated_at": stats.get("generated_at") or datetime.now().isoformat(),
        "target": stats.get("target", ""),
        "passed": not findings and not stats.get("failed_tools"),
        "tools": _tool_results(findings, stats),
        "findings": [finding_to_dict(finding) for finding in ordered],
    }

    if include_stats:
        report["stats"] = stats

    # Non-JSON values (e.g. paths) are written as strings
    return json.dumps(report, indent=2, default=str)


def save_json_report(findings: List[Finding], stats: Dict[str, Any], output_path: str) -> None:
    """
    Generate a JSON report and save it to a file

    Raises:
        IOError: If the file cannot be written
    """
    safe_write_file(output_path, generate_json_report(findings, stats))

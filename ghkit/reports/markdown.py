"""
markdown.py - Markdown reports for the GitHub job summary
"""

from typing import Any, Dict, List

from ..core.findings import SEVERITY_LEVELS, Finding

MAX_LISTED_FINDINGS = 50


def _escape(text: str) -> str:
    return str(text).replace("|", "\\|").replace("\n", " ")


def generate_markdown_report(findings: List[Finding], stats: Dict[str, Any]) -> str:
    """
    Render a scan as Markdown tables

    The per-tool table is always present; individual findings are listed
    most severe first, capped at MAX_LISTED_FINDINGS rows.
    """
    levels = list(reversed(SEVERITY_LEVELS))
    lines = ["## Security Scan Summary", ""]

    lines.append("| Tool | Status | Findings |")
    lines.append("|------|--------|----------|")
    for name, info in stats.get("tools", {}).items():
        status = "✅ success" if info.get("status") == "success" else "❌ failed"
        count = str(info.get("findings", 0))
        if "components" in info:
            count += f" ({info['components']} components)"
        lines.append(f"| {name} | {status} | {count} |")

    severity_counts = stats.get("severity_counts", {})
    lines += ["", "| " + " | ".join(levels) + " | Total |"]
    lines.append("|" + "---|" * (len(levels) + 1))
    lines.append(
        "| "
        + " | ".join(str(severity_counts.get(level, 0)) for level in levels)
        + f" | **{stats.get('total_findings', 0)}** |"
    )

    if findings:
        ordered = sorted(findings, key=lambda f: levels.index(str(f.severity)))
        lines += ["", "### Findings", "", "| Severity | Tool | Rule | Location | Message |"]
        lines.append("|----------|------|------|----------|---------|")
        for finding in ordered[:MAX_LISTED_FINDINGS]:
            location = finding.file_path
            if finding.line_number is not None:
                location += f":{finding.line_number}"
            lines.append(
                f"| {finding.severity} | {finding.tool} | {_escape(finding.rule_id)} "
                f"| {_escape(location)} | {_escape(finding.message)} |"
            )
        if len(ordered) > MAX_LISTED_FINDINGS:
            lines.append("")
            lines.append(f"_{len(ordered) - MAX_LISTED_FINDINGS} more finding(s) not shown._")

    for name in stats.get("failed_tools", []):
        error = stats.get("tools", {}).get(name, {}).get("error") or "unknown error"
        lines += ["", f"> **{name} failed:** {_escape(error)}"]

    return "\n".join(lines) + "\n"

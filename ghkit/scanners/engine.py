"""
engine.py - Runs the configured scanners and aggregates their results
"""

from typing import Any, Dict, List, Optional, Tuple

from ..core.findings import Finding, build_stats
from ..core.runner import CommandRunner
from ..utils.console import ConsoleLogger
from .base import ScanResult, Scanner
from .tools import CheckovScanner, GitleaksScanner, SyftScanner, TrivyScanner

SCANNER_CLASSES = {
    "gitleaks": GitleaksScanner,
    "trivy": TrivyScanner,
    "syft": SyftScanner,
    "checkov": CheckovScanner,
}


def create_scanner(name: str) -> Scanner:
    """
    Create the scanner registered under ``name``

    Raises:
        ValueError: If no scanner has that name
    """
    try:
        return SCANNER_CLASSES[name]()
    except KeyError:
        valid = ", ".join(SCANNER_CLASSES)
        raise ValueError(f"Unknown scanner '{name}'. Must be one of: {valid}")


def list_scanners() -> List[Dict[str, str]]:
    """Describe every available scanner"""
    scanners = [create_scanner(name) for name in SCANNER_CLASSES]
    return [
        {
            "id": scanner.name,
            "binary": scanner.binary,
            "category": scanner.category,
            "description": scanner.description,
        }
        for scanner in scanners
    ]


def run_scanners(
    target: str,
    tools: List[str],
    report_dir: str,
    runner: CommandRunner,
    logger: Optional[ConsoleLogger] = None,
) -> Tuple[List[ScanResult], List[Finding], Dict[str, Any]]:
    """
    Run the selected scanners one after another

    Args:
        target: Directory to scan
        tools: Scanner names, run in the given order
        report_dir: Directory receiving the raw tool reports
        runner: Command runner
        logger: Tagged console logger

    Returns:
        Tuple of (results, all findings, stats)
    """
    logger = logger or ConsoleLogger("Security Scan")
    results: List[ScanResult] = []
    findings: List[Finding] = []

    for name in tools:
        scanner = create_scanner(name)
        logger.info(f"Running {scanner.name} ({scanner.category})...")
        result = scanner.run(target, report_dir, runner)

        if result.success:
            logger.info(f"{scanner.name} finished with {len(result.findings)} finding(s)")
        else:
            logger.error(f"{scanner.name} failed: {result.error}")

        results.append(result)
        findings.extend(result.findings)

    stats = build_stats(findings, target=target)
    stats["tools"] = {
        result.tool: {
            "status": "success" if result.success else "failed",
            "findings": len(result.findings),
            "report": result.report_path,
            "error": result.error,
            **result.extra,
        }
        for result in results
    }
    stats["failed_tools"] = [result.tool for result in results if not result.success]

    return results, findings, stats

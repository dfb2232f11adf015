"""
base.py - Base class for security scanner integrations

A scanner wraps one third-party CLI: it builds the command line, runs it
through a CommandRunner, loads the tool's report and converts it into
Finding objects.
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.findings import Finding
from ..core.runner import CommandResult, CommandRunner


@dataclass
class ScanResult:
    """Outcome of running one scanner"""

    tool: str
    findings: List[Finding] = field(default_factory=list)
    returncode: Optional[int] = None
    report_path: Optional[str] = None
    error: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.error is None


class Scanner(ABC):
    """Base class for all scanner integrations"""

    def __init__(
        self,
        name: str,
        binary: str,
        description: str,
        install_hint: str,
        category: str,
        success_codes: Tuple[int, ...] = (0,),
    ) -> None:
        """
        Initialize a scanner

        Args:
            name: Identifier used in config, outputs and reports
            binary: Executable name looked up on PATH
            description: Human-readable description
            install_hint: Installation advice shown when the binary is missing
            category: secrets, vulnerabilities, sbom or iac
            success_codes: Exit statuses that mean the scan completed
        """
        self.name = name
        self.binary = binary
        self.description = description
        self.install_hint = install_hint
        self.category = category
        self.success_codes = success_codes

    @property
    def report_name(self) -> str:
        return f"{self.name}.json"

    @abstractmethod
    def build_command(self, target: str, report_path: str) -> List[str]:
        """Return the command line that scans ``target``"""
        pass

    @abstractmethod
    def parse(self, data: Any, target: str) -> List[Finding]:
        """Convert the tool's report into findings"""
        pass

    def load_report(self, report_path: str, result: CommandResult) -> Any:
        """
        Load the tool's JSON report from ``report_path``

        Raises:
            OSError: If the report cannot be read
            ValueError: If the report is not valid JSON
        """
        with open(report_path, "r", encoding="utf-8") as f:
            content = f.read()
        if not content.strip():
            return None
        return json.loads(content)

    def summarize(self, data: Any) -> Dict[str, Any]:
        """Extra, tool-specific values to expose alongside the findings"""
        return {}

    def create_finding(
        self,
        rule_id: str,
        severity: str,
        message: str,
        file_path: str,
        line_number: Optional[int] = None,
        remediation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Finding:
        """Create a Finding attributed to this scanner"""
        return Finding(
            rule_id=rule_id,
            severity=severity,
            message=message,
            file_path=file_path,
            tool=self.name,
            line_number=line_number,
            remediation=remediation,
            context=context or {},
        )

    def run(self, target: str, report_dir: str, runner: CommandRunner) -> ScanResult:
        """
        Run the scanner against ``target``

        A missing binary, an unexpected exit status or an unreadable report
        produce a ScanResult with ``error`` set rather than an exception.
        """
        if not runner.which(self.binary):
            return ScanResult(
                tool=self.name,
                error=f"{self.binary} is not installed. {self.install_hint}",
            )

        try:
            os.makedirs(report_dir, exist_ok=True)
        except OSError as e:
            return ScanResult(tool=self.name, error=f"Cannot create report directory {report_dir}: {e}")
        report_path = os.path.join(report_dir, self.report_name)

        result = runner.run(self.build_command(target, report_path))
        if result.returncode not in self.success_codes:
            detail = result.stderr.strip() or result.stdout.strip()
            message = f"{self.binary} exited with status {result.returncode}"
            if detail:
                message += f": {_last_lines(detail)}"
            return ScanResult(
                tool=self.name, returncode=result.returncode, report_path=report_path, error=message
            )

        try:
            data = self.load_report(report_path, result)
        except (OSError, ValueError) as e:
            return ScanResult(
                tool=self.name,
                returncode=result.returncode,
                report_path=report_path,
                error=f"Could not read {self.name} report: {e}",
            )

        return ScanResult(
            tool=self.name,
            findings=self.parse(data, target),
            returncode=result.returncode,
            report_path=report_path,
            extra=self.summarize(data),
        )


def _last_lines(text: str, count: int = 5) -> str:
    lines: Sequence[str] = text.splitlines()
    return "\n".join(lines[-count:])

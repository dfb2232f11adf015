"""
tools.py - Scanner integrations for the supported third-party CLIs

- gitleaks: secret detection
- trivy: filesystem vulnerability scanning
- syft: CycloneDX SBOM generation
- checkov: infrastructure-as-code misconfigurations
"""

import json
from typing import Any, Dict, List, Optional

from ..core.findings import Finding, Severity, normalize_severity
from ..core.runner import CommandResult
from ..utils.file_handler import safe_write_file
from .base import Scanner


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class GitleaksScanner(Scanner):
    """Detects hardcoded secrets with gitleaks"""

    def __init__(self) -> None:
        super().__init__(
            name="gitleaks",
            binary="gitleaks",
            description="Detects hardcoded secrets in the working tree and git history",
            install_hint="Install: brew install gitleaks or see https://github.com/gitleaks/gitleaks",
            category="secrets",
        )

    def build_command(self, target: str, report_path: str) -> List[str]:
        return [
            "gitleaks",
            "detect",
            "--source",
            target,
            "--report-format",
            "json",
            "--report-path",
            report_path,
            "--redact",
            "--no-banner",
            "--exit-code",
            "0",
        ]

    def parse(self, data: Any, target: str) -> List[Finding]:
        findings: List[Finding] = []

        for leak in data or []:
            rule_id = leak.get("RuleID") or "secret"
            context = {
                key: leak[name]
                for key, name in (("commit", "Commit"), ("fingerprint", "Fingerprint"))
                if leak.get(name)
            }
            findings.append(
                self.create_finding(
                    rule_id=rule_id,
                    severity=Severity.HIGH.value,
                    message=leak.get("Description") or f"Secret detected by rule {rule_id}",
                    file_path=leak.get("File") or target,
                    line_number=_as_int(leak.get("StartLine")),
                    remediation="Rotate the exposed credential and remove it from the repository history",
                    context=context,
                )
            )

        return findings


class TrivyScanner(Scanner):
    """Finds vulnerable dependencies with trivy"""

    def __init__(self) -> None:
        super().__init__(
            name="trivy",
            binary="trivy",
            description="Scans dependencies in the filesystem for known vulnerabilities",
            install_hint="Install: brew install trivy or see https://aquasecurity.github.io/trivy/",
            category="vulnerabilities",
        )

    def build_command(self, target: str, report_path: str) -> List[str]:
        return [
            "trivy",
            "fs",
            "--scanners",
            "vuln",
            "--format",
            "json",
            "--quiet",
            "--skip-dirs",
            ".git",
            "--output",
            report_path,
            target,
        ]

    def parse(self, data: Any, target: str) -> List[Finding]:
        findings: List[Finding] = []
        if not isinstance(data, dict):
            return findings

        for result in data.get("Results") or []:
            file_path = result.get("Target") or target
            for vuln in result.get("Vulnerabilities") or []:
                vuln_id = vuln.get("VulnerabilityID") or "unknown"
                package = vuln.get("PkgName") or "unknown package"
                installed = vuln.get("InstalledVersion") or ""
                fixed = vuln.get("FixedVersion")
                label = f"{package} {installed}".strip()

                findings.append(
                    self.create_finding(
                        rule_id=vuln_id,
                        severity=normalize_severity(vuln.get("Severity")),
                        message=f"{label}: {vuln.get('Title') or vuln_id}",
                        file_path=file_path,
                        remediation=f"Upgrade {package} to {fixed}" if fixed else None,
                        context={"package": package, "installed_version": installed},
                    )
                )

        return findings


class SyftScanner(Scanner):
    """Generates a CycloneDX SBOM with syft"""

    def __init__(self) -> None:
        super().__init__(
            name="syft",
            binary="syft",
            description="Generates a CycloneDX software bill of materials",
            install_hint="Install: brew install syft or see https://github.com/anchore/syft",
            category="sbom",
        )

    @property
    def report_name(self) -> str:
        return "sbom.cdx.json"

    def build_command(self, target: str, report_path: str) -> List[str]:
        return ["syft", "scan", f"dir:{target}", "-o", f"cyclonedx-json={report_path}", "-q"]

    def parse(self, data: Any, target: str) -> List[Finding]:
        return []

    def summarize(self, data: Any) -> Dict[str, Any]:
        components = data.get("components") if isinstance(data, dict) else None
        return {"components": len(components or [])}


class CheckovScanner(Scanner):
    """Finds IaC misconfigurations with checkov"""

    def __init__(self) -> None:
        super().__init__(
            name="checkov",
            binary="checkov",
            description="Checks infrastructure-as-code for misconfigurations",
            install_hint="Install: pipx install checkov or pip install checkov",
            category="iac",
            # checkov exits 1 when it found failed checks
            success_codes=(0, 1),
        )

    def build_command(self, target: str, report_path: str) -> List[str]:
        return ["checkov", "-d", target, "--output", "json", "--quiet", "--compact"]

    def load_report(self, report_path: str, result: CommandResult) -> Any:
        # checkov prints its JSON report on stdout
        safe_write_file(report_path, result.stdout)
        if not result.stdout.strip():
            return None
        return json.loads(result.stdout)

    def parse(self, data: Any, target: str) -> List[Finding]:
        findings: List[Finding] = []

        # One object per framework when several apply, a single object otherwise
        reports = data if isinstance(data, list) else [data]
        for report in reports:
            if not isinstance(report, dict):
                continue
            framework = report.get("check_type", "")
            for check in (report.get("results") or {}).get("failed_checks") or []:
                line_range = check.get("file_line_range") or []
                findings.append(
                    self.create_finding(
                        rule_id=check.get("check_id") or "unknown",
                        severity=normalize_severity(check.get("severity")),
                        message=check.get("check_name") or "Failed check",
                        file_path=check.get("file_path") or target,
                        line_number=_as_int(line_range[0]) if line_range else None,
                        remediation=check.get("guideline"),
                        context={
                            "framework": framework,
                            "resource": check.get("resource", ""),
                        },
                    )
                )

        return findings

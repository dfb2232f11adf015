"""
scanners package for ghkit

Integrations for third-party security scanning CLIs and the engine that runs
them.
"""

from .base import ScanResult, Scanner
from .engine import SCANNER_CLASSES, create_scanner, list_scanners, run_scanners
from .tools import CheckovScanner, GitleaksScanner, SyftScanner, TrivyScanner

__all__ = [
    "Scanner",
    "ScanResult",
    "SCANNER_CLASSES",
    "create_scanner",
    "list_scanners",
    "run_scanners",
    "GitleaksScanner",
    "TrivyScanner",
    "SyftScanner",
    "CheckovScanner",
]

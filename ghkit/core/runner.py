"""
runner.py - External command execution

Commands never call subprocess directly. They receive a CommandRunner so tests
can substitute a fake that records invocations and returns canned results.
"""

import os
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

# Exit status used by shells when a command cannot be found
COMMAND_NOT_FOUND = 127


@dataclass
class CommandResult:
    """Outcome of one external command"""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return shlex.join(self.args)


class CommandRunner(ABC):
    """Capability to execute a command and capture its output"""

    @abstractmethod
    def run(
        self,
        args: Sequence[str],
        env: Optional[Dict[str, str]] = None,
        input: Optional[str] = None,
        cwd: Optional[str] = None,
    ) -> CommandResult:
        """
        Run a command to completion

        Args:
            args: Program and arguments
            env: Extra environment variables visible to this call only
            input: Text fed to the command's stdin
            cwd: Working directory

        Returns:
            CommandResult with exit status and captured output
        """
        pass

    @abstractmethod
    def which(self, name: str) -> Optional[str]:
        """Return the path of an executable on PATH, or None"""
        pass


class SubprocessRunner(CommandRunner):
    """CommandRunner backed by subprocess.run"""

    def run(
        self,
        args: Sequence[str],
        env: Optional[Dict[str, str]] = None,
        input: Optional[str] = None,
        cwd: Optional[str] = None,
    ) -> CommandResult:
        argv = list(args)
        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        try:
            proc = subprocess.run(
                argv,
                input=input,
                capture_output=True,
                text=True,
                env=full_env,
                cwd=cwd,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(argv, COMMAND_NOT_FOUND, "", str(e))

        return CommandResult(argv, proc.returncode, proc.stdout or "", proc.stderr or "")

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

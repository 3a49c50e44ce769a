"""
External command runner for Cheatsheet AI.

This module wraps subprocess execution of the external tools (git, files-to-prompt)
and turns non-zero exits into typed failures that carry the captured stderr.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence


logger = logging.getLogger("cheatsheetai.command_runner")


class CommandFailed(Exception):
    """An external command exited non-zero or could not be started."""

    def __init__(self, program: str, exit_code: Optional[int], stderr: str = "", message: Optional[str] = None):
        self.program = program
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message or f'Command "{program}" failed (Exit Code: {exit_code})')


class CommandNotFound(CommandFailed):
    """The executable is not installed or not on PATH."""

    def __init__(self, program: str, message: Optional[str] = None):
        super().__init__(
            program,
            exit_code=None,
            message=message or f'Command "{program}" not found. Make sure it is installed and in your PATH.',
        )


@dataclass
class CommandResult:
    """Captured output of a finished command."""
    program: str
    args: List[str]
    exit_code: int
    stdout: str
    stderr: str


class CommandRunner:
    """Runs external programs synchronously and captures their output.

    No timeout and no retries are applied; callers wanting either wrap the call.
    """

    def execute(self, program: str, args: Sequence[str], cwd: Optional[str] = None) -> CommandResult:
        """Run a program to completion.

        Args:
            program: Executable name or path
            args: Arguments passed to the program
            cwd: Working directory for the child process

        Returns:
            CommandResult: Exit code and captured stdout/stderr

        Raises:
            CommandNotFound: If the executable cannot be found
            CommandFailed: If the program exits non-zero or cannot be started
        """
        args = [str(arg) for arg in args]
        display_cwd = f" in {os.path.relpath(cwd) or '.'}" if cwd else ""
        logger.info(f"🏃 Running: {program} {' '.join(args)}{display_cwd}")

        try:
            completed = subprocess.run(
                [program, *args],
                cwd=cwd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as e:
            if shutil.which(program) is None:
                raise CommandNotFound(program) from e
            raise CommandFailed(program, None, message=f'Command "{program}" could not be started: {e}') from e
        except OSError as e:
            raise CommandFailed(program, None, message=f'Command "{program}" could not be started: {e}') from e

        result = CommandResult(
            program=program,
            args=args,
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

        if result.exit_code != 0:
            logger.error(f"❌ Command \"{program}\" failed (Exit Code: {result.exit_code})")
            logger.error(f"Stderr:\n{result.stderr}")
            raise CommandFailed(program, result.exit_code, result.stderr)

        if result.stderr.strip():
            logger.debug(f"Stderr from {program}:\n{result.stderr}")
        logger.info(f"✅ Success: {program}")
        return result

    def run(self, program: str, args: Sequence[str], cwd: Optional[str] = None) -> str:
        """Run a program and return its stdout."""
        return self.execute(program, args, cwd=cwd).stdout

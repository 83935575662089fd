"""External command execution.

Every git, cmake and make invocation goes through run_command(), which:
- Runs the command without a shell in a given working directory
- Captures stdout and stderr as one combined text stream
- Enforces a timeout on every call
- Converts start failures and timeouts into CommandError subclasses
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Base error for external command execution."""

    def __init__(
        self,
        message: str,
        command: str,
        exit_code: int | None = None,
        output: str = "",
        code: str = "command_error",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.output = output
        self.code = code


class CommandExecutionError(CommandError):
    """Raised when a command cannot be started."""

    def __init__(self, message: str, command: str) -> None:
        super().__init__(message, command, code="execution_error")


class CommandTimeoutError(CommandError):
    """Raised when a command exceeds its timeout."""

    def __init__(self, command: str, timeout: float, output: str = "") -> None:
        super().__init__(
            f"Command timed out after {timeout:g} seconds: {command}",
            command,
            exit_code=-1,
            output=output,
            code="timeout",
        )
        self.timeout = timeout


class CommandFailedError(CommandError):
    """Raised by CommandResult.check() for a non-zero exit."""

    def __init__(self, command: str, exit_code: int, output: str) -> None:
        super().__init__(
            f"Command failed with exit code {exit_code}: {command}",
            command,
            exit_code=exit_code,
            output=output,
            code="command_failed",
        )


@dataclass
class CommandResult:
    """Result of a finished command.

    Attributes:
        command: The command that was executed, shell-quoted.
        exit_code: Process exit code.
        output: Combined stdout and stderr, or stdout alone when stderr
            was captured separately.
        duration: Wall-clock run time in seconds.
        error_output: Separately captured stderr.
    """

    command: str
    exit_code: int
    output: str
    duration: float
    error_output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def check(self) -> CommandResult:
        """Return self, or raise CommandFailedError for a non-zero exit."""
        if not self.ok:
            raise CommandFailedError(self.command, self.exit_code, self.output)
        return self


def _decode(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def run_command(
    cmd: Sequence[str],
    cwd: Path | None = None,
    timeout: float | None = None,
    merge_stderr: bool = True,
) -> CommandResult:
    """Run an external command and capture its output.

    Args:
        cmd: Command and arguments.
        cwd: Working directory (current directory if None).
        timeout: Timeout in seconds (None = no timeout).
        merge_stderr: Fold stderr into output. Disable for commands whose
            output is parsed, so diagnostics cannot pass for data.

    Returns:
        CommandResult; a non-zero exit is reported, not raised.

    Raises:
        CommandTimeoutError: If the command exceeds the timeout.
        CommandExecutionError: If the command cannot be started.
    """
    args = [str(arg) for arg in cmd]
    cmd_str = shlex.join(args)
    logger.debug("Running: %s (cwd=%s)", cmd_str, cwd or ".")

    started = time.monotonic()
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_stderr else subprocess.PIPE,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        logger.error("Timed out after %ss: %s", timeout, cmd_str)
        raise CommandTimeoutError(cmd_str, timeout or 0, _decode(e.output)) from e
    except OSError as e:
        logger.error("Failed to execute %s: %s", cmd_str, e)
        raise CommandExecutionError(
            f"Failed to execute {cmd_str}: {e}", cmd_str
        ) from e

    duration = time.monotonic() - started
    logger.debug(
        "Finished in %.1fs with exit code %d: %s",
        duration,
        result.returncode,
        cmd_str,
    )
    return CommandResult(
        command=cmd_str,
        exit_code=result.returncode,
        output=_decode(result.stdout),
        duration=duration,
        error_output="" if merge_stderr else _decode(result.stderr),
    )


__all__ = [
    "CommandError",
    "CommandExecutionError",
    "CommandFailedError",
    "CommandResult",
    "CommandTimeoutError",
    "run_command",
]

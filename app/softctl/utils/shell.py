"""Shell execution utilities.

Provides subprocess execution with timeouts, cooperative cancellation
and fixed-delay retries. Commands run detached in their own process
group so that their descendants can be signaled together.
"""

import logging
import os
import shutil
import signal
import subprocess
import time
from collections.abc import Callable
from dataclasses import dataclass

from softctl.core.errors import CommandCancelledError, CommandFailedError, CommandTimeoutError

logger = logging.getLogger(__name__)

# Interval between cancellation checks while a command is running
POLL_INTERVAL: float = 0.1

# Grace period between SIGTERM and SIGKILL when aborting a process group
_GROUP_KILL_GRACE: float = 2.0


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return self.stdout + self.stderr


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
    is_cancelled: Callable[[], bool] | None = None,
    max_retries: int = 0,
    retry_delay: float = 2.0,
) -> CommandResult:
    """Execute a command and return the result.

    A non-zero exit is retried up to ``max_retries`` times with a fixed
    ``retry_delay`` between attempts. Timeouts and cancellations are never
    retried.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CommandFailedError when the last attempt fails.
        timeout: Maximum time in seconds per attempt. None disables it.
        cwd: Working directory for the command.
        is_cancelled: Polled every POLL_INTERVAL; True aborts the command.
        max_retries: Additional attempts after a non-zero exit.
        retry_delay: Seconds to wait between attempts.

    Returns:
        CommandResult of the last attempt.

    Raises:
        CommandFailedError: If check=True and every attempt exits non-zero.
        CommandTimeoutError: If an attempt exceeds ``timeout``.
        CommandCancelledError: If ``is_cancelled`` turns True.
        FileNotFoundError: If the command executable is not found.
        PermissionError: If the command executable cannot be executed.
    """
    attempt = 0
    while True:
        result = _run_once(args, timeout=timeout, cwd=cwd, is_cancelled=is_cancelled)
        if result.success or attempt >= max_retries:
            break
        attempt += 1
        logger.debug(
            "Command %s exited %d, retry %d/%d in %.1fs",
            args[0],
            result.returncode,
            attempt,
            max_retries,
            retry_delay,
        )
        if _sleep_cancellable(retry_delay, is_cancelled):
            raise CommandCancelledError(args)

    if check and not result.success:
        raise CommandFailedError(args, result.returncode, result.output)
    return result


def _run_once(
    args: list[str],
    *,
    timeout: float | None,
    cwd: str | None,
    is_cancelled: Callable[[], bool] | None,
) -> CommandResult:
    """Run a single attempt of a command, polling for cancellation."""
    logger.debug("Executing: %s", " ".join(args))
    process = subprocess.Popen(
        args,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        cwd=cwd,
        start_new_session=True,
    )
    started = time.monotonic()
    while True:
        try:
            stdout, stderr = process.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            if is_cancelled is not None and is_cancelled():
                _terminate_group(process)
                raise CommandCancelledError(args) from None
            if timeout is not None and time.monotonic() - started >= timeout:
                _terminate_group(process)
                raise CommandTimeoutError(args, timeout) from None

    return CommandResult(stdout=stdout or "", stderr=stderr or "", returncode=process.returncode)


def _terminate_group(process: subprocess.Popen[str]) -> None:
    """Send SIGTERM to the command's process group, escalating to SIGKILL."""
    for sig in (signal.SIGTERM, signal.SIGKILL):
        try:
            os.killpg(process.pid, sig)
        except (ProcessLookupError, PermissionError):
            break
        try:
            process.communicate(timeout=_GROUP_KILL_GRACE)
            return
        except subprocess.TimeoutExpired:
            continue
    try:
        process.communicate(timeout=_GROUP_KILL_GRACE)
    except subprocess.TimeoutExpired:
        logger.warning("Process group %d did not exit after SIGKILL", process.pid)


def _sleep_cancellable(seconds: float, is_cancelled: Callable[[], bool] | None) -> bool:
    """Sleep in POLL_INTERVAL slices. Returns True if cancelled meanwhile."""
    end = time.monotonic() + seconds
    while True:
        if is_cancelled is not None and is_cancelled():
            return True
        left = end - time.monotonic()
        if left <= 0:
            return False
        time.sleep(min(POLL_INTERVAL, left))


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None

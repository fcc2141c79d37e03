"""Abstract base class for application operators.

An operator runs one install or uninstall as a state machine, reporting
each step as a progress event on the operation's channel.
"""

import logging
import shutil
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from softctl.archives.base import CommandOptions
from softctl.core.channel import ProgressChannel
from softctl.core.config import SoftctlConfig
from softctl.core.context import CancelReason, OperationContext
from softctl.core.errors import CommandCancelledError, CommandError, ProcessRunningError
from softctl.core.processes import ProcessLocator, ProcessTerminator
from softctl.models.application import Outcome
from softctl.models.progress import Progress
from softctl.utils.shell import CommandResult, command_exists, run_command

logger = logging.getLogger(__name__)


class Operator(ABC):
    """Abstract base class for install and uninstall operators.

    Attributes:
        config: Effective configuration.
        locator: Finds processes of the target application.
        terminator: Stops those processes.
        state: Current state of the running operation.
    """

    def __init__(
        self,
        config: SoftctlConfig,
        locator: ProcessLocator | None = None,
        terminator: ProcessTerminator | None = None,
    ) -> None:
        self.config = config
        self.locator = locator or ProcessLocator()
        self.terminator = terminator or ProcessTerminator(
            attempts=config.terminate_attempts,
            kill_delay=config.kill_delay_seconds,
        )
        self.state: Enum | None = None

    @property
    @abstractmethod
    def operation(self) -> str:
        """Name of the operation used in messages ("installation", ...)."""

    @property
    def command_options(self) -> CommandOptions:
        """Command Runner settings derived from the configuration."""
        return CommandOptions(
            timeout=self.config.command_timeout_seconds,
            max_retries=self.config.command_max_retries,
            retry_delay=self.config.command_retry_delay_seconds,
        )

    def enter(self, state: Enum, ctx: OperationContext) -> None:
        """Move to a new state, aborting first if the operation was cancelled."""
        ctx.check()
        logger.info("%s %s: %s", self.operation, ctx.operation_id, state.value)
        self.state = state

    def report(
        self,
        channel: ProgressChannel,
        ctx: OperationContext,
        percent: int,
        message: str,
        details: str | None = None,
    ) -> None:
        """Send a progress event.

        A failed delivery means the caller is gone, so the operation is
        cancelled and aborted.

        Raises:
            OperationCancelledError: If delivery failed or the caller cancelled.
            OperationTimeoutError: If the deadline expired.
        """
        ctx.check()
        if not channel.send(Progress(percent, message, details)):
            ctx.cancel(CancelReason.DISCONNECTED)
        ctx.check()

    def run_step(
        self, args: list[str], ctx: OperationContext, retry: bool = False
    ) -> CommandResult:
        """Run a primary host command, failing the operation on error.

        Raises:
            CommandFailedError: If the command exits non-zero.
            CommandTimeoutError: If the command exceeds its timeout.
            OperationCancelledError: If the operation is cancelled.
            OperationTimeoutError: If the deadline expires.
        """
        try:
            return run_command(
                args,
                check=True,
                timeout=min(self.config.command_timeout_seconds, max(ctx.remaining, 0.1)),
                is_cancelled=ctx.is_cancelled,
                max_retries=self.config.command_max_retries if retry else 0,
                retry_delay=self.config.command_retry_delay_seconds,
            )
        except CommandCancelledError as e:
            raise ctx.cancellation_error() from e

    def best_effort(self, args: list[str], ctx: OperationContext) -> Outcome:
        """Run an advisory host command; failures degrade instead of raising.

        Raises:
            OperationCancelledError: If the operation is cancelled.
            OperationTimeoutError: If the deadline expires.
        """
        if not command_exists(args[0]):
            return Outcome.degraded(f"{args[0]} not available")
        try:
            self.run_step(args, ctx)
        except (CommandError, OSError) as e:
            ctx.check()
            logger.warning("Best-effort step %s failed: %s", args[0], e)
            return Outcome.degraded(f"{args[0]} failed: {e}")
        return Outcome.ok()

    def stop_processes(
        self,
        app_name: str,
        bundle_id: str | None,
        ctx: OperationContext,
    ) -> int:
        """Find and terminate the application's processes.

        Returns:
            Number of processes found.

        Raises:
            ProcessRunningError: If a process survives every attempt.
        """
        processes = self.locator.find(app_name, bundle_id, ctx)
        if processes:
            self.terminator.terminate(processes, ctx, app_name=app_name)
        return len(processes)

    def stop_processes_best_effort(
        self,
        app_name: str,
        bundle_id: str | None,
        ctx: OperationContext,
    ) -> Outcome:
        """Terminate processes, logging survivors instead of failing."""
        try:
            self.stop_processes(app_name, bundle_id, ctx)
        except ProcessRunningError as e:
            logger.warning("Continuing with running processes of %s: %s", app_name, e.details)
            return Outcome.degraded(e.message)
        return Outcome.ok()

    def remove_path(self, path: Path) -> None:
        """Delete a bundle, file or symlink.

        Raises:
            OSError: If the path cannot be removed.
        """
        if path.is_symlink() or path.is_file():
            path.unlink()
        elif path.exists():
            shutil.rmtree(path)

    def refresh_icon_cache(self, ctx: OperationContext) -> Outcome:
        """Touch the applications directory so file browsers pick up changes."""
        if not self.config.refresh_icon_cache:
            return Outcome.ok()
        return self.best_effort(["touch", str(self.config.applications_dir)], ctx)

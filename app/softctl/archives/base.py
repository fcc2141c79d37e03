"""Extraction techniques and the strategies that chain them.

An ArchiveStrategy holds an ordered list of ExtractionTechnique objects.
Each technique either yields a bundle path or None; the strategy stops at
the first bundle.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from softctl.core.context import OperationContext
from softctl.core.errors import CommandCancelledError, CommandError
from softctl.models.application import LocatedBundle
from softctl.utils.shell import CommandResult, command_exists, run_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CommandOptions:
    """Command Runner settings used by extraction techniques.

    Attributes:
        timeout: Per-command timeout in seconds.
        max_retries: Retries after a non-zero exit for retryable steps.
        retry_delay: Fixed delay between retries.
    """

    timeout: float = 300.0
    max_retries: int = 3
    retry_delay: float = 2.0


class ExtractionTechnique(ABC):
    """One way of turning an archive into a directory tree holding a bundle.

    Attributes:
        name: Short identifier reported as the bundle's strategy.
        required_command: Host binary the technique depends on, if any.
    """

    name: str = "technique"
    required_command: str | None = None

    def __init__(self, options: CommandOptions | None = None) -> None:
        self.options = options or CommandOptions()

    def is_available(self) -> bool:
        """Check if the technique can run on this machine."""
        return self.required_command is None or command_exists(self.required_command)

    @abstractmethod
    def attempt(
        self,
        archive: Path,
        workdir: Path,
        ctx: OperationContext,
        app_name: str,
    ) -> Path | None:
        """Try to produce an application bundle.

        Args:
            archive: Downloaded package file.
            workdir: Empty scratch directory owned by this attempt.
            ctx: Operation context.
            app_name: Search name of the application.

        Returns:
            Path of a bundle, or None if this technique found nothing.

        Raises:
            CommandError: If a host command fails.
            OSError: If the filesystem step fails.
        """

    def run(
        self,
        args: list[str],
        ctx: OperationContext,
        retry: bool = False,
        cwd: Path | None = None,
    ) -> CommandResult:
        """Run a host command bound to the operation context.

        The timeout never exceeds the time left before the deadline.

        Raises:
            CommandFailedError: If the command exits non-zero.
            OperationCancelledError: If the operation is cancelled.
            OperationTimeoutError: If the deadline expires.
        """
        try:
            return run_command(
                args,
                check=True,
                timeout=min(self.options.timeout, max(ctx.remaining, 0.1)),
                cwd=str(cwd) if cwd is not None else None,
                is_cancelled=ctx.is_cancelled,
                max_retries=self.options.max_retries if retry else 0,
                retry_delay=self.options.retry_delay,
            )
        except CommandCancelledError as e:
            raise ctx.cancellation_error() from e


class ArchiveStrategy:
    """Ordered fallback pipeline of extraction techniques."""

    def __init__(self, name: str, techniques: list[ExtractionTechnique]) -> None:
        self.name = name
        self.techniques = techniques

    def locate(
        self,
        archive: Path,
        workdir: Path,
        ctx: OperationContext,
        app_name: str,
    ) -> LocatedBundle | None:
        """Run techniques in order until one yields a bundle.

        Args:
            archive: Downloaded package file.
            workdir: Scratch directory; each technique gets a subdirectory.
            ctx: Operation context, checked between techniques.
            app_name: Search name of the application.

        Returns:
            LocatedBundle naming the successful technique, or None.

        Raises:
            OperationCancelledError: If the operation is cancelled.
            OperationTimeoutError: If the deadline expires.
        """
        for index, technique in enumerate(self.techniques):
            ctx.check()
            if not technique.is_available():
                logger.debug(
                    "Skipping %s: %s not installed", technique.name, technique.required_command
                )
                continue
            target = workdir / f"{index}-{technique.name}"
            target.mkdir(parents=True, exist_ok=True)
            try:
                bundle = technique.attempt(archive, target, ctx, app_name)
            except (CommandError, OSError) as e:
                ctx.check()
                logger.info("%s technique %s failed: %s", self.name, technique.name, e)
                continue
            if bundle is not None:
                logger.info("Located %s with %s", bundle.name, technique.name)
                return LocatedBundle(path=str(bundle), strategy=technique.name)
            logger.debug("%s produced no bundle", technique.name)
        return None

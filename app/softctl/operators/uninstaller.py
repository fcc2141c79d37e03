"""Uninstaller state machine.

Queued -> Locating -> StoppingProcesses -> Removing ->
CleaningAuxiliaryData -> Verifying. Any state may fail or be cancelled
through the operation context.
"""

import logging
from enum import Enum
from pathlib import Path

from softctl.core.channel import ProgressChannel
from softctl.core.config import SoftctlConfig
from softctl.core.context import OperationContext
from softctl.core.errors import (
    ApplicationNotFoundError,
    ErrorKind,
    PermissionDeniedError,
    RemovalFailedError,
    user_message,
)
from softctl.core.matching import MatchResult, normalize_name, resolve
from softctl.core.processes import ProcessLocator, ProcessTerminator
from softctl.models.application import OperationResult, Outcome
from softctl.models.package import PackageReference
from softctl.operators.base import Operator
from softctl.scanners.base import Scanner
from softctl.scanners.bundle import BundleScanner

logger = logging.getLogger(__name__)

# Shortest normalized name used to match auxiliary files
MIN_AUXILIARY_PATTERN = 3


class UninstallState(Enum):
    """States of an uninstallation."""

    QUEUED = "queued"
    LOCATING = "locating"
    STOPPING_PROCESSES = "stopping-processes"
    REMOVING = "removing"
    CLEANING_AUXILIARY_DATA = "cleaning-auxiliary-data"
    VERIFYING = "verifying"


class Uninstaller(Operator):
    """Locates an installed application and removes it with its data."""

    def __init__(
        self,
        config: SoftctlConfig,
        scanner: Scanner | None = None,
        locator: ProcessLocator | None = None,
        terminator: ProcessTerminator | None = None,
    ) -> None:
        super().__init__(config, locator, terminator)
        self.scanner = scanner or BundleScanner.from_config(config)
        self.resolved: MatchResult | None = None

    @property
    def operation(self) -> str:
        return "uninstallation"

    def locate(self, reference: PackageReference) -> MatchResult | None:
        """Resolve the reference against a fresh scan.

        The search name is tried first, then the full display name.
        """
        applications = list(self.scanner.scan())
        for query in dict.fromkeys((reference.search_name, reference.display_name)):
            match = resolve(query, applications)
            if match is not None:
                return match
        return None

    def run(
        self,
        reference: PackageReference,
        ctx: OperationContext,
        channel: ProgressChannel,
        elevated: bool = False,
    ) -> OperationResult:
        """Uninstall an application.

        The located application is kept in ``resolved`` so a caller can
        reconcile with the disk when the run fails after removal.

        Args:
            reference: Package reference naming the application.
            ctx: Operation context.
            channel: Channel receiving progress events.
            elevated: Whether system applications may be removed.

        Returns:
            OperationResult describing the removed bundle.

        Raises:
            ApplicationNotFoundError: If no installed application matches.
            PermissionDeniedError: If a standard identity targets a system app.
            ProcessRunningError: If the application cannot be stopped.
            RemovalFailedError: If the bundle is still present afterwards.
        """
        name = reference.display_name
        warnings: list[str] = []
        self.resolved = None

        self.enter(UninstallState.QUEUED, ctx)
        self.report(channel, ctx, 5, f"Preparing to uninstall {name}...")

        self.enter(UninstallState.LOCATING, ctx)
        self.report(channel, ctx, 10, "Finding application...", f"Looking for {name}")
        match = self.locate(reference)
        if match is None:
            raise ApplicationNotFoundError(
                user_message(ErrorKind.NOT_FOUND, subject=name),
                details=f"No installed application matches {name!r}",
            )
        self.resolved = match
        app = match.application
        path = Path(app.path)
        logger.info("Resolved %s to %s (%s match)", name, app.path, match.strategy)
        if app.is_system_app and not elevated and path.parent == self.config.applications_dir:
            msg = f"{app.name} is a system application"
            raise PermissionDeniedError(msg, details="Elevated privileges are required")

        self.enter(UninstallState.STOPPING_PROCESSES, ctx)
        self.report(
            channel,
            ctx,
            20,
            "Checking for running processes...",
            f"Found {app.name} at {app.path} ({match.strategy} match)",
        )
        self.stop_processes(app.name, app.bundle_id, ctx)

        self.enter(UninstallState.REMOVING, ctx)
        self.report(channel, ctx, 50, "Removing application...", f"Deleting {app.path}")
        self.remove_path(path)

        self.enter(UninstallState.CLEANING_AUXILIARY_DATA, ctx)
        self.report(
            channel, ctx, 70, "Cleaning up application data...", "Removing preferences and caches"
        )
        outcome = self.clean_auxiliary_data(app.name, ctx)
        if outcome.is_degraded and outcome.reason:
            warnings.append(outcome.reason)

        self.enter(UninstallState.VERIFYING, ctx)
        self.report(channel, ctx, 90, "Verifying uninstallation...", "Confirming removal")
        if path.exists() or path.is_symlink():
            msg = "Failed to remove application completely"
            raise RemovalFailedError(msg, details=app.path)
        self.refresh_icon_cache(ctx)

        return OperationResult(
            app_name=app.name,
            path=app.path,
            version=app.version,
            bundle_id=app.bundle_id,
            warnings=tuple(warnings),
            match_strategy=match.strategy,
        )

    def clean_auxiliary_data(self, app_name: str, ctx: OperationContext) -> Outcome:
        """Remove preferences, support data and caches named after the app.

        Entries whose lower-cased name contains the normalized application
        name are removed. Failures are logged and reported as degraded.
        """
        pattern = normalize_name(app_name)
        if len(pattern) < MIN_AUXILIARY_PATTERN:
            return Outcome.degraded(f"Name {app_name!r} too short to match auxiliary data")

        failures: list[str] = []
        for directory in self.config.auxiliary_dirs:
            ctx.check()
            try:
                entries = list(directory.iterdir())
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Cannot read %s: %s", directory, e)
                failures.append(str(directory))
                continue
            for entry in entries:
                if pattern not in entry.name.lower():
                    continue
                try:
                    self.remove_path(entry)
                    logger.debug("Removed auxiliary data %s", entry)
                except OSError as e:
                    logger.warning("Failed to remove %s: %s", entry, e)
                    failures.append(str(entry))

        if failures:
            return Outcome.degraded(f"Could not remove: {', '.join(failures)}")
        return Outcome.ok()

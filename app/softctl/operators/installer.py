"""Installer state machine.

Queued -> Downloading -> PreCleanup -> Extracting -> Copying ->
Permissioning -> Verifying. Any state may fail or be cancelled through
the operation context.
"""

import logging
from enum import Enum
from pathlib import Path

from softctl.archives import locate_application_bundle
from softctl.core.bundle import copy_bundle, read_manifest
from softctl.core.channel import ProgressChannel
from softctl.core.config import SoftctlConfig
from softctl.core.context import OperationContext
from softctl.core.errors import PackageFileNotFoundError
from softctl.core.matching import match_bundle_name
from softctl.core.paths import BUNDLE_SUFFIX
from softctl.core.processes import ProcessLocator, ProcessTerminator
from softctl.core.store import PackageStore, download
from softctl.models.application import OperationResult
from softctl.models.package import PackageReference
from softctl.operators.base import Operator

logger = logging.getLogger(__name__)

# Detail attached to events when a placeholder bundle is deployed
PLACEHOLDER_DETAILS = (
    "No application bundle was found in the package; a placeholder bundle was installed"
)

# Download progress is reported between these percentages
_DOWNLOAD_START = 10
_DOWNLOAD_END = 40


class InstallState(Enum):
    """States of an installation."""

    QUEUED = "queued"
    DOWNLOADING = "downloading"
    PRE_CLEANUP = "pre-cleanup"
    EXTRACTING = "extracting"
    COPYING = "copying"
    PERMISSIONING = "permissioning"
    VERIFYING = "verifying"


def verify_installed(applications_dir: Path, search_name: str, expected: Path) -> Path | None:
    """Confirm an application is present after deployment.

    Checks the expected path, then scans the directory for an exact,
    substring or whitespace-insensitive name match.

    Returns:
        Path of the installed bundle, or None if absent.
    """
    if expected.is_dir():
        return expected
    try:
        names = [p.name for p in applications_dir.iterdir() if p.is_dir()]
    except OSError as e:
        logger.warning("Cannot list %s: %s", applications_dir, e)
        return None
    for query in (expected.name[: -len(BUNDLE_SUFFIX)], search_name):
        found = match_bundle_name(query, names)
        if found is not None:
            return applications_dir / found
    return None


class Installer(Operator):
    """Downloads a package and deploys its application bundle."""

    def __init__(
        self,
        config: SoftctlConfig,
        store: PackageStore,
        locator: ProcessLocator | None = None,
        terminator: ProcessTerminator | None = None,
    ) -> None:
        super().__init__(config, locator, terminator)
        self.store = store
        self.removed: list[Path] = []
        self.deployed: Path | None = None

    @property
    def operation(self) -> str:
        return "installation"

    def run(
        self,
        reference: PackageReference,
        ctx: OperationContext,
        channel: ProgressChannel,
        workdir: Path,
    ) -> OperationResult:
        """Install a package.

        Previous bundles removed along the way are kept in ``removed`` and
        the copied bundle in ``deployed``, so a caller can reconcile with
        the disk when the run fails part way.

        Args:
            reference: Package to install.
            ctx: Operation context.
            channel: Channel receiving progress events.
            workdir: Scratch directory owned by this operation.

        Returns:
            OperationResult describing the verified bundle.

        Raises:
            SoftctlError: Classified failure of a primary step.
            CommandError: If a primary host command fails.
            OSError: If a filesystem step fails.
        """
        name = reference.display_name
        warnings: list[str] = []
        self.removed = []
        self.deployed = None

        self.enter(InstallState.QUEUED, ctx)
        self.report(channel, ctx, 5, f"Preparing to install {name}...")

        self.enter(InstallState.DOWNLOADING, ctx)
        archive = self._download(reference, ctx, channel, workdir)

        self.report(channel, ctx, 50, "Installing application...", f"Installing {name}")
        apps_dir = self.config.applications_dir
        expected = apps_dir / f"{reference.search_name}{BUNDLE_SUFFIX}"

        self.enter(InstallState.PRE_CLEANUP, ctx)
        warnings.extend(self._pre_cleanup(reference.search_name, expected, ctx, channel))

        self.enter(InstallState.EXTRACTING, ctx)
        self.report(channel, ctx, 58, "Extracting package...", f"Unpacking {archive.name}")
        located = locate_application_bundle(
            archive,
            reference.extension,
            workdir / "extract",
            ctx,
            reference.search_name,
            self.command_options,
        )
        bundle = Path(located.path)
        if located.placeholder:
            warnings.append(PLACEHOLDER_DETAILS)
            details = PLACEHOLDER_DETAILS
        else:
            details = f"Found {bundle.name} ({located.strategy})"
        self.report(channel, ctx, 60, "Package extracted...", details)

        self.enter(InstallState.COPYING, ctx)
        target = apps_dir / bundle.name
        if target != expected and target.exists():
            self._remove_previous(target)
        try:
            copy_bundle(bundle, apps_dir, ctx, self.config.command_timeout_seconds)
        except BaseException:
            self._discard_partial(target)
            raise
        self.deployed = target
        self.report(
            channel, ctx, 80, "Application copied...", f"Copied {bundle.name} to {apps_dir}"
        )

        self.enter(InstallState.PERMISSIONING, ctx)
        self.run_step(["chmod", "-R", "u+rwx", str(target)], ctx)
        for outcome in (
            self.best_effort(["xattr", "-dr", "com.apple.quarantine", str(target)], ctx),
            self.refresh_icon_cache(ctx),
        ):
            if outcome.is_degraded:
                logger.debug("Advisory step degraded: %s", outcome.reason)
        self.report(channel, ctx, 90, "Verifying installation...", f"Checking {apps_dir}")

        self.enter(InstallState.VERIFYING, ctx)
        installed = verify_installed(apps_dir, reference.search_name, target)
        if installed is None:
            msg = f"{bundle.name} is not present in {apps_dir} after installation"
            raise PackageFileNotFoundError(msg, details=str(target))

        manifest = read_manifest(installed)
        return OperationResult(
            app_name=installed.name[: -len(BUNDLE_SUFFIX)],
            path=str(installed),
            version=manifest.version,
            bundle_id=manifest.bundle_id,
            placeholder=located.placeholder,
            warnings=tuple(warnings),
            match_strategy=located.strategy,
        )

    def _download(
        self,
        reference: PackageReference,
        ctx: OperationContext,
        channel: ProgressChannel,
        workdir: Path,
    ) -> Path:
        metadata = self.store.head_metadata(reference.key)
        self.report(
            channel,
            ctx,
            _DOWNLOAD_START,
            "Downloading package...",
            f"{reference.display_name}{reference.extension} ({metadata.size} bytes)",
        )
        span = _DOWNLOAD_END - _DOWNLOAD_START
        last = _DOWNLOAD_START

        def on_chunk(copied: int) -> None:
            nonlocal last
            if metadata.size <= 0:
                return
            percent = _DOWNLOAD_START + min(span, span * copied // metadata.size)
            if percent > last and percent < _DOWNLOAD_END:
                last = percent
                self.report(channel, ctx, percent, "Downloading package...")

        dest = workdir / "package" / f"{reference.display_name}{reference.extension}"
        download(self.store, reference.key, dest, ctx, on_chunk=on_chunk)
        self.report(channel, ctx, _DOWNLOAD_END, "Package downloaded...", str(dest.name))
        return dest

    def _pre_cleanup(
        self,
        search_name: str,
        expected: Path,
        ctx: OperationContext,
        channel: ProgressChannel,
    ) -> list[str]:
        """Stop and remove an existing copy at the deployment path."""
        if not expected.exists():
            return []
        warnings: list[str] = []
        self.report(channel, ctx, 52, "Stopping running instances...", f"Checking {search_name}")
        outcome = self.stop_processes_best_effort(
            search_name, read_manifest(expected).bundle_id, ctx
        )
        if outcome.is_degraded and outcome.reason:
            warnings.append(outcome.reason)
        self.report(channel, ctx, 54, "Removing previous version...", str(expected))
        self._remove_previous(expected)
        self.report(channel, ctx, 56, "Previous version removed...")
        return warnings

    def _remove_previous(self, path: Path) -> None:
        try:
            self.remove_path(path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
            return
        self.removed.append(path)

    def _discard_partial(self, path: Path) -> None:
        try:
            self.remove_path(path)
        except OSError as e:
            logger.warning("Could not remove partial copy %s: %s", path, e)

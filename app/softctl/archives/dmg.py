"""Disk image techniques.

The image is attached read-only at a mount point inside the work
directory, the bundle is copied out, and the image is always detached
afterwards. Detach failures are logged and never fail the install.
"""

import logging
from pathlib import Path

from softctl.archives.base import CommandOptions, ExtractionTechnique
from softctl.archives.search import find_bundle
from softctl.core.bundle import copy_bundle
from softctl.core.context import OperationContext
from softctl.core.errors import CommandError
from softctl.models.application import Outcome
from softctl.utils.shell import run_command

logger = logging.getLogger(__name__)

# Timeout of the best-effort detach command
_DETACH_TIMEOUT: float = 60.0


def detach_image(mount_point: Path) -> Outcome:
    """Detach a mounted disk image, best-effort."""
    try:
        result = run_command(
            ["hdiutil", "detach", str(mount_point), "-force"],
            timeout=_DETACH_TIMEOUT,
        )
    except (OSError, CommandError) as e:
        logger.warning("Failed to detach %s: %s", mount_point, e)
        return Outcome.degraded(f"detach failed: {e}")
    if not result.success:
        logger.warning("Failed to detach %s: %s", mount_point, result.stderr.strip())
        return Outcome.degraded(f"detach exited {result.returncode}")
    return Outcome.ok()


class MountImageTechnique(ExtractionTechnique):
    """Attach the image read-only and copy the bundle out."""

    name = "hdiutil"
    required_command = "hdiutil"

    def attempt(
        self,
        archive: Path,
        workdir: Path,
        ctx: OperationContext,
        app_name: str,
    ) -> Path | None:
        mount_point = workdir / "mount"
        mount_point.mkdir(parents=True, exist_ok=True)
        self.run(
            [
                "hdiutil",
                "attach",
                str(archive),
                "-readonly",
                "-nobrowse",
                "-noautoopen",
                "-mountpoint",
                str(mount_point),
            ],
            ctx,
            retry=True,
        )
        try:
            bundle = find_bundle(mount_point, app_name)
            if bundle is None:
                return None
            return copy_bundle(bundle, workdir / "copied", ctx, self.options.timeout)
        finally:
            detach_image(mount_point)


def dmg_techniques(options: CommandOptions | None = None) -> list[ExtractionTechnique]:
    """Techniques for '.dmg' packages, in the order they are tried."""
    return [MountImageTechnique(options)]

"""Installer package techniques.

A flat installer package is expanded into its component packages, and
each component's gzip-compressed cpio Payload is unpacked so the
application bundle inside can be deployed without running the package's
own installer.
"""

import logging
from pathlib import Path

from softctl.archives.base import CommandOptions, ExtractionTechnique
from softctl.archives.search import find_bundle
from softctl.core.context import OperationContext
from softctl.core.errors import CommandError

logger = logging.getLogger(__name__)

PAYLOAD_NAME = "Payload"

# Unpacks the payload given as $0 into the current directory
_PAYLOAD_SCRIPT = 'gunzip -dc "$0" | cpio -i --quiet'


class _PayloadTechnique(ExtractionTechnique):
    """Shared payload unpacking for expanded packages."""

    def extract_payloads(self, root: Path, workdir: Path, ctx: OperationContext) -> int:
        """Unpack every Payload file below root.

        Failures of single payloads are logged and skipped.

        Returns:
            Number of payloads unpacked.
        """
        unpacked = 0
        payloads = sorted(p for p in root.rglob(PAYLOAD_NAME) if p.is_file())
        for index, payload in enumerate(payloads):
            ctx.check()
            out = workdir / f"payload-{index}"
            out.mkdir(parents=True, exist_ok=True)
            try:
                self.run(["sh", "-c", _PAYLOAD_SCRIPT, str(payload)], ctx, cwd=out)
            except CommandError as e:
                logger.info("Could not unpack %s: %s", payload, e)
                continue
            unpacked += 1
        return unpacked


class PkgutilTechnique(_PayloadTechnique):
    """Expand with pkgutil and unpack the payloads."""

    name = "pkgutil"
    required_command = "pkgutil"

    def attempt(
        self,
        archive: Path,
        workdir: Path,
        ctx: OperationContext,
        app_name: str,
    ) -> Path | None:
        # pkgutil refuses to expand into an existing directory
        expanded = workdir / "expanded"
        self.run(["pkgutil", "--expand", str(archive), str(expanded)], ctx)
        self.extract_payloads(expanded, workdir, ctx)
        return find_bundle(workdir, app_name)


class TarTechnique(_PayloadTechnique):
    """Unpack the package container with tar and then its payloads."""

    name = "tar"
    required_command = "tar"

    def attempt(
        self,
        archive: Path,
        workdir: Path,
        ctx: OperationContext,
        app_name: str,
    ) -> Path | None:
        expanded = workdir / "expanded"
        expanded.mkdir(parents=True, exist_ok=True)
        self.run(["tar", "-xf", str(archive), "-C", str(expanded)], ctx)
        self.extract_payloads(expanded, workdir, ctx)
        return find_bundle(workdir, app_name)


def pkg_techniques(options: CommandOptions | None = None) -> list[ExtractionTechnique]:
    """Techniques for '.pkg' packages, in the order they are tried."""
    return [PkgutilTechnique(options), TarTechnique(options)]

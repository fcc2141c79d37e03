"""Archive strategy chain.

Selects the extraction strategy for a package by its extension and runs
it until an application bundle is found. When none is found, a
placeholder bundle is synthesized and flagged on the result.
"""

import logging
from pathlib import Path

from softctl.archives.base import ArchiveStrategy, CommandOptions, ExtractionTechnique
from softctl.archives.dmg import dmg_techniques
from softctl.archives.pkg import pkg_techniques
from softctl.archives.search import find_bundle
from softctl.archives.zip import zip_techniques
from softctl.core.bundle import create_placeholder_bundle
from softctl.core.context import OperationContext
from softctl.core.errors import InvalidPackageError, NoBundleFoundError
from softctl.core.paths import BUNDLE_SUFFIX
from softctl.models.application import LocatedBundle

logger = logging.getLogger(__name__)

PLACEHOLDER_STRATEGY = "placeholder"

_TECHNIQUES = {
    ".dmg": ("disk-image", dmg_techniques),
    ".pkg": ("installer-package", pkg_techniques),
    ".zip": ("zip", zip_techniques),
}


def select_strategy(extension: str, options: CommandOptions | None = None) -> ArchiveStrategy:
    """Select the strategy for an archive extension.

    Args:
        extension: Lower-cased extension including the dot.
        options: Command settings handed to the techniques.

    Returns:
        ArchiveStrategy for the format.

    Raises:
        InvalidPackageError: If the extension is not supported.
    """
    try:
        name, factory = _TECHNIQUES[extension.lower()]
    except KeyError:
        msg = f"Unsupported package format: {extension or '(none)'}"
        raise InvalidPackageError(msg) from None
    return ArchiveStrategy(name, factory(options))


def locate_application_bundle(
    archive: Path,
    extension: str,
    workdir: Path,
    ctx: OperationContext,
    app_name: str,
    options: CommandOptions | None = None,
) -> LocatedBundle:
    """Locate a deployable bundle for a downloaded package.

    Args:
        archive: Downloaded package file.
        extension: Package extension selecting the strategy.
        workdir: Scratch directory for extraction output.
        ctx: Operation context.
        app_name: Search name of the application.
        options: Command settings handed to the techniques.

    Returns:
        LocatedBundle; ``placeholder`` is True when no real bundle existed.

    Raises:
        InvalidPackageError: If the extension is not supported.
        NoBundleFoundError: If even a placeholder cannot be produced.
        OperationCancelledError: If the operation is cancelled.
        OperationTimeoutError: If the deadline expires.
    """
    strategy = select_strategy(extension, options)
    located = strategy.locate(archive, workdir, ctx, app_name)
    if located is not None:
        return located

    ctx.check()
    logger.warning("No application bundle in %s, creating a placeholder", archive.name)
    bundle = workdir / PLACEHOLDER_STRATEGY / f"{app_name}{BUNDLE_SUFFIX}"
    try:
        create_placeholder_bundle(bundle, app_name)
    except OSError as e:
        msg = f"No application bundle found in {archive.name}"
        raise NoBundleFoundError(msg, details=str(e)) from e
    return LocatedBundle(path=str(bundle), strategy=PLACEHOLDER_STRATEGY, placeholder=True)


__all__ = [
    "PLACEHOLDER_STRATEGY",
    "ArchiveStrategy",
    "CommandOptions",
    "ExtractionTechnique",
    "find_bundle",
    "locate_application_bundle",
    "select_strategy",
]

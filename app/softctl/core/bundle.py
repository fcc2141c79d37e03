"""Application bundle layout helpers.

Reads the embedded Info.plist manifest of an application bundle, copies
bundles into place and synthesizes a minimal placeholder bundle when an
archive contains none.
"""

import logging
import plistlib
import shutil
from dataclasses import dataclass
from pathlib import Path

from softctl.core.context import OperationContext
from softctl.core.errors import CommandCancelledError
from softctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Version reported when a bundle manifest is missing or unreadable
DEFAULT_VERSION = "1.0.0"

# Marker key written into placeholder manifests
PLACEHOLDER_MARKER = "SoftctlPlaceholder"


@dataclass(frozen=True, slots=True)
class BundleManifest:
    """Fields read from a bundle's Info.plist.

    Attributes:
        version: CFBundleShortVersionString (DEFAULT_VERSION if absent).
        bundle_id: CFBundleIdentifier, if present.
        executable: CFBundleExecutable, if present.
        placeholder: Whether the bundle was synthesized by softctl.
    """

    version: str = DEFAULT_VERSION
    bundle_id: str | None = None
    executable: str | None = None
    placeholder: bool = False


def manifest_path(bundle: Path) -> Path:
    """Path of the Info.plist inside a bundle."""
    return bundle / "Contents" / "Info.plist"


def read_manifest(bundle: Path) -> BundleManifest:
    """Read a bundle's manifest, falling back to defaults on any failure.

    Args:
        bundle: Path of the '.app' directory.

    Returns:
        BundleManifest with whatever fields could be read.
    """
    path = manifest_path(bundle)
    try:
        with open(path, "rb") as f:
            data = plistlib.load(f)
    except FileNotFoundError:
        return BundleManifest()
    except (OSError, plistlib.InvalidFileException, ValueError) as e:
        logger.debug("Unreadable manifest %s: %s", path, e)
        return BundleManifest()

    if not isinstance(data, dict):
        return BundleManifest()

    version = data.get("CFBundleShortVersionString") or data.get("CFBundleVersion")
    return BundleManifest(
        version=str(version).strip() if version else DEFAULT_VERSION,
        bundle_id=data.get("CFBundleIdentifier") or None,
        executable=data.get("CFBundleExecutable") or None,
        placeholder=bool(data.get(PLACEHOLDER_MARKER, False)),
    )


def copy_bundle(
    source: Path,
    dest_dir: Path,
    ctx: OperationContext,
    timeout: float | None = None,
) -> Path:
    """Copy a bundle into a directory, preserving symlinks.

    Uses ditto where available and falls back to shutil, checking the
    operation context before every file.

    Args:
        source: Bundle to copy.
        dest_dir: Directory receiving the copy.
        ctx: Operation context.
        timeout: Upper bound for the ditto command in seconds.

    Returns:
        Path of the copy.

    Raises:
        OperationCancelledError: If the operation is cancelled mid-copy.
        OperationTimeoutError: If the deadline expires mid-copy.
        CommandFailedError: If ditto fails.
        OSError: If the fallback copy fails.
    """
    ctx.check()
    dest = dest_dir / source.name
    dest_dir.mkdir(parents=True, exist_ok=True)
    if command_exists("ditto"):
        limit = max(ctx.remaining, 0.1)
        if timeout is not None:
            limit = min(timeout, limit)
        try:
            run_command(
                ["ditto", str(source), str(dest)],
                check=True,
                timeout=limit,
                is_cancelled=ctx.is_cancelled,
            )
        except CommandCancelledError as e:
            raise ctx.cancellation_error() from e
        return dest

    def copy_file(src: str, dst: str) -> str:
        ctx.check()
        return shutil.copy2(src, dst)

    shutil.copytree(source, dest, symlinks=True, dirs_exist_ok=True, copy_function=copy_file)
    return dest


def create_placeholder_bundle(bundle: Path, app_name: str) -> Path:
    """Synthesize a minimal application bundle.

    The bundle has a valid manifest and a no-op executable, so it can be
    deployed, launched and scanned like a real one.

    Args:
        bundle: Path of the '.app' directory to create.
        app_name: Name used for the executable and bundle identifiers.

    Returns:
        The created bundle path.

    Raises:
        OSError: If the bundle cannot be written.
    """
    executable_name = app_name.replace("/", "_") or "app"
    macos_dir = bundle / "Contents" / "MacOS"
    resources_dir = bundle / "Contents" / "Resources"
    macos_dir.mkdir(parents=True, exist_ok=True)
    resources_dir.mkdir(parents=True, exist_ok=True)

    manifest = {
        "CFBundleExecutable": executable_name,
        "CFBundleIdentifier": f"com.softctl.placeholder.{_identifier_token(app_name)}",
        "CFBundleName": app_name,
        "CFBundleShortVersionString": DEFAULT_VERSION,
        "CFBundlePackageType": "APPL",
        PLACEHOLDER_MARKER: True,
    }
    with open(manifest_path(bundle), "wb") as f:
        plistlib.dump(manifest, f)

    executable = macos_dir / executable_name
    executable.write_text(
        f'#!/bin/sh\necho "{app_name} placeholder installed by softctl"\nexit 0\n',
        encoding="utf-8",
    )
    executable.chmod(0o755)
    logger.info("Created placeholder bundle %s", bundle)
    return bundle


def _identifier_token(name: str) -> str:
    token = "".join(c if c.isalnum() else "-" for c in name.lower()).strip("-")
    return token or "app"

"""Operation execution and inventory reconciliation.

Runs one install or uninstall end to end: validates the package
reference, serializes operations on the same application for the same
identity, opens the progress channel, drives the operator, reconciles the
inventory and guarantees a single classified terminal event.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

from softctl.core.bundle import DEFAULT_VERSION, read_manifest
from softctl.core.channel import ProgressChannel
from softctl.core.config import SoftctlConfig
from softctl.core.context import CancelReason, OperationContext
from softctl.core.errors import (
    ErrorKind,
    InvalidPackageError,
    SoftctlError,
    classify_exception,
    user_message,
)
from softctl.core.inventory import InventoryReconciler, InventoryStore
from softctl.core.matching import normalize_name
from softctl.core.paths import BUNDLE_SUFFIX, get_downloads_dir
from softctl.core.store import FilesystemPackageStore, PackageStore, remove_workdir
from softctl.models.inventory import InventoryEntry
from softctl.models.package import PackageReference
from softctl.models.progress import Completed, Error, ProgressEvent
from softctl.operators.installer import PLACEHOLDER_DETAILS, Installer
from softctl.operators.uninstaller import Uninstaller

if TYPE_CHECKING:
    from softctl.core.processes import ProcessLocator, ProcessTerminator
    from softctl.scanners.base import Scanner

logger = logging.getLogger(__name__)

Sink = Callable[[str], None]

_registry_lock = threading.Lock()
_operation_locks: dict[tuple[str, str], threading.Lock] = {}


def operation_lock(identity: str, app_name: str) -> threading.Lock:
    """Lock serializing operations on one application for one identity."""
    key = (identity, normalize_name(app_name))
    with _registry_lock:
        lock = _operation_locks.get(key)
        if lock is None:
            lock = _operation_locks[key] = threading.Lock()
        return lock


def parse_reference(key: str | None, require_supported: bool = False) -> PackageReference:
    """Validate a package key and derive its reference.

    Args:
        key: Store key supplied by the caller.
        require_supported: Also reject unsupported archive extensions.

    Returns:
        The derived PackageReference.

    Raises:
        InvalidPackageError: If the key is missing, unusable or unsupported.
    """
    try:
        reference = PackageReference.from_key(key or "")
    except ValueError as e:
        raise InvalidPackageError("Missing or invalid package reference", details=str(e)) from e
    if require_supported and not reference.is_supported:
        msg = f"Unsupported package format: {reference.extension or '(none)'}"
        raise InvalidPackageError(msg, details=reference.key)
    return reference


def error_event(
    exc: BaseException,
    ctx: OperationContext,
    subject: str,
    operation: str,
) -> Error:
    """Build the terminal Error event for a failure.

    Cancellation observed on the context takes precedence over the
    exception's own classification.
    """
    if ctx.is_cancelled():
        kind = ErrorKind.TIMEOUT if ctx.reason == CancelReason.DEADLINE else ErrorKind.CANCELLED
    else:
        kind = classify_exception(exc)
    if isinstance(exc, SoftctlError):
        details = exc.details or exc.message
    else:
        details = str(exc) or type(exc).__name__
    return Error(
        message=user_message(kind, subject=subject, operation=operation),
        kind=kind,
        details=details,
    )


def _inventory_entry(
    name: str,
    path: Path,
    version: str | None,
    bundle_id: str | None,
    config: SoftctlConfig,
) -> InventoryEntry:
    return InventoryEntry(
        name=name,
        version=version or DEFAULT_VERSION,
        path=str(path),
        bundle_id=bundle_id,
        is_system_app=path.parent == config.applications_dir,
    )


def _settle_failed_install(
    installer: Installer,
    identity: str,
    reconciler: InventoryReconciler,
    config: SoftctlConfig,
) -> None:
    """Align the inventory with the disk after an install stopped part way.

    Entries of previous versions that were removed are dropped, and a
    bundle that was fully copied before the failure is recorded.
    """
    try:
        reconciler.forget_paths(identity, installer.removed)
        deployed = installer.deployed
        if deployed is not None and deployed.is_dir():
            manifest = read_manifest(deployed)
            entry = _inventory_entry(
                deployed.name[: -len(BUNDLE_SUFFIX)],
                deployed,
                manifest.version,
                manifest.bundle_id,
                config,
            )
            reconciler.record_install(identity, entry)
    except OSError as e:
        logger.warning("Could not reconcile inventory of %s: %s", identity, e)


def _settle_failed_uninstall(
    uninstaller: Uninstaller,
    identity: str,
    reconciler: InventoryReconciler,
) -> None:
    """Drop the resolved application if its bundle is gone despite the failure."""
    match = uninstaller.resolved
    if match is None:
        return
    path = Path(match.application.path)
    if path.exists() or path.is_symlink():
        return
    try:
        reconciler.record_uninstall(identity, match.application.name)
    except OSError as e:
        logger.warning("Could not reconcile inventory of %s: %s", identity, e)


def _execute(
    reference: PackageReference,
    identity: str,
    operation: str,
    sink: Sink,
    config: SoftctlConfig,
    ctx: OperationContext | None,
    body: Callable[[OperationContext, ProgressChannel], Completed],
) -> ProgressEvent:
    """Run an operation body inside its lock, context and channel.

    Returns:
        The terminal event of the operation, even if the caller was gone
        and it could not be delivered.
    """
    ctx = ctx or OperationContext(config.operation_deadline_seconds)
    channel = ProgressChannel(sink, ctx, config.keepalive_interval_seconds)
    terminal: ProgressEvent

    with operation_lock(identity, reference.search_name):
        channel.open()
        try:
            completed = body(ctx, channel)
            ctx.check()
            terminal = completed
        except KeyboardInterrupt as e:
            ctx.cancel(CancelReason.REQUESTED)
            channel.send(error_event(e, ctx, reference.display_name, operation))
            channel.close()
            raise
        except Exception as e:
            logger.info("%s of %s failed: %s", operation.capitalize(), reference.display_name, e)
            logger.debug("Failure details", exc_info=True)
            terminal = error_event(e, ctx, reference.display_name, operation)
        channel.send(terminal)
        channel.close()

    logger.info("Operation %s finished: %s", ctx.operation_id, terminal.status.value)
    return terminal


def execute_install(
    key: str,
    identity: str,
    sink: Sink,
    config: SoftctlConfig,
    store: PackageStore | None = None,
    inventory: InventoryStore | None = None,
    locator: ProcessLocator | None = None,
    terminator: ProcessTerminator | None = None,
    ctx: OperationContext | None = None,
    downloads_dir: Path | None = None,
) -> ProgressEvent:
    """Install a package and record it for an identity.

    Args:
        key: Store key of the package.
        identity: Identity requesting the install.
        sink: Receives the stream frames.
        config: Effective configuration.
        store: Package store; defaults to the configured filesystem store.
        inventory: Inventory store; defaults to the state directory.
        locator: Process locator override.
        terminator: Process terminator override.
        ctx: Operation context; a new one with the configured deadline by default.
        downloads_dir: Root of per-operation scratch directories.

    Returns:
        The terminal event.

    Raises:
        InvalidPackageError: If the reference is invalid; nothing is streamed.
    """
    reference = parse_reference(key, require_supported=True)
    installer = Installer(
        config,
        store or FilesystemPackageStore(config.store_root),
        locator=locator,
        terminator=terminator,
    )
    reconciler = InventoryReconciler(inventory or InventoryStore())
    scratch_root = downloads_dir or get_downloads_dir()

    def body(ctx: OperationContext, channel: ProgressChannel) -> Completed:
        workdir = scratch_root / ctx.operation_id
        try:
            result = installer.run(reference, ctx, channel, workdir)
        except BaseException:
            _settle_failed_install(installer, identity, reconciler, config)
            raise
        finally:
            remove_workdir(workdir)
        reconciler.record_install(
            identity,
            _inventory_entry(
                result.app_name, Path(result.path), result.version, result.bundle_id, config
            ),
        )
        details = PLACEHOLDER_DETAILS if result.placeholder else f"Installed to {result.path}"
        return Completed(f"{result.app_name} installed successfully", details=details)

    return _execute(reference, identity, "installation", sink, config, ctx, body)


def execute_uninstall(
    key: str,
    identity: str,
    sink: Sink,
    config: SoftctlConfig,
    elevated: bool = False,
    inventory: InventoryStore | None = None,
    scanner: Scanner | None = None,
    locator: ProcessLocator | None = None,
    terminator: ProcessTerminator | None = None,
    ctx: OperationContext | None = None,
) -> ProgressEvent:
    """Uninstall an application and drop it from an identity's inventory.

    Args:
        key: Package key or application name.
        identity: Identity requesting the uninstall.
        sink: Receives the stream frames.
        config: Effective configuration.
        elevated: Whether system applications may be removed.
        inventory: Inventory store; defaults to the state directory.
        scanner: Scanner override for locating the application.
        locator: Process locator override.
        terminator: Process terminator override.
        ctx: Operation context; a new one with the configured deadline by default.

    Returns:
        The terminal event.

    Raises:
        InvalidPackageError: If the reference is invalid; nothing is streamed.
    """
    reference = parse_reference(key)
    uninstaller = Uninstaller(config, scanner=scanner, locator=locator, terminator=terminator)
    reconciler = InventoryReconciler(inventory or InventoryStore())

    def body(ctx: OperationContext, channel: ProgressChannel) -> Completed:
        try:
            result = uninstaller.run(reference, ctx, channel, elevated=elevated)
        except BaseException:
            _settle_failed_uninstall(uninstaller, identity, reconciler)
            raise
        reconciler.record_uninstall(identity, result.app_name)
        details = f"Successfully uninstalled {result.app_name}"
        if result.warnings:
            details = f"{details} ({'; '.join(result.warnings)})"
        return Completed("Uninstallation completed successfully", details=details)

    return _execute(reference, identity, "uninstallation", sink, config, ctx, body)


"""Application bundle scanner.

Enumerates '.app' bundles in the well-known application directories and
reads each bundle's version from its manifest.
"""

import logging
from collections.abc import Iterator
from pathlib import Path

from softctl.core.bundle import read_manifest
from softctl.core.config import SoftctlConfig
from softctl.core.matching import aliases_for, canonical_alias, normalize_name
from softctl.core.paths import BUNDLE_SUFFIX
from softctl.models.application import ScannedApplication
from softctl.models.inventory import normalize_entry_name
from softctl.scanners.base import Scanner

logger = logging.getLogger(__name__)


class ScanIndex:
    """Applications found by one scan, deduplicated by normalized name.

    Applications are kept in discovery order; a lookup map resolves
    normalized names and known aliases to their position.
    """

    def __init__(self) -> None:
        self._apps: list[ScannedApplication] = []
        self._slots: dict[str, int] = {}
        self._lookup: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._apps)

    def add(self, app: ScannedApplication) -> bool:
        """Add an application unless one with the same name is present.

        Returns:
            True if the application was added.
        """
        key = normalize_entry_name(app.name)
        if key in self._slots:
            return False
        slot = len(self._apps)
        self._apps.append(app)
        self._slots[key] = slot
        self._lookup.setdefault(normalize_name(app.name), slot)
        for alias in aliases_for(app.name):
            self._lookup.setdefault(alias, slot)
        return True

    @property
    def applications(self) -> list[ScannedApplication]:
        """Applications in discovery order."""
        return list(self._apps)

    def lookup(self, name: str) -> ScannedApplication | None:
        """Find an application by name or known alias."""
        slot = self._lookup.get(normalize_name(name))
        if slot is None:
            target = canonical_alias(name)
            if target is not None:
                slot = self._lookup.get(normalize_name(target))
        return self._apps[slot] if slot is not None else None


class BundleScanner(Scanner):
    """Scanner for application bundles on disk.

    Attributes:
        scan_dirs: Directories enumerated, in priority order.
        system_dir: Directory whose bundles count as system applications.
    """

    def __init__(self, scan_dirs: list[Path], system_dir: Path) -> None:
        self.scan_dirs = scan_dirs
        self.system_dir = system_dir

    @classmethod
    def from_config(cls, config: SoftctlConfig) -> "BundleScanner":
        """Create a scanner for the configured directories."""
        return cls(scan_dirs=config.scan_dirs, system_dir=config.applications_dir)

    def is_available(self) -> bool:
        """Check if any scan directory exists."""
        return any(d.is_dir() for d in self.scan_dirs)

    def scan(self) -> Iterator[ScannedApplication]:
        """Scan all application directories.

        Yields:
            ScannedApplication for each distinct bundle, first directory wins.
        """
        yield from self.index().applications

    def index(self) -> ScanIndex:
        """Scan all application directories into a ScanIndex."""
        index = ScanIndex()
        for directory in self.scan_dirs:
            for app in self._scan_dir(directory):
                if not index.add(app):
                    logger.debug("Skipping duplicate %s at %s", app.name, app.path)
        logger.debug("Scanned %d application(s)", len(index))
        return index

    def _scan_dir(self, directory: Path) -> Iterator[ScannedApplication]:
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name.lower())
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning("Cannot read %s: %s", directory, e)
            return

        is_system = directory == self.system_dir
        for entry in entries:
            if not entry.name.endswith(BUNDLE_SUFFIX) or not entry.is_dir():
                continue
            name = entry.name[: -len(BUNDLE_SUFFIX)]
            if not name:
                continue
            manifest = read_manifest(entry)
            yield ScannedApplication(
                name=name,
                version=manifest.version,
                path=str(entry),
                is_system_app=is_system,
                bundle_id=manifest.bundle_id,
            )

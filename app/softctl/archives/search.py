"""Application bundle search inside extracted archives.

The search widens in four passes, each run only if the previous one found
nothing: a shallow search of the top two levels, a recursive walk, a
case-insensitive glob of the root itself and its children, then a
case-insensitive sweep of the whole tree for directories merely named
like bundles.
"""

import logging
import os
from pathlib import Path

from softctl.core.matching import match_bundle_name
from softctl.core.paths import BUNDLE_SUFFIX

logger = logging.getLogger(__name__)

# Depth covered by the shallow pass (root children and grandchildren)
SHALLOW_DEPTH = 2


def _pick(candidates: list[Path], app_name: str | None) -> Path | None:
    """Prefer the candidate matching the application name, else the shallowest."""
    if not candidates:
        return None
    ordered = sorted(candidates, key=lambda p: (len(p.parts), p.name.lower()))
    if app_name:
        chosen = match_bundle_name(app_name, [p.name for p in ordered])
        if chosen is not None:
            return next(p for p in ordered if p.name == chosen)
    return ordered[0]


def _shallow(root: Path) -> list[Path]:
    found: list[Path] = []
    pattern = f"*{BUNDLE_SUFFIX}"
    for depth in range(SHALLOW_DEPTH):
        glob = "/".join(["*"] * depth + [pattern])
        found.extend(p for p in root.glob(glob) if p.is_dir())
        if found:
            break
    return found


def _walk(root: Path, accept) -> list[Path]:
    """Walk the tree without descending into accepted bundles."""
    found: list[Path] = []
    for dirpath, dirnames, _ in os.walk(root):
        for name in list(dirnames):
            if accept(name):
                found.append(Path(dirpath) / name)
                dirnames.remove(name)
    return found


def _recursive(root: Path) -> list[Path]:
    return _walk(root, lambda name: name.endswith(BUNDLE_SUFFIX))


def _root_glob(root: Path) -> list[Path]:
    if root.name.lower().endswith(BUNDLE_SUFFIX):
        return [root]
    return [p for p in root.glob("*") if p.is_dir() and p.name.lower().endswith(BUNDLE_SUFFIX)]


def _aggressive(root: Path) -> list[Path]:
    return _walk(root, lambda name: BUNDLE_SUFFIX in name.lower())


def find_bundle(root: Path, app_name: str | None = None) -> Path | None:
    """Find an application bundle below a directory.

    Args:
        root: Extraction output or mount point.
        app_name: Preferred bundle name when several bundles exist.

    Returns:
        Path of the chosen bundle, or None if nothing resembles one.
    """
    if not root.is_dir():
        return None
    passes = (
        ("shallow", _shallow),
        ("recursive", _recursive),
        ("root-glob", _root_glob),
        ("aggressive", _aggressive),
    )
    for label, search in passes:
        bundle = _pick(search(root), app_name)
        if bundle is not None:
            logger.debug("Found bundle %s in %s (%s search)", bundle.name, root, label)
            return bundle
    return None

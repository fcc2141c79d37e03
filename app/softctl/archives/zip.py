"""Zip archive techniques.

Zip packages are unpacked with Python's zipfile module first, then with
the host unpack tools, and finally treated as a bare executable that is
wrapped into a bundle.
"""

import logging
import os
import stat
import zipfile
from pathlib import Path, PurePosixPath

from softctl.archives.base import CommandOptions, ExtractionTechnique
from softctl.archives.search import find_bundle
from softctl.core.context import OperationContext
from softctl.core.paths import BUNDLE_SUFFIX

logger = logging.getLogger(__name__)

# Leading bytes of Mach-O executables (thin and universal)
_MACHO_MAGIC = (
    b"\xfe\xed\xfa\xce",
    b"\xfe\xed\xfa\xcf",
    b"\xce\xfa\xed\xfe",
    b"\xcf\xfa\xed\xfe",
    b"\xca\xfe\xba\xbe",
)


def _inside(path: Path, root: Path) -> bool:
    """Whether path, with symlinks resolved, stays below root."""
    try:
        return path.resolve().is_relative_to(root)
    except (OSError, RuntimeError):
        return False


class ZipfileTechnique(ExtractionTechnique):
    """Extract with the zipfile module, keeping modes and symlinks."""

    name = "zipfile"

    def attempt(
        self,
        archive: Path,
        workdir: Path,
        ctx: OperationContext,
        app_name: str,
    ) -> Path | None:
        root = workdir.resolve()
        try:
            with zipfile.ZipFile(archive) as zf:
                for info in zf.infolist():
                    ctx.check()
                    self._extract_member(zf, info, workdir, root)
        except zipfile.BadZipFile as e:
            logger.debug("zipfile cannot read %s: %s", archive.name, e)
            return None
        return find_bundle(workdir, app_name)

    def _extract_member(
        self, zf: zipfile.ZipFile, info: zipfile.ZipInfo, workdir: Path, root: Path
    ) -> None:
        """Write one member, refusing anything that would land outside root."""
        member = PurePosixPath(info.filename)
        if member.is_absolute() or ".." in member.parts:
            logger.warning("Skipping unsafe zip member %s", info.filename)
            return
        if not member.parts or member.parts[0] == "__MACOSX":
            return

        target = workdir.joinpath(*member.parts)
        mode = (info.external_attr >> 16) & 0xFFFF
        if not _inside(target, root):
            logger.warning("Skipping zip member %s resolving outside %s", info.filename, root)
            return

        if info.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            return

        target.parent.mkdir(parents=True, exist_ok=True)
        if stat.S_ISLNK(mode):
            link = zf.read(info).decode("utf-8")
            if os.path.isabs(link) or not _inside(target.parent / link, root):
                logger.warning("Skipping zip symlink %s -> %s", info.filename, link)
                return
            if target.is_symlink() or target.exists():
                target.unlink()
            os.symlink(link, target)
            return

        with zf.open(info) as source, open(target, "wb") as dest:
            while chunk := source.read(1024 * 1024):
                dest.write(chunk)
        permissions = stat.S_IMODE(mode)
        if permissions:
            target.chmod(permissions | stat.S_IRUSR | stat.S_IWUSR)


class CommandExtractTechnique(ExtractionTechnique):
    """Extract by running a host unpack command into the work directory."""

    def __init__(self, name: str, argv: list[str], options: CommandOptions | None = None) -> None:
        super().__init__(options)
        self.name = name
        self.required_command = argv[0]
        self._argv = argv

    def attempt(
        self,
        archive: Path,
        workdir: Path,
        ctx: OperationContext,
        app_name: str,
    ) -> Path | None:
        args = [a.format(archive=archive, out=workdir) for a in self._argv]
        self.run(args, ctx)
        return find_bundle(workdir, app_name)


class RawCopyTechnique(ExtractionTechnique):
    """Wrap a package that is really a bare executable into a bundle."""

    name = "raw-copy"

    def attempt(
        self,
        archive: Path,
        workdir: Path,
        ctx: OperationContext,
        app_name: str,
    ) -> Path | None:
        with open(archive, "rb") as f:
            magic = f.read(4)
        if magic not in _MACHO_MAGIC:
            logger.debug("%s is not an executable, nothing to copy", archive.name)
            return None

        ctx.check()
        bundle = workdir / f"{app_name}{BUNDLE_SUFFIX}"
        macos_dir = bundle / "Contents" / "MacOS"
        macos_dir.mkdir(parents=True, exist_ok=True)
        executable = macos_dir / app_name
        executable.write_bytes(archive.read_bytes())
        executable.chmod(0o755)
        return bundle


def zip_techniques(options: CommandOptions | None = None) -> list[ExtractionTechnique]:
    """Techniques for '.zip' packages, in the order they are tried."""
    return [
        ZipfileTechnique(options),
        CommandExtractTechnique("unzip", ["unzip", "-q", "{archive}", "-d", "{out}"], options),
        CommandExtractTechnique("ditto", ["ditto", "-x", "-k", "{archive}", "{out}"], options),
        CommandExtractTechnique(
            "unzip-overwrite", ["unzip", "-o", "{archive}", "-d", "{out}"], options
        ),
        CommandExtractTechnique("tar", ["tar", "-xf", "{archive}", "-C", "{out}"], options),
        RawCopyTechnique(options),
    ]

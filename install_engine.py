"""
install_engine.py
=================
Installs DCEVM into a JDK/JRE and takes it out again.

The unit of work is a *site*: one directory holding a JVM library
(server, client, or an alternate-JVM directory). Installing into a site
is a three-step swap:

  1. open the replacement library (nothing has been touched yet, so a
     missing patch leaves the site as it was)
  2. back up the original library (move it aside), or, when the site had
     no library, drop a marker saying so
  3. write the replacement library

If step 3 fails the backup is moved back over whatever was written. If
that fails too, ``RollbackFailed`` is raised so the caller knows the site
needs attention.

A site that already has a backup is treated as patched: re-installing
only replaces the active library and never touches the backup, so the
original JVM library stays recoverable across repeated installs.

No locking is done; callers serialise access to one installation root.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Callable, List, Optional

from file_ops import FileOps
from install_errors import DcevmPatchNotFound, InstallerIOError, RollbackFailed
from jvm_layout import JvmLayout
from patch_source import version_dir

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetSite:
    """One directory where the JVM library can be swapped."""

    path: Path
    bit64: bool
    library_name: str
    backup_name: str
    marker_name: str

    @property
    def library(self) -> Path:
        return self.path / self.library_name

    @property
    def backup(self) -> Path:
        return self.path / self.backup_name

    @property
    def marker(self) -> Path:
        return self.path / self.marker_name


class InstallEngine:
    """
    Performs install / uninstall against one installation root.

    Args:
        layout: Platform directory layout
        source: Patch source; anything with ``open(version_dir, bit64)``
                returning a binary stream or None
        fs:     Filesystem layer (default: real filesystem)
    """

    def __init__(self, layout: JvmLayout, source: Any, fs: Optional[FileOps] = None) -> None:
        self.layout = layout
        self.source = source
        self.fs = fs or FileOps()

    # ================================================================
    #  SITE RESOLUTION
    # ================================================================

    def resolve_root(self, root: str | Path) -> Path:
        """JDK roots redirect to their embedded JRE."""
        return self.layout.effective_root(root)

    def site(self, path: Path, bit64: bool) -> TargetSite:
        return TargetSite(
            path=path,
            bit64=bit64,
            library_name=self.layout.library_name,
            backup_name=self.layout.backup_library_name,
            marker_name=self.layout.marker_name,
        )

    def standard_sites(self, root: Path, bit64: bool) -> List[TargetSite]:
        """Server and (32-bit only) client sites that exist under ``root``."""
        sites: List[TargetSite] = []
        server = root / self.layout.server_path(bit64)
        if self.fs.exists(server):
            sites.append(self.site(server, bit64))
        else:
            logger.debug("No server JVM at %s", server)

        if not bit64:
            client = root / self.layout.client_path
            if self.fs.exists(client) and client != server:
                sites.append(self.site(client, False))
            else:
                logger.debug("No client JVM at %s", client)
        return sites

    def is_patched(self, site: TargetSite) -> bool:
        return self.fs.exists(site.backup) or self.fs.exists(site.marker)

    # ================================================================
    #  INSTALL
    # ================================================================

    def install(
        self,
        java_version: str,
        root: str | Path,
        bit64: bool,
        altjvm: bool = False,
    ) -> List[TargetSite]:
        """
        Install DCEVM into an installation.

        Args:
            java_version: Full version of the target JVM (e.g. "1.8.0_202")
            root:         JDK or JRE root directory
            bit64:        Target is a 64-bit JVM
            altjvm:       Install side-by-side as ``-XXaltjvm=dcevm``
                          instead of replacing the default JVM

        Returns:
            Sites that now hold DCEVM

        Raises:
            InvalidJavaVersion, DcevmPatchNotFound, InstallerIOError
        """
        version = version_dir(java_version)
        effective = self.resolve_root(root)

        if not altjvm:
            sites = self.standard_sites(effective, bit64)
            for site in sites:
                self.swap(site, version, java_version)
            if not sites:
                logger.warning("No JVM library directories found under %s", effective)
            return sites

        site = self.site(effective / self.layout.dcevm_path(bit64), bit64)
        stream = self._open_patch(version, site, java_version)
        created = not self.fs.exists(site.path)
        try:
            if created:
                self._io(f"create {site.path}", self.fs.mkdir, site.path)
            self._swap_stream(site, stream)
        except InstallerIOError:
            if created:
                self._discard_dir(site.path)
            raise
        finally:
            stream.close()
        return [site]

    def swap(self, site: TargetSite, version: str, java_version: Optional[str] = None) -> None:
        """Back up the library at ``site`` and write DCEVM in its place."""
        stream = self._open_patch(version, site, java_version or version)
        try:
            self._swap_stream(site, stream)
        finally:
            stream.close()

    def _open_patch(self, version: str, site: TargetSite, java_version: str) -> BinaryIO:
        stream = self.source.open(version, site.bit64)
        if stream is None:
            raise DcevmPatchNotFound(java_version, site.bit64, site.path)
        return stream

    def _swap_stream(self, site: TargetSite, stream: BinaryIO) -> None:
        self._backup(site)
        try:
            written = self.fs.write_stream(stream, site.library)
        except OSError as exc:
            logger.error("Writing %s failed: %s", site.library, exc)
            self._rollback(site, exc)
            raise InstallerIOError(f"Could not install DCEVM at {site.library}", exc) from exc
        logger.info("Installed DCEVM at %s (%d bytes)", site.library, written)

    def _backup(self, site: TargetSite) -> None:
        if self.is_patched(site):
            # Keep the existing backup: it is the only copy of the original.
            logger.info("%s is already patched; replacing active library only", site.path)
            self._io(f"remove {site.library}", self.fs.unlink, site.library)
        elif self.fs.exists(site.library):
            self._io(f"back up {site.library}", self.fs.move, site.library, site.backup)
            logger.info("Backed up %s → %s", site.library, site.backup)
        else:
            self._io(f"mark {site.path}", self.fs.write_bytes, site.marker, b"")
            logger.info("No library at %s; marked as absent", site.path)

    def _rollback(self, site: TargetSite, cause: BaseException) -> None:
        try:
            if self.fs.exists(site.backup):
                self.fs.move(site.backup, site.library, replace=True)
            elif self.fs.exists(site.marker):
                self.fs.unlink(site.library)
                self.fs.unlink(site.marker)
        except OSError as exc:
            logger.error("Rollback at %s failed: %s", site.path, exc)
            raise RollbackFailed(site.library, cause, exc) from exc
        logger.warning("Rolled back %s to its original library", site.path)

    def _discard_dir(self, path: Path) -> None:
        try:
            self.fs.rmdir(path)
        except OSError as exc:
            logger.warning("Could not remove %s: %s", path, exc)

    # ================================================================
    #  UNINSTALL
    # ================================================================

    def uninstall(self, root: str | Path, bit64: bool) -> List[Path]:
        """
        Remove DCEVM from every location it may have been installed to.

        Locations that do not exist or were never patched are skipped.

        Returns:
            Directories that were restored or removed
        """
        effective = self.resolve_root(root)
        changed: List[Path] = []

        for site in self.standard_sites(effective, bit64):
            if self.restore(site):
                changed.append(site.path)

        for alt_bit64 in (False, True):
            alt = self.site(effective / self.layout.dcevm_path(alt_bit64), alt_bit64)
            # Windows and macOS share one directory; the second pass finds it gone
            if not self.fs.exists(alt.path):
                continue
            for leftover in (alt.library, alt.backup, alt.marker):
                self._io(f"delete {leftover}", self.fs.unlink, leftover)
            self._io(f"remove {alt.path}", self.fs.rmdir, alt.path)
            logger.info("Removed alternate JVM at %s", alt.path)
            changed.append(alt.path)

        return changed

    def restore(self, site: TargetSite) -> bool:
        """
        Put the original library back at ``site``.

        Returns:
            False when there was nothing to restore
        """
        if self.fs.exists(site.backup):
            self._io(f"delete {site.library}", self.fs.unlink, site.library)
            self._io(f"restore {site.backup}", self.fs.move, site.backup, site.library)
            logger.info("Restored original library at %s", site.library)
            return True
        if self.fs.exists(site.marker):
            self._io(f"delete {site.library}", self.fs.unlink, site.library)
            self._io(f"delete {site.marker}", self.fs.unlink, site.marker)
            logger.info("Removed DCEVM from %s (no original library)", site.path)
            return True
        logger.debug("Nothing to restore at %s", site.path)
        return False

    @staticmethod
    def _io(action: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return func(*args)
        except OSError as exc:
            raise InstallerIOError(f"Could not {action}", exc) from exc

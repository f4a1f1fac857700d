"""
dcevm_manager.py
================
High-level DCEVM installation management.

Orchestrates:
  - Discovering JDK/JRE installations in the platform search paths
  - Installing / uninstalling DCEVM with backup and rollback
  - Downloading missing patches into the local bundle
  - Refusing to touch an installation whose JVM is currently running

Every public operation returns a ``Result`` instead of raising, so
presentation layers can show the message directly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import aiohttp
import psutil

from install_engine import InstallEngine
from install_errors import InstallerError, RollbackFailed
from installation_scanner import InstallationScanner, ScanResult
from installer_settings import InstallerConfig
from jvm_layout import JvmLayout, detect_layout
from patch_source import BundlePatchSource, RemotePatchSource, version_dir

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
#  Result Object
# ──────────────────────────────────────────────

@dataclass
class Result:
    """Unified result for DcevmManager operations."""

    success: bool
    message: str
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, **details: Any) -> "Result":
        return cls(success=True, message=message, details=details)

    @classmethod
    def fail(cls, message: str, error: Optional[str] = None, **details: Any) -> "Result":
        return cls(success=False, message=message, error=error, details=details)


# ──────────────────────────────────────────────
#  DcevmManager
# ──────────────────────────────────────────────

class DcevmManager:
    """
    Entry point for presentation layers.

    Args:
        config_path: Path to installer.json / installer.yml (optional)
        layout:      Directory layout override (default: running OS)
        config:      Preloaded configuration (takes precedence over config_path)
    """

    def __init__(
        self,
        config_path: Optional[str | Path] = None,
        layout: Optional[JvmLayout] = None,
        config: Optional[InstallerConfig] = None,
    ) -> None:
        self.config = config or InstallerConfig.load(config_path)
        self.layout = layout or detect_layout()
        self.bundle = BundlePatchSource(self.config.patch_dir, self.layout)
        self.engine = InstallEngine(self.layout, self.bundle)
        self.scanner = InstallationScanner(self.layout)

        logger.info(
            "DcevmManager init: layout=%s patches=%s remote=%s",
            self.layout.name, self.bundle.root, self.config.patch_url or "-",
        )

    # ================================================================
    #  DISCOVERY
    # ================================================================

    def search_paths(self) -> List[str]:
        """Platform search roots followed by configured extras, without repeats."""
        paths: List[str] = []
        for path in (*self.layout.search_paths, *self.config.search_paths):
            if path not in paths:
                paths.append(path)
        return paths

    def list_installations(self) -> ScanResult:
        """Scan every search root for JDK/JRE installations."""
        return self.scanner.scan(self.search_paths())

    def available_patches(self) -> List[str]:
        """Java version directories with a bundled patch (e.g. ["1.7", "1.8"])."""
        return self.bundle.available_versions()

    # ================================================================
    #  INSTALL / UNINSTALL
    # ================================================================

    def install(
        self,
        java_version: str,
        root: str | Path,
        bit64: bool,
        altjvm: bool = False,
    ) -> Result:
        """
        Install DCEVM into the JDK/JRE at ``root``.

        Args:
            java_version: Full version of the target JVM (e.g. "1.8.0_202")
            root:         Installation root
            bit64:        Target is a 64-bit JVM
            altjvm:       Install as an alternate JVM instead of replacing
        """
        busy = self._refuse_if_running(root)
        if busy:
            return busy

        try:
            sites = self.engine.install(java_version, root, bit64, altjvm)
        except RollbackFailed as exc:
            logger.error("Install into %s failed and could not be rolled back: %s", root, exc)
            return Result.fail(
                f"Install failed and the original library could not be restored at {exc.target}",
                error=str(exc),
                path=exc.target,
            )
        except InstallerError as exc:
            logger.error("Install into %s failed: %s", root, exc)
            return Result.fail(f"Install failed: {exc}", error=str(exc))

        if not sites:
            return Result.fail(
                f"No JVM library found under {root}",
                error="Neither a server nor a client JVM directory exists",
            )
        return Result.ok(
            f"DCEVM installed into {root}",
            sites=[str(site.path) for site in sites],
            altjvm=altjvm,
        )

    def uninstall(self, root: str | Path, bit64: bool) -> Result:
        """Restore the original JVM libraries of ``root``."""
        busy = self._refuse_if_running(root)
        if busy:
            return busy

        try:
            changed = self.engine.uninstall(root, bit64)
        except InstallerError as exc:
            logger.error("Uninstall from %s failed: %s", root, exc)
            return Result.fail(f"Uninstall failed: {exc}", error=str(exc))

        if not changed:
            return Result.ok(f"DCEVM was not installed in {root}", restored=[])
        return Result.ok(
            f"DCEVM removed from {root}",
            restored=[str(path) for path in changed],
        )

    # ================================================================
    #  PATCH DOWNLOAD
    # ================================================================

    def fetch_patch(self, java_version: str, bit64: bool) -> Result:
        """
        Synchronous wrapper around download_patch.

        Downloads the patch for ``java_version`` into the local bundle
        unless it is already there.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            logger.warning("Event loop already running; use download_patch() directly")
            return Result.fail(
                "Cannot run sync download inside async context",
                error="Use download_patch() with await instead",
            )

        async def _run() -> Result:
            async with aiohttp.ClientSession() as session:
                return await self.download_patch(java_version, bit64, session)

        return asyncio.run(_run())

    async def download_patch(
        self,
        java_version: str,
        bit64: bool,
        session: aiohttp.ClientSession,
        progress_callback: Optional[Callable] = None,
    ) -> Result:
        """Download the patch for ``java_version`` with an existing session."""
        if not self.config.patch_url:
            return Result.fail("No patch_url configured", error="Set patch_url in the config")
        try:
            version = version_dir(java_version)
        except InstallerError as exc:
            return Result.fail(str(exc), error=str(exc))

        cached = self.bundle.locate(version, bit64)
        if cached.is_file():
            return Result.ok(f"Patch for Java {version} already present", path=str(cached))

        remote = RemotePatchSource(self.config.patch_url, self.bundle)
        try:
            path = await remote.download(version, bit64, session, progress_callback)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            logger.error("Patch download for Java %s failed: %s", version, exc)
            return Result.fail(f"Download failed: {exc}", error=str(exc))

        if path is None:
            return Result.fail(
                f"No DCEVM patch published for Java {version}",
                url=remote.url_for(version, bit64),
            )
        return Result.ok(f"Patch for Java {version} downloaded", path=str(path))

    # ================================================================
    #  RUNNING JVM DETECTION
    # ================================================================

    def running_jvms(self, root: str | Path) -> List[int]:
        """PIDs of processes whose executable lives under ``root``."""
        root = Path(root).resolve()
        pids: List[int] = []
        for proc in psutil.process_iter(["pid", "exe"]):
            exe = proc.info.get("exe")
            if not exe:
                continue
            try:
                if Path(exe).resolve().is_relative_to(root):
                    pids.append(proc.info["pid"])
            except OSError:
                continue
        return pids

    def _refuse_if_running(self, root: str | Path) -> Optional[Result]:
        if not self.config.check_running:
            return None
        pids = self.running_jvms(root)
        if not pids:
            return None
        logger.warning("JVM from %s is running (pids %s)", root, pids)
        return Result.fail(
            f"Java from {root} is running",
            error="Stop every JVM started from this installation first",
            pids=pids,
        )

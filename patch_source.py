"""
patch_source.py
===============
Where replacement JVM libraries come from.

Bundles are laid out exactly like the installer resources::

    <root>/<version dir>/<platform resource path>/product/<library name>
    e.g. patches/1.8/linux_amd64_compiler2/product/libjvm.so

``BundlePatchSource`` serves them from a local directory.
``RemotePatchSource`` downloads the same layout over HTTP (aiohttp) into a
local bundle and then serves from it.
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional

import aiohttp

from install_errors import InvalidJavaVersion
from jvm_layout import JvmLayout

logger = logging.getLogger(__name__)

_VERSION_SPLIT = re.compile(r"[._]")


def version_dir(java_version: str) -> str:
    """
    Convert a full Java version to the bundle directory that serves it.

    Examples:
        "1.7.0_45"  → "1.7"
        "1.8.0_202" → "1.8"
        "11.0.2"    → "11.0"

    Raises:
        InvalidJavaVersion: fewer than two numeric components
    """
    parts = _VERSION_SPLIT.split(java_version.strip())
    if len(parts) < 2 or not parts[0].isdigit() or not parts[1].isdigit():
        raise InvalidJavaVersion(java_version)
    return f"{parts[0]}.{parts[1]}"


class BundlePatchSource:
    """Replacement libraries stored in a local bundle directory."""

    def __init__(self, root: str | Path, layout: JvmLayout) -> None:
        self.root = Path(root)
        self.layout = layout

    def resource_key(self, version: str, bit64: bool) -> str:
        return "/".join((
            version,
            self.layout.resource_path(bit64),
            "product",
            self.layout.library_name,
        ))

    def locate(self, version: str, bit64: bool) -> Path:
        return self.root.joinpath(*self.resource_key(version, bit64).split("/"))

    def open(self, version: str, bit64: bool) -> Optional[BinaryIO]:
        """Return a readable stream for the library, or None if not bundled."""
        path = self.locate(version, bit64)
        if not path.is_file():
            logger.debug("No bundled patch at %s", path)
            return None
        return open(path, "rb")

    def available_versions(self) -> List[str]:
        """Bundle version directories present on disk, e.g. ["1.7", "1.8"]."""
        if not self.root.is_dir():
            return []
        return sorted(
            child.name for child in self.root.iterdir()
            if child.is_dir() and _VERSION_SPLIT.search(child.name)
        )


class RemotePatchSource:
    """
    Replacement libraries fetched from a web server into a local bundle.

    Args:
        base_url: URL prefix the resource key is appended to
        cache:    Local bundle that receives downloads and serves reads
    """

    def __init__(self, base_url: str, cache: BundlePatchSource) -> None:
        self.base_url = base_url.rstrip("/")
        self.cache = cache

    def url_for(self, version: str, bit64: bool) -> str:
        return f"{self.base_url}/{self.cache.resource_key(version, bit64)}"

    def open(self, version: str, bit64: bool) -> Optional[BinaryIO]:
        return self.cache.open(version, bit64)

    async def download(
        self,
        version: str,
        bit64: bool,
        session: aiohttp.ClientSession,
        progress_callback: Optional[Callable] = None,
    ) -> Optional[Path]:
        """
        Download one library into the cache.

        Args:
            version:           Bundle version directory (e.g. "1.8")
            bit64:             Fetch the 64-bit build
            session:           aiohttp session for HTTP requests
            progress_callback: Optional async callable(downloaded, total)

        Returns:
            Path of the cached library, or None when the server has none
        """
        url = self.url_for(version, bit64)
        dest = self.cache.locate(version, bit64)
        partial = dest.with_name(dest.name + ".part")
        logger.info("Downloading DCEVM patch: %s", url)

        async with session.get(url) as resp:
            if resp.status != 200:
                logger.error("Patch download failed: HTTP %d for %s", resp.status, url)
                return None

            total = int(resp.headers.get("Content-Length", 0) or 0)
            downloaded = 0
            start_time = time.time()
            dest.parent.mkdir(parents=True, exist_ok=True)
            try:
                with open(partial, "wb") as fh:
                    async for chunk in resp.content.iter_chunked(8192):
                        fh.write(chunk)
                        downloaded += len(chunk)
                        if progress_callback:
                            await progress_callback(downloaded, total)
            except BaseException:
                partial.unlink(missing_ok=True)
                raise

        partial.replace(dest)
        elapsed = time.time() - start_time
        logger.info(
            "Patch downloaded: %s (%.1f KB in %.1fs)",
            dest, downloaded / 1024, elapsed,
        )
        return dest

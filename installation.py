"""
installation.py
===============
Discovered JDK/JRE installations.

An ``Installation`` is a read-only snapshot of one Java root: its version,
bit-width, and whether DCEVM is currently installed in place or as an
alternate JVM. Two installations are equal when they share the same
resolved root directory.
"""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional

from install_errors import InstallationError
from jvm_layout import JvmLayout

logger = logging.getLogger(__name__)

# OS_ARCH values from the ``release`` file that denote a 64-bit JVM
_ARCH_64 = {"amd64", "x86_64", "x64", "aarch64", "arm64", "sparcv9", "ppc64", "ppc64le", "s390x"}

DCEVM_MARKER = "Dynamic Code Evolution"


@dataclass(frozen=True)
class JavaProbe:
    """What ``java -version`` reported."""

    version: str
    bit64: bool
    dcevm: bool = False


def probe_java(binary: str | Path) -> Optional[JavaProbe]:
    """
    Run ``java -version`` and parse the result.

    Returns:
        JavaProbe, or None if the binary is missing or unparseable
    """
    try:
        result = subprocess.run(
            [str(binary), "-version"],
            capture_output=True, text=True, timeout=15,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("java -version failed for %s: %s", binary, exc)
        return None

    output = result.stderr or result.stdout
    match = re.search(r'version "([^"]+)"', output)
    if not match:
        return None
    return JavaProbe(
        version=match.group(1),
        bit64="64-Bit" in output,
        dcevm=DCEVM_MARKER in output,
    )


def read_release(home: Path) -> Dict[str, str]:
    """Parse the ``release`` file shipped in a Java home (KEY="value" lines)."""
    release = home / "release"
    if not release.is_file():
        return {}
    values: Dict[str, str] = {}
    for line in release.read_text(encoding="utf-8", errors="replace").splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip().strip('"')
    return values


def guess_vendor(name: str, full_version: str) -> str:
    """Guess the JDK vendor from the directory name or version string."""
    name_lower = name.lower()
    fv_lower = full_version.lower()

    if "adoptium" in name_lower or "temurin" in name_lower:
        return "adoptium"
    if "zulu" in name_lower or "azul" in fv_lower:
        return "azul-zulu"
    if "corretto" in name_lower:
        return "amazon-corretto"
    if "jetbrains" in name_lower or "jbr" in name_lower:
        return "jetbrains"
    if "oracle" in name_lower or name_lower.startswith(("jdk1.", "jre1.")):
        return "oracle"
    if "openjdk" in name_lower:
        return "openjdk"
    return "unknown"


@dataclass(frozen=True)
class Installation:
    """A JDK or JRE root discovered on disk."""

    path: Path
    version: str = field(compare=False)
    bit64: bool = field(compare=False)
    is_jdk: bool = field(compare=False, default=False)
    installed: bool = field(compare=False, default=False)
    installed_altjvm: bool = field(compare=False, default=False)
    vendor: str = field(compare=False, default="unknown")

    @property
    def display_name(self) -> str:
        kind = "JDK" if self.is_jdk else "JRE"
        bits = "64-bit" if self.bit64 else "32-bit"
        return f"{kind} {self.version} ({bits}) at {self.path}"

    @classmethod
    def from_directory(
        cls,
        path: str | Path,
        layout: JvmLayout,
        probe: Callable[[Path], Optional[JavaProbe]] = probe_java,
    ) -> "Installation":
        """
        Inspect a JDK/JRE root and build its record.

        The ``release`` file is preferred; ``java -version`` is the fallback.

        Raises:
            InstallationError: the directory does not yield a Java version
        """
        root = Path(path).resolve()
        is_jdk = layout.is_jdk(root)
        effective = layout.effective_root(root)

        try:
            release = read_release(layout.home(root)) or read_release(effective)
        except OSError as exc:
            raise InstallationError(root, f"unreadable release file ({exc})") from exc

        version = release.get("JAVA_VERSION", "")
        arch = release.get("OS_ARCH", "")
        dcevm = False
        if not version or not arch:
            probed = probe(layout.java_binary(root))
            if probed is None:
                raise InstallationError(root, "cannot determine Java version")
            version = version or probed.version
            bit64 = probed.bit64 if not arch else arch.lower() in _ARCH_64
            dcevm = probed.dcevm
        else:
            bit64 = arch.lower() in _ARCH_64

        installed = dcevm or _has_patched_site(layout, effective, bit64)
        installed_altjvm = any(
            (effective / rel / layout.library_name).is_file()
            for rel in {layout.dcevm32_path, layout.dcevm64_path}
        )

        return cls(
            path=root,
            version=version,
            bit64=bit64,
            is_jdk=is_jdk,
            installed=installed,
            installed_altjvm=installed_altjvm,
            vendor=guess_vendor(root.name, version),
        )


def _has_patched_site(layout: JvmLayout, effective: Path, bit64: bool) -> bool:
    """A standard site is patched when it holds a backup or an absent-marker."""
    sites = [effective / layout.server_path(bit64)]
    if not bit64:
        sites.append(effective / layout.client_path)
    for site in sites:
        if (site / layout.backup_library_name).exists():
            return True
        if (site / layout.marker_name).exists():
            return True
    return False


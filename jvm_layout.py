"""
jvm_layout.py
=============
Per-platform JVM directory layouts.

A layout answers every "where does it live" question the installer asks:
library locations for the server / client / alternate JVMs, the library
and backup file names, where the bundled patch lives for a platform, and
whether a directory looks like a JDK or a JRE.

Layouts are immutable and side-effect free apart from the ``is_jdk`` /
``is_jre`` existence checks.
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class JvmLayout:
    """Directory layout of a JDK/JRE on one operating system."""

    name: str
    library_name: str
    backup_library_name: str
    server_path_32: str
    server_path_64: str
    client_path: str
    dcevm32_path: str
    dcevm64_path: str
    resource_path_32: str
    resource_path_64: str
    jre_directory: str = "jre"
    home_directory: str = ""            # macOS bundles keep bin/ under Contents/Home
    executable_suffix: str = ""
    search_paths: Tuple[str, ...] = field(default_factory=tuple)

    # ── Target paths ───────────────────────────

    @property
    def marker_name(self) -> str:
        """Written beside the library when DCEVM went into a site that had none."""
        return self.library_name + ".dcevm-absent"

    def server_path(self, bit64: bool) -> str:
        return self.server_path_64 if bit64 else self.server_path_32

    def resource_path(self, bit64: bool) -> str:
        return self.resource_path_64 if bit64 else self.resource_path_32

    def dcevm_path(self, bit64: bool) -> str:
        return self.dcevm64_path if bit64 else self.dcevm32_path

    def effective_root(self, path: str | Path) -> Path:
        """Return the directory the library paths are relative to.

        JDKs redirect to their embedded JRE; JREs resolve to their home.
        """
        if self.is_jdk(path):
            return Path(path) / self.jre_directory
        return self.home(path)

    def home(self, path: str | Path) -> Path:
        """Return the directory holding ``bin/`` for an installation root."""
        root = Path(path)
        return root / self.home_directory if self.home_directory else root

    def java_binary(self, path: str | Path) -> Path:
        return self.home(path) / "bin" / f"java{self.executable_suffix}"

    # ── Classification ─────────────────────────

    def is_jdk(self, path: str | Path) -> bool:
        """A JDK ships the compiler and an embedded JRE."""
        javac = self.home(path) / "bin" / f"javac{self.executable_suffix}"
        return javac.is_file() and (Path(path) / self.jre_directory).is_dir()

    def is_jre(self, path: str | Path) -> bool:
        """A JRE ships the launcher and at least one JVM library directory."""
        if not self.java_binary(path).is_file():
            return False
        home = self.home(path)
        candidates = {
            self.server_path_32, self.server_path_64, self.client_path,
        }
        return any((home / rel).is_dir() for rel in candidates)

    def with_search_paths(self, paths: Tuple[str, ...]) -> "JvmLayout":
        return replace(self, search_paths=tuple(paths))


# ──────────────────────────────────────────────
#  Known layouts
# ──────────────────────────────────────────────

LINUX = JvmLayout(
    name="linux",
    library_name="libjvm.so",
    backup_library_name="libjvm.so.backup",
    server_path_32="lib/i386/server",
    server_path_64="lib/amd64/server",
    client_path="lib/i386/client",
    dcevm32_path="lib/i386/dcevm",
    dcevm64_path="lib/amd64/dcevm",
    resource_path_32="linux_i486_compiler2",
    resource_path_64="linux_amd64_compiler2",
    search_paths=(
        "/usr/java",
        "/usr/lib/jvm",
        "/usr/lib64/jvm",
        os.path.expanduser("~/.sdkman/candidates/java"),
        os.path.expanduser("~/.jdks"),
    ),
)

WINDOWS = JvmLayout(
    name="windows",
    library_name="jvm.dll",
    backup_library_name="jvm.dll.backup",
    server_path_32="bin/server",
    server_path_64="bin/server",
    client_path="bin/client",
    dcevm32_path="bin/dcevm",
    dcevm64_path="bin/dcevm",
    resource_path_32="windows_i486_compiler2",
    resource_path_64="windows_amd64_compiler2",
    executable_suffix=".exe",
    search_paths=(
        os.path.join(os.environ.get("ProgramFiles", r"C:\Program Files"), "Java"),
        os.path.join(os.environ.get("ProgramFiles(x86)", r"C:\Program Files (x86)"), "Java"),
    ),
)

MACOS = JvmLayout(
    name="macos",
    library_name="libjvm.dylib",
    backup_library_name="libjvm.dylib.backup",
    server_path_32="lib/server",
    server_path_64="lib/server",
    client_path="lib/client",
    dcevm32_path="lib/dcevm",
    dcevm64_path="lib/dcevm",
    resource_path_32="macosx_amd64_compiler2",
    resource_path_64="macosx_amd64_compiler2",
    jre_directory="Contents/Home/jre",
    home_directory="Contents/Home",
    search_paths=("/Library/Java/JavaVirtualMachines",),
)

# Map platform.system() → layout
_SYSTEM_LAYOUTS: Dict[str, JvmLayout] = {
    "Linux": LINUX,
    "Windows": WINDOWS,
    "Darwin": MACOS,
}


def detect_layout(system: Optional[str] = None) -> JvmLayout:
    """Return the layout for ``system`` (default: the running OS)."""
    return _SYSTEM_LAYOUTS.get(system or platform.system(), LINUX)

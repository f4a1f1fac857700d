"""
installation_scanner.py
=======================
Finds JDK/JRE installations under a list of search roots.

Discovery is best effort: a root that cannot be listed, or a candidate
directory that cannot be inspected, is reported as a diagnostic and
skipped. A scan never raises because of one bad location.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from file_ops import FileOps
from installation import Installation
from jvm_layout import JvmLayout

logger = logging.getLogger(__name__)


@dataclass
class ScanDiagnostic:
    """A location the scan had to skip, and why."""

    path: str
    error: str


@dataclass
class ScanResult:
    installations: Set[Installation] = field(default_factory=set)
    diagnostics: List[ScanDiagnostic] = field(default_factory=list)

    def sorted(self) -> List[Installation]:
        return sorted(self.installations, key=lambda inst: str(inst.path))


class InstallationScanner:
    """
    Walks search roots and classifies their immediate children.

    Args:
        layout:  Platform layout (classification and library paths)
        fs:      Filesystem layer used for listing
        factory: Builds an Installation from a directory; may raise
    """

    def __init__(
        self,
        layout: JvmLayout,
        fs: Optional[FileOps] = None,
        factory: Optional[Callable[[Path, JvmLayout], Installation]] = None,
    ) -> None:
        self.layout = layout
        self.fs = fs or FileOps()
        self.factory = factory or Installation.from_directory

    def scan(self, root_paths: Iterable[str | Path]) -> ScanResult:
        result = ScanResult()
        for root_path in root_paths:
            root = Path(root_path)
            try:
                if not self.fs.is_dir(root):
                    continue
                children = self.fs.list_dir(root)
            except OSError as exc:
                self._skip(result, root, exc)
                continue
            for child in children:
                self._scan_candidate(child, result)

        logger.info(
            "Scan found %d installation(s), %d skipped",
            len(result.installations), len(result.diagnostics),
        )
        return result

    def _scan_candidate(self, path: Path, result: ScanResult) -> None:
        try:
            if not self.fs.is_dir(path):
                return
            if not (self.layout.is_jdk(path) or self.layout.is_jre(path)):
                return
            installation = self.factory(path, self.layout)
        except Exception as exc:  # best effort per candidate
            self._skip(result, path, exc)
            return

        if installation not in result.installations:
            result.installations.add(installation)
            logger.info("Detected %s", installation.display_name)

    @staticmethod
    def _skip(result: ScanResult, path: Path, exc: BaseException) -> None:
        logger.warning("Skipping %s: %s", path, exc)
        result.diagnostics.append(ScanDiagnostic(path=str(path), error=str(exc)))

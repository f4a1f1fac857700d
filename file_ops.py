"""
file_ops.py
===========
Thin filesystem layer used by the install engine and the scanner.

Every mutation the engine performs goes through a ``FileOps`` instance so
tests can substitute one that fails at a chosen step.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, List

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class FileOps:
    """Filesystem primitives backed by ``os`` / ``pathlib``."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def list_dir(self, path: Path) -> List[Path]:
        return sorted(path.iterdir())

    def move(self, src: Path, dst: Path, replace: bool = False) -> None:
        """Move ``src`` to ``dst``.

        Without ``replace`` an existing destination is an error, so a
        backup can never be silently clobbered.
        """
        if not replace and dst.exists():
            raise FileExistsError(f"Refusing to overwrite {dst}")
        os.replace(src, dst)
        logger.debug("Moved %s → %s", src, dst)

    def write_stream(self, stream: BinaryIO, dst: Path) -> int:
        """Copy ``stream`` into a new file at ``dst`` and return the byte count."""
        written = 0
        with open(dst, "xb") as fh:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                fh.write(chunk)
                written += len(chunk)
        logger.debug("Wrote %d bytes to %s", written, dst)
        return written

    def write_bytes(self, dst: Path, data: bytes) -> None:
        dst.write_bytes(data)

    def unlink(self, path: Path, missing_ok: bool = True) -> None:
        path.unlink(missing_ok=missing_ok)

    def mkdir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)

    def rmdir(self, path: Path) -> None:
        path.rmdir()

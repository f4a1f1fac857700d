"""
install_errors.py
=================
Exceptions raised by the install engine and the installation scanner.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class InstallerError(Exception):
    """Base class for every installer failure."""


class DcevmPatchNotFound(InstallerError):
    """No bundled replacement library matches the requested JVM.

    Raised before the target site is touched.
    """

    def __init__(self, version: str, bit64: bool, target: str | Path) -> None:
        self.version = version
        self.bit64 = bit64
        self.target = str(target)
        label = f"{version} (64 bit)" if bit64 else version
        super().__init__(f"DCEVM is not available for Java {label} at {self.target}")


class InvalidJavaVersion(InstallerError, ValueError):
    """Version string does not start with ``<major>.<minor>``."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"Unrecognised Java version: {version!r}")


class InstallerIOError(InstallerError, OSError):
    """A filesystem step failed. ``cause`` is the underlying OSError."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message if cause is None else f"{message}: {cause}")


class RollbackFailed(InstallerIOError):
    """The install failed and the original library could not be put back."""

    def __init__(self, target: str | Path, cause: BaseException, rollback_error: BaseException) -> None:
        self.target = str(target)
        self.rollback_error = rollback_error
        super().__init__(
            f"Install at {self.target} failed and rollback failed ({rollback_error})",
            cause,
        )


class InstallationError(InstallerError):
    """A directory looked like a JDK/JRE but could not be inspected."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")

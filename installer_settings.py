"""
installer_settings.py
=====================
Installer configuration and logging setup.

Configuration is read once from ``installer.json`` or ``installer.yml``
and is read-only afterwards. Every key is optional::

    {
      "patch_dir": "./patches",
      "patch_url": "https://example.org/dcevm",
      "search_paths": ["/opt/jdks"],
      "log_dir": "logs",
      "log_level": "INFO",
      "check_running": true
    }
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class InstallerConfig:
    """Settings shared by every installer operation."""

    patch_dir: str = "patches"
    patch_url: Optional[str] = None
    search_paths: Tuple[str, ...] = field(default_factory=tuple)
    log_dir: str = "logs"
    log_level: str = "INFO"
    check_running: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstallerConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(unknown))
        values = {k: v for k, v in data.items() if k in known}
        if "search_paths" in values:
            values["search_paths"] = tuple(str(p) for p in values["search_paths"] or ())
        return cls(**values)

    @classmethod
    def load(cls, path: Optional[str | Path]) -> "InstallerConfig":
        """
        Load configuration from JSON or YAML.

        A missing or unreadable file yields the defaults.
        """
        if path is None:
            return cls()
        config_path = Path(path)
        if not config_path.exists():
            logger.info("Config file %s not found, using defaults", config_path)
            return cls()

        try:
            with open(config_path, "r", encoding="utf-8") as fh:
                if config_path.suffix.lower() in (".yml", ".yaml"):
                    data = yaml.safe_load(fh) or {}
                else:
                    data = json.load(fh)
            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")
            config = cls.from_dict(data)
        except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
            logger.error("Failed to load config %s: %s", config_path, exc)
            return cls()

        logger.debug("Config loaded from %s", config_path)
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "patch_dir": self.patch_dir,
            "patch_url": self.patch_url,
            "search_paths": list(self.search_paths),
            "log_dir": self.log_dir,
            "log_level": self.log_level,
            "check_running": self.check_running,
        }


def configure_logging(config: InstallerConfig) -> logging.Logger:
    """Log to ``<log_dir>/installer.log`` and stdout."""
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_dir / "installer.log", encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )
    return logging.getLogger("dcevm_installer")

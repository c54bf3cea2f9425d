from __future__ import annotations

"""
Package Manifest Reader.

Reads package.json files with a per-run memo shared by the classification
threads. A manifest that is missing or unparseable is remembered as None so
each directory is only touched once per run.
"""

import logging
import os
import threading
from typing import Any, Dict, Optional

from ndepe.domain.constants import FALLBACK_VERSION, MANIFEST_FILE_NAME
from ndepe.infra.fs import read_json

logger = logging.getLogger(__name__)


class ManifestReader:
    """Memoized, thread-safe package.json loader."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._memo: Dict[str, Optional[Dict[str, Any]]] = {}

    def read(self, package_dir: str) -> Optional[Dict[str, Any]]:
        """
        Load the manifest of a package directory.

        Args:
            package_dir: Directory expected to contain package.json.

        Returns:
            Optional[Dict[str, Any]]: The parsed manifest, or None if it cannot be read.
        """
        key = os.path.abspath(package_dir)
        with self._lock:
            if key in self._memo:
                return self._memo[key]

        manifest = self._load(os.path.join(key, MANIFEST_FILE_NAME))

        with self._lock:
            # First writer wins so every caller shares one dict per directory
            return self._memo.setdefault(key, manifest)

    def read_or_stand_in(self, package_dir: str, name: str) -> Dict[str, Any]:
        """
        Load a manifest, substituting {name, version: '0.0.0'} when unreadable.
        """
        manifest = self.read(package_dir)
        if manifest is None:
            logger.debug(f"Using stand-in manifest for {name} at {package_dir}")
            return {"name": name, "version": FALLBACK_VERSION}
        return manifest

    @staticmethod
    def _load(path: str) -> Optional[Dict[str, Any]]:
        try:
            return read_json(path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable manifest {path}: {e}")
            return None


def manifest_version(manifest: Dict[str, Any]) -> str:
    """Version string of a manifest, '0.0.0' when absent or not a string."""
    version = manifest.get("version")
    if isinstance(version, str) and version.strip():
        return version.strip()
    return FALLBACK_VERSION

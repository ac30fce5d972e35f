"""Loading of extension manifest.json files.

The manifest in the source tree decides which script is the background
service worker; the copy in the build output is the source of truth for
package naming.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import ManifestError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


def load_manifest(path: Path) -> Dict[str, Any]:
    """
    Read and parse a manifest file.

    Raises:
        ManifestError: If the file is missing, unreadable or not a JSON object
    """
    if not path.is_file():
        raise ManifestError(f"Manifest not found: {path}")
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        raise ManifestError(f"Failed to read manifest {path}: {e}")
    if not isinstance(data, dict):
        raise ManifestError(f"Manifest {path} is not a JSON object")
    return data


def background_script(manifest: Dict[str, Any]) -> Optional[str]:
    """Return background.service_worker as a POSIX relative path, if declared."""
    background = manifest.get("background")
    if not isinstance(background, dict):
        return None
    worker = background.get("service_worker")
    if not worker or not isinstance(worker, str):
        return None
    worker = worker.replace("\\", "/")
    if worker.startswith("./"):
        worker = worker[2:]
    return worker


def package_identity(manifest: Dict[str, Any], path: Optional[Path] = None) -> tuple:
    """
    Return (name, version) from a manifest.

    Raises:
        ManifestError: If either field is missing or empty
    """
    name = manifest.get("name")
    version = manifest.get("version")
    if not name or not version:
        raise ManifestError(f"Manifest {path or 'manifest.json'} must declare 'name' and 'version'")
    return str(name), str(version)

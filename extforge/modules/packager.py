"""Packaging of the build output into installer archives."""

import logging
import os
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

from ..utils.exceptions import ManifestError, PackagingError
from ..utils.fs import files_under
from ..utils.manifest import MANIFEST_NAME, load_manifest, package_identity

logger = logging.getLogger(__name__)

# Browser stores (Chrome, Firefox) take .zip, Thunderbird takes .xpi.
# Both are plain zip archives with manifest.json at the root.
PACKAGE_FORMATS: Dict[str, str] = {
    'zip': '.zip',
    'xpi': '.xpi',
}


def archive_name(name: str, version: str, extension: str) -> str:
    """{name}_{version}{extension}, with path separators in the name replaced."""
    safe_name = name.replace('/', '_').replace('\\', '_')
    return f"{safe_name}_{version}{extension}"


class Packager:
    """Compresses the finished build directory into installer archives."""

    def __init__(self, dist_dir: Path, package_dir: Path):
        """
        Initialize packager.

        Args:
            dist_dir: Built extension directory (must contain manifest.json)
            package_dir: Directory collecting archives (never cleared)
        """
        self.dist_dir = dist_dir
        self.package_dir = package_dir

    def _identity(self) -> tuple:
        try:
            manifest = load_manifest(self.dist_dir / MANIFEST_NAME)
            return package_identity(manifest, self.dist_dir / MANIFEST_NAME)
        except ManifestError as e:
            raise PackagingError(f"Cannot package {self.dist_dir}: {e}")

    def package(self, fmt: str) -> Path:
        """
        Create one archive of the whole build directory.

        Args:
            fmt: Key of PACKAGE_FORMATS ("zip" or "xpi")

        Returns:
            Path to the archive

        Raises:
            PackagingError: Unknown format or no manifest in the build
        """
        if fmt not in PACKAGE_FORMATS:
            raise PackagingError(f"Unknown package format '{fmt}' (expected one of {', '.join(PACKAGE_FORMATS)})")

        # Name comes from the built manifest; read it before creating anything
        name, version = self._identity()
        # Never archive earlier packages, even when package_dir sits inside dist_dir
        package_root = self.package_dir.resolve()
        files = [path for path in files_under(self.dist_dir) if not path.resolve().is_relative_to(package_root)]

        self.package_dir.mkdir(parents=True, exist_ok=True)
        output = self.package_dir / archive_name(name, version, PACKAGE_FORMATS[fmt])
        partial = output.with_name(output.name + '.part')

        try:
            with zipfile.ZipFile(partial, 'w', zipfile.ZIP_DEFLATED) as zipf:
                for path in files:
                    zipf.write(path, path.relative_to(self.dist_dir).as_posix())
            os.replace(partial, output)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise PackagingError(f"Failed to write {output}: {e}")

        size_kb = output.stat().st_size / 1024
        logger.info(f"Packaged {len(files)} files into {output} ({size_kb:.1f} KB)")
        return output

    def package_all(self, formats: Optional[List[str]] = None) -> List[Path]:
        """Create one archive per format (default: all known formats)."""
        return [self.package(fmt) for fmt in (formats or list(PACKAGE_FORMATS))]

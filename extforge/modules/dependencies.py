"""Vendoring of npm runtime dependencies into the build output.

Dependencies are the keys of "dependencies" in package.json. Each one is
resolved to the files of its directory under node_modules, minus sources,
docs, tests and tooling files. When vendored, the "dist" directory segment is
dropped, so node_modules/jquery/dist/jquery.min.js lands at
<libs root>/jquery/jquery.min.js.
"""

import json
import logging
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path, PurePosixPath
from typing import List, Optional

from ..config import PackagingMode
from ..utils.exceptions import BuildError
from ..utils.fs import copy_file

logger = logging.getLogger(__name__)

DIST_SEGMENT = 'dist'

# Destination roots inside the build output, per packaging mode
LIBS_DESTINATIONS = {
    PackagingMode.PUBLIC: PurePosixPath('public/libs'),
    PackagingMode.CONTENT_SCRIPT: PurePosixPath('js/libs'),
}

# Directory patterns (trailing "/**/*") match anywhere inside the package;
# the rest are matched against the file name
DEFAULT_EXCLUDES = [
    '*.map',
    'src/**/*',
    'examples/**/*',
    'example/**/*',
    'demo/**/*',
    'spec/**/*',
    'docs/**/*',
    'tests/**/*',
    'test/**/*',
    'Gruntfile.js',
    'gulpfile.js',
    'package.json',
    'package-lock.json',
    'bower.json',
    'composer.json',
    'yarn.lock',
    'webpack.config.js',
    'README',
    'LICENSE',
    'CHANGELOG',
    '*.yml',
    '*.md',
    '*.coffee',
    '*.ts',
    '*.scss',
    '*.less',
]


@dataclass(frozen=True)
class ResolvedDependency:
    """One third-party file to vendor."""

    package: str
    path: Path
    relative_path: PurePosixPath  # relative to node_modules, e.g. jquery/dist/jquery.js


def is_excluded(relative: PurePosixPath, excludes: List[str] = DEFAULT_EXCLUDES) -> bool:
    """Check a path relative to its package directory against the exclusion list."""
    directories = relative.parts[:-1]
    for pattern in excludes:
        if pattern.endswith('/**/*'):
            if pattern[:-len('/**/*')] in directories:
                return True
        elif fnmatch(relative.name, pattern):
            return True
    return False


def strip_dist_segment(relative_path: str) -> PurePosixPath:
    """
    Drop the first "dist" directory from a vendored file's path.

    Accepts either separator style: "pkg\\dist\\a.js" and "pkg/dist/a.js"
    both become "pkg/a.js". The leading package name and the file name are
    never touched, so a package called "dist" keeps its directory.
    """
    parts = list(PurePosixPath(relative_path.replace('\\', '/')).parts)
    # Scoped packages ("@scope/name") take two segments
    start = 2 if parts and parts[0].startswith('@') else 1
    for index in range(start, len(parts) - 1):
        if parts[index] == DIST_SEGMENT:
            del parts[index]
            break
    return PurePosixPath(*parts)


class DependencyResolver:
    """Resolves declared npm dependencies to concrete files."""

    def __init__(self, project_dir: Path, excludes: Optional[List[str]] = None):
        """
        Initialize resolver.

        Args:
            project_dir: Directory holding package.json and node_modules
            excludes: Replacement exclusion list (default: DEFAULT_EXCLUDES)
        """
        self.project_dir = project_dir
        self.node_modules = project_dir / 'node_modules'
        self.excludes = list(DEFAULT_EXCLUDES if excludes is None else excludes)

    def declared(self) -> List[str]:
        """Names of runtime dependencies declared in package.json."""
        package_json = self.project_dir / 'package.json'
        if not package_json.is_file():
            logger.debug(f"No package.json at {package_json}")
            return []
        try:
            data = json.loads(package_json.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            raise BuildError(f"Failed to read {package_json}: {e}")
        return sorted((data.get('dependencies') or {}).keys())

    def resolve(self) -> List[ResolvedDependency]:
        """All vendorable files of all declared dependencies, in a stable order."""
        resolved = []
        for package in self.declared():
            package_dir = self.node_modules / package
            if not package_dir.is_dir():
                logger.warning(f"Dependency '{package}' is not installed in {self.node_modules}")
                continue
            for path in sorted(p for p in package_dir.rglob('*') if p.is_file()):
                inside = PurePosixPath(path.relative_to(package_dir).as_posix())
                if is_excluded(inside, self.excludes):
                    continue
                resolved.append(ResolvedDependency(
                    package=package,
                    path=path,
                    relative_path=PurePosixPath(path.relative_to(self.node_modules).as_posix())
                ))
        return resolved


class DependencyBundler:
    """Copies resolved dependencies into the build according to the packaging mode."""

    def __init__(self, dist_dir: Path, mode: PackagingMode):
        self.dist_dir = dist_dir
        self.mode = PackagingMode(mode)

    @property
    def destination(self) -> Optional[Path]:
        """Libs root for the active mode, or None when vendoring is off."""
        if self.mode == PackagingMode.NONE:
            return None
        return self.dist_dir / LIBS_DESTINATIONS[self.mode]

    def bundle(self, dependencies: List[ResolvedDependency]) -> List[Path]:
        """
        Vendor dependencies into the build.

        Touches nothing when the mode is NONE. An empty dependency list is
        reported and skipped.

        Returns:
            Files written
        """
        if self.destination is None:
            return []

        logger.info("Dependencies will be packed with build.")
        if not dependencies:
            logger.info("There is no dependency to be included.")
            logger.info("Use 'npm i <package_name>' to install dependencies.")
            return []

        written = []
        for dependency in dependencies:
            target = self.destination / strip_dist_segment(str(dependency.relative_path))
            written.append(copy_file(dependency.path, target))
        logger.info(f"Vendored {len(written)} dependency files into {self.destination}")
        return written

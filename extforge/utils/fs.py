"""Filesystem helpers for the build output tree."""

import logging
import shutil
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


def clear_directory(path: Path) -> bool:
    """
    Delete a directory tree.

    Idempotent: a missing directory is not an error.

    Returns:
        True if something was deleted
    """
    if not path.exists():
        logger.debug(f"Nothing to clear at {path}")
        return False
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
    logger.info(f"Cleared {path}")
    return True


def collect(root: Path, patterns: Iterable[str], exclude: Iterable[str] = ()) -> List[Path]:
    """
    Collect files under root matching any glob pattern, sorted and de-duplicated.

    Args:
        root: Directory to search from
        patterns: Glob patterns relative to root (e.g., "img/*.png", "scss/**/*.scss")
        exclude: Patterns whose matches are dropped (e.g., "js/**/*.test.js")
    """
    if not root.is_dir():
        return []

    excluded = set()
    for pattern in exclude:
        excluded.update(p for p in root.glob(pattern) if p.is_file())

    found = set()
    for pattern in patterns:
        found.update(p for p in root.glob(pattern) if p.is_file() and p not in excluded)
    return sorted(found)


def copy_file(source: Path, dest: Path) -> Path:
    """Copy a single file, creating parent directories."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, dest)
    return dest


def files_under(root: Path) -> List[Path]:
    """All regular files below root, in a stable order."""
    if not root.is_dir():
        return []
    return sorted(p for p in root.rglob('*') if p.is_file())

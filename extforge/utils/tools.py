"""Utilities for invoking external transformation tools (sass, esbuild, svgo, ...)."""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from .exceptions import TransformError

logger = logging.getLogger(__name__)


def resolve_tool(command: str, project_dir: Optional[Path] = None) -> Optional[str]:
    """
    Locate an executable for a tool command.

    Looks in <project_dir>/node_modules/.bin first, then on PATH.

    Args:
        command: Tool name or explicit path (e.g., "sass")
        project_dir: Project root holding node_modules

    Returns:
        Path to the executable, or None if not found
    """
    if project_dir is not None:
        local_bin = project_dir / "node_modules" / ".bin"
        found = shutil.which(command, path=str(local_bin))
        if found:
            return found
    return shutil.which(command)


def run_tool(
    command: str,
    args: Sequence[str],
    project_dir: Optional[Path] = None,
    source: Optional[Path] = None
) -> str:
    """
    Run an external tool and return its stdout.

    Args:
        command: Tool name (resolved via resolve_tool)
        args: Arguments passed to the tool
        project_dir: Project root used for tool resolution and as cwd
        source: Input file being processed (for error reporting)

    Returns:
        Captured standard output

    Raises:
        TransformError: If the tool is missing or exits non-zero
    """
    executable = resolve_tool(command, project_dir)
    if executable is None:
        raise TransformError(
            f"'{command}' not found (install it or add it to node_modules)",
            source=source
        )

    cmd: List[str] = [executable, *[str(a) for a in args]]
    logger.debug(f"Running: {' '.join(cmd)}")

    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=True,
            cwd=str(project_dir) if project_dir else None
        )
        return result.stdout

    except subprocess.CalledProcessError as e:
        output = (e.stderr or e.stdout or "").strip()
        logger.error(f"{command} failed on {source}: {output}")
        raise TransformError(f"{command} failed on {source}: {output}", source=source, output=output)
    except OSError as e:
        raise TransformError(f"Could not run {command}: {e}", source=source)

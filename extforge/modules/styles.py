"""SCSS compilation into minified CSS with source maps."""

import logging
from pathlib import Path
from typing import List, Optional

from ..utils.tools import run_tool
from .base import Transformer

logger = logging.getLogger(__name__)


def css_output_name(relative: Path) -> Path:
    """scss/theme/main.scss -> theme/main.min.css (relative to the css/ output dir)."""
    return relative.with_name(f"{relative.stem}.min.css")


def is_partial(path: Path) -> bool:
    """Sass partials (_name.scss) are only compiled through @use/@import."""
    return path.name.startswith('_')


class StyleCompiler(Transformer):
    """Compiles SCSS with the sass CLI (compressed output, sibling .map file)."""

    name = "css"

    def __init__(self, command: str = "sass", project_dir: Optional[Path] = None):
        self.command = command
        self.project_dir = project_dir

    def transform(self, source: Path, dest: Path) -> List[Path]:
        dest.parent.mkdir(parents=True, exist_ok=True)
        args = ['--style=compressed', '--source-map', '--no-error-css']
        if self.project_dir is not None:
            args.append(f"--load-path={self.project_dir / 'node_modules'}")
        run_tool(self.command, [*args, source, dest], project_dir=self.project_dir, source=source)

        outputs = [dest]
        source_map = dest.with_name(dest.name + '.map')
        if source_map.exists():
            outputs.append(source_map)
        return outputs

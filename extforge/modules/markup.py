"""HTML minification."""

from pathlib import Path
from typing import List, Optional

from ..utils.tools import run_tool
from .base import Transformer

# Same options the extension has always been minified with
HTML_MINIFIER_FLAGS = [
    '--html5',
    '--collapse-whitespace',
    '--use-short-doctype',
    '--remove-comments',
    '--remove-redundant-attributes',
    '--sort-class-name',
    '--sort-attributes',
    '--minify-css', 'true',
    '--minify-js', 'true',
]


class HtmlMinifier(Transformer):
    """Minifies HTML pages with html-minifier-terser."""

    name = "html"

    def __init__(self, command: str = "html-minifier-terser", project_dir: Optional[Path] = None):
        self.command = command
        self.project_dir = project_dir

    def transform(self, source: Path, dest: Path) -> List[Path]:
        dest.parent.mkdir(parents=True, exist_ok=True)
        run_tool(
            self.command,
            [*HTML_MINIFIER_FLAGS, '--output', dest, source],
            project_dir=self.project_dir,
            source=source
        )
        return [dest]

"""JavaScript minification with esbuild."""

from pathlib import Path
from typing import List, Optional

from ..utils.tools import run_tool
from .base import Transformer

TEST_SUFFIX = '.test.js'


def is_test_script(path: Path) -> bool:
    """Jest-style test files are never shipped."""
    return path.name.endswith(TEST_SUFFIX)


class ScriptBundler(Transformer):
    """Minifies one script per call (no bundling of imports), with a source map."""

    name = "js"

    def __init__(self, command: str = "esbuild", production: bool = False, project_dir: Optional[Path] = None):
        self.command = command
        self.production = production
        self.project_dir = project_dir

    def transform(self, source: Path, dest: Path) -> List[Path]:
        dest.parent.mkdir(parents=True, exist_ok=True)
        node_env = 'production' if self.production else 'development'
        run_tool(
            self.command,
            [
                source,
                f"--outfile={dest}",
                '--minify',
                '--sourcemap',
                '--platform=browser',
                f'--define:process.env.NODE_ENV="{node_env}"',
                '--log-level=warning',
            ],
            project_dir=self.project_dir,
            source=source
        )
        outputs = [dest]
        source_map = dest.with_name(dest.name + '.map')
        if source_map.exists():
            outputs.append(source_map)
        return outputs

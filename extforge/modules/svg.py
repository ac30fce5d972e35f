"""SVG optimization and raster icon generation."""

import logging
from pathlib import Path
from typing import List, Optional

from PIL import Image

from ..utils.exceptions import TransformError
from ..utils.tools import run_tool
from .base import Transformer

logger = logging.getLogger(__name__)


class SvgOptimizer(Transformer):
    """Minifies SVG files with svgo."""

    name = "svg"

    def __init__(self, command: str = "svgo", config_file: Optional[Path] = None, project_dir: Optional[Path] = None):
        self.command = command
        self.config_file = config_file
        self.project_dir = project_dir

    def transform(self, source: Path, dest: Path) -> List[Path]:
        dest.parent.mkdir(parents=True, exist_ok=True)
        args = [source, '-o', dest]
        if self.config_file:
            args += ['--config', self.config_file]
        run_tool(self.command, args, project_dir=self.project_dir, source=source)
        return [dest]


class IconRasterizer:
    """
    Renders one SVG into square PNG icons of fixed sizes.

    Rendering is done by rsvg-convert; the result is then fitted onto a
    transparent square canvas with Pillow, so every icon has exactly the
    requested dimensions even when the SVG is not square.
    """

    name = "icons"

    def __init__(self, command: str = "rsvg-convert", project_dir: Optional[Path] = None):
        self.command = command
        self.project_dir = project_dir

    @staticmethod
    def icon_path(source: Path, dest_dir: Path, size: int) -> Path:
        """Output path for one size: <base><size>.png"""
        return dest_dir / f"{source.stem}{size}.png"

    def rasterize(self, source: Path, dest_dir: Path, size: int) -> Path:
        """
        Render source at size x size.

        Args:
            source: SVG file
            dest_dir: Icon output directory
            size: Edge length in pixels

        Returns:
            Path to the written PNG
        """
        output = self.icon_path(source, dest_dir, size)
        output.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Creating icon with size {size}")

        run_tool(
            self.command,
            ['--width', size, '--height', size, '--keep-aspect-ratio', '--format', 'png', '--output', output, source],
            project_dir=self.project_dir,
            source=source
        )
        self._fit_square(output, size)
        return output

    @staticmethod
    def _fit_square(path: Path, size: int) -> None:
        """Center the rendered image on a transparent size x size canvas if needed."""
        try:
            with Image.open(path) as img:
                if img.size == (size, size):
                    return
                img = img.convert('RGBA')
                img.thumbnail((size, size), Image.LANCZOS)
                canvas = Image.new('RGBA', (size, size), (0, 0, 0, 0))
                canvas.paste(img, ((size - img.width) // 2, (size - img.height) // 2))
            canvas.save(path, format='PNG')
        except OSError as e:
            raise TransformError(f"Failed to fit icon {path.name} to {size}px: {e}", source=path)

"""Static asset handling: plain copies and raster image recompression."""

import logging
from pathlib import Path
from typing import List

from PIL import Image

from ..utils.exceptions import TransformError
from ..utils.fs import copy_file
from .base import Transformer

logger = logging.getLogger(__name__)


class CopyTransformer(Transformer):
    """Copies files unchanged (manifest, locale bundles)."""

    name = "copy"

    def transform(self, source: Path, dest: Path) -> List[Path]:
        return [copy_file(source, dest)]


class ImageOptimizer(Transformer):
    """Copies raster images, re-encoding them with Pillow in production mode."""

    name = "images"

    def __init__(self, production: bool = False, jpeg_quality: int = 85):
        """
        Initialize image optimizer.

        Args:
            production: Re-encode images instead of copying them
            jpeg_quality: Quality used when re-encoding JPEG files
        """
        self.production = production
        self.jpeg_quality = jpeg_quality

    def transform(self, source: Path, dest: Path) -> List[Path]:
        if not self.production:
            return [copy_file(source, dest)]

        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            with Image.open(source) as img:
                if source.suffix.lower() in ('.jpg', '.jpeg'):
                    if img.mode not in ('RGB', 'L'):
                        img = img.convert('RGB')
                    img.save(dest, format='JPEG', quality=self.jpeg_quality, optimize=True)
                else:
                    img.save(dest, format='PNG', optimize=True)
        except OSError as e:
            raise TransformError(f"Failed to optimize image {source}: {e}", source=source)

        # Never ship a "compressed" file that grew
        if dest.stat().st_size > source.stat().st_size:
            logger.debug(f"Optimized {source.name} is larger than original, keeping original")
            copy_file(source, dest)
        return [dest]

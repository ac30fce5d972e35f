"""Interface shared by all file transformations."""

from pathlib import Path
from typing import List


class Transformer:
    """
    A single file-to-file build operation.

    Implementations write the output for one source file and return every
    file they produced (e.g., a stylesheet and its source map). Failures are
    reported by raising TransformError.
    """

    name = "transform"

    def transform(self, source: Path, dest: Path) -> List[Path]:
        """
        Transform source into dest.

        Args:
            source: Input file in the source tree
            dest: Primary output file in the build tree

        Returns:
            List of files written
        """
        raise NotImplementedError

"""Build orchestrator for browser extensions.

A full build clears the output directory and then runs three phases:

    1. copy_manifest                  (alone, must succeed)
    2. locales, images, svg, icons,   (in parallel, failures isolated per step)
       html, css, content_scripts,
       background_script
    3. dependencies                   (after every phase 2 step has finished)

Packaging runs after a successful build and writes one archive per format.
Watch mode reruns single steps through run_steps() without clearing.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .config import BuildConfig, PackagingMode
from .modules.assets import CopyTransformer, ImageOptimizer
from .modules.base import Transformer
from .modules.dependencies import DependencyBundler, DependencyResolver
from .modules.markup import HtmlMinifier
from .modules.notifier import NullNotifier, safe_notify
from .modules.packager import PACKAGE_FORMATS, Packager
from .modules.scripts import ScriptBundler, is_test_script
from .modules.styles import StyleCompiler, css_output_name, is_partial
from .modules.svg import IconRasterizer, SvgOptimizer
from .steps import (
    ALL_STEPS, BACKGROUND_SCRIPT, CONTENT_SCRIPTS, COPY_MANIFEST, CSS, DEPENDENCIES,
    HTML, ICONS, IMAGES, LOCALES, PHASES, SVG,
)
from .utils.exceptions import BuildError, ManifestError, TransformError
from .utils.fs import clear_directory, collect
from .utils.manifest import MANIFEST_NAME, background_script, load_manifest

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]


@dataclass
class StepResult:
    """Outcome of one build step."""

    name: str
    outputs: List[Path] = field(default_factory=list)
    error: Optional[Exception] = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BuildReport:
    """Outcome of a build, rebuild or packaging run."""

    steps: List[StepResult] = field(default_factory=list)
    archives: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(step.ok for step in self.steps)

    @property
    def failures(self) -> List[StepResult]:
        return [step for step in self.steps if not step.ok]

    @property
    def outputs(self) -> List[Path]:
        return [path for step in self.steps for path in step.outputs]

    def step(self, name: str) -> Optional[StepResult]:
        for result in self.steps:
            if result.name == name:
                return result
        return None


@dataclass
class Toolchain:
    """The transformations a pipeline delegates to."""

    copier: Transformer
    images: Transformer
    svg: Transformer
    icons: IconRasterizer
    markup: Transformer
    styles: Transformer
    scripts: Transformer

    @classmethod
    def from_config(cls, config: BuildConfig) -> "Toolchain":
        """Default toolchain backed by external CLI tools."""
        project_dir = config.project_dir
        return cls(
            copier=CopyTransformer(),
            images=ImageOptimizer(production=config.production),
            svg=SvgOptimizer(config.svgo_command, config.svgo_config, project_dir),
            icons=IconRasterizer(config.rsvg_command, project_dir),
            markup=HtmlMinifier(config.html_minifier_command, project_dir),
            styles=StyleCompiler(config.sass_command, project_dir),
            scripts=ScriptBundler(config.esbuild_command, config.production, project_dir),
        )


class BuildPipeline:
    """Runs build steps in phase order and packages the result."""

    def __init__(
        self,
        config: BuildConfig,
        toolchain: Optional[Toolchain] = None,
        notifier=None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Initialize the pipeline.

        Args:
            config: Per-invocation build configuration
            toolchain: Transformations to use (default: external CLI tools)
            notifier: Completion sink (default: none)
            progress_callback: Optional callback(stage, message) for progress updates
        """
        self.config = config
        self.toolchain = toolchain or Toolchain.from_config(config)
        self.notifier = notifier or NullNotifier()
        self.progress_callback = progress_callback
        self.packager = Packager(config.dist_dir, config.package_dir)

        self._steps: Dict[str, Callable[[], List[Path]]] = {
            COPY_MANIFEST: self._copy_manifest,
            LOCALES: self._copy_locales,
            IMAGES: self._copy_images,
            SVG: self._optimize_svgs,
            ICONS: self._rasterize_icons,
            HTML: self._minify_html,
            CSS: self._compile_styles,
            CONTENT_SCRIPTS: self._bundle_content_scripts,
            BACKGROUND_SCRIPT: self._bundle_background_script,
            DEPENDENCIES: self._pack_dependencies,
        }

    # ------------------------------------------------------------------
    # Composite operations
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Delete the build directory. Missing directory is fine."""
        self._update_progress("CLEAR", f"Clearing {self.config.dist_dir}")
        try:
            clear_directory(self.config.dist_dir)
        except OSError as e:
            raise BuildError(f"Failed to clear {self.config.dist_dir}: {e}")

    def build_all(self) -> BuildReport:
        """
        Run the three build phases (without clearing).

        Raises:
            BuildError: If copying the manifest fails; later phases are skipped
        """
        report = BuildReport()

        first = self._run_phase(PHASES[0])
        report.steps.extend(first)
        if not all(result.ok for result in first):
            errors = "; ".join(str(result.error) for result in first if not result.ok)
            raise BuildError(f"Manifest could not be copied, build aborted: {errors}")

        report.steps.extend(self._run_phase(PHASES[1]))
        report.steps.extend(self._run_phase(PHASES[2]))

        if report.ok:
            self._update_progress("COMPLETE", f"Built {len(report.outputs)} files into {self.config.dist_dir}")
        else:
            names = ", ".join(result.name for result in report.failures)
            logger.error(f"Build finished with failed steps: {names}")
        return report

    def build(
        self,
        title: str = "Build done!",
        message: str = "The build is done."
    ) -> BuildReport:
        """Clear, build, notify."""
        self.clear()
        report = self.build_all()
        if report.ok:
            self._notify(title, message)
        else:
            self._notify("Build failed", f"{len(report.failures)} step(s) failed, see the log.")
        return report

    def package(self, formats: Optional[List[str]] = None) -> BuildReport:
        """
        Clear, build and write one archive per format.

        Raises:
            BuildError: If any build step failed (no archive is written)
            PackagingError: If the built manifest is unusable
        """
        self.clear()
        report = self.build_all()
        if not report.ok:
            names = ", ".join(result.name for result in report.failures)
            raise BuildError(f"Not packaging a failed build (failed steps: {names})")

        formats = formats or list(PACKAGE_FORMATS)
        self._update_progress("PACKAGE", f"Creating {', '.join(formats)} packages...")
        report.archives.extend(self.packager.package_all(formats))

        self._notify("Packages are zipped.", "Packages are finished zipping.")
        return report

    def run_steps(self, names) -> BuildReport:
        """
        Rerun a subset of steps without clearing the output.

        Steps keep their phase order; step failures are reported, not raised.
        """
        requested = set(names)
        unknown = requested - set(ALL_STEPS)
        if unknown:
            raise ValueError(f"Unknown build steps: {', '.join(sorted(unknown))}")

        report = BuildReport()
        for phase in PHASES:
            selected = [name for name in phase if name in requested]
            if selected:
                report.steps.extend(self._run_phase(selected))
        return report

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _update_progress(self, stage: str, message: str) -> None:
        logger.info(f"[{stage}] {message}")
        if self.progress_callback:
            self.progress_callback(stage, message)

    def _notify(self, title: str, message: str) -> None:
        if self.config.notify:
            safe_notify(self.notifier, title, message)

    def _run_step(self, name: str) -> StepResult:
        """Run one step, converting any exception into a failed result."""
        self._update_progress(name.upper(), "Running...")
        started = time.monotonic()
        try:
            outputs = self._steps[name]()
        except Exception as e:
            logger.error(f"Step {name} failed: {e}")
            logger.debug(f"Step {name} traceback", exc_info=True)
            return StepResult(name, error=e, duration=time.monotonic() - started)

        duration = time.monotonic() - started
        logger.debug(f"Step {name} wrote {len(outputs)} files in {duration:.2f}s")
        return StepResult(name, outputs=outputs, duration=duration)

    def _run_phase(self, names: List[str]) -> List[StepResult]:
        """Run steps concurrently; returns once every step finished or failed."""
        if len(names) == 1:
            return [self._run_step(names[0])]

        results = {}
        workers = min(self.config.max_workers, len(names))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_step = {executor.submit(self._run_step, name): name for name in names}
            for future in as_completed(future_to_step):
                results[future_to_step[future]] = future.result()
        return [results[name] for name in names]

    def _map_files(self, transformer: Transformer, pairs: List[tuple]) -> List[Path]:
        """
        Apply a transformer to (source, dest) pairs.

        Every pair is attempted; failures are collected and raised together.
        """
        outputs = []
        errors = []
        for source, dest in pairs:
            try:
                outputs.extend(transformer.transform(source, dest))
            except TransformError as e:
                errors.append(e)
        if errors:
            details = "; ".join(str(e) for e in errors)
            raise TransformError(f"{len(errors)} of {len(pairs)} file(s) failed: {details}")
        return outputs

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @property
    def _src(self) -> Path:
        return self.config.source_dir

    @property
    def _dist(self) -> Path:
        return self.config.dist_dir

    def _copy_manifest(self) -> List[Path]:
        source = self._src / MANIFEST_NAME
        load_manifest(source)
        return self.toolchain.copier.transform(source, self._dist / MANIFEST_NAME)

    def _copy_locales(self) -> List[Path]:
        sources = collect(self._src, ['_locales/**/messages.json'])
        pairs = [(path, self._dist / path.relative_to(self._src)) for path in sources]
        return self._map_files(self.toolchain.copier, pairs)

    def _copy_images(self) -> List[Path]:
        sources = collect(self._src, ['img/*.jpg', 'img/*.png'])
        pairs = [(path, self._dist / 'img' / path.name) for path in sources]
        return self._map_files(self.toolchain.images, pairs)

    def _optimize_svgs(self) -> List[Path]:
        sources = collect(self._src, ['img/*.svg'])
        pairs = [(path, self._dist / 'img' / path.name) for path in sources]
        return self._map_files(self.toolchain.svg, pairs)

    def _rasterize_icons(self) -> List[Path]:
        source = self._src / 'img' / self.config.icon_source
        if not source.is_file():
            logger.warning(f"Icon source {source} not found, no icons generated")
            return []

        sizes = list(self.config.icon_sizes)
        logger.info(f"Attempting to create the following icon sizes: {sizes}")
        dest_dir = self._dist / 'img' / 'icons'

        outputs = []
        errors = []
        with ThreadPoolExecutor(max_workers=min(self.config.max_workers, len(sizes))) as executor:
            future_to_size = {
                executor.submit(self.toolchain.icons.rasterize, source, dest_dir, size): size
                for size in sizes
            }
            for future in as_completed(future_to_size):
                try:
                    outputs.append(future.result())
                except TransformError as e:
                    errors.append(f"{future_to_size[future]}px: {e}")
        if errors:
            raise TransformError(f"Icon generation failed for {'; '.join(errors)}", source=source)
        return sorted(outputs)

    def _minify_html(self) -> List[Path]:
        sources = collect(self._src, ['html/*.html'])
        pairs = [(path, self._dist / 'html' / path.name) for path in sources]
        return self._map_files(self.toolchain.markup, pairs)

    def _compile_styles(self) -> List[Path]:
        scss_root = self._src / 'scss'
        sources = [path for path in collect(scss_root, ['**/*.scss']) if not is_partial(path)]
        pairs = [
            (path, self._dist / 'css' / css_output_name(path.relative_to(scss_root)))
            for path in sources
        ]
        return self._map_files(self.toolchain.styles, pairs)

    def _background_script_path(self) -> Optional[Path]:
        """Source path of the manifest's background.service_worker, if any."""
        worker = background_script(load_manifest(self._src / MANIFEST_NAME))
        if worker is None:
            return None
        return self._src / worker

    def _bundle_content_scripts(self) -> List[Path]:
        js_root = self._src / 'js'
        background = self._background_script_path()
        sources = [
            path for path in collect(js_root, ['**/*.js'])
            if not is_test_script(path) and path != background
        ]
        pairs = [(path, self._dist / 'js' / path.relative_to(js_root)) for path in sources]
        return self._map_files(self.toolchain.scripts, pairs)

    def _bundle_background_script(self) -> List[Path]:
        source = self._background_script_path()
        if source is None:
            logger.debug("Manifest declares no background service worker")
            return []

        # Output mirrors the declared path, so it must stay inside the source tree
        src_root = self._src.resolve()
        resolved = source.resolve()
        if not resolved.is_relative_to(src_root):
            raise ManifestError(f"Background service worker {source} is outside the source directory {self._src}")

        if not resolved.is_file() or is_test_script(resolved):
            logger.warning(f"Background script {source} not found, skipping")
            return []
        return self.toolchain.scripts.transform(resolved, self._dist / resolved.relative_to(src_root))

    def _pack_dependencies(self) -> List[Path]:
        if self.config.packaging_mode == PackagingMode.NONE:
            return []
        dependencies = DependencyResolver(self.config.project_dir).resolve()
        return DependencyBundler(self._dist, self.config.packaging_mode).bundle(dependencies)

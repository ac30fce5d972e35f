import logging
from typing import Optional

import click
from colorama import Fore, Style
from pydantic import ValidationError

from ..config import BuildConfig, PackagingMode, get_settings
from ..modules.notifier import DesktopNotifier
from ..pipeline import BuildPipeline, BuildReport
from ..utils.exceptions import BuildError
from .progress import ProgressDisplay

logger = logging.getLogger(__name__)


def build_options(func):
    """Options shared by dev, build and package."""
    func = click.option(
        '--no-notify',
        is_flag=True,
        default=False,
        help='Do not show a desktop notification when done.'
    )(func)
    func = click.option(
        '--include-dependencies',
        type=click.Choice(['1', '2']),
        default=None,
        help='Vendor npm dependencies: 1 = into public/libs/, 2 = into js/libs/ (content scripts). Default: not vendored.'
    )(func)
    func = click.option(
        '--production',
        is_flag=True,
        default=False,
        help='Production build (recompressed images, NODE_ENV=production).'
    )(func)
    return func


def _make_pipeline(
    production: bool = False,
    include_dependencies: Optional[str] = None,
    no_notify: bool = False
) -> BuildPipeline:
    """Build the per-invocation config once and wire up the pipeline."""
    try:
        config = BuildConfig.from_settings(
            get_settings(),
            production=production,
            packaging_mode=PackagingMode(int(include_dependencies or 0)),
            notify=False if no_notify else None
        )
    except ValidationError as e:
        raise BuildError(f"Invalid configuration: {e}")
    logger.debug(f"Build config: {config}")
    return BuildPipeline(
        config,
        notifier=DesktopNotifier(),
        progress_callback=ProgressDisplay.show
    )


def _print_header(title: str, pipeline: BuildPipeline) -> None:
    config = pipeline.config
    print(f"\n{Fore.CYAN}{'='*60}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{title}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{'='*60}{Style.RESET_ALL}\n")
    print(f"Source: {config.source_dir}")
    print(f"Output: {config.dist_dir}")
    print(f"Mode: {'production' if config.production else 'development'}")
    if config.packaging_mode != PackagingMode.NONE:
        print(f"Dependencies: {config.packaging_mode.name.lower()} (mode {int(config.packaging_mode)})")
    print()


def _print_report(report: BuildReport) -> None:
    """Summarize a build report."""
    print()
    for result in report.failures:
        click.echo(f"{Fore.RED}✗ {result.name}: {result.error}{Style.RESET_ALL}")
    if report.ok:
        print(f"{Fore.GREEN}✔ {len(report.steps)} steps, {len(report.outputs)} files written{Style.RESET_ALL}")
    else:
        print(f"{Fore.RED}{len(report.failures)} of {len(report.steps)} steps failed. Check extforge.log for details.{Style.RESET_ALL}")
    for archive in report.archives:
        print(f"Package: {Fore.CYAN}{archive}{Style.RESET_ALL}")

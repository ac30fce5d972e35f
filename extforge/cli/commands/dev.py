import sys
import time

import click
from colorama import Fore, Style

from ...modules.watcher import SourceWatcher
from ...utils.exceptions import ExtforgeError, WatcherError
from ..common import _make_pipeline, _print_header, _print_report, build_options

from ..app import cli  # noqa: E402


@cli.command()
@build_options
def dev(production, include_dependencies, no_notify):
    """
    Clear dist/, build, then rebuild on every change (default command).

    Only the steps affected by a changed file are rerun: a .scss change
    recompiles styles, a .js change rebundles scripts, and so on. Errors are
    reported and watching continues. Stop with Ctrl+C.
    """
    import logging

    logger = logging.getLogger(__name__)

    try:
        pipeline = _make_pipeline(production, include_dependencies, no_notify)
    except ExtforgeError as e:
        click.echo(f"{Fore.RED}Error: {e}{Style.RESET_ALL}")
        sys.exit(1)
    config = pipeline.config
    _print_header("extforge - Dev", pipeline)

    try:
        report = pipeline.build(
            title="Clear build produced!",
            message="The dist was cleared and freshly build. Any changes will be processed on save."
        )
        _print_report(report)
    except ExtforgeError as e:
        logger.debug("Initial build failed", exc_info=True)
        click.echo(f"\n{Fore.RED}Error: {e}{Style.RESET_ALL}")
        click.echo(f"{Fore.YELLOW}Fix the problem and save; watching continues.{Style.RESET_ALL}")

    def rebuild(steps):
        _print_report(pipeline.run_steps(steps))

    try:
        watcher = SourceWatcher(
            config.source_dir,
            rebuild,
            debounce_seconds=config.watch_debounce,
            icon_source=config.icon_source,
        )
        with watcher:
            print(f"\n{Fore.CYAN}Watching {config.source_dir} for changes (Ctrl+C to stop)...{Style.RESET_ALL}\n")
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Stopped watching.{Style.RESET_ALL}")
    except WatcherError as e:
        click.echo(f"{Fore.RED}Error: {e}{Style.RESET_ALL}")
        sys.exit(1)

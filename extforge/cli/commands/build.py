import sys

import click
from colorama import Fore, Style

from ...utils.exceptions import ExtforgeError
from ..common import _make_pipeline, _print_header, _print_report, build_options

from ..app import cli  # noqa: E402


@cli.command()
@build_options
def build(production, include_dependencies, no_notify):
    """
    Clear dist/ and build the extension once (no watching).

    Examples:

        extforge build

        extforge build --production --include-dependencies=1
    """
    import logging

    logger = logging.getLogger(__name__)

    try:
        pipeline = _make_pipeline(production, include_dependencies, no_notify)
        _print_header("extforge - Build", pipeline)

        report = pipeline.build()
        _print_report(report)
        if not report.ok:
            sys.exit(1)

    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Build cancelled by user.{Style.RESET_ALL}")
        sys.exit(1)
    except ExtforgeError as e:
        logger.debug("Build failed", exc_info=True)
        click.echo(f"\n{Fore.RED}Error: {e}{Style.RESET_ALL}")
        sys.exit(1)
    except Exception as e:
        logger.exception("Build failed")
        print(f"\n{Fore.RED}Error: {e}{Style.RESET_ALL}")
        print(f"{Fore.RED}Check extforge.log for details.{Style.RESET_ALL}")
        sys.exit(1)

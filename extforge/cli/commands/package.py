import sys

import click
from colorama import Fore, Style

from ...utils.exceptions import ExtforgeError
from ..common import _make_pipeline, _print_header, _print_report, build_options

from ..app import cli  # noqa: E402


@cli.command()
@build_options
def package(production, include_dependencies, no_notify):
    """
    Clear dist/, build, and write installer packages.

    Produces <name>_<version>.zip (Chrome/Firefox) and <name>_<version>.xpi
    (Thunderbird) in package/, named from the built manifest.json. Older
    packages in package/ are left in place.
    """
    import logging

    logger = logging.getLogger(__name__)

    try:
        pipeline = _make_pipeline(production, include_dependencies, no_notify)
        _print_header("extforge - Package", pipeline)

        report = pipeline.package()
        _print_report(report)

    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}Packaging cancelled by user.{Style.RESET_ALL}")
        sys.exit(1)
    except ExtforgeError as e:
        logger.debug("Packaging failed", exc_info=True)
        click.echo(f"\n{Fore.RED}Error: {e}{Style.RESET_ALL}")
        sys.exit(1)
    except Exception as e:
        logger.exception("Packaging failed")
        print(f"\n{Fore.RED}Error: {e}{Style.RESET_ALL}")
        print(f"{Fore.RED}Check extforge.log for details.{Style.RESET_ALL}")
        sys.exit(1)

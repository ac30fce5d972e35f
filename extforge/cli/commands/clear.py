import sys

from colorama import Fore, Style

from ...utils.exceptions import ExtforgeError
from ..common import _make_pipeline

from ..app import cli  # noqa: E402


@cli.command()
def clear():
    """
    Delete the build output directory (dist/).

    Packages in package/ are not touched.
    """
    try:
        pipeline = _make_pipeline(no_notify=True)
        pipeline.clear()
        print(f"{Fore.GREEN}Cleared {pipeline.config.dist_dir}{Style.RESET_ALL}")
    except ExtforgeError as e:
        print(f"{Fore.RED}Error: {e}{Style.RESET_ALL}")
        sys.exit(1)

import click
from colorama import init as colorama_init

from .. import __version__
from .logging import configure_logging

# Initialize colorama for cross-platform colored output
colorama_init()


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, default=False, help='Show debug output on the console.')
@click.pass_context
def cli(ctx, verbose):
    """
    extforge - Browser Extension Build Tool

    Builds an extension source tree (src/) into a loadable directory (dist/)
    and packages it as .zip (Chrome, Firefox) and .xpi (Thunderbird).

    Running without a command is the same as 'extforge dev'.
    """
    configure_logging(verbose=verbose)
    if ctx.invoked_subcommand is None:
        from .commands.dev import dev
        ctx.invoke(dev)


from .commands import build as _build  # noqa: E402,F401
from .commands import check as _check  # noqa: E402,F401
from .commands import clear as _clear  # noqa: E402,F401
from .commands import dev as _dev  # noqa: E402,F401
from .commands import package as _package  # noqa: E402,F401

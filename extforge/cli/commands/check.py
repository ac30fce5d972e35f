import subprocess
import sys

import click
from colorama import Fore, Back, Style

from ...config import get_settings
from ...modules.dependencies import DependencyResolver
from ...utils.exceptions import ExtforgeError
from ...utils.manifest import MANIFEST_NAME, background_script, load_manifest
from ...utils.tools import resolve_tool

from ..app import cli

_OK = f"{Style.BRIGHT}{Fore.GREEN}{Back.LIGHTBLACK_EX} ✔ {Style.RESET_ALL}"
_FAIL = f"{Style.BRIGHT}{Fore.RED} ✗ {Style.RESET_ALL}"


def _check_tool(command: str, project_dir) -> tuple[bool, str]:
    """Check that a tool can be found and reports a version."""
    executable = resolve_tool(command, project_dir)
    if executable is None:
        return False, "Not found"
    try:
        result = subprocess.run([executable, '--version'], capture_output=True, text=True, timeout=30)
    except (OSError, subprocess.TimeoutExpired) as e:
        return False, str(e)
    version = (result.stdout or result.stderr).strip().splitlines()
    return True, version[0] if version else executable


@cli.command()
@click.option(
    '--verbose', '-v',
    is_flag=True,
    default=False,
    help='Show tool versions and error details'
)
def check(verbose):
    """
    Check the source tree and the external build tools.
    """
    print(f"\n{Fore.CYAN}Checking extforge configuration...{Style.RESET_ALL}\n")

    settings = get_settings()
    project_dir = settings.project_dir.resolve()
    all_ok = True

    # Source tree
    print("Source tree:")
    source_dir = settings.source_dir.resolve()
    if source_dir.is_dir():
        print(f"  Source: {source_dir} {_OK}")
    else:
        print(f"  Source: {source_dir} {_FAIL}")
        all_ok = False

    try:
        manifest = load_manifest(source_dir / MANIFEST_NAME)
        print(f"  Manifest: {manifest.get('name')} {manifest.get('version')} {_OK}")
        worker = background_script(manifest)
        if worker:
            found = (source_dir / worker).is_file()
            print(f"  Background script: {worker} {_OK if found else _FAIL}")
    except ExtforgeError as e:
        print(f"  Manifest: {_FAIL} {e if verbose else 'missing or invalid'}")
        all_ok = False

    icon = source_dir / 'img' / settings.icon_source
    print(f"  Icon source: {icon.name} {_OK}" if icon.is_file() else f"  Icon source: {icon.name} {_FAIL} (no icons will be generated)")
    print()

    # npm dependencies
    print("Dependencies:")
    try:
        declared = DependencyResolver(project_dir).declared()
        print(f"  package.json: {len(declared)} runtime dependencies" if declared else "  package.json: none declared")
    except ExtforgeError as e:
        print(f"  package.json: {_FAIL} {e}")
        all_ok = False
    print()

    # Tools, checked in parallel
    print("Tools:")

    from concurrent.futures import ThreadPoolExecutor, as_completed

    tools = [
        ('svgo', settings.svgo_command),
        ('rsvg-convert', settings.rsvg_command),
        ('html-minifier-terser', settings.html_minifier_command),
        ('sass', settings.sass_command),
        ('esbuild', settings.esbuild_command),
    ]

    results = {}
    with ThreadPoolExecutor(max_workers=4) as executor:
        future_to_tool = {
            executor.submit(_check_tool, command, project_dir): label
            for label, command in tools
        }
        for future in as_completed(future_to_tool):
            label = future_to_tool[future]
            try:
                results[label] = future.result()
            except Exception as e:
                results[label] = (False, str(e))

    # Display results in order
    for label, command in tools:
        found, detail = results[label]
        if found:
            print(f"  {label}: {_OK}" + (f" {detail}" if verbose else ""))
        else:
            print(f"  {label}: {_FAIL} {detail} ({command})")
            all_ok = False
    print()

    if all_ok:
        print(f"{_OK} {Fore.GREEN}Ready to build{Style.RESET_ALL}\n")
    else:
        print(f"{Fore.YELLOW}⚠ Some checks failed. Missing tools can be installed with npm (e.g. 'npm i -D sass esbuild').{Style.RESET_ALL}\n")
        sys.exit(1)

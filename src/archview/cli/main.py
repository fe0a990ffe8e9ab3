"""
archview CLI - Main entry point.

This module registers all CLI commands. Each command is implemented
in its own module under cli/commands/.
"""

import logging
from pathlib import Path
from typing import Optional

import click

from ..config import load_settings
from ..core.errors import ArchviewError
from .commands import fetch, issues, render
from .utils import echo_error


@click.group()
@click.version_option(package_name="archview")
@click.option("-v", "--verbose", is_flag=True, help="Log engine transitions")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Settings file (default: .archview/config.yaml)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: Optional[Path]):
    """archview: resource and event graphs for infrastructure.

    Builds the collapsible resource graph for a dataset, lays it out,
    and reports detected issues.

    \b
    Quick Start:
      archview fetch --kind secrets --output data.json
      archview issues data.json
      archview render data.json --select "::AWS Account::123"
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="[%X]",
    )

    try:
        ctx.obj = load_settings(config_path)
    except ArchviewError as e:
        echo_error(str(e))
        ctx.exit(1)


# Register commands
main.add_command(render.render)
main.add_command(issues.issues)
main.add_command(fetch.fetch)

if __name__ == "__main__":
    main()

"""
Issues Command - List issues detected in a dataset.

Usage:
    archview issues data.json
    archview issues data.json --section environments --json
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ...config import Settings
from ...core.date_filter import DATE_PRESETS
from ...core.errors import ArchviewError
from ...core.types import MenuSection
from ...engine.initializer import create_query_data
from ..utils import echo_error, echo_info, echo_success, load_dataset, resolve_date_filter, resolve_section

console = Console()


@click.command()
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-s", "--section", type=click.Choice(["secrets", "environments", "inventory"], case_sensitive=False),
              help="View to analyze (default from settings)")
@click.option("--preset", type=click.Choice(sorted(DATE_PRESETS)), default="last30days", show_default=True,
              help="Date window preset")
@click.option("--start", help="Window start (ISO 8601), overrides --preset")
@click.option("--end", help="Window end (ISO 8601), overrides --preset")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def issues(
    settings: Settings,
    dataset: Path,
    section: Optional[str],
    preset: str,
    start: Optional[str],
    end: Optional[str],
    as_json: bool,
):
    """
    Print the issues detected for a dataset.

    \b
    Secrets view: duplicated and hardcoded secret values, plus
    cross-environment access. Environments view: cross-environment
    access only. Inventory view reports no issues.
    """
    try:
        menu_section = resolve_section(section, settings.section)
        state = create_query_data(
            load_dataset(dataset),
            menu_section,
            date_filter=resolve_date_filter(preset, start, end),
        )
    except ArchviewError as e:
        echo_error(str(e))
        sys.exit(1)

    detected = sorted((state.issues or {}).values(), key=lambda issue: issue.id)

    if as_json:
        click.echo(json.dumps([issue.model_dump(mode="json") for issue in detected], indent=2))
        return

    if menu_section == MenuSection.INVENTORY:
        echo_info("The inventory view does not detect issues")
        return

    if not detected:
        echo_success("No issues detected")
        return

    table = Table(title=f"{len(detected)} issues")
    table.add_column("Issue", style="cyan")
    table.add_column("Message")
    table.add_column("Resources", style="dim")

    for issue in detected:
        table.add_row(issue.id, issue.message, "\n".join(issue.resource_ids))

    console.print(table)

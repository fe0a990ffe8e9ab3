"""
Render Command - Build and lay out the graph for a dataset.

Usage:
    archview render data.json
    archview render data.json --section inventory --preset last7days
    archview render data.json --select "::AWS Account::123" --output graph.json
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from ...config import Settings
from ...core.date_filter import DATE_PRESETS
from ...core.errors import ArchviewError
from ...core.types import ViewSize
from ...engine.actions import SelectEdge, SelectIssue, SelectResource
from ...engine.initializer import create_query_data
from ...engine.session import EstimatedMeasurer, GraphSession
from ..utils import echo_error, load_dataset, resolve_date_filter, resolve_section, write_output

logger = logging.getLogger(__name__)

RENDERED_FIELDS = {"section", "date_filter", "nodes", "edges", "viewport", "selection", "issues", "laid_out"}


@click.command()
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-s", "--section", type=click.Choice(["secrets", "environments", "inventory"], case_sensitive=False),
              help="View to build (default from settings)")
@click.option("--preset", type=click.Choice(sorted(DATE_PRESETS)), default="last30days", show_default=True,
              help="Date window preset")
@click.option("--start", help="Window start (ISO 8601), overrides --preset")
@click.option("--end", help="Window end (ISO 8601), overrides --preset")
@click.option("--select", "selected", multiple=True, help="Node id to select (repeatable)")
@click.option("--select-edge", "selected_edges", multiple=True, help="Edge id to select (repeatable)")
@click.option("--select-issue", "selected_issues", multiple=True, help="Issue id to select (repeatable)")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path),
              help="Write JSON here instead of stdout")
@click.pass_obj
def render(
    settings: Settings,
    dataset: Path,
    section: Optional[str],
    preset: str,
    start: Optional[str],
    end: Optional[str],
    selected: Tuple[str, ...],
    selected_edges: Tuple[str, ...],
    selected_issues: Tuple[str, ...],
    output: Optional[Path],
):
    """
    Lay out a dataset and print the positioned graph as JSON.

    Selections are applied in order after the initial layout; the
    viewport in the output frames the final selection.
    """
    try:
        response = load_dataset(dataset)
        measurer = EstimatedMeasurer()
        state = create_query_data(
            response,
            resolve_section(section, settings.section),
            date_filter=resolve_date_filter(preset, start, end),
            view_size=ViewSize(width=settings.view_width, height=settings.view_height),
            label_width=measurer.label_width,
        )

        session = GraphSession(state, measurer=measurer)
        session.settle()

        for node_id in selected:
            session.dispatch(SelectResource(resource_id=node_id))
        for edge_id in selected_edges:
            session.dispatch(SelectEdge(edge_id=edge_id))
        for issue_id in selected_issues:
            session.dispatch(SelectIssue(issue_id=issue_id))
        final = session.settle()
    except ArchviewError as e:
        echo_error(str(e))
        sys.exit(1)

    logger.info(f"Rendered {len(final.nodes)} nodes and {len(final.edges)} edges")
    payload = final.model_dump(mode="json", include=RENDERED_FIELDS)
    write_output(json.dumps(payload, indent=2), output)

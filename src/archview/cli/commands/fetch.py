"""
Fetch Command - Download a dataset from the account API.

Usage:
    archview fetch --kind secrets --output data.json
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from ...api.client import ApiClient
from ...config import Settings
from ...core.errors import ApiError
from ..utils import echo_error, write_output


@click.command()
@click.option("--kind", type=click.Choice(["secrets", "all"]), default="secrets", show_default=True,
              help="Which query to download")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path),
              help="Write JSON here instead of stdout")
@click.pass_obj
def fetch(settings: Settings, kind: str, output: Optional[Path]):
    """
    Download the resource/event dataset for the configured account.

    The endpoint and account come from the settings file or the
    ARCHVIEW_API_ENDPOINT and ARCHVIEW_ACCOUNT_ID environment variables.
    """
    try:
        client = ApiClient.from_settings(settings)
        response = client.fetch_query(kind)
    except ApiError as e:
        echo_error(str(e))
        sys.exit(1)

    write_output(json.dumps(response.model_dump(mode="json"), indent=2), output)

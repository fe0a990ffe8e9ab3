"""
CLI Utilities - Shared helper functions for command line operations.

Formatted printing, dataset loading, and the option parsing shared by the
commands that build a graph.
"""

import json
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from ..core.date_filter import DateFilter, date_filter_from_preset, parse_date_filter
from ..core.errors import ArchviewError
from ..core.types import MenuSection, QueryResponse


def echo_success(message: str) -> None:
    """
    Print a success message with a green checkmark.

    Args:
        message (str): The message to display.
    """
    click.echo(click.style(f"✅ {message}", fg="green"), err=True)


def echo_error(message: str) -> None:
    """
    Print an error message with a red cross.

    Args:
        message (str): The error message to display.
    """
    click.echo(click.style(f"❌ {message}", fg="red"), err=True)


def echo_warning(message: str) -> None:
    click.echo(click.style(f"⚠️  {message}", fg="yellow"), err=True)


def echo_info(message: str) -> None:
    click.echo(click.style(f"   {message}", dim=True), err=True)


def load_dataset(path: Path) -> QueryResponse:
    """
    Load a dataset file as returned by the query API.

    Raises:
        ArchviewError: If the file is not JSON or does not match the dataset shape.
    """
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ArchviewError(f"{path} is not valid JSON: {e}") from e

    try:
        return QueryResponse.model_validate(data)
    except ValidationError as e:
        raise ArchviewError(f"{path} is not a valid dataset: {e.error_count()} validation errors") from e


def resolve_section(value: Optional[str], default: str) -> MenuSection:
    """Match a section name case-insensitively."""
    name = (value or default).lower()
    for section in MenuSection:
        if section.value == name:
            return section
    raise ArchviewError(f"Unknown section: {value or default}")


def resolve_date_filter(preset: str, start: Optional[str], end: Optional[str]) -> DateFilter:
    if start or end:
        return parse_date_filter(start, end)
    return date_filter_from_preset(preset)


def write_output(text: str, output: Optional[Path]) -> None:
    if output is None:
        click.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text)
    echo_success(f"Wrote {output}")

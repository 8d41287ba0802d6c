"""
Rendering of artifacts and apps for terminal output.
"""

import json
from datetime import datetime
from typing import List

from rich.table import Table

from artifact_downloader.constants import MAX_TABLE_FILE_NAME_LENGTH
from artifact_downloader.models import AppSummary, Artifact

SIZE_UNITS = ("B", "KB", "MB", "GB")
ELLIPSIS = "..."


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count with two decimals in 1024-based units.

    Returns "-" for 0, which providers use when the size is unknown.
    """
    if size_bytes == 0:
        return "-"

    size = float(size_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(SIZE_UNITS) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.2f} {SIZE_UNITS[unit_index]}"


def format_short_date(value: datetime) -> str:
    """Format a timestamp as e.g. "Mar 05 14:30"."""
    return value.strftime("%b %d %H:%M")


def format_date(value: datetime) -> str:
    """Format a timestamp as e.g. "Mar 05, 2024 14:30"."""
    return value.strftime("%b %d, %Y %H:%M")


def shorten_file_name(file_name: str) -> str:
    if len(file_name) > MAX_TABLE_FILE_NAME_LENGTH:
        return file_name[: MAX_TABLE_FILE_NAME_LENGTH - len(ELLIPSIS)] + ELLIPSIS
    return file_name


def artifacts_to_json(artifacts: List[Artifact]) -> str:
    return json.dumps([artifact.to_dict() for artifact in artifacts], indent=2)


def apps_to_json(apps: List[AppSummary]) -> str:
    return json.dumps([app.to_dict() for app in apps], indent=2)


def build_artifact_table(artifacts: List[Artifact]) -> Table:
    table = Table(show_header=True, header_style="cyan")
    table.add_column("Ver", no_wrap=True)
    table.add_column("Build", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("File", no_wrap=True)
    table.add_column("Size", justify="right", no_wrap=True)
    table.add_column("Date", no_wrap=True)

    for artifact in artifacts:
        table.add_row(
            artifact.version,
            artifact.build_number,
            artifact.artifact_type,
            shorten_file_name(artifact.file_name),
            format_file_size(artifact.file_size),
            format_short_date(artifact.uploaded_at),
        )
    return table


def build_app_table(apps: List[AppSummary]) -> Table:
    table = Table(show_header=True, header_style="cyan")
    table.add_column("Name")
    table.add_column("ID", no_wrap=True)
    table.add_column("Platform", no_wrap=True)
    table.add_column("Provider", no_wrap=True)

    for app in apps:
        table.add_row(app.name, app.id, app.platform or "-", app.provider or "-")
    return table


"""Shared Typer app object, shared option types, and orchestrator factory."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from ..core.config_loader import load_coach_settings
from ..core.orchestrator import CoachOrchestrator, create_orchestrator
from ..io.store import JsonFileStore

DEFAULT_USER = "default-user"


def get_default_data_dir() -> Path:
    """Default data directory: ~/.adaptive-coach"""
    return Path.home() / ".adaptive-coach"


# Shared options used across all commands
DataDirOption = Annotated[
    Optional[Path],
    typer.Option("--data-dir", "-p", help="Directory holding coaching records (default: ~/.adaptive-coach)"),
]
UserOption = Annotated[
    str,
    typer.Option("--user", "-u", help="User id the records belong to"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", "-j", help="Output as JSON for machine processing"),
]

app = typer.Typer(
    name="adaptive-coach",
    help="Adaptive coaching: recovery scoring, load progression, habits and a conversational coach.",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging from the coaching engines"),
    ] = False,
) -> None:
    """
    Adaptive fitness coach.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def get_orchestrator(data_dir: Path | None) -> CoachOrchestrator:
    """Build an orchestrator over the JSON store in data_dir (or the default)."""
    store = JsonFileStore(data_dir or get_default_data_dir())
    return create_orchestrator(store, load_coach_settings())

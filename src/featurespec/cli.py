"""Command-line interface for inspecting feature settings documents."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from featurespec.codec import FeatureSettingsEntry
from featurespec.errors import FeatureSpecError

app = typer.Typer(
    name="featurespec",
    help="Inspect and validate fitted feature settings.",
    no_args_is_help=True,
)

console = Console()


def _describe(entry: FeatureSettingsEntry) -> list[str]:
    """Rebuild a settings entry through the registry and list its feature names."""
    from featurespec.transformers import create_transformer

    transformer = create_transformer(entry.cls, entry.name, entry.params)
    state = transformer.decode_aggregator(entry.aggregator)
    return transformer.feature_names(state)


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to engine configuration YAML (logging settings).",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging.")
    ] = False,
) -> None:
    """Configure logging before running a command."""
    from featurespec.config import EngineConfig, load_config
    from featurespec.utils.logging import configure_logging

    engine_config = load_config(config) if config is not None else EngineConfig()
    level = "DEBUG" if verbose else engine_config.logging.level
    configure_logging(level=level, json_output=engine_config.logging.json_output)


@app.command()
def inspect(
    settings: Annotated[
        Path,
        typer.Argument(help="Settings JSON file.", exists=True, dir_okay=False),
    ],
    names: Annotated[
        bool, typer.Option("--names", "-n", help="List every feature name.")
    ] = False,
) -> None:
    """Show the fields, transformers and widths in a settings file."""
    from featurespec.codec import SettingsCodec
    from featurespec.persistence import load_settings

    try:
        document = SettingsCodec.decode(load_settings(settings))
    except FeatureSpecError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e

    table = Table(title=f"Feature settings (version {document.version})")
    table.add_column("#", style="dim")
    table.add_column("Field", style="cyan")
    table.add_column("Transformer", style="magenta")
    table.add_column("Width", style="green", justify="right")
    table.add_column("Params")

    total = 0
    all_names: list[str] = []
    for i, entry in enumerate(document.features):
        params = ", ".join(f"{k}={v}" for k, v in entry.params.items())
        try:
            feature_names = _describe(entry)
        except (FeatureSpecError, ValueError) as e:
            table.add_row(str(i), entry.name, entry.cls, "[red]?[/red]", params)
            console.print(f"[yellow]Cannot decode field {entry.name!r}: {e}[/yellow]")
            continue
        total += len(feature_names)
        all_names.extend(feature_names)
        table.add_row(str(i), entry.name, entry.cls, str(len(feature_names)), params)

    console.print(table)
    console.print(f"[blue]Total width: {total}[/blue]")

    if names:
        console.print("\n[blue]Feature names:[/blue]")
        for name in all_names:
            console.print(f"  {name}")


@app.command()
def validate(
    settings: Annotated[
        Path,
        typer.Argument(help="Settings JSON file.", exists=True, dir_okay=False),
    ],
) -> None:
    """Check that a settings file decodes with the registered transformers."""
    from featurespec.codec import SettingsCodec
    from featurespec.persistence import load_settings

    try:
        document = SettingsCodec.decode(load_settings(settings))
        for entry in document.features:
            _describe(entry)
    except (FeatureSpecError, ValueError) as e:
        console.print(f"[red]Invalid: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[green]Valid: {len(document)} fields[/green]")


@app.command()
def transformers() -> None:
    """List registered transformer identifiers."""
    from featurespec.transformers import get_transformer_class, list_transformers

    table = Table(title="Registered transformers")
    table.add_column("cls", style="cyan")
    table.add_column("Class", style="magenta")
    for identifier in list_transformers():
        table.add_row(identifier, get_transformer_class(identifier).__name__)
    console.print(table)


@app.command()
def version() -> None:
    """Show the installed featurespec version."""
    from featurespec import __version__

    console.print(f"featurespec {__version__}")


if __name__ == "__main__":
    app()

"""Main CLI application using Typer."""

from pathlib import Path

import typer
from pydantic import ValidationError

app = typer.Typer(help="Pointscape: exploratory point-pattern analysis of crime incidents")


@app.command()
def run(
    config: str = typer.Option(..., help="Path to analysis config YAML"),
) -> None:
    """
    Run the full analysis: synthetic patterns, aggregation, density and Ripley's K.

    Example:
        pointscape run --config configs/analysis_example.yaml
    """
    from pointscape.analysis import load_config, run_analysis

    try:
        analysis_config = load_config(config)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"Running analysis with config '{config}'...")

    try:
        result = run_analysis(analysis_config)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"Analysed {result.points.count()} points")
    typer.echo("Outputs:")
    for path in result.outputs:
        typer.echo(f"  - {path}")


@app.command()
def synthetic(
    out_dir: str = typer.Option("output", help="Directory for the comparison figure"),
    n_points: int = typer.Option(100, help="Target number of points per pattern"),
    cluster_size: int = typer.Option(10, help="Points per cluster"),
    cluster_radius: float = typer.Option(0.05, help="Cluster disc radius"),
    seed: int | None = typer.Option(42, help="Random seed"),
) -> None:
    """Simulate random, uniform and clustered patterns and plot them."""
    from pointscape.analysis import run_synthetic
    from pointscape.core.schema import SyntheticConfig

    try:
        synthetic_config = SyntheticConfig(
            n_points=n_points, cluster_size=cluster_size, cluster_radius=cluster_radius
        )
    except ValidationError as e:
        typer.echo(f"Error: Invalid parameters: {e}", err=True)
        raise typer.Exit(code=1) from None

    patterns, paths = run_synthetic(synthetic_config, Path(out_dir), seed=seed)

    for name, frame in patterns.items():
        typer.echo(f"{name}: {frame.count()} points")
    for path in paths:
        typer.echo(f"Wrote {path}")


@app.command()
def validate(
    config: str = typer.Option(..., help="Path to config YAML to validate"),
) -> None:
    """Validate a configuration file."""
    from pointscape.analysis import load_config

    try:
        analysis_config = load_config(config)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None
    except ValueError as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(f"✓ Valid analysis configuration: {config}")

    data = analysis_config.data
    missing = [
        path
        for path in (data.crimes_csv, data.fine_boundaries, data.coarse_boundaries)
        if not Path(path).exists()
    ]
    for path in missing:
        typer.echo(f"Warning: input file not found: {path}", err=True)


@app.command()
def version() -> None:
    """Show pointscape version."""
    from pointscape import __version__

    typer.echo(f"pointscape version {__version__}")


if __name__ == "__main__":
    app()

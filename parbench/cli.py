"""Command line interface for the benchmark engine."""

import json
import logging
from typing import Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .common.enums import BenchmarkKind, FibonacciMode
from .config import EngineConfig, load_config
from .debug import set_debug, setup_logging
from .errors import BenchmarkError, RequestValidationError
from .models import BilinearResult, FibonacciResult, make_request
from .run.parsers import bilinear_rows, fibonacci_rows, normalize_runs
from .run.runner import BenchmarkRunner

# .env values take precedence over existing env vars
load_dotenv(override=True)

app = typer.Typer(
    name="parbench",
    help="Run sequential vs. parallel benchmark workers and compare their timings",
    no_args_is_help=True,
)

console = Console(stderr=True)

OUTPUT_FORMATS = ("json", "table", "csv")


def _prepare(config: str | None, debug: bool, output_format: str) -> EngineConfig:
    """Apply global options and load configuration."""
    set_debug(debug)
    setup_logging(logging.DEBUG if debug else logging.WARNING)

    if output_format not in OUTPUT_FORMATS:
        _fail(
            RequestValidationError(
                f"Unknown format '{output_format}'. Supported: {', '.join(OUTPUT_FORMATS)}"
            )
        )

    try:
        return load_config(config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def _fail(error: BenchmarkError) -> None:
    """Print the structured failure and exit."""
    typer.echo(json.dumps(error.to_dict(), indent=2))
    raise typer.Exit(2 if isinstance(error, RequestValidationError) else 1)


def _rows_for(result: FibonacciResult | BilinearResult) -> list[dict[str, Any]]:
    if isinstance(result, FibonacciResult):
        return fibonacci_rows(result)
    return bilinear_rows(result)


def _emit(result: FibonacciResult | BilinearResult, output_format: str) -> None:
    """Print a result in the requested format."""
    if output_format == "json":
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    df = normalize_runs(_rows_for(result))
    if output_format == "csv":
        typer.echo(df.to_csv(index=False), nl=False)
        return

    table = Table(title="Timings")
    for column in df.columns:
        table.add_column(str(column), style="bold" if column == "variant" else None)
    for row in df.itertuples(index=False):
        table.add_row(*("-" if _is_missing(value) else str(value) for value in row))
    Console().print(table)

    if isinstance(result, FibonacciResult) and result.cilk_available is False:
        console.print(
            f"[yellow]Cilk unavailable:[/] {escape(result.cilk_error or '')}"
        )
    if isinstance(result, BilinearResult) and result.degraded:
        console.print(f"[yellow]{escape(result.error or '')}[/yellow]")


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and value != value)


@app.command()
def fibonacci(
    n: int = typer.Argument(..., help="Fibonacci index to compute"),
    mode: str = typer.Option(
        FibonacciMode.OPENMP.value,
        "--mode",
        "-m",
        help="Worker to run: openmp, cilk, or both",
    ),
    config: str | None = typer.Option(
        None, "--config", "-c", help="Path to config YAML file"
    ),
    output_format: str = typer.Option(
        "json", "--format", "-f", help="Output format: json, table, or csv"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug output for detailed command tracing"
    ),
) -> None:
    """Run the Fibonacci workers and report speedup and overhead."""
    cfg = _prepare(config, debug, output_format)

    try:
        request = make_request(BenchmarkKind.FIBONACCI, cfg.limits, n=n, mode=mode)
        result = BenchmarkRunner(cfg).run(request)
    except BenchmarkError as e:
        _fail(e)
        return

    _emit(result, output_format)


@app.command()
def bilinear(
    image: str | None = typer.Option(
        None, "--image", "-i", help="Image file inside the workers directory"
    ),
    scaling: float | None = typer.Option(
        None, "--scaling", "-s", help="Requested scaling factor"
    ),
    config: str | None = typer.Option(
        None, "--config", "-c", help="Path to config YAML file"
    ),
    output_format: str = typer.Option(
        "json", "--format", "-f", help="Output format: json, table, or csv"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug output for detailed command tracing"
    ),
) -> None:
    """Run the bilinear interpolation worker and report its timings."""
    cfg = _prepare(config, debug, output_format)

    try:
        request = make_request(
            BenchmarkKind.BILINEAR, cfg.limits, image=image, scaling=scaling
        )
        result = BenchmarkRunner(cfg).run(request)
    except BenchmarkError as e:
        _fail(e)
        return

    _emit(result, output_format)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

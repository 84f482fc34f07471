"""Exemplars CLI - Command-line interface for exemplar sampling.

This module provides a CLI for managing exemplar configuration and for
simulating reservoirs against synthetic traced measurements.
"""

from __future__ import annotations

import json
import random
import sys
from pathlib import Path
from typing import Any, Optional

try:
    import typer
    import yaml
    from rich.console import Console
    from rich.table import Table
except ImportError as e:
    print(
        f"CLI dependencies not installed: {e}\n"
        "Install with: pip install exemplars[cli]",
        file=sys.stderr,
    )
    sys.exit(1)

from exemplars import DEFAULT_BOUNDARIES, STRATEGIES, build_reservoir, parse_boundaries
from exemplars.core.clock import format_hr_time, hr_time_to_ns, ns_to_hr_time
from exemplars.core.context import TraceContext
from exemplars.core.exemplar import Exemplar
from exemplars.core.filter import FILTERS, filter_from_name
from exemplars.core.recorder import ExemplarRecorder
from exemplars.core.span import SpanContext

app = typer.Typer(
    name="exemplars",
    help="Exemplars - trace-linked measurement sampling CLI",
    no_args_is_help=True,
)

console = Console()

# Default configuration
DEFAULT_CONFIG: dict[str, Any] = {
    "service_name": "my-service",
    "strategy": "simple",
    "reservoir_size": 4,
    "boundaries": list(DEFAULT_BOUNDARIES),
    "per_bucket": 1,
    "filter": "trace_based",
    "seed": None,
}

CONFIG_FILE = ".exemplars.yaml"

ROUTES = ["/users", "/orders", "/search", "/health"]
STATUS_CODES = [200, 200, 200, 201, 404, 500]


def load_config() -> dict[str, Any]:
    """Load configuration from .exemplars.yaml file."""
    config_path = Path(CONFIG_FILE)
    if not config_path.exists():
        return DEFAULT_CONFIG.copy()

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}
            return {**DEFAULT_CONFIG, **config}
    except Exception as e:
        console.print(f"[yellow]Warning: Failed to load {CONFIG_FILE}: {e}[/yellow]")
        return DEFAULT_CONFIG.copy()


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to .exemplars.yaml file."""
    try:
        with open(CONFIG_FILE, "w") as f:
            yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
        console.print(f"[green]✓ Configuration saved to {CONFIG_FILE}[/green]")
    except Exception as e:
        console.print(f"[red]✗ Failed to save configuration: {e}[/red]")
        raise typer.Exit(1)


def generate_measurements(
    count: int,
    rng: random.Random,
    service_name: str,
    traced_ratio: float = 0.8,
    start_ns: int = 0,
) -> list[tuple[float, tuple[int, int], dict[str, Any], Optional[TraceContext]]]:
    """Generate synthetic request-latency measurements.

    A ``traced_ratio`` share of the measurements is recorded inside a span of
    its own trace; the rest carry no context.

    Returns:
        ``(value, timestamp, attributes, context)`` tuples, one millisecond apart
    """
    measurements = []
    for i in range(count):
        value = round(rng.lognormvariate(-2.0, 1.0), 6)
        timestamp = ns_to_hr_time(start_ns + i * 1_000_000)
        attributes = {
            "service.name": service_name,
            "http.route": rng.choice(ROUTES),
            "http.status_code": rng.choice(STATUS_CODES),
        }
        context = None
        if rng.random() < traced_ratio:
            context = TraceContext()
            context.push_span(SpanContext.generate(trace_id=context.trace_id))
        measurements.append((value, timestamp, attributes, context))
    return measurements


def format_exemplar_row(index: int, exemplar: Exemplar) -> list[str]:
    """Format an exemplar as a table row."""
    attributes = ", ".join(f"{k}={v}" for k, v in exemplar.filtered_attributes.items())
    return [
        str(index),
        f"{exemplar.value:g}",
        format_hr_time(exemplar.timestamp),
        attributes or "[dim]-[/dim]",
        exemplar.trace_id[:16] if exemplar.trace_id else "[dim]none[/dim]",
        exemplar.span_id or "[dim]none[/dim]",
    ]


def prompt_count(label: str, default: int) -> int:
    """Prompt for a non-negative integer, exiting with status 1 on bad input."""
    raw = typer.prompt(label, default=str(default))
    try:
        count = int(raw)
    except ValueError:
        console.print(f"[red]Invalid {label.lower()}: {raw}[/red]")
        raise typer.Exit(1)
    if count < 0:
        console.print(f"[red]{label} must be non-negative[/red]")
        raise typer.Exit(1)
    return count


@app.command()
def init() -> None:
    """Initialize exemplar configuration with interactive prompts."""
    console.print("[bold blue]Exemplars Configuration Setup[/bold blue]\n")

    # Load existing config if available
    existing_config = load_config()

    service_name = typer.prompt(
        "Service name", default=existing_config.get("service_name", "my-service")
    )

    strategy = typer.prompt(
        "Strategy (simple/histogram)", default=existing_config.get("strategy", "simple")
    )
    if strategy not in STRATEGIES:
        console.print(f"[red]Unknown strategy: {strategy}[/red]")
        raise typer.Exit(1)

    reservoir_size = prompt_count("Reservoir size", existing_config.get("reservoir_size", 4))

    boundaries = existing_config.get("boundaries", list(DEFAULT_BOUNDARIES))
    per_bucket = existing_config.get("per_bucket", 1)
    if strategy == "histogram":
        boundaries_str = typer.prompt(
            "Histogram boundaries", default=", ".join(str(b) for b in boundaries)
        )
        try:
            boundaries = parse_boundaries(boundaries_str)
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)
        per_bucket = prompt_count("Exemplars per bucket", per_bucket)

    filter_name = typer.prompt(
        "Exemplar filter (always_on/always_off/trace_based)",
        default=existing_config.get("filter", "trace_based"),
    )
    if filter_name not in FILTERS:
        console.print(f"[red]Unknown exemplar filter: {filter_name}[/red]")
        raise typer.Exit(1)

    config = {
        "service_name": service_name,
        "strategy": strategy,
        "reservoir_size": reservoir_size,
        "boundaries": boundaries,
        "per_bucket": per_bucket,
        "filter": filter_name,
        "seed": existing_config.get("seed"),
    }

    save_config(config)


@app.command(name="config")
def show_config() -> None:
    """Show the effective exemplar configuration."""
    config = load_config()

    table = Table(title=f"Configuration ({CONFIG_FILE})")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for key, value in config.items():
        if key == "boundaries":
            value = ", ".join(str(b) for b in value)
        table.add_row(key, "[dim]unset[/dim]" if value is None else str(value))

    console.print(table)


@app.command()
def simulate(
    count: int = typer.Option(1000, "--count", "-n", help="Measurements per period"),
    periods: int = typer.Option(1, "--periods", "-p", help="Number of collection periods"),
    strategy: Optional[str] = typer.Option(
        None, "--strategy", "-s", help="Sampling strategy (simple/histogram)"
    ),
    size: Optional[int] = typer.Option(None, "--size", help="Reservoir size (simple strategy)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible runs"),
    filter_name: Optional[str] = typer.Option(
        None, "--filter", "-f", help="Exemplar filter (always_on/always_off/trace_based)"
    ),
    traced_ratio: float = typer.Option(
        0.8, "--traced-ratio", help="Share of measurements recorded inside a span"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print exemplars as JSON lines"),
) -> None:
    """Run a reservoir against synthetic traced measurements.

    Each period records --count request latencies and then collects the
    reservoir once, printing the exemplars it retained.
    """
    config = load_config()
    strategy = strategy or config.get("strategy", "simple")
    size = size if size is not None else config.get("reservoir_size", 4)
    seed = seed if seed is not None else config.get("seed")
    filter_name = filter_name or config.get("filter", "trace_based")
    service_name = config.get("service_name", "my-service")

    if not 0.0 <= traced_ratio <= 1.0:
        console.print("[red]--traced-ratio must be between 0.0 and 1.0[/red]")
        raise typer.Exit(1)

    try:
        reservoir = build_reservoir(
            strategy=strategy,
            reservoir_size=size,
            boundaries=config.get("boundaries"),
            per_bucket=config.get("per_bucket", 1),
            seed=seed,
        )
        exemplar_filter = filter_from_name(filter_name)
    except (TypeError, ValueError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)

    recorder = ExemplarRecorder(
        reservoir=reservoir, exemplar_filter=exemplar_filter, name=service_name
    )
    rng = random.Random(seed)
    point_attributes = {"service.name": service_name}
    start_ns = hr_time_to_ns((1_700_000_000, 0))

    for period in range(periods):
        measurements = generate_measurements(
            count,
            rng,
            service_name,
            traced_ratio=traced_ratio,
            start_ns=start_ns + period * count * 1_000_000,
        )
        offered = 0
        for value, timestamp, attributes, context in measurements:
            if recorder.record(value, attributes, context=context, timestamp=timestamp):
                offered += 1

        exemplars = recorder.collect(point_attributes)

        if as_json:
            for exemplar in exemplars:
                print(json.dumps({"period": period, **exemplar.to_dict()}))
            continue

        table = Table(
            title=(
                f"Period {period + 1}: {len(exemplars)} exemplars "
                f"from {offered}/{count} offered measurements"
            )
        )
        table.add_column("#", justify="right")
        table.add_column("Value", justify="right", style="green")
        table.add_column("Timestamp")
        table.add_column("Attributes", style="cyan")
        table.add_column("Trace")
        table.add_column("Span")
        for index, exemplar in enumerate(exemplars):
            table.add_row(*format_exemplar_row(index, exemplar))
        console.print(table)


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()

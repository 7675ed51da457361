from __future__ import annotations

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

from yieldprobe.api.schemas import DiagnosticsResponse, diagnostics_fields
from yieldprobe.config.expectations import DEFAULT_EXPECTATIONS
from yieldprobe.config.settings import settings
from yieldprobe.logging_config import configure_logging
from yieldprobe.models.domain import ProbeSuccess, Verdict
from yieldprobe.services.aggregator import run_diagnostics
from yieldprobe.services.classifier import classify, compare
from yieldprobe.services.errors import AggregateFailure
from yieldprobe.services.probes import build_default_probes

app = typer.Typer(help="yieldprobe CLI (probe yield sources, compare with expectations).")
console = Console()

VERDICT_STYLE = {
    Verdict.IN_RANGE: "[green]ok[/green]",
    Verdict.TOO_LOW: "[red]too low[/red]",
    Verdict.TOO_HIGH: "[yellow]too high[/yellow]",
    Verdict.NO_EXPECTATION: "-",
}


@app.command("run")
def run_cmd(
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON envelope."),
    strict: bool = typer.Option(False, "--strict", help="Exit 1 if any source failed."),
) -> None:
    """Probe every source once and print the health report."""
    configure_logging()
    try:
        run = asyncio.run(run_diagnostics())
    except AggregateFailure as e:
        console.print(f"[red]✗[/red] Error: {e}")
        raise typer.Exit(1)

    report = run.report
    if as_json:
        envelope = DiagnosticsResponse(**diagnostics_fields(run))
        typer.echo(json.dumps(envelope.model_dump(by_alias=True, exclude_none=True), indent=2))
    else:
        table = Table(title=f"Sources ({run.elapsed_ms}ms)")
        table.add_column("Source", style="cyan")
        table.add_column("Status")
        table.add_column("Count", justify="right")
        table.add_column("Details", style="magenta")
        for name, result in report.results.items():
            if isinstance(result, ProbeSuccess):
                details = []
                if result.sample:
                    details.append(f"sample: {result.sample}")
                if result.total is not None:
                    details.append(f"total: {result.total}")
                if result.by_partition:
                    details.append(", ".join(f"{k}={v}" for k, v in result.by_partition.items()))
                table.add_row(name, "[green]success[/green]", str(result.count), "; ".join(details))
            else:
                table.add_row(name, "[red]error[/red]", "-", result.message)
        console.print(table)

        s = report.summary
        console.print(
            f"Total yields: [bold]{s.total_yields}[/bold]  "
            f"working: [green]{s.successful_sources}[/green]  "
            f"failed: [red]{s.failed_sources}[/red]  of {s.sources}"
        )

        cmp_table = Table(title="Expected vs Actual")
        cmp_table.add_column("Source", style="cyan")
        cmp_table.add_column("Expected", justify="right")
        cmp_table.add_column("Actual", justify="right")
        cmp_table.add_column("Verdict")
        for c in compare(report, DEFAULT_EXPECTATIONS):
            cmp_table.add_row(c.name, f"{c.expected.min}-{c.expected.max}", str(c.actual), VERDICT_STYLE[c.verdict])
        console.print(cmp_table)

        console.print("[bold blue]Recommendations[/bold blue]")
        for rec in classify(report, DEFAULT_EXPECTATIONS, total_floor=settings.healthy_total_floor):
            console.print(f"• {rec}")

    if strict and report.summary.failed_sources:
        raise typer.Exit(1)


@app.command("sources")
def sources_cmd() -> None:
    """List configured sources and their expected ranges."""
    table = Table(title="Configured sources")
    table.add_column("Source", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Expected", justify="right")
    for probe in build_default_probes():
        expected = DEFAULT_EXPECTATIONS.get(probe.name)
        table.add_row(
            probe.name,
            type(probe).__name__,
            f"{expected.min}-{expected.max}" if expected else "-",
        )
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

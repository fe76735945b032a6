"""
CLI Interface
=============
Command-line interface for the certificate splitter.

Usage:
    certsplit split <pdf_path> [--out ./salidas] [--plate=AG552FA]
    certsplit blocks <pdf_path>
    certsplit info <pdf_path>
"""

from __future__ import annotations

import json
import os
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from . import __version__
from .engine import COLLISION_MODES, CertificateSplitter, SplitterConfig
from .errors import CertSplitError
from .fields import normalize_text
from .plate_filter import normalize_plate
from .segmenter import is_header_page

console = Console()

PLATE_PROMPT = "Ingresá una patente (ENTER para procesar todas)"


@click.group()
@click.version_option(version=__version__, prog_name="certsplit")
def cli():
    """Coverage certificate splitter: one PDF + JSON per certificate."""
    pass


def _require_pdf_path(pdf_path):
    """Exit with status 1 when the source argument is missing or absent."""
    if not pdf_path:
        console.print("[red]Error:[/] missing argument <pdf_path>")
        console.print(
            "Usage: certsplit split <archivo.pdf> [--out ./salidas] "
            "[--plate=AG552FA]"
        )
        sys.exit(1)
    if not os.path.exists(pdf_path):
        console.print(f"[red]Error:[/] file not found: {pdf_path}")
        sys.exit(1)


@cli.command()
@click.argument("pdf_path", required=False)
@click.option(
    "--out", "-o",
    default="./salidas",
    help="Output directory for the split certificates",
)
@click.option(
    "--plate", "-p",
    default=None,
    help="Only export certificates for this plate (e.g. AG552FA)",
)
@click.option(
    "--no-prompt",
    is_flag=True,
    default=False,
    help="Do not ask for a plate when --plate is not given",
)
@click.option(
    "--on-collision",
    default="overwrite",
    type=click.Choice(COLLISION_MODES),
    help="What to do when two certificates map to the same directory",
)
@click.option(
    "--keep-going",
    is_flag=True,
    default=False,
    help="Skip blocks that fail to slice instead of aborting",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only the JSON result to stdout (for programmatic use)",
)
def split(
    pdf_path: str,
    out: str,
    plate: str,
    no_prompt: bool,
    on_collision: str,
    keep_going: bool,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Split a PDF into one PDF + JSON pair per coverage certificate."""

    _require_pdf_path(pdf_path)

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    plate_filter = normalize_plate(plate) if plate else None
    if plate is None and not no_prompt and not json_output:
        answer = click.prompt(PLATE_PROMPT, default="", show_default=False)
        plate_filter = normalize_plate(answer) if normalize_text(answer) else None

    config = SplitterConfig(
        output_dir=out,
        plate=plate_filter or None,
        on_collision=on_collision,
        keep_going=keep_going,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]Certificate Splitter v{__version__}[/]\n"
                f"[dim]Reading: {os.path.basename(pdf_path)}[/]",
                border_style="cyan",
            )
        )
        console.print()

    try:
        splitter = CertificateSplitter(config)

        if not json_output:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Processing certificates...", total=None)

                def on_block(done, total):
                    progress.update(task, completed=done, total=total)

                result = splitter.run(pdf_path, progress_callback=on_block)

            _display_results(result, plate_filter)
        else:
            result = splitter.run(pdf_path)
            print(json.dumps(
                result.model_dump(),
                indent=2,
                ensure_ascii=False,
                default=str,
            ))

    except CertSplitError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument("pdf_path", required=False)
def blocks(pdf_path: str):
    """Show the certificate blocks detected in a PDF (writes nothing)."""

    _require_pdf_path(pdf_path)

    try:
        splitter = CertificateSplitter(SplitterConfig(log_level="WARNING"))
        pages, detected = splitter.detect(pdf_path)
    except CertSplitError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    table = Table(title="Detected Certificates", border_style="cyan")
    table.add_column("#", justify="right")
    table.add_column("Pages", justify="center")
    table.add_column("Count", justify="right")

    for num, block in enumerate(detected, start=1):
        table.add_row(str(num), block.page_range_1based, str(block.page_count))

    console.print()
    console.print(table)
    console.print(
        f"[dim]{len(detected)} block(s) in {len(pages)} page(s)[/]"
    )
    console.print()


@cli.command()
@click.argument("pdf_path", required=False)
def info(pdf_path: str):
    """Display PDF file information."""

    _require_pdf_path(pdf_path)

    try:
        splitter = CertificateSplitter(SplitterConfig(log_level="WARNING"))
        pages, detected = splitter.detect(pdf_path)
    except CertSplitError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    header_pages = [
        str(i + 1) for i, text in enumerate(pages) if is_header_page(text)
    ]

    console.print()
    table = Table(title="PDF Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("File", os.path.basename(pdf_path))
    table.add_row("Pages", str(len(pages)))
    table.add_row(
        "File Size",
        f"{os.path.getsize(pdf_path) / 1024 / 1024:.2f} MB",
    )
    table.add_row("Header Pages", ", ".join(header_pages) or "-")
    table.add_row("Certificates", str(len(detected)))

    console.print(table)
    console.print()


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_results(result, plate_filter):
    """Display exported certificates and the run report."""
    console.print()

    if not result.artifacts:
        if plate_filter:
            console.print(
                f"[yellow]No coverage certificate found for plate "
                f"{plate_filter}.[/]"
            )
        else:
            console.print(
                "[yellow]No coverage certificates detected in the PDF.[/]"
            )
        console.print()
        return

    table = Table(title="Exported Certificates", border_style="cyan")
    table.add_column("Plate", style="bold")
    table.add_column("Policyholder")
    table.add_column("Pages", justify="center")
    table.add_column("PDF")

    for artifact in result.artifacts:
        meta = artifact.metadata
        table.add_row(
            meta.patente,
            meta.tomador or "[dim](unknown)[/]",
            meta.rango_paginas_1based,
            artifact.pdf_path,
        )

    console.print(table)
    console.print()

    _display_report_table(result.report)


def _display_report_table(report):
    """Display the run report as a rich table."""
    table = Table(title="Split Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    table.add_row(
        "Blocks Detected",
        str(report.blocks_detected),
        "[green]✓[/]" if report.blocks_detected > 0 else "[red]✗[/]",
    )
    table.add_row(
        "Certificates Exported",
        str(report.certificates_exported),
        "[green]✓[/]" if report.certificates_exported > 0 else "[yellow]⚠[/]",
    )
    table.add_row("Filtered Out", str(report.filtered_out), "")
    table.add_row(
        "Failed Blocks",
        str(report.failed_blocks),
        status_icon(report.failed_blocks),
    )
    table.add_row(
        "Field Completeness",
        f"{report.completeness_rate}%",
        "[green]✓[/]" if report.completeness_rate >= 90 else "[yellow]⚠[/]",
    )

    console.print(table)
    console.print()

    if report.missing_fields:
        missing_table = Table(title="Missing Fields", border_style="yellow")
        missing_table.add_column("Field", style="bold")
        missing_table.add_column("Certificates", justify="right")

        for name, count in sorted(report.missing_fields.items()):
            missing_table.add_row(name, str(count))

        console.print(missing_table)
        console.print()

    console.print(
        f"[bold]Total:[/] {report.certificates_exported} certificate(s) exported"
    )
    console.print()


# ─── Entry point (for python -m certsplit.cli) ────────────────────────────────


if __name__ == "__main__":
    cli()

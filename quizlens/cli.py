"""
CLI Interface
=============
Command-line interface for the screenshot scanner.

Usage:
    python -m quizlens scan <image_or_dir>... [options]
    python -m quizlens scan --clipboard
    python -m quizlens clean [text_file]
    python -m quizlens detect [text_file]
    python -m quizlens condition <image> <output.png>
    python -m quizlens info <image>
"""

from __future__ import annotations

import json
import sys
from typing import Optional

import click
from PIL import Image, UnidentifiedImageError
from rich.console import Console
from rich.markup import escape
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
from rich.text import Text

from . import __version__
from .conditioner import ConditionerOptions, ImageConditioner
from .engine import EngineConfig, ScanEngine
from .errors import InvalidConfigError, UnsupportedImageError
from .models import AnswerResult, BatchReport, ItemStatus, PageSegmentationMode
from .normalizer import normalize_text
from .output import OutputDocument, save_json
from .rule_engine import detect_answer
from .sources import collect_image_files, grab_clipboard_images, load_image

console = Console()


def _conditioner_options(upscale: float, contrast: float, threshold: float):
    return ConditionerOptions(
        upscale_factor=upscale,
        contrast_gain=contrast,
        binarize_threshold=threshold,
    )


def conditioner_flags(func):
    """Shared --upscale/--contrast/--threshold options."""
    func = click.option(
        "--threshold",
        default=175.0,
        type=float,
        show_default=True,
        help="Binarization cutoff on the 0-255 luma scale",
    )(func)
    func = click.option(
        "--contrast",
        default=1.25,
        type=float,
        show_default=True,
        help="Contrast gain around mid-gray (>1 increases contrast)",
    )(func)
    func = click.option(
        "--upscale",
        default=2.0,
        type=float,
        show_default=True,
        help="Linear upscale factor applied before binarization",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="quizlens")
def cli():
    """QuizLens: screenshot OCR with rule-based quiz answer detection."""
    pass


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True))
@click.option(
    "--clipboard",
    is_flag=True,
    default=False,
    help="Also scan images currently on the clipboard",
)
@click.option(
    "--lang", "-l",
    default="eng",
    show_default=True,
    help="OCR language code (e.g. eng, deu, eng+fra)",
)
@click.option(
    "--psm",
    default="auto",
    type=click.Choice([m.value for m in PageSegmentationMode]),
    show_default=True,
    help="Page segmentation mode",
)
@click.option(
    "--no-preprocess",
    is_flag=True,
    default=False,
    help="Send the original image to OCR without conditioning",
)
@click.option(
    "--no-detect",
    is_flag=True,
    default=False,
    help="Disable quiz answer detection",
)
@conditioner_flags
@click.option(
    "--parallel", "-j",
    default=1,
    type=int,
    help="Number of parallel workers (1 = sequential)",
)
@click.option(
    "--output", "-o",
    default=None,
    help="Write the combined text to this file",
)
@click.option(
    "--json-report",
    default=None,
    help="Write the full batch report as JSON to this file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only the JSON report to stdout (for programmatic use)",
)
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
def scan(
    paths: tuple[str, ...],
    clipboard: bool,
    lang: str,
    psm: str,
    no_preprocess: bool,
    no_detect: bool,
    upscale: float,
    contrast: float,
    threshold: float,
    parallel: int,
    output: Optional[str],
    json_report: Optional[str],
    json_output: bool,
    log_level: str,
    log_file: Optional[str],
):
    """OCR screenshots and detect quiz answers."""

    if json_output:
        # Keep stdout clean for JSON
        log_level = "ERROR"

    config = EngineConfig(
        language=lang,
        page_segmentation_mode=PageSegmentationMode(psm),
        preprocess=not no_preprocess,
        detect_answers=not no_detect,
        conditioner=_conditioner_options(upscale, contrast, threshold),
        parallel=parallel,
        log_level=log_level,
        log_file=log_file,
    )

    try:
        engine = ScanEngine(config)
    except InvalidConfigError as e:
        console.print(f"[red]Invalid configuration:[/] {e}")
        sys.exit(1)

    files = collect_image_files(paths)
    clipboard_images = grab_clipboard_images() if clipboard else []

    total = len(files) + len(clipboard_images)
    if total == 0:
        console.print("[yellow]No image files to process[/]")
        sys.exit(1)

    if json_output:
        report = _merge_reports(
            engine.process_paths(files),
            engine.process_images(clipboard_images),
        )
        print(json.dumps(
            report.model_dump(mode="json"),
            indent=2,
            ensure_ascii=False,
        ))
    else:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]QuizLens v{__version__}[/]\n"
                f"[dim]Scanning {total} image(s) | lang={lang} | psm={psm}[/]",
                border_style="cyan",
            )
        )
        console.print()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Scanning images...", total=total)

            def on_progress(completed: int, _total: int):
                progress.advance(task)

            report = _merge_reports(
                engine.process_paths(files, progress_callback=on_progress),
                engine.process_images(
                    clipboard_images, progress_callback=on_progress
                ),
            )

        _display_report(report)

    if output:
        saved = OutputDocument.from_report(report).save_text(output)
        if not json_output:
            if saved:
                console.print(f"[dim]Text saved to: {output}[/]")
            else:
                console.print("[yellow]No text recognized; nothing to save[/]")

    if json_report:
        save_json(report, json_report)
        if not json_output:
            console.print(f"[dim]JSON report saved to: {json_report}[/]")


@cli.command()
@click.argument("text_file", type=click.File("r", encoding="utf-8"), default="-")
def clean(text_file):
    """Normalize raw OCR text from a file (or stdin)."""
    click.echo(normalize_text(text_file.read()))


@cli.command()
@click.argument("text_file", type=click.File("r", encoding="utf-8"), default="-")
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Print the AnswerResult as JSON",
)
def detect(text_file, json_output: bool):
    """Run answer detection on text from a file (or stdin)."""
    result = detect_answer(normalize_text(text_file.read()))

    if json_output:
        click.echo(json.dumps(result.model_dump(mode="json"), indent=2))
        return

    _display_answer(result)


@cli.command()
@click.argument("image_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("output_path", type=click.Path(dir_okay=False))
@conditioner_flags
def condition(
    image_path: str,
    output_path: str,
    upscale: float,
    contrast: float,
    threshold: float,
):
    """Write the conditioned (binarized) image as PNG for inspection."""
    try:
        conditioner = ImageConditioner(
            _conditioner_options(upscale, contrast, threshold)
        )
        conditioned = conditioner.condition(load_image(image_path))
    except (InvalidConfigError, UnsupportedImageError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    conditioned.save(output_path, format="PNG")
    console.print(
        f"[green]✓[/] Wrote {conditioned.width}x{conditioned.height} "
        f"image to {output_path}"
    )


@cli.command()
@click.argument("image_path", type=click.Path(exists=True, dir_okay=False))
@conditioner_flags
def info(image_path: str, upscale: float, contrast: float, threshold: float):
    """Display image file information."""
    try:
        conditioner = ImageConditioner(
            _conditioner_options(upscale, contrast, threshold)
        )
    except InvalidConfigError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    try:
        with Image.open(image_path) as image:
            image_format, mode = image.format, image.mode
            width, height = image.size
    except (UnidentifiedImageError, OSError) as e:
        console.print(f"[red]Error:[/] Cannot read image: {e}")
        sys.exit(1)

    table = Table(title="Image Information", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("File", click.format_filename(image_path))
    table.add_row("Format", image_format or "(unknown)")
    table.add_row("Mode", mode)
    table.add_row("Size", f"{width}x{height}")

    scaled_w, scaled_h = conditioner.target_size(width, height)
    table.add_row("Conditioned Size", f"{scaled_w}x{scaled_h}")

    console.print()
    console.print(table)
    console.print()


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _merge_reports(*reports: BatchReport) -> BatchReport:
    return BatchReport(items=[item for r in reports for item in r.items])


def _display_report(report: BatchReport):
    """Display per-image results, the answer and the combined text."""
    console.print()

    table = Table(title="Scan Summary", border_style="cyan")
    table.add_column("Image", style="bold")
    table.add_column("Size", justify="right")
    table.add_column("Chars", justify="right")
    table.add_column("Answer")
    table.add_column("Status", justify="center")

    for item in report.items:
        if item.status == ItemStatus.OK:
            status = "[green]✓[/]"
        else:
            status = "[red]✗ FAILED[/]"
        table.add_row(
            escape(item.source),
            f"{item.width}x{item.height}" if item.width else "-",
            str(len(item.cleaned_text)),
            escape(item.answer.answer) if item.answer else "-",
            status,
        )

    console.print(table)

    for item in report.items:
        if item.error:
            console.print(f"[red]{escape(item.source)}:[/] {escape(item.error)}")

    console.print()
    _display_answer(report.latest_answer or AnswerResult.no_match())

    if report.document:
        console.print(Panel(Text(report.document), title="Text", border_style="dim"))
        console.print()

    console.print(
        f"[bold]Total:[/] {len(report.items)} images, "
        f"{report.succeeded} ok, {report.failed} failed, "
        f"{report.answered} answered"
    )
    console.print()


def _display_answer(result: AnswerResult):
    if not result:
        console.print(
            Panel.fit("[dim]No confident match[/]", title="Answer", border_style="yellow")
        )
        return

    console.print(
        Panel.fit(
            f"[bold green]{escape(result.answer)}[/]\n[dim]{escape(result.rationale)}[/]",
            title="Answer",
            border_style="green",
        )
    )


if __name__ == "__main__":
    cli()

"""Main CLI entry point."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from page_theme.colors import to_hex
from page_theme.config import Settings
from page_theme.pdf import DecodeError, PageBitmap, PageUnavailable, PageUnavailableError, rasterize
from page_theme.recolor import recolor_batch, recolor_image_bytes
from page_theme.themes import PRESETS, Theme, get_preset

console = Console(stderr=True)
load_dotenv()

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif"}
FILE_EXTENSIONS = {"jpeg": ".jpg", "png": ".png"}


def _list_themes(ctx: click.Context, _param, value: bool) -> None:
    if not value or ctx.resilient_parsing:
        return
    table = Table(title="Themes")
    table.add_column("Name")
    table.add_column("Background")
    table.add_column("Foreground")
    table.add_column("Accent")
    for name, theme in PRESETS.items():
        table.add_row(
            name,
            to_hex(theme.background),
            to_hex(theme.foreground),
            to_hex(theme.accent) if theme.accent else "",
        )
    Console().print(table)
    ctx.exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output-dir", "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory the page images are written to.",
)
@click.option(
    "--theme", "-t",
    default=None,
    help="Preset theme name (see --list-themes).",
)
@click.option("--background", "-b", default=None, help="Theme background as #rrggbb.")
@click.option("--foreground", "-f", default=None, help="Theme text colour as #rrggbb.")
@click.option(
    "--scale",
    type=float,
    default=None,
    help="Render resolution multiplier over the native page size. [default: 1.5]",
)
@click.option("--quality", type=float, default=None, help="JPEG quality in (0, 1]. [default: 0.8]")
@click.option("--max-pages", type=int, default=None, help="Maximum pages to render. [default: 50]")
@click.option(
    "--threshold",
    type=float,
    default=None,
    help="Saturation above which pixels keep their colour. [default: 0.18]",
)
@click.option(
    "--strict/--no-strict",
    default=False,
    show_default=True,
    help="Fail if any page cannot be rendered instead of skipping it.",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.option(
    "--list-themes",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=_list_themes,
    help="List the preset themes and exit.",
)
@click.version_option(package_name="page-theme")
def main(
    input_path, output_dir, theme, background, foreground,
    scale, quality, max_pages, threshold, strict, verbose,
):
    """Render a PDF to page images and optionally repaint them into a theme.

    INPUT_PATH can be a .pdf (rendered, then recolored if a theme is given)
    or a .png, .jpg, .jpeg, .webp or .gif (recolored; a theme is required).
    """
    _configure_logging(verbose)

    try:
        settings = Settings.from_env(
            scale=scale,
            quality=quality,
            max_pages=max_pages,
            chromatic_threshold=threshold,
        )
        chosen = _resolve_theme(theme, background, foreground)
    except (RuntimeError, ValueError, KeyError) as e:
        console.print(f"[red]Error:[/red] {e.args[0] if e.args else e}")
        sys.exit(1)

    suffix = input_path.suffix.lower()
    output_dir.mkdir(parents=True, exist_ok=True)

    if suffix == ".pdf":
        _process_pdf(input_path, output_dir, settings, chosen, strict)
    elif suffix in IMAGE_EXTENSIONS:
        if chosen is None:
            console.print("[red]Error:[/red] Images need a theme (--theme or --background/--foreground).")
            sys.exit(1)
        raw = input_path.read_bytes()
        out = recolor_image_bytes(
            raw, chosen.background, chosen.foreground,
            chromatic_threshold=settings.chromatic_threshold,
        )
        if out is raw:
            console.print("[yellow]Original appearance retained (image could not be decoded).[/yellow]")
            target = output_dir / input_path.name
        else:
            target = output_dir / f"{input_path.stem}_themed.png"
        target.write_bytes(out)
        console.print(f"[green]Written to {target}[/green]")
    else:
        console.print(f"[red]Unsupported file type:[/red] {suffix}")
        sys.exit(1)


def _resolve_theme(
    name: Optional[str], background: Optional[str], foreground: Optional[str]
) -> Optional[Theme]:
    if name and (background or foreground):
        raise ValueError("Use either --theme or --background/--foreground, not both.")
    if name:
        return get_preset(name)
    if background or foreground:
        if not (background and foreground):
            raise ValueError("--background and --foreground must be given together.")
        return Theme.from_hex(background, foreground)
    return None


def _process_pdf(
    input_path: Path,
    output_dir: Path,
    settings: Settings,
    theme: Optional[Theme],
    strict: bool,
) -> None:
    try:
        with console.status("[cyan]Rendering PDF pages..."):
            slots = rasterize(
                input_path.read_bytes(),
                scale=settings.scale,
                quality=settings.quality,
                max_pages=settings.max_pages,
                strict=strict,
            )
    except DecodeError as e:
        console.print(f"[red]Error:[/red] Could not preview this file. {e}")
        sys.exit(1)
    except PageUnavailableError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    rendered = sum(isinstance(s, PageBitmap) for s in slots)
    console.print(f"[dim]{rendered} of {len(slots)} page(s) rendered[/dim]")

    if theme is not None:
        with console.status(f"[cyan]Recoloring with {theme.describe()}..."):
            slots = recolor_batch(
                slots, theme,
                max_workers=settings.workers,
                chromatic_threshold=settings.chromatic_threshold,
            )

    for slot in slots:
        if isinstance(slot, PageUnavailable):
            console.print(f"[yellow]Page {slot.index}: unavailable, skipped[/yellow]")
            continue
        if getattr(slot, "degraded", False):
            console.print(f"[yellow]Page {slot.index}: original appearance retained[/yellow]")
        ext = FILE_EXTENSIONS.get(slot.format, ".img")
        (output_dir / f"page_{slot.index:03d}{ext}").write_bytes(slot.data)

    console.print(f"[green]Written to {output_dir}[/green]")

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import typer

from phototag.config import build_render_config, load_config, write_default_config
from phototag.errors import PhotoTagError
from phototag.generator import PhotoGenerator
from phototag.models import Photo

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Tagged photo renderer.")
LOGGER = logging.getLogger("phototag")


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _resolve_output_format(fmt: str) -> tuple[str, str]:
    f = fmt.lower()
    if f in {"jpeg", "jpg"}:
        return "jpg", "JPEG"
    if f == "png":
        return "png", "PNG"
    raise ValueError(f"output format must be jpeg/jpg or png, got: {fmt!r}")


def _load_photo(path: Path) -> Photo:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"photo file is not a JSON object: {path}")
    return Photo.from_dict(data)


@app.command()
def render(
    photo_path: Path = typer.Argument(..., exists=True, dir_okay=False, resolve_path=True, help="Photo JSON file."),
    out: Path | None = typer.Option(None, "--out", help="Output image path (default: next to the JSON file)."),
    retina: bool = typer.Option(False, "--retina/--standard", help="Render at double pixel density."),
    config_path: Path | None = typer.Option(None, "--config", help="YAML config file."),
    output_format: str = typer.Option("jpeg", "--format", help="Output format: jpeg|png"),
    quality: int | None = typer.Option(None, "--quality", min=1, max=100),
    as_base64: bool = typer.Option(False, "--base64", help="Print base64 JPEG data instead of writing a file."),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Render the tags of a photo JSON file onto its image."""
    _setup_logging(log_level)
    try:
        out_ext, pil_format = _resolve_output_format(output_format)
        config = build_render_config(load_config(config_path))
        photo = _load_photo(photo_path)
    except (ValueError, OSError) as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(1)

    generator = PhotoGenerator(photo, config)
    try:
        asyncio.run(generator.render(retina=retina))
    except PhotoTagError as exc:
        typer.secho(f"render failed: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)

    if as_base64:
        typer.echo(generator.get_image_data())
        return

    target = out or photo_path.with_name(f"{photo_path.stem}__tagged.{out_ext}")
    generator.save(target, pil_format, quality)
    LOGGER.info("saved %s", target)
    typer.echo(str(target))


@app.command("init-config")
def init_config(
    path: Path | None = typer.Option(None, "--path", help="Where to write the config file."),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config file."),
) -> None:
    written = write_default_config(path, force=force)
    typer.echo(f"Config initialized: {written}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

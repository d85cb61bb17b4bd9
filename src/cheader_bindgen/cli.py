"""CLI for cheader-bindgen.

Commands:
- translate: Emit binding declarations for a preprocessed header
- catalog: Dump the type catalog as JSON
- tokens: Show how a header splits into statements and tokens
- init-config: Write a default configuration file
- targets: List available output targets
"""

import json
import logging
import sys
from pathlib import Path

import click

from .config import (
    CONFIG_FILENAME,
    Config,
    ConfigError,
    get_target_info,
    load_config,
    save_config,
)
from .diagnostics import Diagnostics, SourceReadError
from .emitters import EMITTERS
from .logging import setup_logging
from .parser.segmenter import StatementSegmenter
from .parser.tokenizer import Tokenizer
from .pipeline import build_catalog, translate as run_translate
from .source import read_source


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log handled statements and config details")
@click.option("--json-logs", is_flag=True, help="Write logs as JSON lines")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Config file (default: {CONFIG_FILENAME} next to the header)",
)
@click.pass_context
def main(ctx, verbose: bool, json_logs: bool, config_path: Path | None):
    """cheader-bindgen - extract C type declarations and emit bindings."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    setup_logging(level=logging.DEBUG if verbose else logging.WARNING, json_format=json_logs)


def _load_config(ctx, header: Path) -> Config:
    try:
        return load_config(ctx.obj["config_path"], search_dir=header.parent)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _write_output(text: str, output: Path | None) -> None:
    if output is None:
        click.echo(text, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"Wrote {output}", err=True)


def _summarize(diagnostics: Diagnostics) -> None:
    if not diagnostics.items:
        return
    counts = ", ".join(f"{n} {kind}" for kind, n in diagnostics.counts().items())
    label = click.style("Diagnostics:", fg="yellow")
    click.echo(f"{label} {counts}", err=True)


@main.command()
@click.argument("header", type=click.Path(path_type=Path))
@click.option("--target", "-t", type=click.Choice(sorted(EMITTERS)), help="Output target")
@click.option(
    "--output", "-o", type=click.Path(path_type=Path), help="Write to file instead of stdout"
)
@click.pass_context
def translate(ctx, header: Path, target: str | None, output: Path | None):
    """Emit binding declarations for a preprocessed header."""
    config = _load_config(ctx, header)
    if target:
        config.output.target = target

    try:
        result = run_translate(header, config)
    except SourceReadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    _write_output(result.output, output)
    _summarize(result.diagnostics)


@main.command()
@click.argument("header", type=click.Path(path_type=Path))
@click.option(
    "--output", "-o", type=click.Path(path_type=Path), help="Write to file instead of stdout"
)
@click.pass_context
def catalog(ctx, header: Path, output: Path | None):
    """Dump the type catalog of a header as JSON."""
    config = _load_config(ctx, header)
    diagnostics = Diagnostics()

    try:
        source = read_source(header, encoding=config.parser.encoding)
    except SourceReadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    type_catalog = build_catalog(source, config, diagnostics)
    _write_output(json.dumps(type_catalog.to_dict(), indent=2) + "\n", output)
    _summarize(diagnostics)


@main.command()
@click.argument("header", type=click.Path(path_type=Path))
@click.pass_context
def tokens(ctx, header: Path):
    """Show each top-level statement as ~token~ sequences."""
    config = _load_config(ctx, header)
    diagnostics = Diagnostics()

    try:
        source = read_source(header, encoding=config.parser.encoding)
    except SourceReadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    segmenter = StatementSegmenter(
        Tokenizer(source.text, line_map=source.line_map),
        diagnostics,
        directive_markers=config.parser.directive_markers,
    )
    for statement in segmenter:
        line = click.style(f"{statement.line:>5}", dim=True)
        click.echo(f"{line} " + "".join(f"~{text}~" for text in statement.texts))

    _summarize(diagnostics)


@main.command("init-config")
@click.argument("path", type=click.Path(path_type=Path), default=CONFIG_FILENAME)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def init_config(path: Path, force: bool):
    """Write the default configuration to PATH."""
    if path.exists() and not force:
        click.echo(f"Error: {path} already exists (use --force to overwrite)", err=True)
        sys.exit(1)
    save_config(Config(), path)
    click.echo(f"Wrote default configuration to {path}")


@main.command()
def targets():
    """List available output targets."""
    click.echo(get_target_info())


if __name__ == "__main__":
    main()

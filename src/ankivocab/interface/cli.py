"""ankivocab CLI: import, export and inspect vocabulary mastery data."""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any

import typer

from ankivocab.application.config import resolve_config
from ankivocab.application.factory import get_data_service
from ankivocab.domain.constants import APKG_SUFFIX, TABULAR_SUFFIXES, TIERS
from ankivocab.domain.errors import AnkiVocabError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="ankivocab: Anki deck import/export and vocabulary mastery tracking.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage ankivocab configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)
_file_handler: logging.FileHandler | None = None


def _apply_verbosity(verbose: int) -> None:
    level = logging.WARNING if verbose <= 0 else logging.INFO if verbose == 1 else logging.DEBUG
    logging.getLogger().setLevel(level)


def _attach_log_file(log_dir: Path) -> None:
    global _file_handler
    path = log_dir / "ankivocab.log"
    if _file_handler is not None and _file_handler.baseFilename == str(path):
        return
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        logger.warning(f"File logging disabled, cannot open {path}: {e}")
        return
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    if _file_handler is not None:
        root.removeHandler(_file_handler)
        _file_handler.close()
    root.addHandler(handler)
    _file_handler = handler


def _to_json(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    data_dir: Annotated[
        Path | None, typer.Option(help="Directory holding the persisted store.")
    ] = None,
):
    """Global settings for ankivocab."""
    ctx.ensure_object(dict)
    overrides: dict[str, Any] = {"data_dir": data_dir}
    if verbose:
        overrides["verbose"] = verbose
    ctx.obj["overrides"] = overrides


def _load_service(ctx: typer.Context):
    overrides = (ctx.obj or {}).get("overrides", {})
    config = resolve_config(overrides)
    _apply_verbosity(config.verbose)
    _attach_log_file(config.log_dir)
    return config, asyncio.run(get_data_service(config))


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


@app.command("import")
def import_deck(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="An .apkg archive or a .txt/.tsv/.csv card list.")],
    tier: Annotated[
        str | None,
        typer.Option(help=f"Manual mastery tier for card lists: {', '.join(TIERS)}."),
    ] = None,
):
    """[bold green]Import[/bold green] an Anki deck or a plain-text card list."""
    if not path.exists():
        typer.echo(f"File not found: {path}", err=True)
        raise typer.Exit(2)

    config, service = _load_service(ctx)
    suffix = path.suffix.lower()

    if suffix == APKG_SUFFIX:
        result = asyncio.run(service.import_apkg(path.read_bytes(), path.name))
    elif suffix in TABULAR_SUFFIXES:
        level = tier or config.default_tier
        result = asyncio.run(service.import_tabular(path.read_bytes(), path.name, level))
    else:
        typer.echo(
            f"Unsupported file type '{suffix}'. "
            f"Use {APKG_SUFFIX} or {', '.join(TABULAR_SUFFIXES)}.",
            err=True,
        )
        raise typer.Exit(2)

    if not result.success:
        typer.echo(f"Import failed ({result.error_kind}): {result.error_message}", err=True)
        raise typer.Exit(1)

    typer.echo(
        f"Imported '{result.deck_name}': {result.card_count} cards, "
        f"{result.vocabulary_count} words"
    )
    if result.skipped_rows:
        typer.echo(f"Skipped {result.skipped_rows} unreadable rows")


@app.command("export")
def export_deck(
    ctx: typer.Context,
    terms_file: Annotated[
        Path, typer.Argument(help="YAML term list, or a .txt/.tsv/.csv of term,counterpart.")
    ],
    out: Annotated[Path, typer.Option("--out", "-o", help="Where to write the .apkg.")],
    deck: Annotated[str | None, typer.Option(help="Deck name inside the archive.")] = None,
):
    """[bold green]Export[/bold green] a term list as an Anki .apkg deck."""
    from ankivocab.application.term_sources import TermFileError, load_terms

    config, service = _load_service(ctx)
    try:
        terms = load_terms(terms_file)
    except (OSError, TermFileError, AnkiVocabError) as e:
        typer.echo(f"Could not read terms: {e}", err=True)
        raise typer.Exit(2)

    deck_name = deck or config.export_deck_name
    try:
        data = service.export_apkg(deck_name, terms)
    except AnkiVocabError as e:
        typer.echo(f"Export failed: {e}", err=True)
        raise typer.Exit(1)

    out.write_bytes(data)
    typer.echo(f"Wrote {len(terms)} terms to {out} (deck '{deck_name}')")


# ---------------------------------------------------------------------------
# Inspection
# ---------------------------------------------------------------------------


@app.command()
def stats(ctx: typer.Context):
    """Show deck, card and mastery tier counts."""
    _, service = _load_service(ctx)
    typer.echo(_to_json(asdict(service.get_statistics())))


@app.command()
def guidance(ctx: typer.Context):
    """Print the words in each mastery tier as JSON."""
    _, service = _load_service(ctx)
    typer.echo(_to_json(asdict(service.get_vocabulary_guidance())))


@app.command()
def decks(ctx: typer.Context):
    """List imported decks."""
    _, service = _load_service(ctx)
    summaries = service.list_decks()
    if not summaries:
        typer.echo("No decks imported.")
        return
    for d in summaries:
        tier = f" [manual: {d.manual_mastery_level}]" if d.manual_mastery_level else ""
        typer.echo(f"{d.name}: {d.card_count} cards, {d.vocabulary_count} words{tier}")


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


@app.command()
def remove(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Deck name as shown by 'decks'.")],
):
    """Remove an imported deck and reclassify the remaining vocabulary."""
    _, service = _load_service(ctx)
    if not any(d.name == name for d in service.store.decks):
        typer.echo(f"No deck named '{name}'", err=True)
        raise typer.Exit(1)
    try:
        store = asyncio.run(service.remove_deck(name))
    except AnkiVocabError as e:
        typer.echo(f"Remove failed: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Removed '{name}'. {len(store.decks)} decks, {store.total_cards} cards remain.")


@app.command()
def clear(
    ctx: typer.Context,
    force: Annotated[bool, typer.Option("--force", "-f", help="Skip confirmation.")] = False,
):
    """Delete all imported decks and vocabulary."""
    if not force:
        typer.confirm("Delete all imported Anki data?", abort=True)
    _, service = _load_service(ctx)
    try:
        asyncio.run(service.clear_all_data())
    except AnkiVocabError as e:
        typer.echo(f"Clear failed: {e}", err=True)
        raise typer.Exit(1)
    typer.echo("All Anki data cleared.")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on.")] = 8777,
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("ankivocab.server:app", host=host, port=port)


@app.command()
def logs(ctx: typer.Context):
    """Print the log file location."""
    config = resolve_config((ctx.obj or {}).get("overrides", {}))
    typer.echo(str(config.log_dir / "ankivocab.log"))


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


if __name__ == "__main__":
    app()

"""sectionsr CLI: review queues, ratings and configuration."""

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated

import typer

from sectionsr.application.config import resolve_config
from sectionsr.application.review_service import ItemNotFoundError
from sectionsr.domain.constants import ALL_RATINGS, NEVER_DUE
from sectionsr.domain.models import QueueEntry, SectionState

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="sectionsr: spaced-repetition scheduling for study sections.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage sectionsr configuration.")
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


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _service(ctx: typer.Context):
    from sectionsr.application.factory import get_review_service

    config = resolve_config(ctx.obj or {})
    return get_review_service(config), config


def _format_ts(ms: int) -> str:
    if ms >= NEVER_DUE:
        return "never"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat(timespec="seconds")


def _entry_dict(entry: QueueEntry) -> dict:
    return {
        "item_id": entry.item_id,
        "section": entry.section_key,
        "label": entry.section_label,
        "due": entry.due,
        "phase": entry.phase,
        "category": entry.category,
    }


def _echo_entries(entries: list[QueueEntry], json_output: bool) -> None:
    if json_output:
        typer.echo(json.dumps([_entry_dict(e) for e in entries], indent=2))
        return
    if not entries:
        typer.secho("Nothing to review.", fg="yellow")
        return
    for entry in entries:
        typer.echo(
            f"{entry.item_id}:{entry.section_key}  [{entry.category}/{entry.phase}]"
            f"  due {_format_ts(entry.due)}"
        )


def _echo_state(state: SectionState | None, json_output: bool) -> None:
    if state is None:
        typer.secho("No state.", fg="yellow")
        return
    if json_output:
        typer.echo(json.dumps(state.to_dict(), indent=2))
        return
    typer.echo(
        f"phase={state.phase} interval={state.interval}m ease={state.ease:.2f} "
        f"lapses={state.lapses} due={_format_ts(state.due_at)}"
    )


def _run(coro):
    try:
        return asyncio.run(coro)
    except ItemNotFoundError as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from e


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_dir: Annotated[
        Path | None, typer.Option("--data-dir", help="Directory holding items and settings.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for sectionsr."""
    ctx.ensure_object(dict)
    if data_dir is not None:
        ctx.obj["data_dir"] = data_dir
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


# ---------------------------------------------------------------------------
# Queue commands
# ---------------------------------------------------------------------------


@app.command()
def due(
    ctx: typer.Context,
    mode: Annotated[
        str | None,
        typer.Option(help="Queue order: prioritized by category, or mixed (shuffled)."),
    ] = None,
    priority: Annotated[
        list[str] | None,
        typer.Option("--priority", "-p", help="Category priority (repeat): review, learning, new."),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """[bold green]List[/bold green] sections due for review, in session order."""
    service, config = _service(ctx)

    ordering = None
    if mode or priority or config.order_mode:
        ordering = {"mode": mode or config.order_mode, "priorities": priority or []}

    entries = _run(service.due_queue(ordering))
    _echo_entries(entries, json_output)


@app.command()
def upcoming(
    ctx: typer.Context,
    limit: Annotated[int | None, typer.Option(help="Maximum entries (0 = no limit).")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List sections scheduled in the future, soonest first."""
    service, config = _service(ctx)
    entries = _run(service.upcoming_queue(config.upcoming_limit if limit is None else limit))
    _echo_entries(entries, json_output)


# ---------------------------------------------------------------------------
# Rating commands
# ---------------------------------------------------------------------------


@app.command()
def rate(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    section: Annotated[str, typer.Argument(help="Section key, e.g. 'etiology'.")],
    rating: Annotated[str, typer.Argument(help="again, hard, good, easy, or retire.")],
    preview: Annotated[
        bool, typer.Option("--preview", help="Show the outcome without saving.")
    ] = False,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Rate a section and reschedule it."""
    if rating not in ALL_RATINGS:
        typer.secho(f"Unknown rating '{rating}'. Use one of: {', '.join(ALL_RATINGS)}", fg="red")
        raise typer.Exit(2)
    service, _ = _service(ctx)
    if preview:
        state = _run(service.preview(item_id, section, rating))
    else:
        state = _run(service.rate(item_id, section, rating))
    _echo_state(state, json_output)


@app.command("preview")
def preview_all(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    section: Annotated[str, typer.Argument(help="Section key.")],
):
    """Show what every rating would do to a section."""
    service, _ = _service(ctx)
    projections = _run(service.preview_all(item_id, section))
    typer.echo(json.dumps({r: s.to_dict() for r, s in projections.items()}, indent=2))


@app.command()
def suspend(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    section: Annotated[str, typer.Argument(help="Section key.")],
):
    """Suspend a section until resumed."""
    service, _ = _service(ctx)
    _echo_state(_run(service.suspend(item_id, section)), False)


@app.command()
def resume(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Item id.")],
    section: Annotated[str, typer.Argument(help="Section key.")],
):
    """Resume a suspended section."""
    service, _ = _service(ctx)
    _echo_state(_run(service.resume(item_id, section)), False)


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8778,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("sectionsr.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = resolve_config(ctx.obj or {})
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))


@config_app.command("review")
def config_review(ctx: typer.Context):
    """Display the normalized review scheduling parameters."""
    service, _ = _service(ctx)
    review_config = _run(service.config_cache.get())
    typer.echo(json.dumps(review_config.to_dict(), indent=2))

"""Command-line interface for nodekeeper."""

import shutil
import sqlite3
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from nodekeeper.config import DB_FILENAME, LOG_FILENAME, Config, load_config, resolve_storage_dir
from nodekeeper.core.database.schema import connect
from nodekeeper.core.editor import ExternalEditor
from nodekeeper.core.pattern.ast import Condition, format_condition
from nodekeeper.core.pattern.parser import parse_filter
from nodekeeper.core.query.lister import list_nodes
from nodekeeper.core.write import store
from nodekeeper.errors import ConfigError, EmptyContent, InvalidNode, NodesError, PatternSyntaxError
from nodekeeper.logging_config import configure_logging
from nodekeeper.models.node import ArchiveFilter, ListArgs, Order, SortKey
from nodekeeper.summary import node_summary

app = typer.Typer(help="Manage your notes from the command line.")

# Exit codes
_USER_ERROR = 1
_BACKEND_ERROR = 2


@dataclass
class _Options:
    verbose: bool = False
    storage: str | None = None
    local: bool = False


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    storage: Annotated[
        str | None,
        typer.Option("--storage", "-s", help="Name of the storage to use"),
    ] = None,
    local: bool = typer.Option(
        False, "--local", "-l", help="Use the nodes.db in this directory or a parent"
    ),
) -> None:
    configure_logging(verbose=verbose)
    if local and storage:
        logger.error("--local and --storage cannot be combined")
        raise typer.Exit(_USER_ERROR)
    options = _Options(verbose=verbose, storage=storage, local=local)
    ctx.obj = options
    if ctx.invoked_subcommand is None:
        _run_select(options, pattern=None)


def _load_config() -> Config:
    try:
        return load_config()
    except ConfigError as e:
        logger.error("{}", e)
        raise typer.Exit(_USER_ERROR) from e


def _storage_dir(options: _Options) -> Path:
    config = _load_config()
    try:
        folder = resolve_storage_dir(config, storage=options.storage, local=options.local)
    except ConfigError as e:
        logger.error("{}", e)
        raise typer.Exit(_USER_ERROR) from e
    logger.debug("Using storage {}", folder)
    return folder


def _open_db(options: _Options) -> sqlite3.Connection:
    """Open the node database of the chosen storage, creating it if needed."""
    return connect(_storage_dir(options) / DB_FILENAME)


def _editor() -> ExternalEditor:
    return ExternalEditor(_load_config().editor_command())


def _parse_pattern(text: str | None) -> Condition | None:
    try:
        return parse_filter(text)
    except PatternSyntaxError as e:
        logger.error("Invalid pattern: {}", e)
        typer.echo(f"  {text}", err=True)
        typer.echo(f"  {' ' * e.position}^", err=True)
        raise typer.Exit(_USER_ERROR) from e


def _fail(e: NodesError) -> typer.Exit:
    logger.error("{}", e)
    code = _USER_ERROR if isinstance(e, InvalidNode | EmptyContent | PatternSyntaxError) else _BACKEND_ERROR
    return typer.Exit(code)


def _gather_ids(ids: list[int] | None) -> list[int]:
    """Return ``ids``, or read one id per line from stdin when none were given."""
    if ids:
        return ids
    gathered: list[int] = []
    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        try:
            gathered.append(int(line))
        except ValueError:
            logger.warning("Invalid node id {!r}", line)
    return gathered


def _split_tags(values: list[str] | None) -> list[str]:
    return [tag for value in values or [] for tag in value.split(",") if tag.strip()]


@app.command()
def create(
    ctx: typer.Context,
    tags: Annotated[
        list[str] | None,
        typer.Option("--tag", "-t", help="Tag the note (repeat or separate with commas)"),
    ] = None,
    content: Annotated[
        str | None,
        typer.Option("--content", "-c", help="Use this content instead of opening an editor"),
    ] = None,
) -> None:
    """Create a new note and print its id."""
    conn = _open_db(ctx.obj)
    try:
        if content is None:
            node_id = store.create_with_editor(conn, _editor(), _split_tags(tags))
        else:
            node_id = store.create_node(conn, content, _split_tags(tags))
        typer.echo(node_id)
    except NodesError as e:
        raise _fail(e) from e
    finally:
        conn.close()


@app.command(name="rm")
def remove(
    ctx: typer.Context,
    ids: Annotated[
        list[int] | None,
        typer.Argument(help="Ids to delete; read from stdin when omitted"),
    ] = None,
) -> None:
    """Delete notes by id."""
    node_ids = _gather_ids(ids)
    if not node_ids:
        typer.echo("No valid ids given")
        raise typer.Exit(_USER_ERROR)

    conn = _open_db(ctx.obj)
    try:
        missing = set(node_ids) - store.existing_ids(conn, node_ids)
        count = store.delete_nodes(conn, node_ids)
    except NodesError as e:
        raise _fail(e) from e
    finally:
        conn.close()

    logger.info("Deleted {} nodes", count)
    if missing:
        logger.error("No such nodes: {}", ", ".join(str(i) for i in sorted(missing)))
        raise typer.Exit(_USER_ERROR)


@app.command(name="ls")
def list_cmd(
    ctx: typer.Context,
    pattern: Annotated[str | None, typer.Argument(help="Only list notes matching this pattern")] = None,
    num: int = typer.Option(10, "--num", "-n", min=0, help="Maximum number of notes to show"),
    lines: Annotated[
        int | None,
        typer.Option("--lines", "-l", min=1, help="How many lines to show per note"),
    ] = None,
    full: bool = typer.Option(False, "--full", "-f", help="Print full notes"),
    reverse: bool = typer.Option(
        False, "--rev", "-R", help="Reverse the order before counting (default: descending)"
    ),
    reverse_display: bool = typer.Option(
        False, "--revdisplay", "-r", help="Reverse the display order (default: ascending)"
    ),
    archived: bool = typer.Option(False, "--archived", "-a", help="Show only archived notes"),
    show_all: bool = typer.Option(False, "--all", help="Show archived and active notes"),
    sort: SortKey = typer.Option(SortKey.ID, "--sort", help="Sort key"),
    debug_condition: bool = typer.Option(False, "--debug-condition", "-d", hidden=True),
) -> None:
    """List notes."""
    if full and lines is not None:
        logger.error("--full and --lines cannot be combined")
        raise typer.Exit(_USER_ERROR)
    condition = _parse_pattern(pattern)
    if debug_condition and condition is not None:
        typer.echo(format_condition(condition))

    args = ListArgs(
        preorder=Order.ASC if reverse else Order.DESC,
        postorder=Order.DESC if reverse_display else Order.ASC,
        count=num,
        pattern=condition,
        archived=_archive_filter(archived=archived, show_all=show_all),
        sort=sort,
    )
    max_lines = None if full else (lines or 1)
    width = shutil.get_terminal_size().columns

    conn = _open_db(ctx.obj)
    try:
        list_nodes(
            conn,
            args,
            lambda note: typer.echo(f"{note.id}:\t{node_summary(note.content, max_lines, width)}"),
        )
    except NodesError as e:
        raise _fail(e) from e
    finally:
        conn.close()


def _archive_filter(*, archived: bool, show_all: bool) -> ArchiveFilter:
    if show_all:
        return ArchiveFilter.ALL
    return ArchiveFilter.ARCHIVED if archived else ArchiveFilter.ACTIVE


@app.command()
def show(ctx: typer.Context, node_id: int = typer.Argument(..., help="Id of the note")) -> None:
    """Print a note."""
    conn = _open_db(ctx.obj)
    try:
        typer.echo(store.get_content(conn, node_id))
        store.mark_viewed(conn, node_id)
    except NodesError as e:
        raise _fail(e) from e
    finally:
        conn.close()


@app.command()
def edit(ctx: typer.Context, node_id: int = typer.Argument(..., help="Id of the note")) -> None:
    """Edit a note in the external editor."""
    conn = _open_db(ctx.obj)
    try:
        store.edit_node(conn, node_id, _editor())
    except NodesError as e:
        raise _fail(e) from e
    finally:
        conn.close()


@app.command()
def tag(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Tag to add (comma-separated for several)"),
    ids: Annotated[list[int] | None, typer.Argument(help="Note ids; stdin when omitted")] = None,
) -> None:
    """Add tags to notes."""
    _change_tags(ctx.obj, name, ids, add=True)


@app.command()
def untag(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Tag to remove (comma-separated for several)"),
    ids: Annotated[list[int] | None, typer.Argument(help="Note ids; stdin when omitted")] = None,
) -> None:
    """Remove tags from notes."""
    _change_tags(ctx.obj, name, ids, add=False)


def _change_tags(options: _Options, name: str, ids: list[int] | None, *, add: bool) -> None:
    node_ids = _gather_ids(ids)
    tags = _split_tags([name])
    if not node_ids or not tags:
        typer.echo("No valid ids or tags given")
        raise typer.Exit(_USER_ERROR)

    conn = _open_db(options)
    try:
        if add:
            store.add_tags(conn, node_ids, tags)
        else:
            store.remove_tags(conn, node_ids, tags)
    except NodesError as e:
        raise _fail(e) from e
    finally:
        conn.close()


@app.command()
def archive(
    ctx: typer.Context,
    ids: Annotated[list[int] | None, typer.Argument(help="Note ids; stdin when omitted")] = None,
) -> None:
    """Toggle the archived flag of notes."""
    node_ids = _gather_ids(ids)
    if not node_ids:
        typer.echo("No valid ids given")
        raise typer.Exit(_USER_ERROR)

    conn = _open_db(ctx.obj)
    try:
        store.toggle_archived(conn, node_ids)
    except NodesError as e:
        raise _fail(e) from e
    finally:
        conn.close()


@app.command()
def select(
    ctx: typer.Context,
    pattern: Annotated[str | None, typer.Argument(help="Only list notes matching this pattern")] = None,
    num: Annotated[
        int | None,
        typer.Option("--num", "-n", min=0, help="Maximum number of notes to show"),
    ] = None,
    archived: bool = typer.Option(False, "--archived", "-a", help="Show only archived notes"),
    show_all: bool = typer.Option(False, "--all", help="Show archived and active notes"),
    reverse: bool = typer.Option(False, "--rev", "-r", help="Descending order (default: ascending)"),
    sort: SortKey = typer.Option(SortKey.ID, "--sort", help="Sort key"),
) -> None:
    """Browse notes interactively, then print the selected ids."""
    _run_select(
        ctx.obj,
        pattern=pattern,
        num=num,
        archived=_archive_filter(archived=archived, show_all=show_all),
        reverse=reverse,
        sort=sort,
    )


def _run_select(
    options: _Options,
    *,
    pattern: str | None,
    num: int | None = None,
    archived: ArchiveFilter = ArchiveFilter.ACTIVE,
    reverse: bool = False,
    sort: SortKey = SortKey.ID,
) -> None:
    from nodekeeper.browser.session import run_browser

    order = Order.DESC if reverse else Order.ASC
    args = ListArgs(
        preorder=order,
        postorder=order,
        count=num,
        pattern=_parse_pattern(pattern),
        archived=archived,
        sort=sort,
    )
    editor = _editor()
    folder = _storage_dir(options)
    conn = connect(folder / DB_FILENAME)
    try:
        configure_logging(verbose=options.verbose, log_file=folder / LOG_FILENAME)
        selected = run_browser(conn, args, editor, pattern_text=pattern or "")
    except NodesError as e:
        raise _fail(e) from e
    finally:
        conn.close()
        configure_logging(verbose=options.verbose)

    for node_id in selected:
        typer.echo(node_id)


# Short aliases.
app.command(name="c", hidden=True)(create)
app.command(name="s", hidden=True)(show)
app.command(name="e", hidden=True)(edit)

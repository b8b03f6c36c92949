"""Command-line interface for dotodo.

Features:
- List todo/done items from the nearest .todo file
- Add items from arguments or piped input
- Mark items done (moved to top) or reopen them (moved to bottom)
- Open the store in $EDITOR
"""

import json
import logging
import os
import shlex
import subprocess
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import click
from rich.console import Console
from rich.markup import escape

from dotodo import __version__
from dotodo.errors import TodoError
from dotodo.lib import (
    append_from_stream,
    append_items,
    list_all,
    list_items,
    mark_done,
    mark_todo,
)
from dotodo.utils import Item, ItemClass, find_store, parse_count

# Keep console instances for CLI output
console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def fail(e: TodoError) -> NoReturn:
    """Report a core error and exit with its status."""
    err_console.print(f"[red]Error: {escape(str(e))}[/]")
    sys.exit(e.exit_code)


def get_editor() -> str:
    """Get the user's preferred editor."""
    return os.environ.get("EDITOR", "vim")


def resolve_store(ctx: click.Context, for_append: bool = False) -> Path:
    """Get the store path from --file/DOTODO_FILE, or search for it."""
    store_file: Optional[Path] = ctx.obj.get("store_file")
    if store_file is not None:
        return store_file
    return find_store(for_append=for_append)


def print_items(items: List[Item]) -> None:
    for item in items:
        line = item.line.rstrip("\r\n")
        console.print(f"{item.rank:>3}. {escape(line)}")


@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="todo")
@click.option("-v", "--verbose", is_flag=True)
@click.option(
    "--file",
    "store_file",
    type=click.Path(dir_okay=False, resolve_path=True, path_type=Path),
    envvar="DOTODO_FILE",
    help="Path to the todo file (overrides auto-detection). Can also be set via DOTODO_FILE env var.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, store_file: Optional[Path]):
    """Plain-text todo list kept in the nearest .todo file."""
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=log_level)

    ctx.ensure_object(dict)
    ctx.obj["store_file"] = store_file

    if ctx.invoked_subcommand is None:
        ctx.invoke(list_, count=None, which="todo", output_json=False)


@cli.command("list")
@click.argument("count", required=False)
@click.option("-t", "--todo", "which", flag_value="todo", default=True, help="Show todo items (default)")
@click.option("-d", "--done", "which", flag_value="done", help="Show done items")
@click.option("-a", "--all", "which", flag_value="all", help="Show todo items, then done items")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_(ctx: click.Context, count: Optional[str] = None, which: str = "todo", output_json: bool = False):
    """List up to COUNT items of each kind (all by default)."""
    limit = None if count is None else parse_count(count)
    try:
        store = resolve_store(ctx)
        if which == "all":
            items = list(list_all(store, limit))
        elif which == "done":
            items = list(list_items(store, ItemClass.DONE, limit))
        else:
            items = list(list_items(store, ItemClass.TODO, limit))
    except TodoError as e:
        fail(e)

    if output_json:
        data = [
            {"rank": item.rank, "state": item.item_class.value, "text": item.text}
            for item in items
        ]
        click.echo(json.dumps(data, indent=2))
        return

    if not items:
        console.print("[yellow]No items found[/]")
        return

    if which == "all":
        todos = [item for item in items if not item.done]
        dones = [item for item in items if item.done]
        if todos:
            console.print("[bold]Todo:[/]")
            print_items(todos)
        if dones:
            console.print("[bold]Done:[/]")
            print_items(dones)
    else:
        print_items(items)


@cli.command()
@click.argument("texts", nargs=-1)
@click.pass_context
def add(ctx: click.Context, texts: tuple):
    """Add one item per TEXT argument.

    Without arguments, reads one item per line from piped input.
    Empty lines are skipped.
    """
    # Piped input is only read when no text was given
    if not texts and sys.stdin.isatty():
        raise click.UsageError("Nothing to add: pass item text or pipe items on stdin")

    try:
        store = resolve_store(ctx, for_append=True)
        if texts:
            count = append_items(store, texts)
        else:
            count = append_from_stream(store, sys.stdin)
    except TodoError as e:
        fail(e)

    noun = "item" if count == 1 else "items"
    console.print(f"[green]Added {count} {noun}[/] to {escape(str(store))}")


@cli.command()
@click.argument("rank")
@click.pass_context
def done(ctx: click.Context, rank: str):
    """Mark todo item RANK as done and move it to the top."""
    try:
        item = mark_done(resolve_store(ctx), parse_count(rank))
    except TodoError as e:
        fail(e)
    console.print(f"[green]✓[/] {escape(item.text)}")


@cli.command()
@click.argument("rank")
@click.pass_context
def undo(ctx: click.Context, rank: str):
    """Reopen done item RANK and move it to the bottom."""
    try:
        item = mark_todo(resolve_store(ctx), parse_count(rank))
    except TodoError as e:
        fail(e)
    console.print(f"[yellow]○[/] {escape(item.text)} (todo #{item.rank})")


@cli.command()
@click.pass_context
def edit(ctx: click.Context):
    """Open the todo file in $EDITOR."""
    try:
        store = resolve_store(ctx)
    except TodoError as e:
        fail(e)

    cmd = shlex.split(get_editor()) + [str(store)]
    try:
        result = subprocess.run(cmd)
    except OSError as e:
        err_console.print(f"[red]Error: Cannot run editor {escape(cmd[0])}: {escape(str(e))}[/]")
        sys.exit(1)
    if result.returncode != 0:
        sys.exit(result.returncode)


@cli.command()
@click.pass_context
def path(ctx: click.Context):
    """Print the path of the todo file in use."""
    try:
        store = resolve_store(ctx)
    except TodoError as e:
        fail(e)
    click.echo(str(store))


if __name__ == "__main__":
    cli()

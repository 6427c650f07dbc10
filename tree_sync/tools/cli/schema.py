from __future__ import annotations

import time
from pathlib import Path
from typing import Any

from rich.markup import escape
from rich.tree import Tree
from typer import Argument, Context, Exit, Option

from ...core import (
    ChangeEvent,
    LeafSchema,
    MapAnalysis,
    RestStore,
    SchemaConflictError,
    StoreError,
    apply_event,
    get_map_analysis,
    parse_schema,
)
from ...core.utils import join_path
from ._utils import (
    MainTyper,
    console,
    format_event,
    get_root_context,
    load_file,
    logger,
)

POLL_INTERVAL = 0.1
"""
Interval in seconds at which to check whether watching is done.
"""

app = MainTyper(
    "schema",
    help="Operations using a schema of locations to watch",
)


@app.command()
def analyze(
    ctx: Context,
    file: Path = Argument(
        help=".yaml or .json file containing schema",
        dir_okay=False,
    ),
    strict: bool = Option(
        False,
        "--strict",
        help="Fail on nodes with both included and excluded fields",
    ),
):
    """
    Show listeners which would be registered for schema
    """
    raw_schema = load_file(ctx, file, "file")

    tree = Tree("[bold]/[/bold]")

    try:
        _add_analysis(tree, raw_schema, "", strict)
    except SchemaConflictError as e:
        logger.error(str(e))
        raise Exit(code=1)

    console.print(tree)


@app.command()
def watch(
    ctx: Context,
    file: Path = Argument(
        help=".yaml or .json file containing schema",
        dir_okay=False,
    ),
    path: str = Option(
        "",
        help="Location below root path which schema applies to",
    ),
    once: bool = Option(
        False,
        "--once",
        help="Remove each listener after its first event, exit when all are removed",
    ),
    timeout: float
    | None = Option(
        None,
        help="Exit after this many seconds",
    ),
    strict: bool = Option(
        False,
        "--strict",
        help="Fail on nodes with both included and excluded fields",
    ),
    show_state: bool = Option(
        False,
        "--show-state",
        help="Print state accumulated from events upon exit",
    ),
):
    """
    Print changes to locations described by schema until interrupted
    """
    raw_schema = load_file(ctx, file, "file")

    root_context = get_root_context(ctx)
    store = root_context.create_store()
    session = root_context.create_session(store)

    state: dict[str, Any] = {}

    def callback(event: ChangeEvent):
        nonlocal state
        state = apply_event(state, event)
        console.print(format_event(event))

    try:
        with session:
            subscription = session.watch(
                raw_schema,
                callback,
                once=once,
                strict=strict,
                path=path or None,
            )

            logger.info(f"Watching with {len(subscription)} listeners")

            deadline = (
                time.monotonic() + timeout if timeout is not None else None
            )

            while True:
                if once and not any(
                    r.handle is not None and r.handle.active
                    for r in subscription
                ):
                    break
                if deadline is not None and time.monotonic() >= deadline:
                    break
                if isinstance(store, RestStore) and store.error is not None:
                    raise store.error
                time.sleep(POLL_INTERVAL)

    except KeyboardInterrupt:
        pass
    except (SchemaConflictError, StoreError) as e:
        logger.error(str(e))
        raise Exit(code=1)
    finally:
        store.close()

    if show_state:
        console.print_json(data=state)


def _add_analysis(tree: Tree, raw_schema: Any, path: str, strict: bool):
    """
    Recursively add the listeners of a schema node to tree.
    """
    analysis: MapAnalysis | None = get_map_analysis(
        raw_schema, strict=strict, path=path
    )

    if analysis is None:
        if isinstance(parse_schema(raw_schema), LeafSchema):
            tree.add("[cyan]value[/cyan]")
        else:
            tree.add("[bright_green]children[/bright_green]")
        return

    for field in analysis.objects:
        subtree = tree.add(f"[bold]{escape(field)}[/bold]")
        _add_analysis(
            subtree,
            analysis.children[field],
            join_path([p for p in (path, field) if p]),
            strict,
        )

    if analysis.unfiltered:
        tree.add("[bright_green]children[/bright_green]")
    elif analysis.blacklist:
        tree.add(
            f"[bright_green]children[/bright_green] except {escape(', '.join(analysis.blacklist))}"
        )
    elif analysis.whitelist:
        for field in analysis.whitelist:
            tree.add(f"[bold]{escape(field)}[/bold]").add("[cyan]value[/cyan]")

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from click import BadParameter
from rich.table import Table
from typer import Argument, Context, Exit, Option

from ...core import InvalidKeyError, StoreError, flatten_patch
from ._utils import (
    MainTyper,
    console,
    get_root_context,
    load_file,
    logger,
    lookup_param,
)

app = MainTyper(
    "patch",
    help="Operations using a nested patch of changes",
)


@app.command()
def flatten(
    ctx: Context,
    file: Path = Argument(
        help=".yaml or .json file containing patch",
        dir_okay=False,
    ),
    as_json: bool = Option(
        False,
        "--json",
        help="Print as JSON instead of a table",
    ),
):
    """
    Show deep paths and values which patch would write
    """
    flat = flatten_patch(_load_patch(ctx, file))

    if as_json:
        console.print_json(data=flat)
        return

    table = Table("Path", "Value")
    for path, value in flat.items():
        table.add_row(path, json.dumps(value, default=str))

    console.print(table)


@app.command()
def write(
    ctx: Context,
    file: Path = Argument(
        help=".yaml or .json file containing patch",
        dir_okay=False,
    ),
    path: str = Option(
        "",
        help="Location below root path which patch applies to",
    ),
):
    """
    Write patch to store, leaving values not in patch untouched
    """
    patch = _load_patch(ctx, file)

    root_context = get_root_context(ctx)
    store = root_context.create_store()
    session = root_context.create_session(store)

    try:
        flat = session.write_patch(patch, path=path or None)
    except (InvalidKeyError, StoreError) as e:
        logger.error(str(e))
        raise Exit(code=1)
    finally:
        store.close()

    if flat is None:
        logger.info("Nothing to write")
    else:
        logger.info(f"Wrote {len(flat)} values")


def _load_patch(ctx: Context, file: Path) -> dict[str, Any]:
    patch = load_file(ctx, file, "file")

    if not isinstance(patch, dict):
        raise BadParameter(
            f"patch must be a mapping, got: {type(patch).__name__}",
            ctx=ctx,
            param=lookup_param(ctx, "file"),
        )

    return patch

"""
Utilities specific to CLI functionality.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from click import BadParameter, Parameter
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from typer import Context, Typer

from ...core import ChangeEvent, EventKind
from ..yaml_model import load_document

if TYPE_CHECKING:
    from .main import RootContext


console = Console()

rich_handler = RichHandler(
    console=console,
    rich_tracebacks=True,
    show_level=True,
    show_time=True,
    show_path=False,
)
rich_handler.setFormatter(logging.Formatter("%(message)s"))

logger = logging.getLogger("tree-sync")
logger.setLevel(logging.INFO)
logger.addHandler(rich_handler)
logger.propagate = False

EVENT_COLORS = {
    EventKind.VALUE: "cyan",
    EventKind.CHILD_ADDED: "bright_green",
    EventKind.CHILD_CHANGED: "bright_yellow",
    EventKind.CHILD_REMOVED: "red",
}


class MainTyper(Typer):
    """
    Typer app with preconfigured settings.
    """

    def __init__(self, name: str, *, help: str):
        return super().__init__(
            name=name,
            help=help,
            rich_markup_mode="markdown",
            no_args_is_help=True,
            add_completion=False,
        )


def get_root_context(ctx: Context) -> RootContext:
    from .main import RootContext

    root_context = ctx.find_object(RootContext)
    assert isinstance(root_context, RootContext)
    return root_context


def lookup_param(ctx: Context, name: str) -> Parameter:
    """
    Lookup param by name.
    """
    param = next((p for p in ctx.command.params if p.name == name), None)
    assert param, f"Could not find param with name: {name}"
    return param


def load_file(ctx: Context, file: Path, param_name: str) -> Any:
    """
    Load .yaml or .json file passed as a parameter.
    """
    try:
        return load_document(file)
    except (ValueError, OSError, yaml.YAMLError) as e:
        raise BadParameter(
            f"failed to load '{file}': {e}",
            ctx=ctx,
            param=lookup_param(ctx, param_name),
        )


def format_event(event: ChangeEvent) -> str:
    """
    Format event as rich markup.
    """
    color = EVENT_COLORS[event.event_kind]
    path = escape("/" + "/".join(event.path))
    value = escape(json.dumps(event.value, default=str))
    return f"[{color}]{event.event_kind}[/{color}] {path} {value}"

"""
Entry point of `tree-sync` CLI.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import dotenv
from click.exceptions import BadParameter, MissingParameter
from pydantic import ValidationError
from typer import Context, Exit, Option

from ...core import MemoryStore, RestStore, Session, StoreError
from ..config import Config, InstanceConfig
from . import patch, schema
from ._utils import MainTyper, get_root_context, logger, lookup_param

app = MainTyper(
    "tree-sync",
    help="Watch and patch a hierarchical key-value store",
)


@app.callback()
def main(
    ctx: Context,
    url: str
    | None = Option(
        None,
        help="Store URL, e.g. https://example.com/db",
        envvar="TREE_SYNC_URL",
    ),
    token: str
    | None = Option(
        None,
        help="Auth token",
        envvar="TREE_SYNC_TOKEN",
    ),
    root_path: str = Option(
        "",
        help="Location within the store which schemas and patches apply to",
        envvar="TREE_SYNC_ROOT_PATH",
    ),
    instance_name: str
    | None = Option(
        None,
        "--instance",
        help="Instance name as configured in .yaml",
        envvar="TREE_SYNC_INSTANCE",
    ),
    config_file: Path = Option(
        "tree-sync.yaml",
        help=".yaml file containing instance info, only applicable with --instance",
        envvar="TREE_SYNC_CONFIG_FILE",
        dir_okay=False,
    ),
    debug: bool = Option(
        False,
        "--debug",
        help="Log registrations, events and writes",
    ),
):
    # load environment variables from .env file if it exists
    dotenv.load_dotenv(Path(".env").resolve(), override=False)

    if debug:
        logger.setLevel("DEBUG")

    if instance_name:
        root_context = RootContext.from_config(
            ctx=ctx, instance_name=instance_name, config_file=config_file
        )
        if debug:
            root_context.instance = root_context.instance.model_copy(
                update={"debug": True}
            )
    else:
        instance: InstanceConfig | None = None

        if url:
            try:
                instance = InstanceConfig(
                    url=url, token=token, root_path=root_path, debug=debug
                )
            except ValidationError as e:
                raise BadParameter(
                    str(e), ctx=ctx, param=lookup_param(ctx, "url")
                )

        root_context = RootContext(
            ctx=ctx,
            instance=instance,
            from_file=False,
        )

    ctx.obj = root_context


app.add_typer(schema.app)
app.add_typer(patch.app)


@app.command()
def check(ctx: Context):
    """
    Check store connection
    """
    root_context = get_root_context(ctx)

    store = root_context.create_store()
    session = root_context.create_session(store)

    try:
        session.root.get()
    except StoreError:
        # would have already logged error
        raise Exit(code=1)
    finally:
        store.close()

    logger.info(f"Connected to store at '{root_context.instance_url}'")


def run():
    app()


@dataclass(kw_only=True)
class RootContext:
    ctx: Context
    instance: InstanceConfig | None
    from_file: bool

    @classmethod
    def from_config(
        cls,
        *,
        ctx: Context,
        instance_name: str,
        config_file: Path,
    ) -> RootContext:
        # ensure config file exists
        if not config_file.is_file():
            raise BadParameter(
                message=f"file does not exist: {config_file}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        # get config from file
        try:
            config = Config.load_yaml(config_file)
        except (ValueError, ValidationError) as e:
            raise BadParameter(
                f"failed to load config file '{config_file}': {e}",
                ctx=ctx,
                param=lookup_param(ctx, "config_file"),
            )

        # get instance from config
        instance = config.instances.get(instance_name)
        if not instance:
            raise BadParameter(
                f"instance '{instance_name}' not found in '{config_file}'",
                ctx=ctx,
                param=lookup_param(ctx, "instance_name"),
            )

        return RootContext(ctx=ctx, instance=instance, from_file=True)

    @property
    def instance_url(self) -> str | None:
        return self.instance.url if self.instance else None

    def _require_instance(self) -> InstanceConfig:
        if self.instance is None:
            raise MissingParameter(
                message="either --url or --instance must be provided, or set TREE_SYNC_URL environment variable",
                ctx=self.ctx,
                param_hint=["url", "instance"],
                param_type="option",
            )
        return self.instance

    def create_store(self) -> RestStore | MemoryStore:
        return self._require_instance().create_store(logger=logger)

    def create_session(self, store: RestStore | MemoryStore) -> Session:
        return self._require_instance().create_session(store, logger=logger)


if __name__ == "__main__":
    app()

"""Commands for managing LF-Tag associations."""

from __future__ import annotations

from contextlib import contextmanager

import typer

from lftagops.cli.common.context import (
    TagsAppContext,
    build_tags_context,
    cancel_on_interrupt,
)
from lftagops.cli.common.exits import (
    EXIT_CANCELLED,
    EXIT_FAILURE,
    EXIT_USAGE,
    exit_from_exc,
    ok_exit,
    warn_exit,
)
from lftagops.cli.common.options import (
    AllTablesOpt,
    CatalogIdOpt,
    ColumnOpt,
    DatabaseOpt,
    ProfileOpt,
    RegionOpt,
    TableOpt,
    TagOpt,
    YesOpt,
)
from lftagops.cli.common.output import out
from lftagops.cli.common.request_builder import build_resource, build_tags
from lftagops.core.errors import (
    ConsistencyError,
    LFTagError,
    OperationCancelledError,
    PartialOperationError,
    RetryBudgetExhaustedError,
    ValidationError,
)
from lftagops.core.retry import OperationState

tags_app = typer.Typer(
    help="Manage LF-Tag associations on databases, tables and columns.",
    no_args_is_help=False,
    invoke_without_command=True,
)


@tags_app.callback()
def _init(
    ctx: typer.Context,
    profile: str | None = ProfileOpt,
    region: str | None = RegionOpt,
):
    """Initialize Lake Formation context."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)
    ctx.obj = build_tags_context(profile, region)


@contextmanager
def _handle_errors():
    """Convert core errors into CLI exits with a readable message."""
    try:
        yield
    except ValidationError as exc:
        exit_from_exc(exc, message=f"Invalid input: {exc}", code=EXIT_USAGE)
    except OperationCancelledError as exc:
        exit_from_exc(exc, message=f"Cancelled: {exc}", code=EXIT_CANCELLED)
    except PartialOperationError as exc:
        out.failures_table(exc.failures)
        exit_from_exc(exc, message=str(exc), code=EXIT_FAILURE)
    except ConsistencyError as exc:
        exit_from_exc(exc, message=f"Inconsistent remote state: {exc}", code=EXIT_FAILURE)
    except RetryBudgetExhaustedError as exc:
        exit_from_exc(exc, message=f"Gave up retrying: {exc}", code=EXIT_FAILURE)
    except LFTagError as exc:
        exit_from_exc(exc, message=str(exc), code=EXIT_FAILURE)


def _progress(status, label: str):
    """Return a state observer that keeps the spinner text current."""

    def _on_state(state: OperationState, attempt: int, error) -> None:
        if state is OperationState.ATTEMPTING and attempt > 1:
            status.update(f"{label} (attempt {attempt})")

    return _on_state


@tags_app.command()
def apply(
    ctx: typer.Context,
    database: str = DatabaseOpt,
    table: str | None = TableOpt,
    all_tables: bool = AllTablesOpt,
    column: list[str] = ColumnOpt,
    tag: list[str] = TagOpt,
    catalog_id: str | None = CatalogIdOpt,
):
    """
    Associate LF-Tags with a database, table(s) or columns.
    """
    appctx: TagsAppContext = ctx.obj

    with _handle_errors():
        resource = build_resource(
            database=database, table=table, all_tables=all_tables, columns=column
        )
        tags = build_tags(tag)

        label = "Adding LF-Tags..."
        with cancel_on_interrupt() as cancel, out.status(label) as status:
            assoc_id = appctx.reconciler.create(
                resource,
                tags,
                catalog_id,
                cancel=cancel,
                on_state=_progress(status, label),
            )
            applied = appctx.reconciler.read(resource, catalog_id, cancel=cancel)

    out.success(f"LF-Tags associated with {resource.describe()}")
    out.kv({"Association id": assoc_id})

    if applied is None:
        warn_exit("LF-Tags are not visible yet; the change may still be propagating.")
    out.tags_table(applied, title="Directly assigned LF-Tags")


@tags_app.command()
def show(
    ctx: typer.Context,
    database: str = DatabaseOpt,
    table: str | None = TableOpt,
    all_tables: bool = AllTablesOpt,
    column: list[str] = ColumnOpt,
    catalog_id: str | None = CatalogIdOpt,
):
    """
    Show the LF-Tags directly assigned to a resource.
    """
    appctx: TagsAppContext = ctx.obj

    with _handle_errors():
        resource = build_resource(
            database=database, table=table, all_tables=all_tables, columns=column
        )
        label = "Loading LF-Tags..."
        with cancel_on_interrupt() as cancel, out.status(label) as status:
            tags = appctx.reconciler.read(
                resource, catalog_id, cancel=cancel, on_state=_progress(status, label)
            )

    if tags is None:
        warn_exit(f"No LF-Tags directly assigned to {resource.describe()}.", code=0)

    out.header(resource.describe())
    out.tags_table(tags, title="Directly assigned LF-Tags")


@tags_app.command()
def remove(
    ctx: typer.Context,
    database: str = DatabaseOpt,
    table: str | None = TableOpt,
    all_tables: bool = AllTablesOpt,
    column: list[str] = ColumnOpt,
    tag: list[str] = TagOpt,
    catalog_id: str | None = CatalogIdOpt,
    yes: bool = YesOpt,
):
    """
    Remove LF-Tags from a database, table(s) or columns.
    """
    appctx: TagsAppContext = ctx.obj

    with _handle_errors():
        resource = build_resource(
            database=database, table=table, all_tables=all_tables, columns=column
        )
        tags = build_tags(tag)
        tags.validate()

        out.header(f"Remove from {resource.describe()}")
        out.tags_table(tags, title="LF-Tags to remove")
        if not yes and not out.confirm("Remove these LF-Tags?"):
            ok_exit("Cancelled")

        label = "Removing LF-Tags..."
        with cancel_on_interrupt() as cancel, out.status(label) as status:
            appctx.reconciler.delete(
                resource,
                tags,
                catalog_id,
                cancel=cancel,
                on_state=_progress(status, label),
            )

    out.success(f"LF-Tags removed from {resource.describe()}")


@tags_app.command()
def drift(
    ctx: typer.Context,
    database: str = DatabaseOpt,
    table: str | None = TableOpt,
    all_tables: bool = AllTablesOpt,
    column: list[str] = ColumnOpt,
    tag: list[str] = TagOpt,
    catalog_id: str | None = CatalogIdOpt,
):
    """
    Compare desired LF-Tags with the ones directly assigned (exit 1 on drift).
    """
    appctx: TagsAppContext = ctx.obj

    with _handle_errors():
        resource = build_resource(
            database=database, table=table, all_tables=all_tables, columns=column
        )
        desired = build_tags(tag)
        label = "Comparing LF-Tags..."
        with cancel_on_interrupt() as cancel, out.status(label) as status:
            result = appctx.reconciler.detect_drift(
                resource,
                desired,
                catalog_id,
                cancel=cancel,
                on_state=_progress(status, label),
            )

    if result.in_sync:
        ok_exit(f"{resource.describe()} is in sync")

    out.header(f"{resource.describe()}: {result.status.value}")
    out.drift_table(result)
    raise typer.Exit(EXIT_FAILURE)

"""Request construction utilities.

This module translates CLI arguments into the core's resource reference
and tag set types. It centralizes the rules for which combination of
options selects which resource variant, so commands only deal with
validated core objects.
"""

from typing import Iterable

from lftagops.core.errors import MutuallyExclusiveVariantError
from lftagops.core.resources import (
    Database,
    ResourceReference,
    ResourceSelection,
    Table,
    TableWithColumns,
)
from lftagops.core.tags import TagSet


def build_resource(
    *,
    database: str,
    table: str | None,
    all_tables: bool,
    columns: Iterable[str],
) -> ResourceReference:
    """
    Build a validated resource reference from CLI options.

    - ``--database`` alone targets the database.
    - ``--table`` or ``--all-tables`` targets one or every table.
    - ``--column`` (with ``--table``) targets those columns of the table.

    Raises:
        ValidationError: If the options do not select exactly one resource.
    """
    columns = list(columns)
    if columns and all_tables:
        raise MutuallyExclusiveVariantError("--column cannot be combined with --all-tables.")
    if table and all_tables:
        raise MutuallyExclusiveVariantError("Use either --table or --all-tables, not both.")

    if columns:
        selection = ResourceSelection(
            table_with_columns=TableWithColumns(
                database_name=database, name=table or "", column_names=frozenset(columns)
            )
        )
    elif table or all_tables:
        selection = ResourceSelection(
            table=Table(database_name=database, name=table, wildcard=all_tables)
        )
    else:
        selection = ResourceSelection(database=Database(name=database))

    return selection.resolve()


def build_tags(specs: Iterable[str]) -> TagSet:
    """Parse ``key=value[,value]`` strings into a tag set (validated later by the core)."""
    return TagSet.parse(specs)

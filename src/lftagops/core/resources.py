"""Catalog resource references that LF-Tags can be associated with.

A resource reference is a closed union of three variants (Database, Table,
TableWithColumns). These models are simple, immutable value objects; they
are free of boto3 types and CLI concerns. ``to_request`` renders the
Lake Formation ``Resource`` wire shape.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Union

from lftagops.core.errors import (
    EmptyColumnSetError,
    IncompleteVariantError,
    InvalidCatalogIdError,
    MutuallyExclusiveVariantError,
)

ALL_TABLES = "ALL_TABLES"

_ACCOUNT_ID_RE = re.compile(r"^\d{12}$")


def validate_catalog_id(catalog_id: str | None) -> None:
    """Raise InvalidCatalogIdError unless catalog_id is None or a 12-digit account id."""
    if catalog_id is None:
        return
    if not _ACCOUNT_ID_RE.match(catalog_id):
        raise InvalidCatalogIdError(
            f"Catalog id must be a 12-digit AWS account id, got '{catalog_id}'."
        )


def _with_catalog(payload: dict[str, Any], catalog_id: str | None) -> dict[str, Any]:
    if catalog_id:
        payload["CatalogId"] = catalog_id
    return payload


@dataclass(frozen=True)
class Database:
    """A Glue catalog database."""

    name: str
    catalog_id: str | None = None

    kind = "Database"

    def validate(self) -> None:
        validate_catalog_id(self.catalog_id)
        if not self.name:
            raise IncompleteVariantError("Database reference requires a name.")

    def to_request(self) -> dict[str, Any]:
        return {"Database": _with_catalog({"Name": self.name}, self.catalog_id)}

    def describe(self) -> str:
        return f"database {self.name}"


@dataclass(frozen=True)
class Table:
    """
    A Glue catalog table, or every table in a database.

    Exactly one of ``name`` and ``wildcard`` must be set; ``wildcard=True``
    targets all tables in ``database_name``.
    """

    database_name: str
    name: str | None = None
    wildcard: bool = False
    catalog_id: str | None = None

    kind = "Table"

    def validate(self) -> None:
        validate_catalog_id(self.catalog_id)
        if not self.database_name:
            raise IncompleteVariantError("Table reference requires a database_name.")
        if bool(self.name) == bool(self.wildcard):
            raise MutuallyExclusiveVariantError(
                "Table reference requires exactly one of name or wildcard."
            )

    def to_request(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"DatabaseName": self.database_name}
        if self.wildcard:
            payload["TableWildcard"] = {}
        else:
            payload["Name"] = self.name
        return {"Table": _with_catalog(payload, self.catalog_id)}

    def describe(self) -> str:
        table = ALL_TABLES if self.wildcard else self.name
        return f"table {self.database_name}.{table}"


@dataclass(frozen=True)
class TableWithColumns:
    """A subset of columns of a Glue catalog table."""

    database_name: str
    name: str
    column_names: frozenset[str] = field(default_factory=frozenset)
    catalog_id: str | None = None

    kind = "TableWithColumns"

    def __post_init__(self) -> None:
        # accept any iterable of names; store as a set
        object.__setattr__(self, "column_names", frozenset(self.column_names))

    def validate(self) -> None:
        validate_catalog_id(self.catalog_id)
        if not self.database_name:
            raise IncompleteVariantError(
                "Table-with-columns reference requires a database_name."
            )
        if not self.name:
            raise IncompleteVariantError("Table-with-columns reference requires a name.")
        if not self.column_names:
            raise EmptyColumnSetError(
                f"Table-with-columns reference {self.database_name}.{self.name} "
                "requires at least one column name."
            )
        if any(not c for c in self.column_names):
            raise IncompleteVariantError("Column names must be non-empty strings.")

    def to_request(self) -> dict[str, Any]:
        payload = {
            "DatabaseName": self.database_name,
            "Name": self.name,
            "ColumnNames": sorted(self.column_names),
        }
        return {"TableWithColumns": _with_catalog(payload, self.catalog_id)}

    def describe(self) -> str:
        cols = ", ".join(sorted(self.column_names))
        return f"columns ({cols}) of table {self.database_name}.{self.name}"


ResourceReference = Union[Database, Table, TableWithColumns]


@dataclass(frozen=True)
class ResourceSelection:
    """
    Resource fields as supplied by a caller, before the variant is known.

    Desired state arrives as three optional blocks; exactly one of them
    may be populated. ``resolve`` enforces that and returns the variant.
    """

    database: Database | None = None
    table: Table | None = None
    table_with_columns: TableWithColumns | None = None

    def resolve(self) -> ResourceReference:
        """Return the single populated, validated variant."""
        populated = [
            v
            for v in (self.database, self.table, self.table_with_columns)
            if v is not None
        ]
        if len(populated) != 1:
            raise MutuallyExclusiveVariantError(
                "Exactly one of database, table or table_with_columns is required "
                f"(got {len(populated)})."
            )
        ref = populated[0]
        ref.validate()
        return ref


def validate_reference(ref: object) -> ResourceReference:
    """Validate ``ref`` as a resource reference and return it."""
    if not isinstance(ref, (Database, Table, TableWithColumns)):
        raise MutuallyExclusiveVariantError(
            f"Expected a Database, Table or TableWithColumns reference, got {ref!r}."
        )
    ref.validate()
    return ref

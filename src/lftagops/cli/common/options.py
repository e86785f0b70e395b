"""Common CLI options for the CLI."""

import typer

ProfileOpt = typer.Option(
    None,
    "--profile",
    "-p",
    help="AWS profile (from ~/.aws/config)",
)

RegionOpt = typer.Option(
    None,
    "--region",
    help="AWS region of the Lake Formation catalog",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Log retries and state transitions",
)

CatalogIdOpt = typer.Option(
    None,
    "--catalog-id",
    help="Data catalog id (AWS account id); defaults to the caller's account",
)

DatabaseOpt = typer.Option(
    ...,
    "--database",
    "-d",
    help="Glue database name",
)

TableOpt = typer.Option(
    None,
    "--table",
    "-t",
    help="Table name (omit to target the database itself)",
)

AllTablesOpt = typer.Option(
    False,
    "--all-tables",
    help="Target every table in the database",
)

ColumnOpt = typer.Option(
    [],
    "--column",
    "-c",
    help="Column name (requires --table). This is reusable.",
    show_default=False,
)

TagOpt = typer.Option(
    ...,
    "--tag",
    help="LF-Tag as key=value[,value]. This is reusable.",
    show_default=False,
)

YesOpt = typer.Option(
    False,
    "--yes",
    "-y",
    help="Skip confirmation prompt",
)

"""
SQL text builders for Flink INFORMATION_SCHEMA metadata queries.

Confluent Cloud requires metadata views to be fully qualified with their catalog and
quoted with backticks. Identifiers are backtick-quoted and string literals single-quoted,
with embedded quote characters doubled, so user-supplied names cannot break out of the
query text.
"""

__all__ = [
    "INFORMATION_SCHEMA",
    "catalogs_query",
    "columns_query",
    "quote_identifier",
    "quote_literal",
    "schemata_query",
    "tables_query",
]

INFORMATION_SCHEMA = "INFORMATION_SCHEMA"

_COLUMN_FIELDS = (
    "TABLE_SCHEMA",
    "COLUMN_NAME",
    "ORDINAL_POSITION",
    "DATA_TYPE",
    "FULL_DATA_TYPE",
    "IS_NULLABLE",
    "IS_HIDDEN",
    "IS_GENERATED",
    "GENERATION_EXPRESSION",
    "IS_METADATA",
    "METADATA_KEY",
)

_TABLE_FIELDS = (
    "TABLE_CATALOG",
    "TABLE_SCHEMA",
    "TABLE_NAME",
    "TABLE_TYPE",
    "IS_INSERTABLE_INTO",
    "WATERMARK_COLUMN",
    "WATERMARK_EXPRESSION",
    "DISTRIBUTION_ALGORITHM",
    "DISTRIBUTION_COLUMNS",
    "DISTRIBUTION_BUCKET_COUNT",
)


def quote_identifier(name: str) -> str:
    """Quote an identifier with backticks, doubling embedded backticks."""
    return "`" + name.replace("`", "``") + "`"


def quote_literal(value: str) -> str:
    """Quote a string literal with single quotes, doubling embedded quotes."""
    return "'" + value.replace("'", "''") + "'"


def _select(fields: tuple[str, ...], catalog_name: str, view: str) -> str:
    columns = ", ".join(quote_identifier(f) for f in fields)
    source = ".".join(
        quote_identifier(part) for part in (catalog_name, INFORMATION_SCHEMA, view)
    )
    return f"SELECT {columns} FROM {source}"


def catalogs_query(catalog_name: str, *, include_ids: bool = True) -> str:
    """Query `INFORMATION_SCHEMA.CATALOGS` through the given catalog."""
    fields = ("CATALOG_ID", "CATALOG_NAME") if include_ids else ("CATALOG_NAME",)
    return _select(fields, catalog_name, "CATALOGS")


def schemata_query(catalog_name: str) -> str:
    """Query `INFORMATION_SCHEMA.SCHEMATA`, excluding the INFORMATION_SCHEMA pseudo-schema."""
    return (
        f"{_select(('SCHEMA_ID', 'SCHEMA_NAME'), catalog_name, 'SCHEMATA')} "
        f"WHERE {quote_identifier('SCHEMA_NAME')} <> {quote_literal(INFORMATION_SCHEMA)}"
    )


def _schema_filter(schema_name: str | None) -> str:
    if not schema_name:
        return ""
    return f" AND {quote_identifier('TABLE_SCHEMA')} = {quote_literal(schema_name)}"


def columns_query(
    catalog_name: str, table_name: str, schema_name: str | None = None
) -> str:
    """Query the visible columns of a table from `INFORMATION_SCHEMA.COLUMNS`."""
    return (
        f"{_select(_COLUMN_FIELDS, catalog_name, 'COLUMNS')} "
        f"WHERE {quote_identifier('TABLE_NAME')} = {quote_literal(table_name)} "
        f"AND {quote_identifier('IS_HIDDEN')} = 'NO'"
        f"{_schema_filter(schema_name)}"
    )


def tables_query(
    catalog_name: str, table_name: str, schema_name: str | None = None
) -> str:
    """Query table metadata (type, watermark, distribution) from `INFORMATION_SCHEMA.TABLES`."""
    return (
        f"{_select(_TABLE_FIELDS, catalog_name, 'TABLES')} "
        f"WHERE {quote_identifier('TABLE_NAME')} = {quote_literal(table_name)}"
        f"{_schema_filter(schema_name)}"
    )

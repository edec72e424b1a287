"""
Common record shapes shared by every platform.

Each data type is described by a RecordSchema: the ordered, typed columns of
its Parquet file, which columns are mandatory, which hold decimal strings,
and how its placeholder row looks. Records themselves travel as plain dicts
keyed by column name.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

UTF8 = "UTF8"
INT64 = "INT64"
INT32 = "INT32"
BOOLEAN = "BOOLEAN"

COLUMN_TYPES = (UTF8, INT64, INT32, BOOLEAN)

# Identity value of the row written when an extraction returned nothing
PLACEHOLDER_MARKER = "dummy"


@dataclass(frozen=True)
class RecordSchema:
    """Typed column layout of one record type."""
    name: str
    columns: Tuple[Tuple[str, str], ...]
    required: Tuple[str, ...] = ()
    decimal_fields: Tuple[str, ...] = ()
    marker_field: str = "id"

    def __post_init__(self):
        for column, column_type in self.columns:
            if column_type not in COLUMN_TYPES:
                raise ValueError(f"Unsupported column type {column_type} for {column}")
        if self.marker_field not in self.field_names:
            raise ValueError(f"Marker field {self.marker_field} is not a column of {self.name}")

    @property
    def field_names(self) -> List[str]:
        return [name for name, _ in self.columns]

    def column_type(self, column: str) -> Optional[str]:
        for name, column_type in self.columns:
            if name == column:
                return column_type
        return None

    def placeholder(self) -> Dict[str, Any]:
        """Row persisted instead of an empty file."""
        row: Dict[str, Any] = {}
        for name, column_type in self.columns:
            if name == self.marker_field:
                row[name] = PLACEHOLDER_MARKER
            elif column_type in (INT64, INT32):
                row[name] = 0
            elif column_type == BOOLEAN:
                row[name] = False
            elif name in self.decimal_fields:
                row[name] = "0"
            else:
                row[name] = ""
        return row

    def is_placeholder(self, row: Dict[str, Any]) -> bool:
        return row.get(self.marker_field) == PLACEHOLDER_MARKER


TRANSFER = RecordSchema(
    name="transfers",
    columns=(
        ("id", UTF8),
        ("blockNumber", INT64),
        ("transactionHash", UTF8),
        ("from", UTF8),
        ("to", UTF8),
        ("value", UTF8),
    ),
    required=("id", "from", "to"),
    decimal_fields=("value",),
)

ACCOUNT = RecordSchema(
    name="accounts",
    columns=(
        ("id", UTF8),
        ("balance", UTF8),
        ("point", UTF8),
        ("timestamp", INT64),
    ),
    required=("id",),
    decimal_fields=("balance", "point"),
)

BLOCK = RecordSchema(
    name="blocks",
    columns=(
        ("number", INT64),
        ("hash", UTF8),
        ("parentHash", UTF8),
        ("timestamp", INT64),
    ),
    required=("number", "hash"),
    marker_field="hash",
)

GAS = RecordSchema(
    name="gas",
    columns=(
        ("id", UTF8),
        ("blockNumber", INT64),
        ("transactionHash", UTF8),
        ("sender", UTF8),
        ("recipient", UTF8),
        ("gasValue", UTF8),
        ("gasUsed", UTF8),
        ("gasPrice", UTF8),
        ("effectiveGasPrice", UTF8),
    ),
    required=("transactionHash",),
    decimal_fields=("gasValue", "gasUsed", "gasPrice", "effectiveGasPrice"),
)

SWAP = RecordSchema(
    name="swaps",
    columns=(
        ("id", UTF8),
        ("blockNumber", INT64),
        ("transactionHash", UTF8),
        ("from", UTF8),
        ("to", UTF8),
        ("amountIn", UTF8),
        ("amountOutMin", UTF8),
        ("deadline", UTF8),
        ("path", UTF8),
        ("pathLength", INT32),
    ),
    required=("id", "transactionHash"),
    decimal_fields=("amountIn", "amountOutMin", "deadline"),
)

SCHEMAS: Dict[str, RecordSchema] = {
    schema.name: schema for schema in (TRANSFER, ACCOUNT, BLOCK, GAS, SWAP)
}


def get_schema(data_type: str) -> RecordSchema:
    """Look up a record schema by data type name."""
    try:
        return SCHEMAS[data_type]
    except KeyError:
        raise ValueError(
            f"Unknown data type '{data_type}', expected one of {sorted(SCHEMAS)}"
        ) from None

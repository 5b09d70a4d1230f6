"""
Catalog decoding - Turn engine-specific catalog rows into uniform records

Information-schema style engines return one shape per query; SQLite PRAGMA
statements return another. Each raw shape has its own row type, and the
decoders pick one explicitly from the driver before producing the uniform
``ColumnInfo``, ``IndexInfo`` and ``ForeignKeyInfo`` records.

PRAGMA row layouts:
    table_info        (cid, name, type, notnull, dflt_value, pk)
    index_list        (seq, name, unique, origin, partial)
    foreign_key_list  (id, seq, table, from, to, on_update, on_delete, match)
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from ..constants import MAX_BINARY_DISPLAY_BYTES
from .dialects import DriverType


# ==================== Uniform Records ====================

@dataclass
class ColumnInfo:
    """Column description shared by every engine."""
    name: str
    data_type: str
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    is_nullable: bool = True
    default: Optional[str] = None
    is_primary_key: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.data_type,
            "max_length": self.max_length,
            "precision": self.precision,
            "scale": self.scale,
            "nullable": self.is_nullable,
            "default": self.default,
            "primary_key": self.is_primary_key,
        }


@dataclass
class IndexInfo:
    """Index with its columns in key order (empty for PRAGMA index_list)."""
    name: str
    index_type: str = ""
    is_unique: bool = False
    is_primary: bool = False
    columns: List[str] = field(default_factory=list)


@dataclass
class ForeignKeyInfo:
    name: str
    columns: List[str] = field(default_factory=list)
    referenced_schema: str = ""
    referenced_table: str = ""
    referenced_columns: List[str] = field(default_factory=list)


@dataclass
class ParameterInfo:
    """Stored procedure parameter as declared in the catalog."""
    name: str
    type_name: str = ""
    is_output: bool = False


# ==================== Raw Row Shapes ====================

@dataclass
class InformationSchemaColumn:
    name: str
    data_type: str
    max_length: Any
    precision: Any
    scale: Any
    is_nullable: Any
    default: Any
    is_primary_key: Any

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "InformationSchemaColumn":
        return cls(*row[:8])


@dataclass
class PragmaColumn:
    cid: int
    name: str
    type: str
    notnull: int
    dflt_value: Any
    pk: int

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "PragmaColumn":
        return cls(*row[:6])


@dataclass
class PrimaryKeyRow:
    column_name: str

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "PrimaryKeyRow":
        return cls(row[0])


@dataclass
class InformationSchemaIndex:
    index_name: str
    index_type: str
    is_unique: Any
    column_name: str

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "InformationSchemaIndex":
        return cls(*row[:4])


@dataclass
class PragmaIndex:
    seq: int
    name: str
    unique: int
    origin: str
    partial: int

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "PragmaIndex":
        return cls(*row[:5])


@dataclass
class InformationSchemaForeignKey:
    constraint_name: str
    column_name: str
    referenced_schema: str
    referenced_table: str
    referenced_column: str

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "InformationSchemaForeignKey":
        return cls(*row[:5])


@dataclass
class PragmaForeignKey:
    id: int
    seq: int
    table: str
    from_column: str
    to_column: str
    on_update: str = ""
    on_delete: str = ""
    match: str = ""

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "PragmaForeignKey":
        return cls(*row[:8])


CatalogColumn = Union[InformationSchemaColumn, PragmaColumn]
CatalogIndex = Union[InformationSchemaIndex, PragmaIndex]
CatalogForeignKey = Union[InformationSchemaForeignKey, PragmaForeignKey]

_PRAGMA_INDEX_ORIGINS = {"c": "INDEX", "u": "UNIQUE", "pk": "PRIMARY KEY"}
_TRUE_FLAGS = ("YES", "Y", "TRUE", "1", "UNIQUE")


def _flag(value: Any) -> bool:
    """Interpret YES/NO, Y/N, UNIQUE/NONUNIQUE, bit and boolean catalog flags."""
    if isinstance(value, str):
        return value.strip().upper() in _TRUE_FLAGS
    return bool(value)


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


# ==================== Row Parsing ====================

def parse_column_row(driver: DriverType, row: Sequence[Any]) -> CatalogColumn:
    if driver is DriverType.SQLITE:
        return PragmaColumn.from_row(row)
    return InformationSchemaColumn.from_row(row)


def parse_index_row(driver: DriverType, row: Sequence[Any]) -> CatalogIndex:
    if driver is DriverType.SQLITE:
        return PragmaIndex.from_row(row)
    return InformationSchemaIndex.from_row(row)


def parse_foreign_key_row(driver: DriverType, row: Sequence[Any]) -> CatalogForeignKey:
    if driver is DriverType.SQLITE:
        return PragmaForeignKey.from_row(row)
    return InformationSchemaForeignKey.from_row(row)


# ==================== Decoders ====================

def decode_columns(driver: DriverType, rows: Sequence[Sequence[Any]]) -> List[ColumnInfo]:
    """
    Decode full-schema rows (or PRAGMA table_info rows on SQLite).

    Args:
        driver: Engine the rows come from
        rows: Result rows of GET_TABLE_SCHEMA_FULL

    Returns:
        Columns in table order
    """
    columns = []
    for row in rows:
        raw = parse_column_row(driver, row)
        if isinstance(raw, PragmaColumn):
            columns.append(ColumnInfo(
                name=raw.name,
                data_type=raw.type or "",
                is_nullable=not raw.notnull,
                default=_as_text(raw.dflt_value),
                is_primary_key=bool(raw.pk),
            ))
        else:
            columns.append(ColumnInfo(
                name=raw.name,
                data_type=raw.data_type or "",
                max_length=_as_int(raw.max_length),
                precision=_as_int(raw.precision),
                scale=_as_int(raw.scale),
                is_nullable=_flag(raw.is_nullable),
                default=_as_text(raw.default),
                is_primary_key=_flag(raw.is_primary_key),
            ))
    return columns


def column_names(driver: DriverType, rows: Sequence[Sequence[Any]]) -> List[str]:
    """Column names from full-schema or PRAGMA table_info rows."""
    return [parse_column_row(driver, row).name for row in rows]


def decode_primary_key(driver: DriverType, rows: Sequence[Sequence[Any]]) -> List[str]:
    """
    Primary key columns in key order.

    SQLite answers GET_PRIMARY_KEY with table_info rows, where ``pk`` is the
    1-based position within the key and 0 for other columns.
    """
    if driver is DriverType.SQLITE:
        key_columns = [PragmaColumn.from_row(row) for row in rows]
        key_columns = sorted((c for c in key_columns if c.pk), key=lambda c: c.pk)
        return [c.name for c in key_columns]
    return [PrimaryKeyRow.from_row(row).column_name for row in rows]


def decode_indexes(driver: DriverType, rows: Sequence[Sequence[Any]]) -> List[IndexInfo]:
    """Group per-column index rows into indexes, keeping first-seen order."""
    indexes: Dict[str, IndexInfo] = {}
    for row in rows:
        raw = parse_index_row(driver, row)
        if isinstance(raw, PragmaIndex):
            indexes[raw.name] = IndexInfo(
                name=raw.name,
                index_type=_PRAGMA_INDEX_ORIGINS.get(raw.origin, raw.origin or ""),
                is_unique=bool(raw.unique),
                is_primary=raw.origin == "pk",
            )
            continue
        index = indexes.get(raw.index_name)
        if index is None:
            index = IndexInfo(
                name=raw.index_name,
                index_type=raw.index_type or "",
                is_unique=_flag(raw.is_unique),
            )
            indexes[raw.index_name] = index
        if raw.column_name and raw.column_name not in index.columns:
            index.columns.append(raw.column_name)
    return list(indexes.values())


def decode_foreign_keys(driver: DriverType, rows: Sequence[Sequence[Any]]) -> List[ForeignKeyInfo]:
    """Group per-column foreign key rows into constraints."""
    keys: Dict[str, ForeignKeyInfo] = {}
    for row in rows:
        raw = parse_foreign_key_row(driver, row)
        if isinstance(raw, PragmaForeignKey):
            # SQLite constraints are unnamed; the id groups their columns
            name = f"fk_{raw.id}"
            key = keys.setdefault(name, ForeignKeyInfo(
                name=name, referenced_schema="main", referenced_table=raw.table,
            ))
            key.columns.append(raw.from_column)
            key.referenced_columns.append(raw.to_column)
            continue
        key = keys.setdefault(raw.constraint_name, ForeignKeyInfo(
            name=raw.constraint_name,
            referenced_schema=raw.referenced_schema or "",
            referenced_table=raw.referenced_table or "",
        ))
        key.columns.append(raw.column_name)
        key.referenced_columns.append(raw.referenced_column)
    return list(keys.values())


def decode_parameters(rows: Sequence[Sequence[Any]]) -> List[ParameterInfo]:
    """Rows of GET_PROCEDURE_PARAMETERS: (name, type name, is_output)."""
    return [
        ParameterInfo(name=row[0], type_name=row[1] or "", is_output=_flag(row[2]))
        for row in rows
        if row[0]
    ]


def join_source(rows: Sequence[Sequence[Any]]) -> str:
    """Definition text, joined when the engine stores it one line per row."""
    return "".join(str(row[0]) for row in rows if row and row[0] is not None)


# ==================== Value Formatting ====================

def format_value(value: Any) -> Any:
    """
    Make a driver value presentable in a result set.

    Large or non-UTF-8 binary values are summarized instead of dumped;
    timestamps use ``YYYY-MM-DD HH:MM:SS``.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        data = bytes(value)
        if len(data) > MAX_BINARY_DISPLAY_BYTES:
            return f"<binary data: {len(data)} bytes>"
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            return f"<binary data: {len(data)} bytes>"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    return value


def format_row(columns: Sequence[str], row: Sequence[Any]) -> Dict[str, Any]:
    return {name: format_value(value) for name, value in zip(columns, row)}

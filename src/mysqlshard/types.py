# src/mysqlshard/types.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union


class ServerType(Enum):
    """Role of a MySQL server inside a replication group."""
    PRIMARY = "primary"
    REPLICA = "replica"


class ShardOption(Enum):
    """Route transforms applied by the routing table.

    Each option rewrites one part of the route (``placeholder``) with the
    criteria meta value stored under ``meta_key``.
    """
    CHUNKED = "chunked"
    SPOTTED = "spotted"
    LOCALIZED = "localized"

    @property
    def placeholder(self) -> str:
        return _SHARD_PLACEHOLDERS[self][0]

    @property
    def meta_key(self) -> str:
        return _SHARD_PLACEHOLDERS[self][1]


_SHARD_PLACEHOLDERS = {
    ShardOption.CHUNKED: ("table", "chunk_id"),
    ShardOption.SPOTTED: ("database", "spot_id"),
    ShardOption.LOCALIZED: ("database", "locale"),
}


class Comparison(Enum):
    EQUAL = "="
    NOT_EQUAL = "<>"
    GREATER = ">"
    LESS = "<"
    EQUAL_GREATER = ">="
    EQUAL_LESS = "<="
    IN = "IN"
    NOT_IN = "NOT IN"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"


class SortOrder(Enum):
    ASC = "ASC"
    DESC = "DESC"


@dataclass(frozen=True)
class Route:
    """Physical location of a table."""
    database: str
    table: str

    def __str__(self):
        return f"{self.database}.{self.table}"


@dataclass(frozen=True)
class TableEntry:
    """Routing table record for one logical table.

    Unset ``database`` and ``table_name`` fall back to the routing primary
    database and the logical table name.
    """
    database: Optional[str] = None
    table_name: Optional[str] = None
    options: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_value(cls, value: Union['TableEntry', Mapping[str, Any], None]) -> 'TableEntry':
        """Build an entry from a config mapping.

        Accepts ``db`` or ``database`` for the database name and either a
        single option string or a list of them.
        """
        if value is None:
            return cls()
        if isinstance(value, TableEntry):
            return value
        options = value.get('options') or ()
        if isinstance(options, (str, ShardOption)):
            options = (options,)
        return cls(
            database=value.get('database', value.get('db')),
            table_name=value.get('table_name'),
            options=tuple(o.value if isinstance(o, ShardOption) else o for o in options),
        )

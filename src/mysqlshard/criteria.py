# src/mysqlshard/criteria.py
"""Declarative description of a data operation.

A Criteria names a logical table and carries filters, projection, write
payload and routing meta. It is compiled into SQL by MySQLSQLBuilder and
executed by Query.
"""
from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Set, Union

from .errors import CriteriaError, MetaKeyError
from .types import Comparison, SortOrder


class Condition(NamedTuple):
    column: str
    value: Any
    comparison: str


class Aggregation(NamedTuple):
    function: str
    field: Optional[str] = None
    alias: Optional[str] = None


@dataclass
class CriteriaMeta:
    """Routing and affinity hints attached to a criteria.

    Unset fields are reported as lookup misses by ``get``.
    """
    read_from_replica: Optional[bool] = None
    spot_id: Any = None
    chunk_id: Any = None
    locale: Optional[str] = None

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> 'CriteriaMeta':
        if not values:
            return cls()
        unknown = set(values) - cls.keys()
        if unknown:
            raise CriteriaError(f"Unknown meta keys: {', '.join(sorted(unknown))}")
        return cls(**values)

    @classmethod
    def keys(cls) -> Set[str]:
        return {f.name for f in dataclass_fields(cls)}

    def get(self, key: str) -> Any:
        value = getattr(self, key) if key in self.keys() else None
        if value is None:
            raise MetaKeyError(f'Meta "{key}" is not defined')
        return value


class Criteria:
    """Mutable builder for a single query.

    Example:
        criteria = Criteria('word_user', {'spot_id': 3, 'chunk_id': 99})
        criteria.where('user_id', 10).read('word_id', 'created').limit(20)
    """

    EQUAL = Comparison.EQUAL.value
    NOT_EQUAL = Comparison.NOT_EQUAL.value
    GREATER = Comparison.GREATER.value
    LESS = Comparison.LESS.value
    EQUAL_GREATER = Comparison.EQUAL_GREATER.value
    EQUAL_LESS = Comparison.EQUAL_LESS.value
    IN = Comparison.IN.value
    NOT_IN = Comparison.NOT_IN.value
    IS_NULL = Comparison.IS_NULL.value
    IS_NOT_NULL = Comparison.IS_NOT_NULL.value

    def __init__(self, location: str, meta: Union[CriteriaMeta, Mapping[str, Any], None] = None):
        self.location = location
        self.meta = meta if isinstance(meta, CriteriaMeta) else CriteriaMeta.from_mapping(meta)
        self.conditions: List[Condition] = []
        self.fields: List[str] = []
        self.aggregations: List[Aggregation] = []
        self.values: List[Any] = []
        self.upsert_columns: Union[List[str], Dict[str, str], None] = None
        self.order: Dict[str, str] = {}
        self.limit_value: Optional[int] = None
        self.offset_value: Optional[int] = None

    def get_meta(self, key: str) -> Any:
        return self.meta.get(key)

    def where(self, column: str, value: Any, comparison: Union[str, Comparison] = Comparison.EQUAL) -> 'Criteria':
        if isinstance(comparison, Comparison):
            comparison = comparison.value
        self.conditions.append(Condition(column, value, comparison))
        return self

    def read(self, *fields: str) -> 'Criteria':
        self.fields.extend(fields)
        return self

    def aggregate(self, function: str, field: Optional[str] = None, alias: Optional[str] = None) -> 'Criteria':
        self.aggregations.append(Aggregation(function, field, alias))
        return self

    def write(self, values: Mapping[str, Any]) -> 'Criteria':
        """Set the write payload.

        Each value is either a scalar or a list of per-row values (multi-row
        insert).
        """
        self.fields = list(values.keys())
        self.values = list(values.values())
        return self

    def upsert(self, columns: Union[Sequence[str], Mapping[str, str]]) -> 'Criteria':
        if isinstance(columns, Mapping):
            self.upsert_columns = dict(columns)
        else:
            self.upsert_columns = list(columns)
        return self

    def order_by(self, field: str, direction: Union[str, SortOrder] = SortOrder.ASC) -> 'Criteria':
        self.order[field] = direction
        return self

    def limit(self, limit: int, offset: int = 0) -> 'Criteria':
        if limit < 0 or offset < 0:
            raise CriteriaError("Limit and offset must be non-negative")
        self.limit_value = limit
        self.offset_value = offset
        return self

    def __repr__(self):
        return (f"Criteria(location={self.location!r}, fields={self.fields!r}, "
                f"conditions={self.conditions!r}, meta={self.meta!r})")

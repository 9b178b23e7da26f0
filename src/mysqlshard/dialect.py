# src/mysqlshard/dialect.py
import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from .criteria import Criteria
from .errors import QueryError
from .types import Comparison, Route, SortOrder

# Values accepted by scalar comparisons. bool is covered by int.
SCALAR_TYPES = (str, bytes, int, float, Decimal, datetime.date, datetime.time, datetime.timedelta)

_SORT_ORDERS = {order.value: order.value for order in SortOrder}


class MySQLSQLBuilder:
    """Compiles criteria into MySQL statements with ``?`` placeholders.

    Every ``build_*`` method returns the SQL text and the positional
    parameters in placeholder order. The builder holds no state, so
    fragments may be compiled in any order; parameter lists are concatenated
    explicitly in statement order (SET values before WHERE values).
    """

    @staticmethod
    def get_placeholders(count: int, placeholder: str = '?') -> str:
        return ','.join([placeholder] * count)

    def get_expression(self, criteria: Criteria) -> str:
        fields = list(criteria.fields)
        for function, field, alias in criteria.aggregations:
            expression = f"{function.upper()}({field or '*'})"
            if alias:
                expression += f" AS {alias}"
            fields.append(expression)
        if not fields:
            return '*'
        return ','.join(fields)

    def get_order(self, order_by: Mapping[str, Union[str, SortOrder]]) -> str:
        keys = []
        for field, sort_type in order_by.items():
            if isinstance(sort_type, SortOrder):
                sort_type = sort_type.value
            direction = _SORT_ORDERS.get(sort_type.upper()) if isinstance(sort_type, str) else None
            if direction is None:
                raise QueryError(f"Unknown {sort_type} sort type")
            keys.append(f"{field} {direction}")
        return ', '.join(keys)

    def get_where(self, criteria: Criteria) -> Tuple[str, List[Any]]:
        """Compile conditions into an AND chain, ``1`` when there are none."""
        if not criteria.conditions:
            return '1', []

        placeholders = []
        arguments: List[Any] = []
        for column, value, comparison in criteria.conditions:
            try:
                comparison = Comparison(comparison)
            except ValueError:
                raise QueryError(f"Unknown {comparison} comparison") from None

            if comparison in (Comparison.IS_NULL, Comparison.IS_NOT_NULL):
                placeholders.append(f"{column} {comparison.value}")
            elif comparison in (Comparison.IN, Comparison.NOT_IN):
                values = list(value) if isinstance(value, (list, tuple, set, frozenset)) else [value]
                placeholders.append(f"{column} {comparison.value}({self.get_placeholders(len(values))})")
                arguments.extend(values)
            else:
                if not isinstance(value, SCALAR_TYPES):
                    raise QueryError(
                        f"The {type(value).__name__} type of value is wrong for {comparison.value} comparison"
                    )
                placeholders.append(f"{column}{comparison.value}?")
                arguments.append(value)

        return ' AND '.join(placeholders), arguments

    def get_values_placeholders(self, criteria: Criteria) -> Tuple[str, List[Any]]:
        """Build the VALUES groups of a (multi-row) insert.

        ``criteria.values`` is column-major: one entry per field, each a
        scalar or a list of per-row values. Parameters are laid out row by
        row.
        """
        columns_count = len(criteria.fields)
        if len(criteria.values) != columns_count:
            raise QueryError(
                f"Values count {len(criteria.values)} does not match fields count {columns_count}"
            )

        rows_count = None
        arguments: Dict[int, Any] = {}
        for column_index, column in enumerate(criteria.values):
            if not isinstance(column, (list, tuple)):
                column = [column]
            for row_index, value in enumerate(column):
                arguments[column_index + row_index * columns_count] = value
            if rows_count is None:
                rows_count = len(column)
            elif rows_count != len(column):
                raise QueryError(f"Wrong rows count in {column_index} column for multi insert query")

        if not rows_count:
            raise QueryError("No values for insert statement")

        row = f"({self.get_placeholders(columns_count)})"
        return self.get_placeholders(rows_count, row), [arguments[i] for i in range(len(arguments))]

    def get_duplicate_updated_values(self, columns: Union[Sequence[str], Mapping[str, str]],
                                     values: Mapping[str, Any]) -> Tuple[str, List[Any]]:
        if isinstance(columns, Mapping):
            items = list(columns.items())
        else:
            items = [(column, 'value') for column in columns]

        updates = []
        arguments: List[Any] = []
        for column, function in items:
            if function == 'value':
                updates.append(f"{column}=VALUES({column})")
            elif function == 'inc':
                if column not in values:
                    raise QueryError(f'Value for "{column}" isn`t specified')
                value = values[column]
                if isinstance(value, (list, tuple)):
                    value = value[0]
                updates.append(f"{column}={column}+(?)")
                arguments.append(value)
            else:
                raise QueryError(f"Unsupported function: {function}")
        return ','.join(updates), arguments

    def build_select(self, criteria: Criteria, route: Route) -> Tuple[str, List[Any]]:
        where, arguments = self.get_where(criteria)
        sql = f"SELECT {self.get_expression(criteria)} FROM {route} WHERE {where}"

        if criteria.aggregations and criteria.fields:
            sql += ' GROUP BY ' + ','.join(criteria.fields)

        if criteria.order:
            sql += ' ORDER BY ' + self.get_order(criteria.order)

        if criteria.limit_value:
            sql += f" LIMIT {int(criteria.limit_value)}"
            if criteria.offset_value:
                sql += f" OFFSET {int(criteria.offset_value)}"

        return sql, arguments

    def build_insert(self, criteria: Criteria, route: Route) -> Tuple[str, List[Any]]:
        if not criteria.fields:
            raise QueryError("No fields for insert statement")

        values, arguments = self.get_values_placeholders(criteria)
        sql = f"INSERT INTO {route}({','.join(criteria.fields)}) VALUES {values}"

        if criteria.upsert_columns:
            updates, update_arguments = self.get_duplicate_updated_values(
                criteria.upsert_columns, dict(zip(criteria.fields, criteria.values))
            )
            sql += f" ON DUPLICATE KEY UPDATE {updates}"
            arguments.extend(update_arguments)

        return sql, arguments

    def build_update(self, criteria: Criteria, route: Route) -> Tuple[str, List[Any]]:
        return self._build_set(criteria, route, lambda fields: '=?,'.join(fields) + '=?')

    def build_increment(self, criteria: Criteria, route: Route) -> Tuple[str, List[Any]]:
        return self._build_set(criteria, route, lambda fields: ','.join(f"{f}={f}+(?)" for f in fields))

    def build_delete(self, criteria: Criteria, route: Route) -> Tuple[str, List[Any]]:
        where, arguments = self.get_where(criteria)
        return f"DELETE FROM {route} WHERE {where}", arguments

    def _build_set(self, criteria: Criteria, route: Route, placeholders_generator) -> Tuple[str, List[Any]]:
        if not criteria.fields:
            raise QueryError("No fields for update statement")

        where, where_arguments = self.get_where(criteria)
        sql = f"UPDATE {route} SET {placeholders_generator(criteria.fields)} WHERE {where}"
        return sql, list(criteria.values) + where_arguments

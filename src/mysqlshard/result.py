# src/mysqlshard/result.py
from typing import Any, Dict, List, Optional

from mysql.connector.errors import Error as MySQLError

from .errors import translate_error


class Result:
    """Row accessors over an executed cursor.

    The cursor is expected to return rows as dictionaries. Call ``free`` (or
    use the result as a context manager) to release it; rows left unread by
    ``one``, ``value`` or ``column`` are drained first so the link can run
    the next statement.
    """

    def __init__(self, cursor):
        self._cursor = cursor
        self._rowcount = getattr(cursor, 'rowcount', -1)
        self._last_insert_id = getattr(cursor, 'lastrowid', None)
        self._exhausted = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.free()

    def _rows(self) -> List[Dict[str, Any]]:
        if self._cursor is None or not self._has_rows():
            return []
        rows = self._cursor.fetchall()
        self._exhausted = True
        return [self._as_dict(row) for row in rows]

    def _has_rows(self) -> bool:
        return bool(getattr(self._cursor, 'description', None))

    def _as_dict(self, row) -> Dict[str, Any]:
        if row is None or isinstance(row, dict):
            return row
        return dict(zip(self._cursor.column_names, row))

    def many(self) -> List[Dict[str, Any]]:
        return self._rows()

    def one(self) -> Optional[Dict[str, Any]]:
        if self._cursor is None or not self._has_rows():
            return None
        return self._as_dict(self._cursor.fetchone())

    def key_value(self) -> Dict[Any, Any]:
        """Map the first column of each row to the second one."""
        result = {}
        for row in self._rows():
            values = list(row.values())
            result[values[0]] = values[1]
        return result

    def table(self) -> Dict[str, List[Any]]:
        """Rows transposed into column lists."""
        table: Dict[str, List[Any]] = {}
        for row in self._rows():
            for column, value in row.items():
                table.setdefault(column, []).append(value)
        return table

    def value(self, name: str) -> Any:
        row = self.one()
        if row is None:
            return None
        return row.get(name)

    def column(self, index: int = 0) -> Any:
        row = self.one()
        if row is None:
            return None
        return list(row.values())[index]

    def count(self) -> int:
        """Number of rows affected by the statement."""
        return self._rowcount

    @property
    def last_insert_id(self) -> Optional[int]:
        return self._last_insert_id

    def free(self) -> bool:
        if self._cursor is None:
            return False
        cursor, self._cursor = self._cursor, None
        try:
            if not self._exhausted and getattr(cursor, 'description', None):
                cursor.fetchall()
            cursor.close()
        except MySQLError as e:
            raise translate_error(e) from e
        return True

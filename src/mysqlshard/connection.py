# src/mysqlshard/connection.py
import logging
from typing import Any, Callable, Optional, Sequence

import mysql.connector
from mysql.connector.errors import Error as MySQLError

from .config import Configuration
from .errors import translate_error
from .result import Result
from .transaction import NestedTransactionManager
from .types import ServerType


class Connection:
    """A link to one MySQL host, tagged with the role it serves.

    The driver connection is held, not inherited from, so only the calls
    below are used: ``cursor``, ``start_transaction``, ``commit``,
    ``rollback`` and ``close``. Driver errors are translated into
    ``DriverError``/``TransientConnectionError``.

    Not safe for concurrent use.
    """

    def __init__(self, link, role: ServerType = ServerType.PRIMARY, host: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        self._link = link
        self._role = role
        self._host = host
        self.logger = logger or logging.getLogger(__name__)
        self._transaction_manager = NestedTransactionManager(link, self.logger)

    @classmethod
    def open(cls, host: str, config: Configuration, role: ServerType = ServerType.PRIMARY,
             connector: Optional[Callable[..., Any]] = None,
             logger: Optional[logging.Logger] = None) -> 'Connection':
        """Connect to ``host`` using the driver (``mysql.connector.connect`` by default).

        Raises:
            DriverError: If the driver cannot establish the link.
        """
        connector = connector or mysql.connector.connect
        try:
            link = connector(**config.to_connection_args(host))
        except MySQLError as e:
            raise translate_error(e) from e
        return cls(link, role, host, logger)

    def log(self, level: int, msg: str) -> None:
        self.logger.log(level, msg)

    @property
    def role(self) -> ServerType:
        return self._role

    @property
    def host(self) -> Optional[str]:
        return self._host

    @property
    def transaction_level(self) -> int:
        return self._transaction_manager.transaction_level

    @property
    def in_transaction(self) -> bool:
        return self._transaction_manager.is_active

    def begin(self) -> bool:
        return self._transaction_manager.begin()

    def commit(self) -> bool:
        return self._transaction_manager.commit()

    def rollback(self, cause: Optional[BaseException] = None) -> bool:
        return self._transaction_manager.rollback(cause)

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Result:
        """Run a statement and wrap its cursor.

        Statements with parameters go through a prepared cursor, which binds
        ``?`` placeholders.
        """
        try:
            if params:
                cursor = self._link.cursor(prepared=True, dictionary=True)
                cursor.execute(sql, tuple(params))
            else:
                cursor = self._link.cursor(dictionary=True)
                cursor.execute(sql)
        except MySQLError as e:
            self.log(logging.ERROR, f"Error executing query on {self._host}: {str(e)}")
            raise translate_error(e) from e
        return Result(cursor)

    def ping(self) -> bool:
        """Run ``SELECT 1`` to make sure the link is alive."""
        with self.execute('SELECT 1') as result:
            result.many()
        return True

    def close(self) -> None:
        try:
            self._link.close()
        except MySQLError as e:
            self.log(logging.WARNING, f"Error closing connection to {self._host}: {str(e)}")

    def __repr__(self):
        return f"Connection(host={self._host!r}, role={self._role.name})"

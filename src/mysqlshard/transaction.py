# src/mysqlshard/transaction.py
import logging
from typing import Optional

from mysql.connector.errors import Error as MySQLError

from .errors import TransactionStateError, translate_error

COMMIT_WITHOUT_BEGIN = 10254
NESTED_ROLLBACK = 10255


class NestedTransactionManager:
    """Flattens nested begin/commit pairs into one physical transaction.

    Only the outermost ``begin`` and the matching last ``commit`` reach the
    server. A rollback is accepted only at the outermost level; inner code
    cannot partially undo the shared transaction.
    """

    def __init__(self, connection, logger: Optional[logging.Logger] = None):
        self._connection = connection
        self._transaction_level = 0
        self.logger = logger or logging.getLogger(__name__)

    def log(self, level: int, msg: str) -> None:
        self.logger.log(level, msg)

    @property
    def transaction_level(self) -> int:
        return self._transaction_level

    @property
    def is_active(self) -> bool:
        return self._transaction_level > 0

    def begin(self) -> bool:
        if self._transaction_level == 0:
            self._do_begin()
        self._transaction_level += 1
        self.log(logging.DEBUG, f"Transaction level raised to {self._transaction_level}")
        return True

    def commit(self) -> bool:
        if self._transaction_level < 1:
            self.log(logging.ERROR, "Commit requested without an active transaction")
            raise TransactionStateError("You cannot make commit without begin", COMMIT_WITHOUT_BEGIN)
        if self._transaction_level == 1:
            self._do_commit()
        self._transaction_level -= 1
        self.log(logging.DEBUG, f"Transaction level lowered to {self._transaction_level}")
        return True

    def rollback(self, cause: Optional[BaseException] = None) -> bool:
        if self._transaction_level != 1:
            self.log(logging.ERROR, f"Rollback rejected at transaction level {self._transaction_level}")
            raise TransactionStateError("Nested transaction is rolled back", NESTED_ROLLBACK) from cause
        self._do_rollback()
        self._transaction_level -= 1
        return True

    def _do_begin(self) -> None:
        try:
            self._connection.start_transaction()
            self.log(logging.DEBUG, "Started MySQL transaction")
        except MySQLError as e:
            self.log(logging.ERROR, f"Failed to begin transaction: {str(e)}")
            raise translate_error(e) from e

    def _do_commit(self) -> None:
        try:
            self._connection.commit()
            self.log(logging.DEBUG, "Committed MySQL transaction")
        except MySQLError as e:
            self.log(logging.ERROR, f"Failed to commit transaction: {str(e)}")
            raise translate_error(e) from e

    def _do_rollback(self) -> None:
        try:
            self._connection.rollback()
            self.log(logging.DEBUG, "Rolled back MySQL transaction")
        except MySQLError as e:
            self.log(logging.ERROR, f"Failed to rollback transaction: {str(e)}")
            raise translate_error(e) from e

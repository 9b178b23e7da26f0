# src/mysqlshard/errors.py
"""Exception hierarchy for the sharded MySQL middleware.

Only TransientConnectionError is ever recovered inside the package (one
forced reconnect per call). Everything else reaches the caller unchanged.
"""
from typing import Optional


class DatabaseError(Exception):
    """Base class for every error raised by mysqlshard."""


class PoolError(DatabaseError):
    """Connection pool failure."""


class ConfigurationError(PoolError):
    """Logical database name has no configured host."""


class RoutingError(DatabaseError):
    """Table route could not be resolved."""


class QueryError(DatabaseError):
    """Criteria cannot be compiled into a valid statement."""


class CriteriaError(QueryError):
    """Criteria definition is malformed."""


class MetaKeyError(CriteriaError, KeyError):
    """Requested meta value is not set on the criteria.

    Subclasses KeyError so callers can treat it as an ordinary lookup miss.
    """

    def __str__(self):
        return str(self.args[0]) if self.args else ''


class TransactionError(DatabaseError):
    """Transaction handling failure."""


class TransactionStateError(TransactionError):
    """Transaction method called in a state that does not allow it."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class DriverError(DatabaseError):
    """Error reported by the underlying MySQL driver."""

    def __init__(self, message: str, errno: Optional[int] = None, sqlstate: Optional[str] = None):
        super().__init__(message)
        self.errno = errno
        self.sqlstate = sqlstate


class TransientConnectionError(DriverError):
    """Driver error signalling a dropped connection (server gone, lost connection)."""


# MySQL server has gone away, Lost connection to MySQL server during query
TRANSIENT_ERROR_CODES = frozenset({2006, 2013})


def translate_error(error: Exception) -> DriverError:
    """Wrap a driver exception into the package hierarchy.

    The caller is expected to chain it: ``raise translate_error(e) from e``.
    """
    errno = getattr(error, 'errno', None)
    sqlstate = getattr(error, 'sqlstate', None)
    if errno in TRANSIENT_ERROR_CODES:
        return TransientConnectionError(f"MySQL connection lost: {error}", errno, sqlstate)
    return DriverError(f"MySQL error: {error}", errno, sqlstate)

# src/mysqlshard/__init__.py
"""
Data-access middleware for sharded MySQL deployments.

This package provides:
- Routing of logical tables onto sharded databases and tables
- A connection pool split by server role with replica failover
- Failure statistics shared between workers through a cache
- Compilation of declarative criteria into parameterized SQL
- Retry of statements interrupted by a dropped connection
- Nested transaction handling on a single connection

Architecture:
- Query: entry point, compiles criteria with MySQLSQLBuilder and executes
  them through Pool
- Routing: resolves Criteria.location into a Route
- Pool: memoizes Connection objects per (host, role)
- Connection: wraps a mysql-connector-python link
"""

__version__ = "1.0.0"

from .cache import Cache, MemoryCache, RedisCache
from .config import Configuration, load_config_file
from .connection import Connection
from .criteria import Aggregation, Condition, Criteria, CriteriaMeta
from .dialect import MySQLSQLBuilder
from .errors import (
    ConfigurationError,
    CriteriaError,
    DatabaseError,
    DriverError,
    MetaKeyError,
    PoolError,
    QueryError,
    RoutingError,
    TransactionError,
    TransactionStateError,
    TransientConnectionError,
)
from .pool import FailureStatistics, Pool
from .query import Query
from .result import Result
from .retry import RetryPolicy
from .routing import Routing
from .transaction import NestedTransactionManager
from .types import Comparison, Route, ServerType, ShardOption, SortOrder, TableEntry


__all__ = [
    # Entry points
    'Query',
    'Pool',
    'Routing',

    # Configuration
    'Configuration',
    'load_config_file',

    # Criteria
    'Criteria',
    'CriteriaMeta',
    'Condition',
    'Aggregation',

    # Connection and transaction
    'Connection',
    'NestedTransactionManager',
    'Result',

    # SQL and retry
    'MySQLSQLBuilder',
    'RetryPolicy',

    # Failure statistics
    'Cache',
    'MemoryCache',
    'RedisCache',
    'FailureStatistics',

    # Types
    'ServerType',
    'ShardOption',
    'Comparison',
    'SortOrder',
    'Route',
    'TableEntry',

    # Errors
    'DatabaseError',
    'PoolError',
    'ConfigurationError',
    'RoutingError',
    'QueryError',
    'CriteriaError',
    'MetaKeyError',
    'TransactionError',
    'TransactionStateError',
    'DriverError',
    'TransientConnectionError',
]

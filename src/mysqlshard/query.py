# src/mysqlshard/query.py
import logging
from typing import Any, Callable, Optional, Sequence, TypeVar

from .connection import Connection
from .criteria import Criteria
from .dialect import MySQLSQLBuilder
from .errors import MetaKeyError, QueryError
from .pool import Pool
from .result import Result
from .retry import RetryPolicy
from .routing import Routing
from .types import Route, ServerType

T = TypeVar('T')


class Query:
    """Executes criteria against the sharded deployment.

    Reads go to a replica when the criteria meta allows it, writes always go
    to the primary. Every statement is retried once, on a fresh connection,
    when the driver reports a dropped connection.
    """

    def __init__(self, pool: Pool, routing: Routing, logger: Optional[logging.Logger] = None,
                 retry_policy: Optional[RetryPolicy] = None, builder: Optional[MySQLSQLBuilder] = None):
        self.pool = pool
        self.routing = routing
        self.logger = logger or logging.getLogger(__name__)
        self.retry_policy = retry_policy or RetryPolicy()
        self.builder = builder or MySQLSQLBuilder()

    def log(self, level: int, msg: str) -> None:
        self.logger.log(level, msg)

    def get_route(self, criteria: Criteria) -> Route:
        return self.routing.get_route(criteria)

    def get_server_type(self, criteria: Criteria) -> ServerType:
        """Replica when the criteria explicitly allows it, primary otherwise."""
        try:
            read_from_replica = criteria.get_meta('read_from_replica')
        except MetaKeyError:
            return ServerType.PRIMARY
        return ServerType.REPLICA if read_from_replica else ServerType.PRIMARY

    def _ensure_primary(self, criteria: Criteria) -> None:
        if self.get_server_type(criteria) is not ServerType.PRIMARY:
            raise QueryError("Write queries can be executed only on primary")

    def select(self, criteria: Criteria) -> Result:
        route = self.get_route(criteria)
        sql, params = self.builder.build_select(criteria, route)
        return self.execute_query(sql, params, route.database, self.get_server_type(criteria))

    def insert(self, criteria: Criteria) -> Result:
        if not criteria.fields:
            raise QueryError("No fields for insert statement")
        self._ensure_primary(criteria)
        route = self.get_route(criteria)
        sql, params = self.builder.build_insert(criteria, route)
        return self.execute_query(sql, params, route.database)

    def update(self, criteria: Criteria) -> Result:
        self._ensure_primary(criteria)
        route = self.get_route(criteria)
        sql, params = self.builder.build_update(criteria, route)
        return self.execute_query(sql, params, route.database)

    def increment(self, criteria: Criteria) -> Result:
        self._ensure_primary(criteria)
        route = self.get_route(criteria)
        sql, params = self.builder.build_increment(criteria, route)
        return self.execute_query(sql, params, route.database)

    def delete(self, criteria: Criteria) -> Result:
        self._ensure_primary(criteria)
        route = self.get_route(criteria)
        sql, params = self.builder.build_delete(criteria, route)
        return self.execute_query(sql, params, route.database)

    def get_connection(self, criteria: Criteria) -> Connection:
        """Return a live connection for the criteria database and role."""

        def ping(connection: Connection) -> Connection:
            connection.ping()
            return connection

        return self.execute_callback(ping, self.get_route(criteria).database, self.get_server_type(criteria))

    def execute_query(self, sql: str, params: Optional[Sequence[Any]] = None, database: Optional[str] = None,
                      role: ServerType = ServerType.PRIMARY) -> Result:
        if database is None:
            database = self.routing.primary_database
        self.log(logging.DEBUG, f"Executing on {database} ({role.name}): {sql} with params {list(params or [])}")
        return self.execute_callback(lambda connection: connection.execute(sql, params), database, role)

    def execute_callback(self, callback: Callable[[Connection], T], database: str,
                         role: ServerType = ServerType.PRIMARY) -> T:
        """Run ``callback`` on a pooled connection, retrying once on a dropped link.

        The first attempt reuses the memoized connection; the retry reconnects
        with ``force``. An attempt made on a connection that is inside a
        transaction counts as forced: a dropped link there is re-raised, since
        reconnecting would silently discard the open transaction.
        """
        attempts = 0
        forced = False

        def attempt() -> T:
            nonlocal attempts, forced
            attempts += 1
            forced = attempts > 1
            connection = self.pool.connect(database, role, forced)
            if connection.in_transaction:
                # NOTE: the next pool.connect with force drops this link
                # together with its open transaction, so this attempt must
                # not be retried.
                forced = True
            return callback(connection)

        return self.retry_policy.retrying(can_retry=lambda: not forced, logger=self.logger)(attempt)

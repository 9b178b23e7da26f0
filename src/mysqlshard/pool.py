# src/mysqlshard/pool.py
import logging
import random
import warnings
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .cache import Cache, MemoryCache
from .config import Configuration
from .connection import Connection
from .errors import DriverError
from .types import ServerType


class FailureStatistics:
    """Per-host connect failure counters kept in a shared cache.

    The whole host -> count mapping is stored under a single key and
    rewritten on every increment. There is no compare-and-swap, so two
    workers incrementing at the same moment can lose one of the updates.
    The counters only steer replica selection, which tolerates that.
    """

    CACHE_KEY = "mysql_replica_failure_statistics"

    def __init__(self, cache: Cache, ttl: int = 60):
        self._cache = cache
        self.ttl = ttl

    def get_all(self) -> Dict[str, int]:
        return dict(self._cache.get(self.CACHE_KEY) or {})

    def get(self, host: str) -> int:
        return int(self.get_all().get(host, 0))

    def increment(self, host: str) -> int:
        statistics = self.get_all()
        statistics[host] = int(statistics.get(host, 0)) + 1
        self._cache.set(self.CACHE_KEY, statistics, self.ttl)
        return statistics[host]

    def reset(self) -> None:
        self._cache.set(self.CACHE_KEY, {}, self.ttl)


class Pool:
    """Memoizes one connection per (host, role).

    Replica requests are served by a random healthy replica of the primary
    host. A replica is unhealthy while its failure counter is above
    ``max_failures``. When no replica is usable, or the chosen one refuses
    the connection, the primary host is used instead and the returned
    connection is tagged PRIMARY.
    """

    DEFAULT_MAX_FAILURES = 15
    DEFAULT_FAILURE_STATS_TTL = 60

    def __init__(self, config: Configuration, cache: Optional[Cache] = None,
                 logger: Optional[logging.Logger] = None,
                 max_failures: int = DEFAULT_MAX_FAILURES,
                 failure_stats_ttl: int = DEFAULT_FAILURE_STATS_TTL,
                 connector: Optional[Callable[..., Any]] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.max_failures = max_failures
        self._connector = connector
        self._failure_statistics = FailureStatistics(cache or MemoryCache(), failure_stats_ttl)
        self._connections: Dict[Tuple[str, ServerType], Connection] = {}

    def log(self, level: int, msg: str) -> None:
        self.logger.log(level, msg)

    @property
    def failure_statistics(self) -> FailureStatistics:
        return self._failure_statistics

    def connect(self, database: str, role: Union[ServerType, bool] = ServerType.PRIMARY,
                force: bool = False) -> Connection:
        """Return the connection serving ``database`` with the given role.

        Args:
            database: Logical database name.
            role: Requested server role.
            force: Reopen the connection even if one is memoized.

        Raises:
            ConfigurationError: If the database is not mapped to a host.
            DriverError: If the primary host cannot be reached.
        """
        if isinstance(role, bool):
            message = "Pool.connect(database, force) is deprecated, pass a ServerType as the second argument"
            self.log(logging.WARNING, message)
            warnings.warn(message, DeprecationWarning, stacklevel=2)
            role, force = ServerType.PRIMARY, role

        host = self.config.get_host(database)
        key = (host, role)
        if key in self._connections and not force:
            return self._connections[key]

        connection = self.connect_host(host, role)
        stale = self._connections.get(key)
        if stale is not None:
            stale.close()
        self._connections[key] = connection
        return connection

    def connect_host(self, host: str, role: ServerType) -> Connection:
        """Open a new connection for the primary ``host`` in the given role."""
        target = host
        if role is ServerType.REPLICA:
            target = self.get_available_replica(host)
            if target is None:
                self.log(logging.INFO, f"No replica available for {host}, using primary")
                return self.connect_host(host, ServerType.PRIMARY)

        try:
            connection = Connection.open(target, self.config, role, self._connector, self.logger)
        except DriverError as e:
            if role is not ServerType.REPLICA:
                raise
            failures = self._failure_statistics.increment(target)
            self.log(logging.CRITICAL,
                     f"Replica {target} of {host} is unreachable ({failures} failures): {e}")
            return self.connect_host(host, ServerType.PRIMARY)

        self.log(logging.DEBUG, f"Connected to {target} as {role.name}")
        return connection

    def get_available_replica(self, host: str) -> Optional[str]:
        """Pick a random replica of ``host`` whose failure count is within the limit."""
        replicas = self.get_available_replicas(host)
        if not replicas:
            return None
        return random.choice(replicas)

    def get_available_replicas(self, host: str) -> List[str]:
        statistics = self._failure_statistics.get_all()
        return [
            replica for replica in self.config.get_replicas(host)
            if int(statistics.get(replica, 0)) <= self.max_failures
        ]

    def disconnect(self) -> None:
        """Close and forget every memoized connection."""
        for connection in self._connections.values():
            connection.close()
        self._connections.clear()

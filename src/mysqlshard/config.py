# src/mysqlshard/config.py
"""Host mapping, credentials and driver options.

Configuration maps logical database names to primary hosts and primary hosts
to their replicas. It can be built directly or loaded from a YAML, TOML or
JSON file shaped like::

    user: app
    password: secret
    hosts:
      linguadb: db-master-1
      lang: db-master-2:3307
    replicas:
      db-master-1: [db-replica-1, db-replica-2]
    routing:
      primary_database: linguadb
      tables:
        word_user: {db: leotestdb_i18n, options: [chunked, spotted]}
"""
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

try:
    import tomllib
except ImportError:
    import tomli as tomllib

from .errors import ConfigurationError

CONFIG_PATH_ENV = "MYSQLSHARD_CONFIG_PATH"


@dataclass
class Configuration:
    """Connection settings shared by every host of the deployment."""

    hosts: Dict[str, str]
    user: str
    password: str
    replicas: Dict[str, List[str]] = field(default_factory=dict)

    port: int = 3306
    charset: str = "utf8mb4"
    init_command: Optional[str] = "SET NAMES 'UTF8'"
    connect_timeout: int = 10
    autocommit: bool = True
    use_pure: bool = True
    consume_results: bool = True
    options: Dict[str, Any] = field(default_factory=dict)

    def get_host(self, database: str) -> str:
        """Return the primary host serving ``database``.

        Raises:
            ConfigurationError: If the database is not mapped.
        """
        host = self.hosts.get(database)
        if not host:
            raise ConfigurationError(f"Host is not defined for {database} database")
        return host

    def get_replicas(self, host: str) -> List[str]:
        return list(self.replicas.get(host) or [])

    def to_connection_args(self, host: str) -> Dict[str, Any]:
        """Driver keyword arguments for connecting to ``host``.

        ``host`` may carry its own port as ``name:port``. ``consume_results``
        lets the driver discard rows a partially read cursor left behind.
        """
        name, _, port = host.partition(':')
        connection_args = {
            'host': name,
            'port': int(port) if port else self.port,
            'user': self.user,
            'password': self.password,
            'charset': self.charset,
            'init_command': self.init_command,
            'connection_timeout': self.connect_timeout,
            'autocommit': self.autocommit,
            'use_pure': self.use_pure,
            'consume_results': self.consume_results,
        }
        connection_args.update(self.options)

        # Only include non-None values
        return {key: value for key, value in connection_args.items() if value is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Configuration':
        try:
            hosts = data['hosts']
        except KeyError:
            raise ConfigurationError("Configuration does not contain 'hosts' section")
        known = {
            'port', 'charset', 'init_command', 'connect_timeout',
            'autocommit', 'use_pure', 'consume_results', 'options',
        }
        extra = {key: value for key, value in data.items() if key in known}
        return cls(
            hosts=dict(hosts),
            user=data.get('user', 'root'),
            password=data.get('password', ''),
            replicas={host: list(items) for host, items in (data.get('replicas') or {}).items()},
            **extra
        )


def load_config_file(config_path: Union[str, Path, None] = None) -> Dict[str, Any]:
    """Load a configuration mapping from a file.

    Without an explicit path the ``MYSQLSHARD_CONFIG_PATH`` environment
    variable is used. The format follows the file suffix.
    """
    if config_path is None:
        config_path = os.getenv(CONFIG_PATH_ENV)
        if not config_path:
            raise ConfigurationError(f"No configuration path given and {CONFIG_PATH_ENV} is not set")
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file {config_path} does not exist")

    suffix = config_path.suffix.lower().strip()
    if suffix in ('.yaml', '.yml'):
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    elif suffix == '.toml':
        with open(config_path, 'rb') as f:
            data = tomllib.load(f)
    elif suffix == '.json':
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    else:
        raise ConfigurationError(f"Unsupported configuration file format: {config_path.suffix}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
    return data

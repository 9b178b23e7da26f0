# tests/mysqlshard_test/conftest.py
from unittest.mock import MagicMock

import pytest
from mysql.connector.errors import InterfaceError

from mysqlshard.config import Configuration


class FakeConnector:
    """Stands in for mysql.connector.connect, refusing hosts listed in ``failing``."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.hosts = []
        self.links = []

    def __call__(self, **kwargs):
        host = kwargs['host']
        self.hosts.append(host)
        if host in self.failing:
            raise InterfaceError(msg=f"Can't connect to MySQL server on '{host}'", errno=2003)
        link = MagicMock(name=f"link-{host}")
        self.links.append(link)
        return link


@pytest.fixture
def config():
    return Configuration(
        hosts={'test': 'master-1', 'linguadb': 'master-1', 'lonely': 'master-2'},
        user='test',
        password='test',
        replicas={'master-1': ['replica-1', 'replica-2']},
    )


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def make_connector():
    return FakeConnector

# tests/mysqlshard_test/test_retry.py
import logging
from unittest.mock import MagicMock, call

import pytest
from mysql.connector.errors import OperationalError

from mysqlshard.criteria import Criteria
from mysqlshard.errors import DriverError, QueryError, TransientConnectionError
from mysqlshard.pool import Pool
from mysqlshard.query import Query
from mysqlshard.retry import RetryPolicy
from mysqlshard.routing import Routing
from mysqlshard.types import ServerType


def make_connection(in_transaction=False, execute_side_effect=None):
    connection = MagicMock(name='connection')
    connection.in_transaction = in_transaction
    connection.execute.side_effect = execute_side_effect
    return connection


def gone_away():
    return TransientConnectionError('MySQL server has gone away', 2006)


@pytest.fixture
def pool():
    return MagicMock(name='pool')


@pytest.fixture
def query(pool):
    return Query(pool, Routing('test'))


def test_policy_classifies_only_transient_errors():
    policy = RetryPolicy()
    assert policy.is_transient(gone_away())
    assert policy.is_transient(TransientConnectionError('lost', 2013))
    assert not policy.is_transient(DriverError('duplicate', 1062))
    assert not policy.is_transient(QueryError('bad'))


def test_success_on_first_attempt(query, pool):
    pool.connect.return_value = make_connection()

    result = query.execute_query('SELECT 1', [], 'test')

    assert result is pool.connect.return_value.execute.return_value
    pool.connect.assert_called_once_with('test', ServerType.PRIMARY, False)


def test_transient_error_is_retried_once_with_force(query, pool, caplog):
    stale = make_connection(execute_side_effect=gone_away())
    fresh = make_connection()
    pool.connect.side_effect = [stale, fresh]

    with caplog.at_level(logging.WARNING, logger='mysqlshard.query'):
        result = query.execute_query('SELECT * FROM test.t WHERE a=?', [1], 'test', ServerType.REPLICA)

    assert result is fresh.execute.return_value
    assert pool.connect.call_args_list == [
        call('test', ServerType.REPLICA, False),
        call('test', ServerType.REPLICA, True),
    ]
    fresh.execute.assert_called_once_with('SELECT * FROM test.t WHERE a=?', [1])
    assert 'Retrying after transient error' in caplog.text


def test_second_transient_error_is_raised(query, pool):
    first, second = gone_away(), gone_away()
    pool.connect.side_effect = [
        make_connection(execute_side_effect=first),
        make_connection(execute_side_effect=second),
    ]

    with pytest.raises(TransientConnectionError) as excinfo:
        query.execute_query('SELECT 1', None, 'test')

    assert excinfo.value is second
    assert pool.connect.call_count == 2


def test_fatal_error_is_not_retried(query, pool):
    error = DriverError('Duplicate entry', 1062)
    pool.connect.return_value = make_connection(execute_side_effect=error)

    with pytest.raises(DriverError) as excinfo:
        query.execute_query('INSERT INTO t(a) VALUES (?)', [1], 'test')

    assert excinfo.value is error
    pool.connect.assert_called_once()


def test_transient_error_inside_transaction_is_not_retried(query, pool):
    error = gone_away()
    pool.connect.return_value = make_connection(in_transaction=True, execute_side_effect=error)

    with pytest.raises(TransientConnectionError) as excinfo:
        query.execute_query('UPDATE t SET a=? WHERE 1', [1], 'test')

    assert excinfo.value is error
    pool.connect.assert_called_once_with('test', ServerType.PRIMARY, False)


def test_connect_error_is_retried_when_transient(query, pool):
    fresh = make_connection()
    pool.connect.side_effect = [gone_away(), fresh]

    assert query.execute_query('SELECT 1', None, 'test') is fresh.execute.return_value
    assert pool.connect.call_count == 2


def test_custom_policy_without_retries(pool):
    query = Query(pool, Routing('test'), retry_policy=RetryPolicy(max_retries=0))
    pool.connect.return_value = make_connection(execute_side_effect=gone_away())

    with pytest.raises(TransientConnectionError):
        query.execute_query('SELECT 1', None, 'test')

    pool.connect.assert_called_once()


def test_get_connection_pings_before_returning(query, pool):
    connection = make_connection()
    pool.connect.return_value = connection

    assert query.get_connection(Criteria('users', {'read_from_replica': True})) is connection

    connection.ping.assert_called_once_with()
    pool.connect.assert_called_once_with('test', ServerType.REPLICA, False)


def test_get_connection_reconnects_when_ping_fails(query, pool):
    stale = make_connection()
    stale.ping.side_effect = gone_away()
    fresh = make_connection()
    pool.connect.side_effect = [stale, fresh]

    assert query.get_connection(Criteria('users')) is fresh
    assert pool.connect.call_args_list[1] == call('test', ServerType.PRIMARY, True)


def test_select_executes_through_pool(query, pool):
    connection = make_connection()
    pool.connect.return_value = connection

    query.select(Criteria('users').where('id', 5))

    connection.execute.assert_called_once_with('SELECT * FROM test.users WHERE id=?', [5])


def test_retry_reconnects_and_closes_dropped_link(config, connector):
    pool = Pool(config, connector=connector)
    query = Query(pool, Routing('test'))
    pool.connect('test')
    dropped = connector.links[0]
    dropped.cursor.return_value.execute.side_effect = OperationalError(msg='MySQL server has gone away', errno=2006)

    query.execute_query('SELECT 1', None, 'test')

    assert connector.hosts == ['master-1', 'master-1']
    dropped.close.assert_called_once_with()
    connector.links[1].cursor.return_value.execute.assert_called_once_with('SELECT 1')

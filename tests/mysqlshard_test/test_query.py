# tests/mysqlshard_test/test_query.py
import unittest
from unittest.mock import MagicMock

from mysqlshard.config import Configuration
from mysqlshard.criteria import Criteria
from mysqlshard.errors import QueryError
from mysqlshard.pool import Pool
from mysqlshard.query import Query
from mysqlshard.routing import Routing
from mysqlshard.types import ServerType, SortOrder


class TestQueryCompilation(unittest.TestCase):
    """Statements handed to execute_query for each criteria shape."""

    def setUp(self):
        self.query = Query(
            Pool(Configuration({'test': 'localhost'}, 'test', 'test')),
            Routing('test', {'trololo': None}),
        )
        self.query.execute_query = MagicMock(name='execute_query')
        self.criteria = Criteria('trololo')

    def assertSQL(self, sql, parameters=None):
        self.query.execute_query.assert_called_once()
        args = self.query.execute_query.call_args[0]
        self.assertEqual(sql, args[0])
        self.assertEqual(parameters or [], list(args[1]))
        self.assertEqual('test', args[2])

    def test_find_all(self):
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE 1')

    def test_find_all_with_columns(self):
        self.criteria.read('foo', 'bar + 1')
        self.query.select(self.criteria)
        self.assertSQL('SELECT foo,bar + 1 FROM test.trololo WHERE 1')

    def test_find_all_with_once_where(self):
        self.criteria.where('a', 1)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE a=?', [1])

    def test_find_with_limit(self):
        self.criteria.limit(1)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE 1 LIMIT 1')

    def test_find_with_limit_offset(self):
        self.criteria.limit(1, 2)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE 1 LIMIT 1 OFFSET 2')

    def test_zero_limit_is_not_emitted(self):
        self.criteria.limit(0, 5)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE 1')

    def test_find_all_with_complex_where(self):
        self.criteria.where('a', 1, Criteria.NOT_EQUAL)
        self.criteria.where('b', 2, Criteria.GREATER)
        self.criteria.where('c', 3, Criteria.LESS)
        self.criteria.where('d', 4, Criteria.EQUAL_GREATER)
        self.criteria.where('e', 5, Criteria.EQUAL_LESS)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE a<>? AND b>? AND c<? AND d>=? AND e<=?', [1, 2, 3, 4, 5])

    def test_find_all_with_in_where(self):
        self.criteria.where('a', [1, 2, 3], Criteria.IN)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE a IN(?,?,?)', [1, 2, 3])

    def test_find_all_with_not_in_where(self):
        self.criteria.where('a', [1, 2, 3], Criteria.NOT_IN)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE a NOT IN(?,?,?)', [1, 2, 3])

    def test_in_with_scalar_value(self):
        self.criteria.where('a', 7, Criteria.IN)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE a IN(?)', [7])

    def test_find_all_with_combined_in_equal_where(self):
        self.criteria.where('a', [1, 2, 3], Criteria.IN)
        self.criteria.where('b', 4)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE a IN(?,?,?) AND b=?', [1, 2, 3, 4])

    def test_find_all_is_null(self):
        self.criteria.where('a', None, Criteria.IS_NULL)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE a IS NULL')

    def test_find_all_is_not_null(self):
        self.criteria.where('a', None, Criteria.IS_NOT_NULL)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE a IS NOT NULL')

    def test_select_with_multi_order(self):
        self.criteria.order_by('foo')
        self.criteria.order_by('bar', SortOrder.DESC)
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE 1 ORDER BY foo ASC, bar DESC')

    def test_select_order_direction_is_case_insensitive(self):
        self.criteria.order_by('foo', 'desc')
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE 1 ORDER BY foo DESC')

    def test_select_with_order_and_limit(self):
        self.criteria.limit(100)
        self.criteria.order_by('foo', 'ASC')
        self.query.select(self.criteria)
        self.assertSQL('SELECT * FROM test.trololo WHERE 1 ORDER BY foo ASC LIMIT 100')

    def test_unknown_order_type(self):
        self.criteria.order_by('foo', 'NATURAL')
        with self.assertRaisesRegex(QueryError, 'Unknown NATURAL sort type'):
            self.query.select(self.criteria)
        self.query.execute_query.assert_not_called()

    def test_update_value(self):
        self.criteria.write({'a': 1})
        self.query.update(self.criteria)
        self.assertSQL('UPDATE test.trololo SET a=? WHERE 1', [1])

    def test_update_values_precede_where_values(self):
        self.criteria.write({'a': 1, 'b': 'x'})
        self.criteria.where('c', 2)
        self.query.update(self.criteria)
        self.assertSQL('UPDATE test.trololo SET a=?,b=? WHERE c=?', [1, 'x', 2])

    def test_increment_values(self):
        self.criteria.write({'a': 1, 'b': -1})
        self.criteria.where('c', 2)
        self.query.increment(self.criteria)
        self.assertSQL('UPDATE test.trololo SET a=a+(?),b=b+(?) WHERE c=?', [1, -1, 2])

    def test_non_scalar_value_in_condition(self):
        for value in ([], object(), lambda: None, {'a': 1}):
            criteria = Criteria('trololo').where('foo', value)
            with self.assertRaises(QueryError):
                self.query.select(criteria)
        self.query.execute_query.assert_not_called()

    def test_non_scalar_error_names_type_and_comparison(self):
        self.criteria.where('foo', [1], Criteria.GREATER)
        with self.assertRaisesRegex(QueryError, 'The list type of value is wrong for > comparison'):
            self.query.select(self.criteria)

    def test_unknown_comparison(self):
        self.criteria.where('foo', 1, 'LIKE')
        with self.assertRaises(QueryError):
            self.query.select(self.criteria)

    def test_update_with_no_write_definition(self):
        with self.assertRaisesRegex(QueryError, 'No fields for update statement'):
            self.query.update(self.criteria)

    def test_increment_with_no_write_definition(self):
        with self.assertRaises(QueryError):
            self.query.increment(self.criteria)

    def test_insert_row(self):
        self.criteria.write({'foo': 1, 'bar': -2})
        self.query.insert(self.criteria)
        self.assertSQL('INSERT INTO test.trololo(foo,bar) VALUES (?,?)', [1, -2])

    def test_multi_insert_row(self):
        self.criteria.write({'foo': [1, 2], 'bar': [-2, 3]})
        self.query.insert(self.criteria)
        self.assertSQL('INSERT INTO test.trololo(foo,bar) VALUES (?,?),(?,?)', [1, -2, 2, 3])

    def test_wrong_values_count_for_multi_insert_row(self):
        self.criteria.write({'foo': [1, 2], 'bar': -2})
        with self.assertRaisesRegex(QueryError, 'Wrong rows count in 1 column'):
            self.query.insert(self.criteria)

    def test_insert_row_on_duplicate_two_columns(self):
        self.criteria.write({'foo': 1, 'bar': -2, 'baz': 3})
        self.criteria.upsert(['foo', 'baz'])
        self.query.insert(self.criteria)
        self.assertSQL(
            'INSERT INTO test.trololo(foo,bar,baz) VALUES (?,?,?) '
            'ON DUPLICATE KEY UPDATE foo=VALUES(foo),baz=VALUES(baz)',
            [1, -2, 3]
        )

    def test_insert_row_on_duplicate_increment(self):
        self.criteria.write({'foo': 1, 'counter': 5})
        self.criteria.upsert({'counter': 'inc'})
        self.query.insert(self.criteria)
        self.assertSQL(
            'INSERT INTO test.trololo(foo,counter) VALUES (?,?) ON DUPLICATE KEY UPDATE counter=counter+(?)',
            [1, 5, 5]
        )

    def test_insert_on_duplicate_increment_uses_first_row_value(self):
        self.criteria.write({'foo': [1, 2], 'counter': [5, 6]})
        self.criteria.upsert({'counter': 'inc'})
        self.query.insert(self.criteria)
        self.assertSQL(
            'INSERT INTO test.trololo(foo,counter) VALUES (?,?),(?,?) ON DUPLICATE KEY UPDATE counter=counter+(?)',
            [1, 5, 2, 6, 5]
        )

    def test_insert_on_duplicate_unsupported_function(self):
        self.criteria.write({'foo': 1})
        self.criteria.upsert({'foo': 'max'})
        with self.assertRaisesRegex(QueryError, 'Unsupported function: max'):
            self.query.insert(self.criteria)

    def test_insert_on_duplicate_increment_without_value(self):
        self.criteria.write({'foo': 1})
        self.criteria.upsert({'bar': 'inc'})
        with self.assertRaises(QueryError):
            self.query.insert(self.criteria)

    def test_insert_with_no_write_definition(self):
        with self.assertRaisesRegex(QueryError, 'No fields for insert statement'):
            self.query.insert(self.criteria)

    def test_delete(self):
        self.query.delete(self.criteria)
        self.assertSQL('DELETE FROM test.trololo WHERE 1')

    def test_delete_with_condition(self):
        self.criteria.where('foo', 1)
        self.query.delete(self.criteria)
        self.assertSQL('DELETE FROM test.trololo WHERE foo=?', [1])

    def test_aggregate_group_by(self):
        self.criteria.read('baz').aggregate('count').aggregate('sum', 'bar')
        self.criteria.where('foo', 1)
        self.query.select(self.criteria)
        self.assertSQL('SELECT baz,COUNT(*),SUM(bar) FROM test.trololo WHERE foo=? GROUP BY baz', [1])

    def test_aggregate(self):
        self.criteria.aggregate('count')
        self.criteria.where('foo', 1)
        self.query.select(self.criteria)
        self.assertSQL('SELECT COUNT(*) FROM test.trololo WHERE foo=?', [1])

    def test_aggregate_with_alias(self):
        self.criteria.aggregate('max', 'score', 'best')
        self.query.select(self.criteria)
        self.assertSQL('SELECT MAX(score) AS best FROM test.trololo WHERE 1')


class TestServerTypeSelection(unittest.TestCase):

    def setUp(self):
        self.query = Query(
            Pool(Configuration({'test': 'localhost'}, 'test', 'test')),
            Routing('test'),
        )
        self.query.execute_query = MagicMock(name='execute_query')

    def test_select_defaults_to_primary(self):
        self.query.select(Criteria('trololo'))
        self.assertIs(ServerType.PRIMARY, self.query.execute_query.call_args[0][3])

    def test_select_from_replica(self):
        self.query.select(Criteria('trololo', {'read_from_replica': True}))
        self.assertIs(ServerType.REPLICA, self.query.execute_query.call_args[0][3])

    def test_select_with_false_affinity(self):
        criteria = Criteria('trololo', {'read_from_replica': False})
        self.assertIs(ServerType.PRIMARY, self.query.get_server_type(criteria))

    def test_writes_are_rejected_on_replica(self):
        for operation in (self.query.insert, self.query.update, self.query.increment, self.query.delete):
            criteria = Criteria('trololo', {'read_from_replica': True}).write({'a': 1})
            with self.assertRaisesRegex(QueryError, 'only on primary'):
                operation(criteria)
        self.query.execute_query.assert_not_called()


if __name__ == '__main__':
    unittest.main()

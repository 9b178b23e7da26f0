# src/mysqlshard/__main__.py
import argparse
import datetime
import decimal
import json
import logging
import sys

from .config import CONFIG_PATH_ENV, Configuration, load_config_file
from .criteria import Criteria
from .errors import DatabaseError
from .pool import Pool
from .query import Query
from .routing import Routing

# Configure basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def parse_key_values(pairs, option):
    result = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep:
            raise argparse.ArgumentTypeError(f"{option} expects key=value, got {pair!r}")
        result[key] = value
    return result


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='mysqlshard',
        description="Resolve routes, compile and run select criteria against a sharded MySQL deployment.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument(
        '--config',
        default=None,
        help=f'Configuration file (YAML, TOML or JSON; default: {CONFIG_PATH_ENV} environment variable)'
    )
    parser.add_argument('--log-level', default='INFO', help='Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)')

    parser.add_argument(
        'command',
        choices=['route', 'compile', 'select'],
        help='route: print the physical table\ncompile: print SQL and parameters\nselect: run the query'
    )
    parser.add_argument('table', help='Logical table name')
    parser.add_argument('--meta', action='append', help='Meta value as key=value (spot_id, chunk_id, locale)')
    parser.add_argument('--where', action='append', help='Equality condition as column=value')
    parser.add_argument('--fields', nargs='*', default=[], help='Columns to read')
    parser.add_argument('--order', action='append', help='Sort as field or field:DESC')
    parser.add_argument('--limit', type=int, default=0)
    parser.add_argument('--offset', type=int, default=0)
    parser.add_argument('--replica', action='store_true', help='Allow reading from a replica')

    return parser.parse_args(argv)


def build_criteria(args) -> Criteria:
    meta = parse_key_values(args.meta, '--meta')
    if args.replica:
        meta['read_from_replica'] = True
    criteria = Criteria(args.table, meta)
    for column, value in parse_key_values(args.where, '--where').items():
        criteria.where(column, value)
    if args.fields:
        criteria.read(*args.fields)
    for order in args.order or []:
        field, _, direction = order.partition(':')
        criteria.order_by(field, direction or 'ASC')
    if args.limit:
        criteria.limit(args.limit, args.offset)
    return criteria


def json_serializer(obj):
    """Handles serialization of types not supported by default JSON encoder."""
    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()
    if isinstance(obj, datetime.timedelta):
        return str(obj)
    if isinstance(obj, decimal.Decimal):
        return str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return obj.decode('utf-8', errors='replace')
    raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")


def run(args) -> int:
    data = load_config_file(args.config)
    routing = Routing.from_dict(data.get('routing') or {})
    criteria = build_criteria(args)

    if args.command == 'route':
        print(routing.get_route(criteria))
        return 0

    pool = Pool(Configuration.from_dict(data))
    query = Query(pool, routing)

    if args.command == 'compile':
        sql, params = query.builder.build_select(criteria, query.get_route(criteria))
        print(json.dumps({'sql': sql, 'params': params}, ensure_ascii=False, default=json_serializer))
        return 0

    try:
        with query.select(criteria) as result:
            rows = result.many()
        logger.info(f"Query returned {len(rows)} rows")
        for row in rows:
            print(json.dumps(row, ensure_ascii=False, default=json_serializer))
    finally:
        pool.disconnect()
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)

    # Set logging level
    numeric_level = getattr(logging, args.log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {args.log_level}')
    logging.getLogger().setLevel(numeric_level)

    try:
        return run(args)
    except argparse.ArgumentTypeError as e:
        logger.error(str(e))
        return 2
    except DatabaseError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

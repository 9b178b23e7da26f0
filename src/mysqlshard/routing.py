# src/mysqlshard/routing.py
from typing import Any, Dict, Mapping, Optional, Union

from .criteria import Criteria
from .errors import MetaKeyError, RoutingError
from .types import Route, ShardOption, TableEntry


class Routing:
    """Resolves logical table names into physical database/table pairs.

    Tables missing from the registry live in the primary database under their
    own name. Shard options are applied in the order they are listed, each
    appending ``_<meta value>`` to the database or table name, so several
    options compound.
    """

    def __init__(self, primary_database: str,
                 tables: Optional[Mapping[str, Union[TableEntry, Mapping[str, Any], None]]] = None):
        self.primary_database = primary_database
        self._tables: Dict[str, TableEntry] = {
            name: TableEntry.from_value(entry) for name, entry in (tables or {}).items()
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Routing':
        """Build routing from the ``routing`` section of a config file."""
        try:
            primary_database = data['primary_database']
        except KeyError:
            raise RoutingError("Routing configuration does not contain 'primary_database'")
        return cls(primary_database, data.get('tables') or {})

    def get_route(self, criteria: Criteria) -> Route:
        """Prepare a route for the criteria location.

        Raises:
            RoutingError: On an unknown option type or a missing meta value.
        """
        entry = self._get_entry(criteria.location)
        location = {
            'database': entry.database or self.primary_database,
            'table': entry.table_name or criteria.location,
        }
        for option_type in entry.options:
            option = self._get_option(option_type)
            try:
                modifier = criteria.get_meta(option.meta_key)
            except MetaKeyError as e:
                raise RoutingError(
                    f'Option "{option.value}" of "{criteria.location}" requires "{option.meta_key}" meta'
                ) from e
            location[option.placeholder] = f"{location[option.placeholder]}_{modifier}"
        return Route(location['database'], location['table'])

    def _get_entry(self, table_name: str) -> TableEntry:
        return self._tables.get(table_name) or TableEntry()

    @staticmethod
    def _get_option(option_type: str) -> ShardOption:
        try:
            return ShardOption(option_type)
        except ValueError:
            raise RoutingError(f'Unknown "{option_type}" option type') from None

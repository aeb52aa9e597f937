"""
SQLite storage for the decoded snapshot.

The rows of each table are written inside a single transaction: either all
the rows of a table are there or none.
"""
import logging
import sqlite3
from typing import Any, Dict, Iterable, List, NamedTuple, Tuple

from .enum import Stage
from .exceptions import StorageException


SCHEMA = '''
CREATE TABLE IF NOT EXISTS node (
  id INTEGER PRIMARY KEY,
  name TEXT,
  type TEXT,
  self_size INTEGER,
  children_count INTEGER
);

CREATE TABLE IF NOT EXISTS edge (
  "from" INTEGER,
  "to" INTEGER,
  type TEXT,
  name_or_index TEXT
);

CREATE TABLE IF NOT EXISTS location (
  node_id INTEGER,
  script_id INTEGER,
  line INTEGER,
  col INTEGER
);
'''


class Table(NamedTuple):
    name: str
    columns: Tuple[str, ...]

    @property
    def insert_sql(self) -> str:
        return 'INSERT INTO %s (%s) VALUES (%s)' % (
            self.name,
            ', '.join(f'"{_}"' for _ in self.columns),
            ', '.join('?' * len(self.columns)),
        )


TABLES: Dict[str, Table] = {_.name: _ for _ in (
    Table('node', ('id', 'name', 'type', 'self_size', 'children_count')),
    Table('edge', ('from', 'to', 'type', 'name_or_index')),
    Table('location', ('node_id', 'script_id', 'line', 'col')),
)}


def _storage_error(table, message, e=None):
    exc = StorageException(chain=[table] if table else [], message=message)
    exc.locate(Stage.WRITE)
    if e is not None:
        exc.__cause__ = e

    return exc


class TableWriter(object):
    '''Handle of the transaction writing one table.

    The entities are inserted positionally, so they must have the same
    order as the columns of the table.'''

    def __init__(self, database: "Database", table: Table):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.database = database
        self.table = table
        self.count = 0
        self._done = False

        try:
            self._cursor = database.connection.cursor()
            self._cursor.execute('BEGIN')
        except sqlite3.Error as e:
            raise _storage_error(table.name, f'unable to begin the transaction: {e}', e)

        self.logger.debug('began writing table %s', table.name)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.table.name}, count={self.count})>'

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if self._done:
            return

        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    def _check(self):
        if self._done:
            raise _storage_error(self.table.name, 'the transaction is already closed')

    def insert(self, entity: Iterable):
        self._check()
        # sqlite3 raises OverflowError for integers that do not fit in 64 bits
        try:
            self._cursor.execute(self.table.insert_sql, tuple(entity))
        except (sqlite3.Error, OverflowError) as e:
            raise _storage_error(self.table.name, f'failed to insert {entity!r}: {e}', e)
        self.count += 1

    def insert_many(self, entities: Iterable[Iterable]) -> int:
        '''The entities can be a generator: they are consumed while inserting.'''
        self._check()

        def counted():
            for entity in entities:
                yield tuple(entity)
                self.count += 1

        try:
            self._cursor.executemany(self.table.insert_sql, counted())
        except (sqlite3.Error, OverflowError) as e:
            raise _storage_error(self.table.name, f'failed to insert row {self.count}: {e}', e)

        return self.count

    def commit(self):
        self._check()
        try:
            self._cursor.execute('COMMIT')
        except sqlite3.Error as e:
            raise _storage_error(self.table.name, f'failed to commit: {e}', e)
        self._done = True
        self.logger.debug('committed %d rows into %s', self.count, self.table.name)

    def rollback(self):
        self._check()
        self._done = True
        try:
            self._cursor.execute('ROLLBACK')
        except sqlite3.Error as e:
            raise _storage_error(self.table.name, f'failed to rollback: {e}', e)
        self.logger.warning('rolled back table %s', self.table.name)


class Database(object):
    """A SQLite database with the node, edge and location tables."""

    def __init__(self, path):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.path = str(path)

        try:
            # transactions are handled explicitly by TableWriter
            self.connection = sqlite3.connect(self.path, isolation_level=None)
        except sqlite3.Error as e:
            raise _storage_error(None, f'unable to open db \'{self.path}\': {e}', e)

        self.logger.debug('opened database \'%s\'', self.path)

    def __repr__(self):
        return f'<{self.__class__.__name__}({self.path})>'

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def close(self):
        self.connection.close()

    def init_schema(self):
        try:
            self.connection.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise _storage_error(None, f'unable to init schema: {e}', e)

    def begin_table_write(self, table_name: str) -> TableWriter:
        try:
            table = TABLES[table_name]
        except KeyError:
            raise _storage_error(table_name, 'unknown table') from None

        return TableWriter(self, table)

    def insert(self, writer: TableWriter, entity: Iterable):
        writer.insert(entity)

    def commit(self, writer: TableWriter):
        writer.commit()

    def write_table(self, table_name: str, entities: Iterable[Iterable]) -> int:
        '''Insert all the entities in one transaction; if producing or
        inserting any of them fails nothing is written.'''
        with self.begin_table_write(table_name) as writer:
            writer.insert_many(entities)

        return writer.count

    def query(self, sql: str) -> List[Dict[str, Any]]:
        '''Run the statement as it is; the errors from SQLite are not wrapped.'''
        self.logger.debug('run sql: %s', sql)

        cursor = self.connection.execute(sql)
        columns = [_[0] for _ in cursor.description or ()]

        rows = []
        for values in cursor.fetchall():
            for column, value in zip(columns, values):
                if isinstance(value, bytes):
                    raise ValueError(f'unsupported value type: blob (column "{column}")')
            rows.append(dict(zip(columns, values)))

        return rows


def format_value(value) -> str:
    if value is None:
        return 'null'

    return str(value)


def format_row(row: Dict[str, Any]) -> str:
    return '{%s}' % ', '.join(f'{column}: {format_value(value)}' for column, value in row.items())

# steelvault/services/table_client.py
"""
Query builder with the hosted table service's surface:

    client.table('Project').select('id, status').eq('clientId', 3).order('createdAt').execute()

Every call returns a ``QueryResult``. A non-null ``error`` means the call
failed and ``data`` must be ignored; no error with empty ``data`` means the
table simply had no matching rows. Nothing in here raises for a bad table or
column name, so the dashboard glue can decide how to surface the failure.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import MetaData, Table, func, inspect, select, update
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from ..errors import BackendUnavailable

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    data: Any = None
    error: Optional[str] = None
    table: Optional[str] = None

    @property
    def ok(self):
        return self.error is None

    def rows(self):
        """Rows of a successful call; raises BackendUnavailable for a failed one."""
        if self.error is not None:
            raise BackendUnavailable(f"Query on {self.table or 'table'} failed", detail=self.error)
        if self.data is None:
            return []
        return self.data if isinstance(self.data, list) else [self.data]


def _parse_columns(columns):
    if columns is None:
        return None
    if isinstance(columns, str):
        names = [c.strip() for c in columns.split(',') if c.strip()]
    else:
        names = [c for c in columns if c]
    if not names or names == ['*']:
        return None
    return names


class TableQuery:
    def __init__(self, client, name):
        self._client = client
        self.name = name
        self._columns = None
        self._filters = []
        self._order = []
        self._limit = None
        self._values = None

    def update(self, values):
        """Turn the query into an UPDATE of the filtered rows; ``data`` becomes the row count."""
        self._values = dict(values)
        return self

    def select(self, columns='*'):
        self._columns = _parse_columns(columns)
        return self

    def eq(self, column, value):
        self._filters.append(('eq', column, value))
        return self

    def ieq(self, column, value):
        """Case-insensitive equality (the service's ilike without wildcards)."""
        self._filters.append(('ieq', column, value))
        return self

    def in_(self, column, values):
        self._filters.append(('in', column, list(values)))
        return self

    def gte(self, column, value):
        self._filters.append(('gte', column, value))
        return self

    def lte(self, column, value):
        self._filters.append(('lte', column, value))
        return self

    def order(self, column, ascending=True):
        self._order.append((column, ascending))
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _clause(self, table, op, column, value):
        col = table.c[column]
        if op == 'eq':
            return col.is_(None) if value is None else col == value
        if op == 'ieq':
            return func.lower(col) == str(value).lower()
        if op == 'in':
            return col.in_(value)
        if op == 'gte':
            return col >= value
        if op == 'lte':
            return col <= value
        raise ValueError(f"Unsupported filter operator: {op}")

    def execute(self):
        try:
            table = self._client.get_table(self.name)
        except NoSuchTableError:
            return QueryResult(error=f'relation "{self.name}" does not exist', table=self.name)
        except SQLAlchemyError as e:
            logger.error(f"Could not load table {self.name}: {e}")
            return QueryResult(error=str(e), table=self.name)

        if self._values is not None:
            return self._execute_update(table)

        try:
            if self._columns:
                stmt = select(*[table.c[name] for name in self._columns])
            else:
                stmt = select(table)
            for op, column, value in self._filters:
                stmt = stmt.where(self._clause(table, op, column, value))
            for column, ascending in self._order:
                stmt = stmt.order_by(table.c[column].asc() if ascending else table.c[column].desc())
            if self._limit is not None:
                stmt = stmt.limit(self._limit)
        except KeyError as e:
            return QueryResult(error=f"column {e} does not exist on {self.name}", table=self.name)

        try:
            rows = self._client.session.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"Query on {self.name} failed: {e}")
            self._client.session.rollback()
            return QueryResult(error=str(e), table=self.name)

        return QueryResult(data=[dict(row) for row in rows], table=self.name)

    def _execute_update(self, table):
        try:
            values = {table.c[column]: value for column, value in self._values.items()}
            stmt = update(table).values(values)
            for op, column, value in self._filters:
                stmt = stmt.where(self._clause(table, op, column, value))
        except KeyError as e:
            return QueryResult(error=f"column {e} does not exist on {self.name}", table=self.name)

        try:
            result = self._client.session.execute(stmt)
            self._client.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Update on {self.name} failed: {e}")
            self._client.session.rollback()
            return QueryResult(error=str(e), table=self.name)
        return QueryResult(data=result.rowcount, table=self.name)

    def single(self):
        """Exactly one row, otherwise an error result."""
        result = self.execute()
        if result.error is not None:
            return result
        if len(result.data) != 1:
            return QueryResult(error=f"expected a single row from {self.name}, got {len(result.data)}", table=self.name)
        return QueryResult(data=result.data[0], table=self.name)

    def maybe_single(self):
        """Zero rows gives data=None; more than one row is an error."""
        result = self.execute()
        if result.error is not None:
            return result
        if len(result.data) > 1:
            return QueryResult(error=f"multiple rows returned from {self.name}", table=self.name)
        return QueryResult(data=result.data[0] if result.data else None, table=self.name)


class TableClient:
    """Entry point bound to a Flask-SQLAlchemy ``db``; declared models win over reflection."""

    def __init__(self, db):
        self.db = db
        self._reflected = MetaData()

    @property
    def session(self):
        return self.db.session

    def table(self, name):
        return TableQuery(self, name)

    def get_table(self, name):
        declared = self.db.metadata.tables.get(name)
        if declared is not None:
            return declared
        if name in self._reflected.tables:
            return self._reflected.tables[name]
        if not inspect(self.db.engine).has_table(name):
            raise NoSuchTableError(name)
        return Table(name, self._reflected, autoload_with=self.db.engine)

    def columns(self, name):
        """Column names of a table, or an empty list when it does not exist."""
        try:
            return [column.name for column in self.get_table(name).columns]
        except SQLAlchemyError:
            return []

    def probe(self, candidates, build=None):
        """
        Return the rows of the first candidate table that answers with rows.

        Kept only for tables whose name still varies between environments. A
        table that exists but is empty ends the search with no error when no
        later candidate has rows; if every candidate fails, the last error is
        returned.
        """
        last_error = None
        answered = False
        for name in candidates:
            query = self.table(name).select('*')
            if build is not None:
                query = build(query)
            result = query.execute()
            if result.error is not None:
                logger.debug(f"Table probe on {name} failed: {result.error}")
                last_error = result.error
                continue
            answered = True
            if result.data:
                return result
        if not answered and last_error is not None:
            return QueryResult(error=last_error, table=candidates[-1] if candidates else None)
        return QueryResult(data=[], table=None)


def get_table_client():
    """The app-wide TableClient, created on first use so reflected tables are cached per app."""
    from flask import current_app
    from ..models import db

    client = current_app.extensions.get('steelvault.tables')
    if client is None:
        client = TableClient(db)
        current_app.extensions['steelvault.tables'] = client
    return client

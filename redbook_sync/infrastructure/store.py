"""PostgreSQL (asyncpg) implementation of the RecordStore port."""

import dataclasses
import logging
import re

import asyncpg

from ..application.domain import RecordStore, StoredRecord
from ..application.exceptions import ConfigurationError, StoreWriteError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_COLUMNS = [field.name for field in dataclasses.fields(StoredRecord)]
_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class PostgresRecordStore(RecordStore):
    """Writes stored records into a single PostgreSQL table."""

    def __init__(self, connection_string: str, table: str = "uspto_patents"):
        """
        Initializes the store adapter. No connection is opened until the
        store is entered.

        Args:
            connection_string: A PostgreSQL DSN, resolved by the config layer.
            table: The target table name.

        Raises:
            ConfigurationError: If the DSN is missing or a placeholder, or
                                the table name is not a plain identifier.
        """

        if not connection_string or "YOUR_" in connection_string.upper():
            raise ConfigurationError(
                f"Connection string for {self.__class__.__name__} is missing "
                f"or is a placeholder. Set database.connection_string in "
                f"config/.secrets.toml or REDBOOK_DATABASE__CONNECTION_STRING."
            )
        if not _IDENTIFIER.match(table):
            raise ConfigurationError(f"Invalid table name {table!r}")

        self.connection_string = connection_string
        self.table = table
        self.logger = logging.getLogger(self.__class__.__name__)
        self._connection = None
        self._insert_sql = (
            f"INSERT INTO {table} ({', '.join(_COLUMNS)}) "
            f"VALUES ({', '.join(f'${i}' for i in range(1, len(_COLUMNS) + 1))})"
        )

    async def __aenter__(self) -> "PostgresRecordStore":
        try:
            self._connection = await asyncpg.connect(self.connection_string)
        except _STORE_ERRORS as e:
            raise StoreWriteError(f"Failed to connect to the store: {e}") from e
        self.logger.info("Connected to the record store")
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            self.logger.info("Disconnected from the record store")

    async def ensure_schema(self):
        columns = ",\n".join(f"    {column} TEXT NOT NULL" for column in _COLUMNS)
        try:
            await self._connection.execute(
                f"CREATE TABLE IF NOT EXISTS {self.table} (\n"
                f"    id BIGSERIAL PRIMARY KEY,\n{columns}\n)"
            )
        except _STORE_ERRORS as e:
            raise StoreWriteError(
                f"Failed to create table {self.table}: {e}"
            ) from e

    async def insert(self, record: StoredRecord):
        values = [getattr(record, column) for column in _COLUMNS]
        try:
            await self._connection.execute(self._insert_sql, *values)
        except _STORE_ERRORS as e:
            raise StoreWriteError(
                f"Failed to insert {record.document_number}: {e}"
            ) from e

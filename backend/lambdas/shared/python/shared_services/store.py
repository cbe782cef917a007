"""Generic remote store interface.

Every store call returns a ``StoreResult`` instead of raising, so callers
decide whether a failure is fatal (the chord migration) or only logged
(profile and limits reads). "No row matched" is its own outcome and is
never reported as an error.
"""

import logging
import os
from typing import Any

from errors.exceptions import ConfigurationError, ExternalServiceError, NotFoundError

logger = logging.getLogger(__name__)

STATUS_OK = 'ok'
STATUS_NOT_FOUND = 'not_found'
STATUS_ERROR = 'error'


class StoreResult:
    """Outcome of a single remote store call."""

    __slots__ = ('status', 'data', 'error')

    def __init__(self, status: str, data: Any = None, error: Exception | None = None):
        self.status = status
        self.data = data
        self.error = error

    @classmethod
    def ok(cls, data: Any = None) -> 'StoreResult':
        return cls(STATUS_OK, data=data)

    @classmethod
    def not_found(cls, table: str, filters: dict | None = None) -> 'StoreResult':
        return cls(STATUS_NOT_FOUND, error=NotFoundError(f'No row in {table} matched', table, filters))

    @classmethod
    def failed(cls, error: ExternalServiceError) -> 'StoreResult':
        return cls(STATUS_ERROR, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def is_not_found(self) -> bool:
        return self.status == STATUS_NOT_FOUND

    @property
    def is_error(self) -> bool:
        return self.status == STATUS_ERROR

    def raise_for_error(self) -> None:
        """Raise the carried ExternalServiceError. Not-found and ok results pass through."""
        if self.is_error:
            raise self.error

    def __repr__(self) -> str:
        return f'StoreResult(status={self.status!r}, data={self.data!r}, error={self.error!r})'


class RemoteStore:
    """
    Query interface implemented by each store adapter.

    Subclasses must never raise for remote failures; wrap them in
    ``StoreResult.failed`` with an ``ExternalServiceError``.
    """

    service_name = 'remote-store'

    def find_one(self, table: str, filters: dict[str, Any], columns: str = '*') -> StoreResult:
        """Return the single row matching all equality filters, or a not-found result."""
        raise NotImplementedError

    def insert(self, table: str, row: dict[str, Any]) -> StoreResult:
        """Insert a row and return it, including its generated ``id``."""
        raise NotImplementedError

    def select_all(self, table: str, order_by: list[str] | None = None) -> StoreResult:
        """Read every row of a table, ordered by the given columns."""
        raise NotImplementedError

    def rpc(self, name: str, params: dict[str, Any] | None = None) -> StoreResult:
        """Invoke a named remote procedure."""
        raise NotImplementedError

    def _error(self, message: str, operation: str, exc: Exception, remote_code: str | None = None) -> StoreResult:
        logger.debug(f'{self.service_name} {operation} failed: {exc}')
        return StoreResult.failed(
            ExternalServiceError(
                message,
                service=self.service_name,
                original_error=str(exc),
                operation=operation,
                remote_code=remote_code,
            )
        )


def create_store_from_env() -> RemoteStore:
    """
    Build the store adapter selected by ``STORE_BACKEND``.

    Returns:
        SupabaseStore (default) or DynamoDBStore

    Raises:
        ConfigurationError: Unknown backend or missing connection settings
    """
    backend = os.environ.get('STORE_BACKEND', 'supabase').strip().lower()

    if backend == 'supabase':
        from shared_services.supabase_store import SupabaseStore

        return SupabaseStore.from_env()

    if backend == 'dynamodb':
        import boto3
        from shared_services.dynamodb_store import DynamoDBStore

        table_name = os.environ.get('DYNAMODB_TABLE_NAME')
        if not table_name:
            raise ConfigurationError('DYNAMODB_TABLE_NAME is required for the dynamodb store', 'DYNAMODB_TABLE_NAME')
        return DynamoDBStore(boto3.resource('dynamodb').Table(table_name))

    raise ConfigurationError(f'Unsupported STORE_BACKEND: {backend}', 'STORE_BACKEND')

"""Supabase (PostgREST) adapter for the remote store interface."""

import logging
import os
from typing import Any

import httpx
from errors.exceptions import ConfigurationError
from postgrest.exceptions import APIError
from shared_services.store import RemoteStore, StoreResult
from supabase import Client, create_client

logger = logging.getLogger(__name__)

# PostgREST code returned by .single() when the filter matched zero rows
NO_ROWS_CODE = 'PGRST116'


class SupabaseStore(RemoteStore):
    """
    Remote store backed by a Supabase project.

    The Supabase client is injected via constructor for testability;
    ``from_env`` builds one from the service credentials.
    """

    service_name = 'supabase'

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_env(cls) -> 'SupabaseStore':
        supabase_url = os.environ.get('SUPABASE_URL')
        supabase_key = os.environ.get('SUPABASE_SERVICE_KEY') or os.environ.get('SUPABASE_ANON_KEY')
        if not supabase_url:
            raise ConfigurationError('SUPABASE_URL is not set', 'SUPABASE_URL')
        if not supabase_key:
            raise ConfigurationError('SUPABASE_SERVICE_KEY or SUPABASE_ANON_KEY is not set', 'SUPABASE_SERVICE_KEY')
        return cls(create_client(supabase_url, supabase_key))

    def find_one(self, table: str, filters: dict[str, Any], columns: str = '*') -> StoreResult:
        try:
            query = self.client.table(table).select(columns)
            for column, value in filters.items():
                query = query.eq(column, value)
            response = query.single().execute()
        except APIError as e:
            if e.code == NO_ROWS_CODE:
                return StoreResult.not_found(table, filters)
            return self._error(f'Lookup in {table} failed', 'find_one', e, remote_code=e.code)
        except httpx.HTTPError as e:
            return self._error(f'Lookup in {table} failed', 'find_one', e)

        if not response.data:
            return StoreResult.not_found(table, filters)
        return StoreResult.ok(response.data)

    def insert(self, table: str, row: dict[str, Any]) -> StoreResult:
        try:
            response = self.client.table(table).insert([row]).execute()
        except APIError as e:
            return self._error(f'Insert into {table} failed', 'insert', e, remote_code=e.code)
        except httpx.HTTPError as e:
            return self._error(f'Insert into {table} failed', 'insert', e)

        if not response.data:
            return self._error(f'Insert into {table} returned no row', 'insert', ValueError('empty response'))
        return StoreResult.ok(response.data[0])

    def select_all(self, table: str, order_by: list[str] | None = None) -> StoreResult:
        try:
            query = self.client.table(table).select('*')
            for column in order_by or []:
                query = query.order(column)
            response = query.execute()
        except APIError as e:
            return self._error(f'Read of {table} failed', 'select_all', e, remote_code=e.code)
        except httpx.HTTPError as e:
            return self._error(f'Read of {table} failed', 'select_all', e)

        return StoreResult.ok(response.data or [])

    def rpc(self, name: str, params: dict[str, Any] | None = None) -> StoreResult:
        try:
            response = self.client.rpc(name, params or {}).execute()
        except APIError as e:
            return self._error(f'Procedure {name} failed', 'rpc', e, remote_code=e.code)
        except httpx.HTTPError as e:
            return self._error(f'Procedure {name} failed', 'rpc', e)

        return StoreResult.ok(response.data)

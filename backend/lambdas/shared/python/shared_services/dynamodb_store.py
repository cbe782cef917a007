"""DynamoDB adapter for the remote store interface.

All logical tables share one DynamoDB table:
  PK = TABLE#<table name>, SK = ROW#<row id>

The two usage procedures that Supabase runs server-side are implemented
here as conditional updates.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from shared_services.store import RemoteStore, StoreResult

logger = logging.getLogger(__name__)

PROFILES_TABLE = 'user_profiles'


def _utc_today() -> date:
    return datetime.now(UTC).date()


def _to_dynamo(value: Any) -> Any:
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


def _strip_keys(item: dict[str, Any]) -> dict[str, Any]:
    return _from_dynamo({k: v for k, v in item.items() if k not in ('PK', 'SK')})


def _sort_value(value: Any) -> tuple:
    # None sorts last, like PostgreSQL's default NULLS LAST for ascending order
    return (value is None, '' if value is None else value)


class DynamoDBStore(RemoteStore):
    """
    Remote store backed by a single DynamoDB table.

    Args:
        table: DynamoDB Table resource
        clock: Callable returning today's date, used by reset_daily_searches
    """

    service_name = 'dynamodb'

    def __init__(self, table, clock: Callable[[], date] | None = None):
        self.table = table
        self.clock = clock or _utc_today
        self.procedures: dict[str, Callable[[dict[str, Any]], StoreResult]] = {
            'increment_search_usage': self._increment_search_usage,
            'reset_daily_searches': self._reset_daily_searches,
        }

    @staticmethod
    def _pk(table: str) -> str:
        return f'TABLE#{table}'

    @staticmethod
    def _sk(row_id: str) -> str:
        return f'ROW#{row_id}'

    def _query_table(self, table: str, filter_expression=None) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {'KeyConditionExpression': Key('PK').eq(self._pk(table))}
        if filter_expression is not None:
            kwargs['FilterExpression'] = filter_expression

        items: list[dict[str, Any]] = []
        while True:
            response = self.table.query(**kwargs)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            kwargs['ExclusiveStartKey'] = last_key

    def find_one(self, table: str, filters: dict[str, Any], columns: str = '*') -> StoreResult:
        try:
            if set(filters) == {'id'}:
                response = self.table.get_item(Key={'PK': self._pk(table), 'SK': self._sk(str(filters['id']))})
                items = [response['Item']] if 'Item' in response else []
            else:
                condition = None
                for column, value in filters.items():
                    clause = Attr(column).eq(_to_dynamo(value))
                    condition = clause if condition is None else condition & clause
                items = self._query_table(table, condition)
        except ClientError as e:
            return self._error(f'Lookup in {table} failed', 'find_one', e, remote_code=e.response['Error']['Code'])

        if not items:
            return StoreResult.not_found(table, filters)
        if len(items) > 1:
            return self._error(
                f'Lookup in {table} matched {len(items)} rows', 'find_one', ValueError('expected a single row')
            )

        row = _strip_keys(items[0])
        if columns != '*':
            wanted = [c.strip() for c in columns.split(',')]
            row = {c: row.get(c) for c in wanted}
        return StoreResult.ok(row)

    def insert(self, table: str, row: dict[str, Any]) -> StoreResult:
        created = dict(row)
        created.setdefault('id', str(uuid.uuid4()))
        created.setdefault('created_at', datetime.now(UTC).isoformat())
        item = {'PK': self._pk(table), 'SK': self._sk(str(created['id'])), **_to_dynamo(created)}

        try:
            self.table.put_item(Item=item, ConditionExpression='attribute_not_exists(PK)')
        except ClientError as e:
            return self._error(f'Insert into {table} failed', 'insert', e, remote_code=e.response['Error']['Code'])

        return StoreResult.ok(created)

    def select_all(self, table: str, order_by: list[str] | None = None) -> StoreResult:
        try:
            items = self._query_table(table)
        except ClientError as e:
            return self._error(f'Read of {table} failed', 'select_all', e, remote_code=e.response['Error']['Code'])

        rows = [_strip_keys(item) for item in items]
        for column in reversed(order_by or []):
            rows.sort(key=lambda r, c=column: _sort_value(r.get(c)))
        return StoreResult.ok(rows)

    def rpc(self, name: str, params: dict[str, Any] | None = None) -> StoreResult:
        procedure = self.procedures.get(name)
        if procedure is None:
            return self._error(f'Unknown procedure: {name}', 'rpc', LookupError(name))

        try:
            return procedure(params or {})
        except ClientError as e:
            return self._error(f'Procedure {name} failed', 'rpc', e, remote_code=e.response['Error']['Code'])

    def _increment_search_usage(self, params: dict[str, Any]) -> StoreResult:
        user_id = params.get('user_id_param')
        if not user_id:
            return self._error('increment_search_usage requires user_id_param', 'rpc', ValueError('user_id_param'))

        response = self.table.update_item(
            Key={'PK': self._pk(PROFILES_TABLE), 'SK': self._sk(str(user_id))},
            UpdateExpression='SET daily_searches_used = if_not_exists(daily_searches_used, :zero) + :one',
            ConditionExpression='attribute_exists(PK)',
            ExpressionAttributeValues={':zero': 0, ':one': 1},
            ReturnValues='UPDATED_NEW',
        )
        return StoreResult.ok(_from_dynamo(response.get('Attributes', {})))

    def _reset_daily_searches(self, params: dict[str, Any]) -> StoreResult:
        today = self.clock().isoformat()
        # Compare the date part only; rows may carry a full timestamp
        stale = [
            item
            for item in self._query_table(PROFILES_TABLE)
            if str(item.get('last_search_reset') or '')[:10] != today
        ]

        for item in stale:
            self.table.update_item(
                Key={'PK': item['PK'], 'SK': item['SK']},
                UpdateExpression='SET daily_searches_used = :zero, last_search_reset = :today',
                ExpressionAttributeValues={':zero': 0, ':today': today},
            )

        logger.info(f'Reset daily searches for {len(stale)} profiles')
        return StoreResult.ok({'reset_count': len(stale)})

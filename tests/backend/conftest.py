"""
Pytest configuration and fixtures for Lambda function testing
"""
import importlib.util
import os
import sys
from datetime import date
from pathlib import Path

import pytest
from moto import mock_aws

# Path to lambdas directory
BACKEND_LAMBDAS = Path(__file__).parent.parent.parent / 'backend' / 'lambdas'

# Path to shared python modules
SHARED_PYTHON = BACKEND_LAMBDAS / 'shared' / 'python'

# Add shared python path to sys.path for imports
sys.path.insert(0, str(SHARED_PYTHON))

# Set test environment variables before any Lambda imports
os.environ['STORE_BACKEND'] = 'dynamodb'
os.environ['DYNAMODB_TABLE_NAME'] = 'test-table'
os.environ['LOG_LEVEL'] = 'DEBUG'
os.environ['ALLOWED_ORIGINS'] = 'http://localhost:5173,http://localhost:3000'
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')

# Fixed "today" for everything that checks the daily reset
TODAY = date(2026, 10, 17)
YESTERDAY = date(2026, 10, 16)


def _load_isolated(module_name: str, module_path: Path, lambda_dir: Path):
    """Exec a module with shared + lambda-specific paths, clearing cached layer modules first."""
    spec = importlib.util.spec_from_file_location(module_name, module_path)
    module = importlib.util.module_from_spec(spec)

    original_path = sys.path.copy()

    # Clear any cached module imports that might conflict
    for mod_name in list(sys.modules.keys()):
        if mod_name.startswith(('services', 'errors', 'shared_services')):
            del sys.modules[mod_name]

    # Shared FIRST, then lambda-specific
    clean_path = [str(SHARED_PYTHON), str(lambda_dir)]
    for p in original_path:
        if p not in clean_path:
            clean_path.append(p)

    sys.path[:] = clean_path

    try:
        spec.loader.exec_module(module)
    finally:
        sys.path[:] = original_path

    return module


def load_lambda_module(lambda_name: str):
    """
    Load a Lambda module with proper isolation to avoid caching conflicts.

    Args:
        lambda_name: Name of the Lambda directory (e.g., 'user-profile', 'chord-migration')

    Returns:
        The loaded lambda_function module
    """
    lambda_path = BACKEND_LAMBDAS / lambda_name / 'lambda_function.py'

    if not lambda_path.exists():
        raise FileNotFoundError(f"Lambda function not found: {lambda_path}")

    module_name = f"lambda_{lambda_name.replace('-', '_')}"
    return _load_isolated(module_name, lambda_path, BACKEND_LAMBDAS / lambda_name)


def load_service_class(lambda_name: str, service_name: str):
    """
    Load a service module from a Lambda's services directory.

    Args:
        lambda_name: Name of the Lambda directory (e.g., 'user-profile')
        service_name: Name of the service module (e.g., 'user_profile_service')

    Returns:
        The service module (access class via module.ClassName)
    """
    service_path = BACKEND_LAMBDAS / lambda_name / 'services' / f'{service_name}.py'

    if not service_path.exists():
        raise FileNotFoundError(f"Service not found: {service_path}")

    module_name = f"service_{lambda_name.replace('-', '_')}_{service_name}"
    return _load_isolated(module_name, service_path, BACKEND_LAMBDAS / lambda_name)


@pytest.fixture(scope='session', autouse=True)
def aws_credentials():
    """Set up fake AWS credentials for testing"""
    os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
    os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
    os.environ['AWS_SECURITY_TOKEN'] = 'testing'
    os.environ['AWS_SESSION_TOKEN'] = 'testing'
    os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create a mock DynamoDB table for testing"""
    with mock_aws():
        import boto3

        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName='test-table',
            KeySchema=[
                {'AttributeName': 'PK', 'KeyType': 'HASH'},
                {'AttributeName': 'SK', 'KeyType': 'RANGE'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'PK', 'AttributeType': 'S'},
                {'AttributeName': 'SK', 'AttributeType': 'S'},
            ],
            ProvisionedThroughput={
                'ReadCapacityUnits': 5,
                'WriteCapacityUnits': 5
            }
        )

        yield table


@pytest.fixture
def dynamodb_store(dynamodb_table):
    """DynamoDBStore over the mock table, with the clock pinned to TODAY."""
    from shared_services.dynamodb_store import DynamoDBStore

    return DynamoDBStore(dynamodb_table, clock=lambda: TODAY)


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context"""
    class MockContext:
        def __init__(self):
            self.function_name = 'test-function'
            self.function_version = '1'
            self.invoked_function_arn = 'arn:aws:lambda:us-east-1:123456789012:function:test'
            self.memory_limit_in_mb = '128'
            self.aws_request_id = 'test-request-id'
            self.log_group_name = '/aws/lambda/test'
            self.log_stream_name = '2024/01/01/[$LATEST]test'

        def get_remaining_time_in_millis(self):
            return 3000

    return MockContext()


# =============================================================================
# FACTORY FUNCTIONS FOR TEST DATA
# =============================================================================

@pytest.fixture
def create_test_profile():
    """
    Factory fixture for creating user_profiles rows.

    Usage:
        def test_something(create_test_profile):
            profile = create_test_profile(subscription_tier='hero')
    """
    def _create_profile(
        user_id: str = 'test-user-123',
        email: str = 'player@example.com',
        full_name: str | None = 'Test Player',
        subscription_tier: str | None = 'roadie',
        subscription_status: str | None = 'active',
        daily_searches_used: int = 0,
        last_search_reset: str | None = TODAY.isoformat(),
        **kwargs
    ) -> dict:
        profile = {
            'id': user_id,
            'email': email,
            'full_name': full_name,
            'subscription_tier': subscription_tier,
            'subscription_status': subscription_status,
            'daily_searches_used': daily_searches_used,
            'last_search_reset': last_search_reset,
        }
        profile.update(kwargs)
        return profile

    return _create_profile


@pytest.fixture
def seed_row(dynamodb_table):
    """
    Write a row straight into the mock table under the store's key layout.

    Usage:
        def test_something(seed_row):
            seed_row('user_profiles', {'id': 'u1', 'daily_searches_used': 3})
    """
    def _seed(table_name: str, row: dict) -> dict:
        dynamodb_table.put_item(Item={'PK': f'TABLE#{table_name}', 'SK': f"ROW#{row['id']}", **row})
        return row

    return _seed


@pytest.fixture
def create_authenticated_event():
    """
    Factory fixture for creating authenticated API Gateway events.

    Usage:
        def test_something(create_authenticated_event):
            event = create_authenticated_event(
                user_id='user123',
                body={'operation': 'increment_search'}
            )
    """
    import json

    def _create_event(
        user_id: str = 'test-user-123',
        body: dict | None = None,
        http_method: str = 'POST',
        path: str = '/profile',
        **kwargs
    ) -> dict:
        event = {
            'httpMethod': http_method,
            'path': path,
            'headers': {
                'Content-Type': 'application/json',
            },
            'queryStringParameters': None,
            'pathParameters': None,
            'body': json.dumps(body) if body else None,
            'isBase64Encoded': False,
            'requestContext': {
                'requestId': 'test-request-id',
                'authorizer': {
                    'claims': {
                        'sub': user_id,
                    }
                },
                'identity': {
                    'sourceIp': '127.0.0.1',
                },
            },
        }
        event.update(kwargs)
        return event

    return _create_event

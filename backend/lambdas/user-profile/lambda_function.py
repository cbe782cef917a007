"""User profile Lambda - Plan state, feature limits and daily search usage for the signed-in user."""

import json
import logging
import os
from typing import Any

from errors.exceptions import ConfigurationError, QuotaExceededError, ServiceError
from services.user_profile_service import UserProfileService
from shared_services.feature_limits_service import FeatureLimitsService
from shared_services.store import create_store_from_env

logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO'))

# Module-level store for warm container reuse
try:
    store = create_store_from_env()
except ConfigurationError as e:
    logger.error(f'Store not configured: {e.message}')
    store = None

limits_service = FeatureLimitsService(store) if store else None

# CORS configuration
ALLOWED_ORIGINS_ENV = os.environ.get('ALLOWED_ORIGINS', 'http://localhost:5173')
ALLOWED_ORIGINS = [o.strip() for o in ALLOWED_ORIGINS_ENV.split(',') if o.strip()]

SUPPORTED_OPERATIONS = ['increment_search', 'reset_searches', 'refresh']


def _get_origin_from_event(event: dict[str, Any]) -> str | None:
    headers = event.get('headers') or {}
    return headers.get('origin') or headers.get('Origin')


def create_response(status_code: int, body: dict[str, Any], origin: str | None = None) -> dict[str, Any]:
    """Create standardized API response"""
    allow_origin = origin if origin in ALLOWED_ORIGINS else (ALLOWED_ORIGINS[0] if ALLOWED_ORIGINS else '*')
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json',
            'Access-Control-Allow-Origin': allow_origin,
            'Vary': 'Origin',
            'Access-Control-Allow-Headers': 'Content-Type,Authorization',
            'Access-Control-Allow-Methods': 'GET,POST,OPTIONS',
        },
        'body': json.dumps(body, default=str),
    }


def _extract_user_id(event: dict[str, Any]) -> str | None:
    """Extract user ID from Cognito JWT claims. Handles both HTTP API v2 and REST API formats."""
    rc = event.get('requestContext') or {}
    auth = rc.get('authorizer') or {}
    jwt_claims = (auth.get('jwt') or {}).get('claims') or {}
    if jwt_claims.get('sub'):
        return jwt_claims['sub']
    rest_claims = auth.get('claims') or {}
    if rest_claims.get('sub'):
        return rest_claims['sub']
    return None


def build_service(user_id: str) -> UserProfileService:
    return UserProfileService(store, limits_service, identity_provider=lambda: user_id)


def lambda_handler(event: dict[str, Any], context) -> dict[str, Any]:
    """Main Lambda handler - thin routing layer delegating to UserProfileService."""
    origin = _get_origin_from_event(event)
    try:
        from shared_services.observability import setup_correlation_context

        setup_correlation_context(event, context)

        http_method = (
            event.get('httpMethod') or event.get('requestContext', {}).get('http', {}).get('method') or ''
        ).upper()

        if http_method == 'OPTIONS':
            return create_response(204, {}, origin)

        user_id = _extract_user_id(event)
        if not user_id:
            logger.error('No user ID found in JWT token')
            return create_response(401, {'error': 'Authentication required'}, origin)

        if store is None:
            return create_response(503, {'error': 'Profile store not configured'}, origin)

        service = build_service(user_id)
        service.load_limits()
        loaded = service.sync_identity()

        if loaded is not None and loaded.is_error:
            return create_response(502, {'error': loaded.error.to_dict()}, origin)
        if loaded is not None and loaded.is_not_found:
            return create_response(404, {'error': 'Profile not found'}, origin)

        if http_method == 'GET':
            return create_response(200, service.snapshot(), origin)

        if http_method != 'POST':
            return create_response(405, {'error': f'Method {http_method} not allowed'}, origin)

        body = json.loads(event.get('body') or '{}')
        operation = body.get('operation')

        if operation == 'increment_search':
            if not service.check_daily_search_limit():
                raise QuotaExceededError(
                    'Daily search limit reached', operation=operation, limit=service.get_daily_search_limit()
                )
            result = service.increment_daily_search_count()
        elif operation == 'reset_searches':
            result = service.reset_daily_search_count()
        elif operation == 'refresh':
            result = None
        else:
            return create_response(
                400,
                {'error': f'Unsupported operation: {operation}', 'supported_operations': SUPPORTED_OPERATIONS},
                origin,
            )

        if result is not None and result.is_error:
            return create_response(502, {'error': result.error.to_dict()}, origin)
        return create_response(200, service.snapshot(), origin)

    except json.JSONDecodeError:
        return create_response(400, {'error': 'Invalid JSON in request body'}, origin)
    except QuotaExceededError as e:
        return create_response(429, {'error': e.to_dict()}, origin)
    except ServiceError as e:
        logger.error(f'Service error: {e.message}')
        return create_response(500, {'error': e.to_dict()}, origin)
    except Exception as e:
        # Top-level handler: always return a valid HTTP response
        logger.error(f'Error processing request: {str(e)}')
        return create_response(500, {'error': 'Internal server error'}, origin)

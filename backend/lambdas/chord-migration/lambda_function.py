"""Chord migration Lambda - Seeds chord_variations and chord_positions from caption records.

Invoked directly (console, CLI or a deploy hook). The payload may carry
``captions`` (list of caption objects) and ``verify`` (bool, default true);
without captions the bundled sample data is used.
"""

import json
import logging
import os
from typing import Any

from errors.exceptions import ConfigurationError, ExternalServiceError, ValidationError
from shared_services.chord_captions import CHORD_CAPTION_DATA
from shared_services.chord_migration_service import DEFAULT_ASSET_BASE_URL, ChordMigrationService
from shared_services.store import create_store_from_env

logger = logging.getLogger()
logger.setLevel(os.environ.get('LOG_LEVEL', 'INFO'))

ASSET_BASE_URL = os.environ.get('CHORD_ASSET_BASE_URL', DEFAULT_ASSET_BASE_URL)

try:
    store = create_store_from_env()
except ConfigurationError as e:
    logger.error(f'Store not configured: {e.message}')
    store = None

service = ChordMigrationService(store, ASSET_BASE_URL) if store else None


def _response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body, default=str)}


def lambda_handler(event: dict[str, Any], context) -> dict[str, Any]:
    """Run the migration and return its summary."""
    from shared_services.observability import setup_correlation_context

    event = event or {}
    setup_correlation_context(event, context)

    if service is None:
        return _response(503, {'error': 'Chord store not configured'})

    captions = event.get('captions')
    if captions is None:
        captions = CHORD_CAPTION_DATA
    verify = bool(event.get('verify', True))

    try:
        summary = service.run(captions, verify=verify)
    except ValidationError as e:
        return _response(400, {'error': e.to_dict()})
    except ExternalServiceError as e:
        # Rows inserted before the failure stay; re-running is safe
        return _response(502, {'error': e.to_dict()})

    return _response(200, summary)

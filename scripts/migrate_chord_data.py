#!/usr/bin/env python3
"""
Seed chord_variations and chord_positions from chord caption records.

Safe to re-run: every row is looked up before it is inserted.

Examples:
  python scripts/migrate_chord_data.py
  python scripts/migrate_chord_data.py --captions captions.json --log-level DEBUG
  python scripts/migrate_chord_data.py --verify-only
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

# Shared layer imports when the project is not pip-installed
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / 'backend' / 'lambdas' / 'shared' / 'python'))

from errors.exceptions import ServiceError  # noqa: E402
from shared_services.chord_captions import CHORD_CAPTION_DATA  # noqa: E402
from shared_services.chord_migration_service import DEFAULT_ASSET_BASE_URL, ChordMigrationService  # noqa: E402
from shared_services.observability import configure_logging  # noqa: E402
from shared_services.store import create_store_from_env  # noqa: E402

logger = logging.getLogger('migrate_chord_data')


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Seed chord variations and positions from caption records.')
    parser.add_argument('--captions', type=Path, help='JSON file holding a list of caption objects.')
    parser.add_argument('--skip-verify', action='store_true', help='Do not re-read the tables afterwards.')
    parser.add_argument('--verify-only', action='store_true', help='Only report what the tables contain.')
    parser.add_argument('--log-level', default=None, help='Log level (defaults to LOG_LEVEL or INFO).')
    return parser.parse_args(argv)


def load_captions(path: Path | None) -> list[dict]:
    if path is None:
        return CHORD_CAPTION_DATA
    with path.open(encoding='utf-8') as fh:
        return json.load(fh)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, source='migrate_chord_data')

    try:
        service = ChordMigrationService(
            create_store_from_env(), os.environ.get('CHORD_ASSET_BASE_URL', DEFAULT_ASSET_BASE_URL)
        )
        if args.verify_only:
            service.verify()
        else:
            service.run(load_captions(args.captions), verify=not args.skip_verify)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f'Could not read captions: {e}')
        return 1
    except ServiceError as e:
        logger.error(f'Migration failed: {e.message}', extra={'operation': e.details.get('operation')})
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())

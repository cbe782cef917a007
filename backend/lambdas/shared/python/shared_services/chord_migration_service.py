"""ChordMigrationService - Idempotent seeding of chord variations and positions."""

from typing import Any

from errors.exceptions import ValidationError
from shared_services.base_service import BaseService
from shared_services.store import RemoteStore

VARIATIONS_TABLE = 'chord_variations'
POSITIONS_TABLE = 'chord_positions'

DEFAULT_ASSET_BASE_URL = 'https://example.com/svg'


def position_full_name(chord_name: str, fret_position: str) -> str:
    return f'{chord_name}-{fret_position}'


class ChordMigrationService(BaseService):
    """
    Seeds ``chord_variations`` and ``chord_positions`` from caption records.

    Every row is looked up before it is inserted, so the procedure can be
    re-run after a partial failure without creating duplicates. There is no
    transaction around the run: rows inserted before a failure stay.
    """

    def __init__(self, store: RemoteStore, asset_base_url: str = DEFAULT_ASSET_BASE_URL):
        """
        Initialize ChordMigrationService with injected dependencies.

        Args:
            store: Remote store adapter
            asset_base_url: Base URL for the placeholder SVG asset links
        """
        super().__init__(store)
        self.asset_base_url = asset_base_url.rstrip('/')

    def run(self, captions: list[dict[str, Any]], verify: bool = True) -> dict[str, Any]:
        """
        Migrate the captions, then optionally run the verification pass.

        Raises:
            ValidationError: A caption lacks chord_name or fret_position
            ExternalServiceError: Any lookup or insert failed; the run stops there
        """
        self.logger.info('Starting chord data migration')
        try:
            summary = self.migrate(captions)
        except Exception:
            self.logger.exception('Chord data migration failed')
            raise

        self.logger.info('Chord data migration completed successfully')
        if verify:
            summary['verification'] = self.verify()
        return summary

    def migrate(self, captions: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Upsert one variation per chord name and one position per (name, position) pair.

        Returns:
            dict with created/existing counts and the chord name -> variation id mapping
        """
        self._validate(captions)

        # dict.fromkeys keeps discovery order
        chord_names = list(dict.fromkeys(c['chord_name'] for c in captions))
        self.logger.info(f'Unique chord names: {chord_names}')

        variation_ids: dict[str, Any] = {}
        variations_created = 0
        for chord_name in chord_names:
            variation_id, created = self._ensure_variation(chord_name)
            variation_ids[chord_name] = variation_id
            variations_created += int(created)

        pairs = list(dict.fromkeys((c['chord_name'], c['fret_position']) for c in captions))
        self.logger.info(f'Unique chord positions: {[position_full_name(*p) for p in pairs]}')

        positions_created = 0
        for chord_name, fret_position in pairs:
            created = self._ensure_position(chord_name, fret_position, variation_ids[chord_name])
            positions_created += int(created)

        return {
            'variations_created': variations_created,
            'variations_existing': len(chord_names) - variations_created,
            'positions_created': positions_created,
            'positions_existing': len(pairs) - positions_created,
            'variation_ids': variation_ids,
        }

    def verify(self) -> dict[str, Any]:
        """Re-read both tables and log what they now contain."""
        variations_result = self.store.select_all(VARIATIONS_TABLE, order_by=['chord_name'])
        variations_result.raise_for_error()
        positions_result = self.store.select_all(POSITIONS_TABLE, order_by=['chord_name', 'fret_position'])
        positions_result.raise_for_error()

        variations = [row.get('chord_name') for row in variations_result.data]
        positions = [row.get('chord_position_full_name') for row in positions_result.data]

        self.logger.info(f'Chord variations: {len(variations)}')
        for name in variations:
            self.logger.info(f'  - {name}')
        self.logger.info(f'Chord positions: {len(positions)}')
        for name in positions:
            self.logger.info(f'  - {name}')

        return {
            'variation_count': len(variations),
            'position_count': len(positions),
            'variations': variations,
            'positions': positions,
        }

    def _validate(self, captions: list[dict[str, Any]]) -> None:
        if not isinstance(captions, list):
            raise ValidationError('captions must be a list', field='captions')
        for index, caption in enumerate(captions):
            if not isinstance(caption, dict):
                raise ValidationError(f'Caption {index} must be an object', field='captions')
            for field in ('chord_name', 'fret_position'):
                value = caption.get(field)
                if not isinstance(value, str) or not value.strip():
                    raise ValidationError(f'Caption {index} is missing {field}', field=field)

    def _ensure_variation(self, chord_name: str) -> tuple[Any, bool]:
        self.logger.info(f'Processing chord variation: {chord_name}')

        existing = self.store.find_one(VARIATIONS_TABLE, {'chord_name': chord_name}, columns='id')
        existing.raise_for_error()
        if existing.is_ok:
            self.logger.info(f'Found existing chord_variation: {chord_name}')
            return existing.data['id'], False

        created = self.store.insert(VARIATIONS_TABLE, {'chord_name': chord_name})
        created.raise_for_error()
        self.logger.info(f'Created new chord_variation: {chord_name}')
        return created.data['id'], True

    def _ensure_position(self, chord_name: str, fret_position: str, variation_id: Any) -> bool:
        full_name = position_full_name(chord_name, fret_position)
        self.logger.info(f'Processing chord position: {chord_name} - {fret_position}')

        existing = self.store.find_one(
            POSITIONS_TABLE, {'chord_name': chord_name, 'fret_position': fret_position}, columns='id'
        )
        existing.raise_for_error()
        if existing.is_ok:
            self.logger.info(f'Found existing chord_position: {full_name}')
            return False

        created = self.store.insert(
            POSITIONS_TABLE,
            {
                'chord_variation_id': variation_id,
                'chord_name': chord_name,
                'fret_position': fret_position,
                'chord_position_full_name': full_name,
                'aws_svg_url_light': f'{self.asset_base_url}/{full_name}-light.svg',
                'aws_svg_url_dark': f'{self.asset_base_url}/{full_name}-dark.svg',
            },
        )
        created.raise_for_error()
        self.logger.info(f'Created new chord_position: {full_name}')
        return True

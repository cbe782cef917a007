"""Tests for ChordMigrationService."""
from unittest.mock import MagicMock

import pytest

from errors.exceptions import ExternalServiceError, ValidationError
from shared_services.chord_captions import CHORD_CAPTION_DATA
from shared_services.chord_migration_service import ChordMigrationService
from shared_services.dynamodb_store import DynamoDBStore
from shared_services.store import StoreResult


@pytest.fixture
def store(dynamodb_table):
    return DynamoDBStore(dynamodb_table)


def _remote_error(operation='find_one'):
    return StoreResult.failed(ExternalServiceError('remote failure', service='supabase', operation=operation))


class TestMigrateSampleData:
    def test_creates_six_variations_and_seven_positions(self, store):
        service = ChordMigrationService(store)

        summary = service.migrate(CHORD_CAPTION_DATA)

        assert summary['variations_created'] == 6
        assert summary['variations_existing'] == 0
        assert summary['positions_created'] == 7
        assert summary['positions_existing'] == 0
        assert list(summary['variation_ids']) == ['D#', 'C', 'F7sus4', 'D', 'A', 'A#']
        assert len(store.select_all('chord_variations').data) == 6
        assert len(store.select_all('chord_positions').data) == 7

    def test_second_run_inserts_nothing(self, store):
        service = ChordMigrationService(store)
        first = service.migrate(CHORD_CAPTION_DATA)

        second = service.migrate(CHORD_CAPTION_DATA)

        assert second['variations_created'] == 0
        assert second['positions_created'] == 0
        assert second['variations_existing'] == 6
        assert second['positions_existing'] == 7
        assert second['variation_ids'] == first['variation_ids']
        assert len(store.select_all('chord_variations').data) == 6
        assert len(store.select_all('chord_positions').data) == 7

    def test_positions_reference_their_variation(self, store):
        service = ChordMigrationService(store)
        summary = service.migrate(CHORD_CAPTION_DATA)

        positions = store.select_all('chord_positions').data

        for position in positions:
            assert position['chord_variation_id'] == summary['variation_ids'][position['chord_name']]
        d_sharp = [p for p in positions if p['chord_name'] == 'D#']
        assert {p['chord_variation_id'] for p in d_sharp} == {summary['variation_ids']['D#']}
        assert len(d_sharp) == 2

    def test_full_name_and_asset_urls(self, store):
        service = ChordMigrationService(store, asset_base_url='https://cdn.example.org/chords/')
        service.migrate([{'chord_name': 'A#', 'fret_position': 'Pos3v2'}])

        position = store.find_one('chord_positions', {'chord_name': 'A#', 'fret_position': 'Pos3v2'}).data

        assert position['chord_position_full_name'] == 'A#-Pos3v2'
        assert position['aws_svg_url_light'] == 'https://cdn.example.org/chords/A#-Pos3v2-light.svg'
        assert position['aws_svg_url_dark'] == 'https://cdn.example.org/chords/A#-Pos3v2-dark.svg'

    def test_full_name_for_every_position(self, store):
        ChordMigrationService(store).migrate(CHORD_CAPTION_DATA)

        for position in store.select_all('chord_positions').data:
            assert position['chord_position_full_name'] == f"{position['chord_name']}-{position['fret_position']}"

    def test_reuses_existing_variation(self, store, seed_row):
        seed_row('chord_variations', {'id': 'existing-c', 'chord_name': 'C'})
        service = ChordMigrationService(store)

        summary = service.migrate([{'chord_name': 'C', 'fret_position': 'Open'}])

        assert summary['variations_created'] == 0
        assert summary['variation_ids'] == {'C': 'existing-c'}
        position = store.find_one('chord_positions', {'chord_name': 'C', 'fret_position': 'Open'}).data
        assert position['chord_variation_id'] == 'existing-c'


class TestVerify:
    def test_reports_sorted_names(self, store):
        service = ChordMigrationService(store)
        service.migrate(CHORD_CAPTION_DATA)

        report = service.verify()

        assert report['variation_count'] == 6
        assert report['position_count'] == 7
        assert report['variations'] == ['A', 'A#', 'C', 'D', 'D#', 'F7sus4']
        assert report['positions'] == [
            'A-Pos1', 'A#-Pos3v2', 'C-Open', 'D-Open', 'D#-Open', 'D#-Pos2', 'F7sus4-Pos6',
        ]

    def test_run_includes_verification(self, store):
        summary = ChordMigrationService(store).run(CHORD_CAPTION_DATA)
        assert summary['verification']['variation_count'] == 6

    def test_run_can_skip_verification(self):
        mock_store = MagicMock()
        mock_store.find_one.return_value = StoreResult.ok({'id': 1})
        service = ChordMigrationService(mock_store)

        summary = service.run([{'chord_name': 'C', 'fret_position': 'Open'}], verify=False)

        assert 'verification' not in summary
        mock_store.select_all.assert_not_called()


class TestFailures:
    def test_lookup_error_aborts_before_insert(self):
        mock_store = MagicMock()
        mock_store.find_one.return_value = _remote_error()
        service = ChordMigrationService(mock_store)

        with pytest.raises(ExternalServiceError):
            service.migrate(CHORD_CAPTION_DATA)

        mock_store.insert.assert_not_called()
        assert mock_store.find_one.call_count == 1

    def test_insert_error_keeps_earlier_rows(self, store):
        real_insert = store.insert
        calls = []

        def flaky_insert(table, row):
            calls.append(row)
            if len(calls) == 3:
                return _remote_error('insert')
            return real_insert(table, row)

        store.insert = flaky_insert
        service = ChordMigrationService(store)

        with pytest.raises(ExternalServiceError):
            service.migrate(CHORD_CAPTION_DATA)

        # Nothing is rolled back
        assert len(store.select_all('chord_variations').data) == 2

        store.insert = real_insert
        summary = service.migrate(CHORD_CAPTION_DATA)
        assert summary['variations_created'] == 4
        assert summary['variations_existing'] == 2
        assert len(store.select_all('chord_variations').data) == 6

    def test_position_lookup_error_aborts(self):
        mock_store = MagicMock()
        mock_store.find_one.side_effect = [StoreResult.ok({'id': 1}), _remote_error()]
        service = ChordMigrationService(mock_store)

        with pytest.raises(ExternalServiceError):
            service.migrate([{'chord_name': 'C', 'fret_position': 'Open'}])
        mock_store.insert.assert_not_called()

    def test_verify_error_raises(self):
        mock_store = MagicMock()
        mock_store.select_all.return_value = _remote_error('select_all')

        with pytest.raises(ExternalServiceError):
            ChordMigrationService(mock_store).verify()

    def test_run_logs_and_reraises(self, caplog):
        mock_store = MagicMock()
        mock_store.find_one.return_value = _remote_error()

        with pytest.raises(ExternalServiceError):
            ChordMigrationService(mock_store).run(CHORD_CAPTION_DATA)

        assert 'Chord data migration failed' in caplog.text


class TestValidation:
    @pytest.mark.parametrize('caption', [
        {'chord_name': 'C'},
        {'fret_position': 'Open'},
        {'chord_name': '  ', 'fret_position': 'Open'},
        {'chord_name': 'C', 'fret_position': None},
    ])
    def test_rejects_incomplete_caption(self, caption):
        mock_store = MagicMock()

        with pytest.raises(ValidationError):
            ChordMigrationService(mock_store).migrate([caption])

        mock_store.find_one.assert_not_called()

    def test_rejects_non_list(self):
        with pytest.raises(ValidationError) as exc_info:
            ChordMigrationService(MagicMock()).migrate({'chord_name': 'C'})
        assert exc_info.value.details == {'field': 'captions'}

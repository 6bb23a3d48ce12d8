"""
Tests for property records and load-time normalization.
"""

import json

import pytest

from services.decision.categories import CATEGORY_KEYS, CategoryIntegrityError
from services.decision.weight_manager import WeightManager
from tests import make_property, make_scores
from utils.property_data import (
    PROPERTY_SCHEMA_VERSION,
    PropertyRecord,
    migrate_property,
    normalize_properties,
    normalize_weight_payload,
    parse_stored_json,
    serialize_properties,
)


@pytest.fixture
def weight_manager(tmp_path):
    return WeightManager(presets_path=str(tmp_path / 'missing.yml'))


def _stored(property_id='p1', **fields):
    data = {
        'id': property_id,
        'address': '12 Elm St',
        'listingUrl': 'https://example.com/listing/12',
        'price': 450000,
        'beds': 3,
        'baths': 2,
        'sqFt': 1800,
        'notes': 'corner lot',
        'imageBase64': '',
        'scores': make_scores(default=6),
        'structuralScore': 6,
        'schemaVersion': 2,
    }
    data.update(fields)
    return data


class TestPropertyRecord:
    """Test cases for PropertyRecord"""

    def test_from_dict(self):
        record = PropertyRecord.from_dict(_stored())

        assert record.id == 'p1'
        assert record.listing_url == 'https://example.com/listing/12'
        assert record.sq_ft == 1800.0
        assert record.structural_score == 6.0
        assert record.schema_version == PROPERTY_SCHEMA_VERSION

    def test_to_dict_uses_wire_keys(self):
        data = make_property('p1', notes='quiet street').to_dict()

        assert data['schemaVersion'] == 2
        assert data['notes'] == 'quiet street'
        assert 'structuralScore' in data
        assert 'sqFt' in data
        assert list(data['scores'].keys()) == list(CATEGORY_KEYS)

    def test_from_dict_reads_to_dict_output(self):
        record = make_property('p1', price=320000.0, beds=2.0)

        assert PropertyRecord.from_dict(record.to_dict()) == record

    def test_missing_category_raises(self):
        scores = make_scores()
        del scores['schools']

        with pytest.raises(CategoryIntegrityError):
            make_property('p1', scores)

    def test_non_numeric_score_raises(self):
        with pytest.raises(CategoryIntegrityError):
            make_property('p1', make_scores(layout='great'), structural_score=5)

    def test_emotional_pull(self):
        assert make_property('p1', make_scores(emotionalPull=9)).emotional_pull == 9.0

    @pytest.mark.parametrize('scores', [[1, 2], 'oops', None, 7])
    def test_scores_must_be_a_mapping(self, scores):
        with pytest.raises(CategoryIntegrityError):
            PropertyRecord.from_dict(_stored(scores=scores))

    @pytest.mark.parametrize('value', [0, 0.5, 10.5, 15, -3])
    def test_out_of_range_score_raises(self, value):
        with pytest.raises(CategoryIntegrityError) as exc_info:
            PropertyRecord.from_dict(_stored(scores=make_scores(priceFit=value)))

        assert 'priceFit' in str(exc_info.value)

    def test_scale_bounds_are_valid(self):
        record = PropertyRecord.from_dict(_stored(scores=make_scores(priceFit=1, layout=10)))

        assert record.scores['priceFit'] == 1
        assert record.scores['layout'] == 10


class TestMigration:
    """Test cases for versioned record migration"""

    def test_legacy_overall_score(self):
        legacy = _stored(overallScore=7)
        del legacy['structuralScore']
        del legacy['schemaVersion']

        migrated = migrate_property(legacy)

        assert migrated['structuralScore'] == 7
        assert migrated['schemaVersion'] == 2
        assert 'overallScore' not in migrated

    def test_structural_score_wins_over_overall_score(self):
        legacy = _stored(structuralScore=4, overallScore=9)
        del legacy['schemaVersion']

        assert migrate_property(legacy)['structuralScore'] == 4

    def test_no_score_at_all_defaults_to_zero(self):
        legacy = _stored(overallScore='n/a')
        del legacy['structuralScore']
        del legacy['schemaVersion']

        assert migrate_property(legacy)['structuralScore'] == 0

    def test_missing_scores_are_filled(self):
        legacy = _stored(scores={'priceFit': 8, 'location': 'x'})
        del legacy['schemaVersion']

        scores = migrate_property(legacy)['scores']

        assert scores['priceFit'] == 8
        assert scores['location'] == 5
        assert set(scores.keys()) == set(CATEGORY_KEYS)

    def test_legacy_out_of_range_scores_are_clamped(self):
        legacy = _stored(scores=make_scores(priceFit=15, layout=0, schools=-2))
        del legacy['schemaVersion']

        records = normalize_properties([legacy])

        assert records[0].scores['priceFit'] == 10.0
        assert records[0].scores['layout'] == 1.0
        assert records[0].scores['schools'] == 1.0

    def test_legacy_list_scores_are_defaulted(self):
        legacy = _stored(scores=[9, 9, 9])
        del legacy['schemaVersion']

        assert normalize_properties([legacy])[0].scores == make_scores()

    def test_legacy_extra_categories_are_dropped(self):
        legacy = _stored(scores=make_scores(pool=10))
        del legacy['schemaVersion']

        assert 'pool' not in migrate_property(legacy)['scores']

    def test_current_version_is_untouched(self):
        current = _stored()

        assert migrate_property(current) == current

    @pytest.mark.parametrize('scores', [[1, 2], 'oops'])
    def test_current_version_wrong_shape_raises(self, scores):
        with pytest.raises(CategoryIntegrityError):
            normalize_properties([_stored(scores=scores)])

    def test_current_version_out_of_range_raises(self):
        with pytest.raises(CategoryIntegrityError):
            normalize_properties([_stored(scores=make_scores(default=1, priceFit=15))])

    def test_current_version_mismatch_raises(self):
        scores = make_scores()
        del scores['commute']

        with pytest.raises(CategoryIntegrityError):
            normalize_properties([_stored(scores=scores)])


class TestNormalizeProperties:
    """Test cases for loading persisted collections"""

    @pytest.mark.parametrize('stored', [None, '', '{not json', '{"a": 1}', 42, {'id': 'x'}])
    def test_malformed_collection_is_empty(self, stored):
        assert normalize_properties(stored) == []

    def test_json_text(self):
        records = normalize_properties(json.dumps([_stored('a'), _stored('b')]))

        assert [r.id for r in records] == ['a', 'b']

    def test_skips_non_dict_items(self):
        records = normalize_properties([_stored('a'), 'junk', None, _stored('b')])

        assert [r.id for r in records] == ['a', 'b']

    def test_mixed_versions(self):
        legacy = {'id': 'old', 'address': '1 Oak Ave', 'overallScore': 7}

        records = normalize_properties([legacy, _stored('new')])

        assert records[0].structural_score == 7.0
        assert records[0].scores == make_scores()
        assert records[1].id == 'new'

    def test_serialize_properties(self):
        records = [make_property('a'), make_property('b')]

        assert normalize_properties(serialize_properties(records)) == records


class TestWeightPayload:
    """Test cases for loading persisted weight sets"""

    def test_missing_payload(self, weight_manager):
        assert normalize_weight_payload(None, weight_manager) == weight_manager.equal_raw_weights()

    def test_malformed_payload(self, weight_manager):
        assert normalize_weight_payload('[1, 2', weight_manager) == weight_manager.equal_raw_weights()
        assert normalize_weight_payload([1, 2], weight_manager) == weight_manager.equal_raw_weights()

    def test_json_text_payload(self, weight_manager):
        weights = normalize_weight_payload(json.dumps({'priceFit': 3, 'schools': 0}), weight_manager)

        assert weights['priceFit'] == 3.0
        assert weights['schools'] == 0.0
        assert weights['layout'] == 0.0

    def test_parse_stored_json_passes_decoded_values(self):
        value = {'priceFit': 1}

        assert parse_stored_json(value) is value
        assert parse_stored_json(b'[]') == []

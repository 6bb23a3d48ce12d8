"""
Tests for raw weight normalization and presets.
"""

import pytest

from services.decision.categories import CATEGORY_KEYS
from services.decision.weight_manager import WeightManager


@pytest.fixture
def weight_manager(tmp_path):
    """WeightManager using the built-in presets"""
    return WeightManager(presets_path=str(tmp_path / 'missing.yml'))


class TestNormalizeWeights:
    """Test cases for WeightManager.normalize_weights"""

    @pytest.mark.parametrize('raw', [
        {},
        None,
        'not a mapping',
        {key: 0 for key in CATEGORY_KEYS},
        {key: -3 for key in CATEGORY_KEYS},
        {'priceFit': float('nan'), 'layout': float('inf'), 'schools': 'lots'},
    ])
    def test_degenerate_input_gives_equal_weights(self, weight_manager, raw):
        normalized = weight_manager.normalize_weights(raw)

        assert list(normalized.keys()) == list(CATEGORY_KEYS)
        assert all(value == pytest.approx(1 / 8) for value in normalized.values())
        assert sum(normalized.values()) == 1.0

    @pytest.mark.parametrize('raw', [
        {'priceFit': 3, 'resalePotential': 7, 'condition': 1.3, 'layout': 2.2,
         'location': 9, 'schools': 0.1, 'commute': 4.4, 'emotionalPull': 6},
        {'priceFit': 1, 'condition': 1, 'commute': 1},
        {'schools': 0.7, 'location': 0.1, 'layout': 0.2},
        {key: 1 / 3 for key in CATEGORY_KEYS},
        {'priceFit': 5, 'resalePotential': 4, 'condition': 2, 'layout': 2,
         'location': 1.5, 'schools': 1, 'commute': 1, 'emotionalPull': 1},
    ])
    def test_sum_is_exactly_one(self, weight_manager, raw):
        normalized = weight_manager.normalize_weights(raw)

        assert sum(normalized.values()) == 1.0
        assert all(value >= 0 for value in normalized.values())

    def test_proportions(self, weight_manager):
        normalized = weight_manager.normalize_weights({'priceFit': 1, 'location': 3})

        assert normalized['priceFit'] == pytest.approx(0.25)
        assert normalized['location'] == pytest.approx(0.75)
        assert normalized['schools'] == 0.0

    def test_invalid_values_are_treated_as_zero(self, weight_manager):
        raw = {key: 1 for key in CATEGORY_KEYS}
        raw.update({'priceFit': -5, 'layout': 'abc', 'schools': float('nan'), 'commute': None})

        normalized = weight_manager.normalize_weights(raw)

        for key in ('priceFit', 'layout', 'schools', 'commute'):
            assert normalized[key] == 0.0
        assert normalized['location'] == pytest.approx(0.25)

    def test_zero_weight_excludes_category(self, weight_manager):
        raw = {key: 2 for key in CATEGORY_KEYS}
        raw['emotionalPull'] = 0

        normalized = weight_manager.normalize_weights(raw)

        # The last category is excluded so the remainder goes to commute instead
        assert normalized['emotionalPull'] == 0.0
        assert normalized['commute'] == pytest.approx(1 / 7)
        assert sum(normalized.values()) == 1.0
        assert weight_manager.excluded_categories(raw) == ['emotionalPull']

    def test_no_exclusions_when_everything_is_zero(self, weight_manager):
        assert weight_manager.excluded_categories({}) == []

    def test_unknown_keys_are_ignored(self, weight_manager):
        normalized = weight_manager.normalize_weights({'priceFit': 1, 'pool': 100})

        assert 'pool' not in normalized
        assert normalized['priceFit'] == 1.0

    def test_scaling_by_power_of_two_is_identical(self, weight_manager):
        raw = {'priceFit': 3, 'condition': 1.3, 'location': 9, 'emotionalPull': 0.4}
        scaled = {key: value * 4 for key, value in raw.items()}

        assert weight_manager.normalize_weights(scaled) == weight_manager.normalize_weights(raw)

    def test_scaling_by_any_positive_constant(self, weight_manager):
        raw = {'priceFit': 3, 'condition': 1.3, 'location': 9, 'emotionalPull': 0.4}
        scaled = {key: value * 3.7 for key, value in raw.items()}

        normalized = weight_manager.normalize_weights(raw)
        for key, value in weight_manager.normalize_weights(scaled).items():
            assert value == pytest.approx(normalized[key], abs=1e-12)


class TestPercentages:
    """Test cases for the percentage display view"""

    def test_equal_weights(self, weight_manager):
        percentages = weight_manager.to_percentages(weight_manager.equal_weights())

        assert all(value == pytest.approx(12.5) for value in percentages.values())
        assert sum(percentages.values()) == pytest.approx(100.0, abs=1e-9)

    def test_thirds_absorb_remainder_in_last_category(self, weight_manager):
        normalized = weight_manager.normalize_weights({'priceFit': 1, 'layout': 1, 'commute': 1})

        percentages = weight_manager.to_percentages(normalized)

        assert percentages['priceFit'] == 33.3
        assert percentages['layout'] == 33.3
        assert percentages['commute'] == pytest.approx(33.4)
        assert percentages['emotionalPull'] == 0.0
        assert sum(percentages.values()) == pytest.approx(100.0, abs=1e-9)


class TestRawWeights:
    """Test cases for hydration and presets"""

    def test_hydrate_missing_payload(self, weight_manager):
        assert weight_manager.hydrate_raw_weights(None) == {key: 1.0 for key in CATEGORY_KEYS}

    def test_hydrate_partial_payload(self, weight_manager):
        hydrated = weight_manager.hydrate_raw_weights({'priceFit': 4, 'schools': -1, 'layout': 'x'})

        assert hydrated['priceFit'] == 4.0
        assert hydrated['schools'] == 0.0
        assert hydrated['layout'] == 0.0
        assert hydrated['emotionalPull'] == 0.0

    def test_hydrate_percentage_shaped_payload(self, weight_manager):
        stored = {key: 12.5 for key in CATEGORY_KEYS}

        hydrated = weight_manager.hydrate_raw_weights(stored)

        assert hydrated == stored
        assert weight_manager.normalize_weights(hydrated) == weight_manager.equal_weights()

    def test_builtin_presets(self, weight_manager):
        assert set(weight_manager.preset_names()) == {
            'balanced', 'budget_first', 'lifestyle_first', 'resale_focused', 'family_mode'
        }
        family = weight_manager.get_preset('family_mode')
        assert family['schools'] == 5.0
        assert family['priceFit'] == 1.5

    def test_get_preset_returns_copy(self, weight_manager):
        preset = weight_manager.get_preset('balanced')
        preset['priceFit'] = 99

        assert weight_manager.get_preset('balanced')['priceFit'] == 1.0

    def test_unknown_preset(self, weight_manager):
        with pytest.raises(ValueError):
            weight_manager.get_preset('yolo')

    def test_presets_from_yaml(self, tmp_path):
        path = tmp_path / 'presets.yml'
        path.write_text("commuter:\n  commute: 9\n  location: 3\n")

        weight_manager = WeightManager(presets_path=str(path))

        assert weight_manager.preset_names() == ['commuter']
        commuter = weight_manager.get_preset('commuter')
        assert commuter['commute'] == 9.0
        assert commuter['priceFit'] == 0.0

    def test_malformed_yaml_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / 'presets.yml'
        path.write_text("commuter: [unclosed\n")

        weight_manager = WeightManager(presets_path=str(path))

        assert 'balanced' in weight_manager.preset_names()

    def test_top_category_prefers_registry_order_on_ties(self, weight_manager):
        normalized = weight_manager.normalize_weights({'schools': 2, 'layout': 2, 'priceFit': 1})

        assert weight_manager.top_category(normalized) == 'layout'

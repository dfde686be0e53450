"""Test candidate generation."""
from datetime import date

import pytest

from linkfinder.config import ProbeOptions
from linkfinder.discovery.generator import generate_candidates
from linkfinder.errors import ConfigurationError
from linkfinder.models import CandidateTier, ConventionKind, SeedItem

from conftest import BASE_URL


@pytest.fixture
def dated_seed():
    return SeedItem(seed_id='AB100', title='花組 Goethe', observed_date=date(2025, 3, 8))


def tiers(result):
    return [c.tier for c in result.candidates]


class TestGenerationOrder:

    def test_direct_first(self, registry, hana_seed):
        result = generate_candidates(hana_seed, ProbeOptions(index_min=1, index_max=3), registry)
        assert result.locators[:2] == [f'{BASE_URL}/L/AB100.jpg', f'{BASE_URL}/L/AB100_2.jpg']
        assert result.locators[2:] == [
            f'{BASE_URL}/S/AB100-001.jpg',
            f'{BASE_URL}/S/AB100-002.jpg',
            f'{BASE_URL}/S/AB100-003.jpg',
        ]

    def test_tier_priority(self, registry, dated_seed):
        options = ProbeOptions(index_min=1, index_max=2, shift_window=1, extra_prefixes=('XSP',))
        result = generate_candidates(dated_seed, options, registry)
        order = tiers(result)
        assert order == sorted(order, key=lambda t: t.value)
        assert set(order) == set(CandidateTier)

    def test_shifted_candidates_carry_offset(self, registry, dated_seed):
        options = ProbeOptions(index_min=1, index_max=1, shift_window=1)
        result = generate_candidates(dated_seed, options, registry)
        shifted = [c for c in result.candidates if c.tier == CandidateTier.SHIFTED]
        assert [(c.prefix_value, c.date_offset_days) for c in shifted] == [
            ('20250307', -1), ('20250309', 1),
        ]
        assert all(c.convention_kind == ConventionKind.DATE_SHIFTED_SEQUENCE for c in shifted)
        assert result.derived_prefixes == ['AB100', '20250308']
        assert result.shifted_prefixes == [('20250307', -1), ('20250309', 1)]

    def test_manual_tier_is_sequence_kind(self, registry, hana_seed):
        options = ProbeOptions(index_min=1, index_max=1, extra_prefixes=('XSP',))
        result = generate_candidates(hana_seed, options, registry)
        manual = [c for c in result.candidates if c.tier == CandidateTier.MANUAL]
        assert [c.locator for c in manual] == [f'{BASE_URL}/S/XSP-001.jpg']
        assert manual[0].convention_kind == ConventionKind.SEQUENCE


class TestGenerationCounts:

    @pytest.mark.parametrize('index_min,index_max', [(1, 1), (1, 5), (0, 9), (17, 40)])
    def test_range_size_per_prefix(self, registry, hana_seed, index_min, index_max):
        options = ProbeOptions(index_min=index_min, index_max=index_max)
        result = generate_candidates(hana_seed, options, registry)
        derived = [c for c in result.candidates if c.tier == CandidateTier.DERIVED]
        assert len(derived) == index_max - index_min + 1

    def test_every_tier_gets_full_range(self, registry, dated_seed):
        options = ProbeOptions(index_min=1, index_max=4, shift_window=2, extra_prefixes=('XSP', 'YSP'))
        result = generate_candidates(dated_seed, options, registry)
        # derived: AB100 + 20250308; shifted: 4 dates; manual: 2
        assert result.generated_count == 2 + (2 + 4 + 2) * 4
        assert not result.truncated

    def test_locators_unique(self, registry, dated_seed):
        # Manual prefix equal to a derived one produces duplicates
        options = ProbeOptions(index_min=1, index_max=5, extra_prefixes=('AB100', '20250308'))
        result = generate_candidates(dated_seed, options, registry)
        assert len(result.locators) == len(set(result.locators))
        assert result.duplicate_count == 10
        assert not any(c.tier == CandidateTier.MANUAL for c in result.candidates)


class TestTruncation:

    def test_cap_is_silent(self, registry, hana_seed):
        options = ProbeOptions(index_min=1, index_max=40, max_candidates=10)
        result = generate_candidates(hana_seed, options, registry)
        assert len(result.candidates) == 10
        assert result.truncated

    def test_cap_keeps_priority(self, registry, dated_seed):
        options = ProbeOptions(index_min=1, index_max=40, max_candidates=5, extra_prefixes=('XSP',))
        result = generate_candidates(dated_seed, options, registry)
        assert tiers(result) == [CandidateTier.DIRECT] * 2 + [CandidateTier.DERIVED] * 3

    def test_raising_cap_only_extends(self, registry, dated_seed):
        small = generate_candidates(dated_seed, ProbeOptions(max_candidates=30), registry)
        large = generate_candidates(dated_seed, ProbeOptions(max_candidates=300), registry)
        assert large.locators[:len(small.locators)] == small.locators

    def test_exact_fit_not_truncated(self, registry, hana_seed):
        options = ProbeOptions(index_min=1, index_max=3, max_candidates=5)
        result = generate_candidates(hana_seed, options, registry)
        assert len(result.candidates) == 5
        assert not result.truncated


class TestGenerationValidation:

    def test_inverted_range(self, registry, hana_seed):
        with pytest.raises(ConfigurationError):
            generate_candidates(hana_seed, ProbeOptions(index_min=5, index_max=1), registry)

    def test_negative_bound(self, registry, hana_seed):
        with pytest.raises(ConfigurationError):
            generate_candidates(hana_seed, ProbeOptions(index_min=-1, index_max=1), registry)

    def test_unbounded_range(self, registry, hana_seed):
        with pytest.raises(ConfigurationError):
            generate_candidates(hana_seed, ProbeOptions(index_min=0, index_max=10 ** 6), registry)

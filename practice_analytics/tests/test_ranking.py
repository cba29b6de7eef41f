"""
Test suite for the Cross-Sectional Ranker.

Population used by most tests (missed_call_pct, lower is better):

    P1 8.0  PCN1 ICB1
    P2 12.0 PCN1 ICB1
    P3 10.0 PCN1 ICB1
    P4 6.0  PCN2 ICB1
    P5 None PCN2 ICB1   (no telephony)
    P6 4.0  PCN3 ICB2

Verifies:
1. Scope filtering (national / regional / network)
2. Direction-aware ordering and percentile rounding
3. Ties keep input order and ranks are exactly 1..N
4. Undefined values are excluded before ranking
5. Percentile and GP access interpretation bands
"""

import pytest

from practice_analytics.models.enums import (
    AccessBand,
    MetricDirection,
    PerformanceBand,
    RankingScope,
)
from practice_analytics.services.ranking import (
    gp_access_band,
    interpret_percentile,
    rank_all_scopes,
    rank_population,
    rank_practice,
    scope_population,
)


def _by_id(population, practice_id):
    return next(record for record in population if record.practice_id == practice_id)


# =============================================================================
# SCOPES
# =============================================================================


class TestScopePopulation:

    def test_national_is_unfiltered(self, regional_population):
        p1 = _by_id(regional_population, "P1")
        assert len(scope_population(p1, regional_population, RankingScope.NATIONAL)) == 6

    def test_regional_shares_regional_group(self, regional_population):
        p1 = _by_id(regional_population, "P1")
        peers = scope_population(p1, regional_population, RankingScope.REGIONAL)
        assert [peer.practice_id for peer in peers] == ["P1", "P2", "P3", "P4", "P5"]

    def test_network_shares_network_group(self, regional_population):
        p1 = _by_id(regional_population, "P1")
        peers = scope_population(p1, regional_population, RankingScope.NETWORK)
        assert [peer.practice_id for peer in peers] == ["P1", "P2", "P3"]

    def test_missing_group_id_has_no_peers(self, make_record, regional_population):
        orphan = make_record("X1", {"missed_call_pct": 5.0}, network_group_id=None)
        assert scope_population(orphan, regional_population, RankingScope.NETWORK) == []


# =============================================================================
# RANKING
# =============================================================================


class TestRankPractice:

    def test_national_rank(self, regional_population):
        p1 = _by_id(regional_population, "P1")
        result = rank_practice(p1, regional_population, "missed_call_pct")

        assert result.rank == 3
        assert result.population_size == 5, "P5 has no value and must be excluded"
        assert result.percentile == 60.0
        assert result.direction == MetricDirection.LOWER_IS_BETTER

    def test_regional_rank(self, regional_population):
        p1 = _by_id(regional_population, "P1")
        result = rank_practice(p1, regional_population, "missed_call_pct", scope=RankingScope.REGIONAL)
        assert (result.rank, result.population_size, result.percentile) == (2, 4, 50.0)

    def test_network_rank_percentile_rounded(self, regional_population):
        p1 = _by_id(regional_population, "P1")
        result = rank_practice(p1, regional_population, "missed_call_pct", scope=RankingScope.NETWORK)
        assert (result.rank, result.population_size) == (1, 3)
        assert result.percentile == 33.3

    def test_higher_is_better_sorts_descending(self, regional_population):
        p2 = _by_id(regional_population, "P2")
        result = rank_practice(
            p2, regional_population, "missed_call_pct",
            direction=MetricDirection.HIGHER_IS_BETTER,
        )
        assert result.rank == 1

    def test_undefined_target_returns_none(self, regional_population):
        p5 = _by_id(regional_population, "P5")
        assert rank_practice(p5, regional_population, "missed_call_pct") is None

    def test_neutral_metric_requires_direction(self, make_record):
        population = [make_record("A", {"face_to_face_pct": 60.0})]
        with pytest.raises(ValueError):
            rank_practice(population[0], population, "face_to_face_pct")

        result = rank_practice(
            population[0], population, "face_to_face_pct",
            direction=MetricDirection.HIGHER_IS_BETTER,
        )
        assert result.rank == 1

    def test_unknown_metric_without_direction(self, regional_population):
        with pytest.raises(KeyError):
            rank_practice(regional_population[0], regional_population, "not_a_metric")

    def test_all_scopes(self, regional_population):
        p1 = _by_id(regional_population, "P1")
        results = rank_all_scopes(p1, regional_population, "missed_call_pct")
        assert {scope: result.rank for scope, result in results.items()} == {
            RankingScope.NATIONAL: 3,
            RankingScope.REGIONAL: 2,
            RankingScope.NETWORK: 1,
        }


class TestRankingProperties:

    @pytest.mark.property
    @pytest.mark.parametrize("direction", [
        MetricDirection.LOWER_IS_BETTER,
        MetricDirection.HIGHER_IS_BETTER,
    ])
    def test_tied_values_get_distinct_ranks_in_input_order(self, make_record, direction):
        population = [make_record(code, {"dna_pct": 5.0}) for code in ("T1", "T2", "T3", "T4")]
        table = rank_population(population, "dna_pct", direction)

        assert [row.rank for row in table] == [1, 2, 3, 4]
        assert [row.practice_id for row in table] == ["T1", "T2", "T3", "T4"]

    @pytest.mark.property
    def test_ranks_are_exactly_one_to_n(self, make_record):
        values = [3.0, 1.0, 3.0, 2.0, 1.0, 5.0, 3.0]
        population = [make_record(f"R{i}", {"dna_pct": value}) for i, value in enumerate(values)]
        ranks = [rank_practice(record, population, "dna_pct").rank for record in population]
        assert sorted(ranks) == list(range(1, len(values) + 1))

    @pytest.mark.property
    def test_exclusion_is_order_independent(self, make_record):
        defined = [make_record(f"D{i}", {"dna_pct": value}) for i, value in enumerate([4.0, 2.0, 6.0])]
        undefined = [
            make_record("U1", {"dna_pct": None}),
            make_record("U2", {"dna_pct": float("nan")}),
            make_record("U3", {}),
        ]
        interleaved = [undefined[0], defined[0], undefined[1], defined[1], defined[2], undefined[2]]

        filtered_first = rank_population(defined, "dna_pct")
        mixed = rank_population(interleaved, "dna_pct")

        assert [(row.practice_id, row.rank) for row in mixed] == \
            [(row.practice_id, row.rank) for row in filtered_first]

    def test_empty_population(self):
        assert rank_population([], "dna_pct") == []

    @pytest.mark.parametrize("rank,expected", [
        (49, 12.3),
        (1, 0.3),
        (147, 36.8),
        (400, 100.0),
    ])
    def test_percentile_rounds_half_up(self, make_record, rank, expected):
        population = [make_record(f"P{i:03d}", {"dna_pct": float(i)}) for i in range(400)]
        table = rank_population(population, "dna_pct")
        assert table[rank - 1].percentile == expected


# =============================================================================
# INTERPRETATION
# =============================================================================


class TestInterpretation:

    @pytest.mark.parametrize("percentile,band", [
        (1.0, PerformanceBand.EXCELLENT),
        (5.0, PerformanceBand.EXCELLENT),
        (5.1, PerformanceBand.GREAT),
        (25.0, PerformanceBand.GOOD),
        (49.9, PerformanceBand.ABOVE_AVERAGE),
        (75.0, PerformanceBand.BELOW_AVERAGE),
        (90.0, PerformanceBand.POOR),
        (95.0, PerformanceBand.VERY_POOR),
        (95.1, PerformanceBand.AMONGST_WORST),
        (100.0, PerformanceBand.AMONGST_WORST),
    ])
    def test_percentile_bands(self, percentile, band):
        assert interpret_percentile(percentile) == band

    @pytest.mark.parametrize("value,band", [
        (1.45, AccessBand.EXCELLENT),
        (1.30, AccessBand.GOOD),
        (1.10, AccessBand.GOOD),
        (0.95, AccessBand.ACCEPTABLE),
        (0.85, AccessBand.ACCEPTABLE),
        (0.60, AccessBand.NEEDS_IMPROVEMENT),
    ])
    def test_gp_access_bands(self, value, band):
        assert gp_access_band(value) == band

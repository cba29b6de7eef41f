"""
Test suite for the Impact Scorer.

Verifies:
1. calls_saved = (national_rate - practice_rate) * volume
2. Rate equal to the reference rate scores exactly zero
3. Impact ranking is always descending with stable ties
4. National and group rates are pooled from raw counts, never averaged
"""

import pytest

from practice_analytics.models.enums import GroupLevel, MetricDirection
from practice_analytics.services.impact import (
    ImpactSpec,
    calls_saved,
    group_impacts,
    pooled_rate,
    practice_rate,
    rank_by_impact,
)


@pytest.fixture
def make_phone_record(make_record):
    def _make(practice_id, missed, inbound, **fields):
        return make_record(practice_id, {"missed_calls": missed, "inbound_calls": inbound}, **fields)
    return _make


# =============================================================================
# PRACTICE IMPACT
# =============================================================================


class TestCallsSaved:

    @pytest.mark.scenario
    def test_two_practice_scenario(self, make_phone_record):
        """A misses 5/100, B misses 20/100, national rate 10%."""
        a = make_phone_record("A", 5, 100)
        b = make_phone_record("B", 20, 100)

        assert calls_saved(a, 0.10) == pytest.approx(5.0)
        assert calls_saved(b, 0.10) == pytest.approx(-10.0)

        ranking = rank_by_impact([b, a], 0.10)
        assert [score.practice_id for score in ranking] == ["A", "B"]
        assert [score.rank for score in ranking] == [1, 2]

    @pytest.mark.property
    @pytest.mark.parametrize("missed,inbound", [(7, 70), (123, 1230), (0, 5000), (45, 450)])
    def test_rate_equal_to_national_scores_zero(self, make_phone_record, missed, inbound):
        record = make_phone_record("A", missed, inbound)
        national = practice_rate(record)
        assert calls_saved(record, national) == 0

    def test_volume_weighting(self, make_phone_record):
        small = make_phone_record("S", 5, 100)
        large = make_phone_record("L", 50, 1000)
        # Same 5% rate, ten times the volume
        assert calls_saved(large, 0.10) == pytest.approx(10 * calls_saved(small, 0.10))

    def test_absent_source_is_undefined(self, make_record):
        record = make_record("A", {"missed_calls": None, "inbound_calls": None}, has_telephony_data=False)
        assert calls_saved(record, 0.10) is None

    def test_zero_volume_is_undefined(self, make_phone_record):
        assert calls_saved(make_phone_record("A", 0, 0), 0.10) is None

    def test_higher_is_better_sign(self, make_record):
        spec = ImpactSpec(
            events_metric="answered_calls",
            volume_metric="inbound_calls",
            direction=MetricDirection.HIGHER_IS_BETTER,
        )
        record = make_record("A", {"answered_calls": 95, "inbound_calls": 100})
        assert calls_saved(record, 0.90, spec) == pytest.approx(5.0)


class TestRankByImpact:

    def test_ties_keep_input_order(self, make_phone_record):
        population = [make_phone_record(code, 10, 100) for code in ("X", "Y", "Z")]
        ranking = rank_by_impact(population, 0.10)
        assert [score.practice_id for score in ranking] == ["X", "Y", "Z"]
        assert [score.rank for score in ranking] == [1, 2, 3]

    def test_undefined_excluded(self, make_phone_record, make_record):
        population = [
            make_phone_record("A", 5, 100),
            make_record("NONE", {}, has_telephony_data=False),
            make_phone_record("ZERO", 0, 0),
        ]
        ranking = rank_by_impact(population, 0.10)
        assert [score.practice_id for score in ranking] == ["A"]

    def test_score_fields(self, make_phone_record):
        score = rank_by_impact([make_phone_record("A", 5, 100)], 0.10)[0]
        assert score.volume == 100
        assert score.rate == pytest.approx(0.05)
        assert score.national_rate == 0.10


# =============================================================================
# POOLED RATES
# =============================================================================


class TestPooledRates:

    def test_pooled_not_averaged(self, make_phone_record):
        records = [make_phone_record("BIG", 100, 10000), make_phone_record("SMALL", 50, 100)]
        # Pooled 150 / 10100; averaging the rates would give 25.5%
        assert pooled_rate(records) == pytest.approx(150 / 10100)

    def test_pooled_skips_undefined(self, make_phone_record, make_record):
        records = [make_phone_record("A", 10, 100), make_record("B", {}, has_telephony_data=False)]
        assert pooled_rate(records) == pytest.approx(0.10)

    def test_pooled_zero_volume(self, make_phone_record):
        assert pooled_rate([make_phone_record("A", 0, 0)]) is None
        assert pooled_rate([]) is None


class TestGroupImpacts:

    @pytest.fixture
    def records(self, make_phone_record):
        return [
            make_phone_record("A1", 100, 1000, network_group_id="PCN_A"),
            make_phone_record("A2", 2, 100, network_group_id="PCN_A"),
            make_phone_record("B1", 50, 1000, network_group_id="PCN_B"),
            make_phone_record("B2", 30, 100, network_group_id="PCN_B"),
            make_phone_record("C1", 10, 100, network_group_id=None),
        ]

    def test_group_rate_is_pooled(self, records):
        groups = {group.group_id: group for group in group_impacts(records, 0.10)}

        assert set(groups) == {"PCN_A", "PCN_B"}, "Practices without a network id are skipped"
        assert groups["PCN_A"].pooled_rate == pytest.approx(102 / 1100)
        assert groups["PCN_A"].practice_count == 2
        assert groups["PCN_A"].total_volume == 1100
        assert groups["PCN_A"].impact == pytest.approx((0.10 - 102 / 1100) * 1100)

    def test_groups_ordered_by_pooled_rate(self, records):
        groups = group_impacts(records, 0.10)
        # PCN_B 80/1100 beats PCN_A 102/1100 on a lower-is-better rate
        assert [group.group_id for group in groups] == ["PCN_B", "PCN_A"]
        assert [group.rank for group in groups] == [1, 2]

    def test_regional_grouping(self, records):
        groups = group_impacts(records, 0.10, group_by=GroupLevel.REGIONAL)
        assert len(groups) == 1
        assert groups[0].group_id == "ICB1"
        assert groups[0].level == GroupLevel.REGIONAL
        assert groups[0].practice_count == 5

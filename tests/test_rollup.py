"""
test_rollup.py — Unit tests for the rollup engine.

Run with:
    pytest tests/ -v
"""

import math

import polars as pl
import pytest

from src.domain.models import DEFAULT_CHANNEL, DEFAULT_REGION, MarketingRecord, Totals
from src.rollup import (
    CHART_CHANNEL_LIMIT,
    compute_region_channel_rollup,
    compute_region_rollup,
    compute_totals,
    records_frame,
)


NORTH_RECORDS = [
    {"region": "North", "channel": "Search", "spend": 1000, "impressions": 100, "clicks": 10, "conversions": 5},
    {"region": "North", "channel": "Social", "spend": 500, "impressions": 50, "clicks": 5, "conversions": 2},
]


def _record(region, channel, conversions, impressions=100, clicks=10, spend=100):
    return {
        "region": region,
        "channel": channel,
        "spend": spend,
        "impressions": impressions,
        "clicks": clicks,
        "conversions": conversions,
    }


@pytest.fixture(scope="module")
def mixed_records():
    return [
        _record("A", "Search", 3),
        _record("B", "Search", 6),
        _record("C", "Search", 5),
        _record("A", "Social", 2),
        _record("C", "Email", 1),
        _record("B", "Social", 0),
    ]


@pytest.fixture(scope="module")
def wide_region_records():
    channels = ["Search", "Social", "Display", "Email", "Video", "Affiliate", "Referral", "Print"]
    records = [_record("West", channel, conversions) for conversions, channel in enumerate(channels, start=1)]
    records.extend(_record("East", channel, 4) for channel in ["Search", "Social", "Email"])
    return records


# =============================================================================
# Totals
# =============================================================================

class TestComputeTotals:
    def test_example_totals(self):
        totals = compute_totals(NORTH_RECORDS)
        assert totals == Totals(spend=1500, impressions=150, clicks=15, conversions=7)

    def test_empty_input_is_all_zero(self):
        assert compute_totals([]) == Totals()

    def test_missing_and_invalid_measures_count_as_zero(self):
        records = [
            {"region": "North", "spend": None, "impressions": float("nan"), "clicks": "n/a", "conversions": 3},
            {"region": "North", "spend": "1,200", "clicks": 4},
        ]
        totals = compute_totals(records)
        assert totals == Totals(spend=1200, impressions=0, clicks=4, conversions=3)

    def test_accepts_record_objects(self):
        records = [MarketingRecord.from_row(row) for row in NORTH_RECORDS]
        assert compute_totals(records) == compute_totals(NORTH_RECORDS)

    def test_matches_sum_of_region_totals(self, mixed_records):
        totals = compute_totals(mixed_records)
        regions = compute_region_rollup(mixed_records)
        assert sum(region.totals.conversions for region in regions) == pytest.approx(totals.conversions)
        assert sum(region.totals.spend for region in regions) == pytest.approx(totals.spend)


# =============================================================================
# Region rollup (table)
# =============================================================================

class TestRegionRollup:
    def test_example_region(self):
        regions = compute_region_rollup(NORTH_RECORDS)
        assert [region.region for region in regions] == ["North"]
        north = regions[0]
        assert north.totals == Totals(spend=1500, impressions=150, clicks=15, conversions=7)
        assert north.ctr == pytest.approx(10.0)
        assert north.contribution == pytest.approx(100.0)

    def test_example_channel_metrics(self):
        search = compute_region_rollup(NORTH_RECORDS)[0].channels[0]
        assert search.channel == "Search"
        assert search.ctr == pytest.approx(10.0)
        assert search.contribution == pytest.approx(5 / 7 * 100)
        assert round(search.contribution, 2) == 71.43

    def test_sorted_by_conversions_with_stable_ties(self, mixed_records):
        regions = compute_region_rollup(mixed_records)
        # A=5, B=6, C=6: B and C tie, B was seen first.
        assert [region.region for region in regions] == ["B", "C", "A"]
        conversions = [region.totals.conversions for region in regions]
        assert conversions == sorted(conversions, reverse=True)

    def test_channels_sorted_and_untruncated(self, wide_region_records):
        west = next(region for region in compute_region_rollup(wide_region_records) if region.region == "West")
        assert len(west.channels) == 8
        assert [channel.conversions for channel in west.channels] == [8, 7, 6, 5, 4, 3, 2, 1]

    def test_channel_ties_keep_first_seen_order(self, wide_region_records):
        east = next(region for region in compute_region_rollup(wide_region_records) if region.region == "East")
        assert [channel.channel for channel in east.channels] == ["Search", "Social", "Email"]

    def test_optional_channel_cap(self, wide_region_records):
        regions = compute_region_rollup(wide_region_records, max_channels_per_region=2)
        assert all(len(region.channels) <= 2 for region in regions)

    def test_channel_conversions_sum_to_region_total(self, mixed_records):
        for region in compute_region_rollup(mixed_records):
            assert sum(channel.conversions for channel in region.channels) == pytest.approx(region.totals.conversions)

    def test_region_contributions_sum_to_100(self, mixed_records):
        regions = compute_region_rollup(mixed_records)
        assert sum(region.contribution for region in regions) == pytest.approx(100.0)

    def test_empty_input(self):
        assert compute_region_rollup([]) == []

    def test_default_keys(self):
        records = [
            {"channel": "Search", "conversions": 1},
            {"region": "", "conversions": 2},
            {"region": "North", "channel": None, "conversions": 3},
        ]
        regions = {region.region: region for region in compute_region_rollup(records)}
        assert set(regions) == {DEFAULT_REGION, "North"}
        unknown_channels = [channel.channel for channel in regions[DEFAULT_REGION].channels]
        assert unknown_channels == [DEFAULT_CHANNEL, "Search"]
        assert [channel.channel for channel in regions["North"].channels] == [DEFAULT_CHANNEL]


# =============================================================================
# Region -> channel rollup (charts)
# =============================================================================

class TestRegionChannelRollup:
    def test_regions_keep_first_seen_order(self, mixed_records):
        regions = compute_region_channel_rollup(mixed_records)
        assert [region.region for region in regions] == ["A", "B", "C"]

    def test_caps_channels_at_chart_limit(self, wide_region_records):
        regions = {region.region: region for region in compute_region_channel_rollup(wide_region_records)}
        west = regions["West"]
        assert CHART_CHANNEL_LIMIT == 6
        assert len(west.channels) == 6
        assert [channel.channel for channel in west.channels] == [
            "Print",
            "Referral",
            "Affiliate",
            "Video",
            "Email",
            "Display",
        ]

    def test_small_regions_unchanged(self, wide_region_records):
        capped = {region.region: region for region in compute_region_channel_rollup(wide_region_records)}
        full = {region.region: region for region in compute_region_rollup(wide_region_records)}
        assert capped["East"].channels == full["East"].channels

    def test_contribution_uses_region_total_before_truncation(self, wide_region_records):
        west = compute_region_channel_rollup(wide_region_records)[0]
        assert west.region == "West"
        assert west.totals.conversions == 36
        assert west.channels[0].contribution == pytest.approx(8 / 36 * 100)

    def test_cap_can_be_disabled(self, wide_region_records):
        west = compute_region_channel_rollup(wide_region_records, max_channels_per_region=None)[0]
        assert len(west.channels) == 8

    def test_zero_cap_drops_all_channels(self, wide_region_records):
        regions = compute_region_channel_rollup(wide_region_records, max_channels_per_region=0)
        assert [region.region for region in regions] == ["West", "East"]
        assert all(region.channels == () for region in regions)

    def test_negative_cap_raises(self):
        with pytest.raises(ValueError):
            compute_region_channel_rollup(NORTH_RECORDS, max_channels_per_region=-1)

    def test_empty_input(self):
        assert compute_region_channel_rollup([]) == []


# =============================================================================
# Derived metrics
# =============================================================================

class TestDerivedMetrics:
    def test_zero_impressions_gives_zero_ctr(self):
        regions = compute_region_rollup([_record("North", "Search", 5, impressions=0, clicks=10)])
        assert regions[0].ctr == 0
        assert regions[0].channels[0].ctr == 0

    def test_zero_region_conversions_gives_zero_contribution(self):
        records = [_record("North", "Search", 0), _record("North", "Social", 0), _record("South", "Search", 4)]
        north = compute_region_channel_rollup(records)[0]
        assert north.contribution == 0
        assert [channel.contribution for channel in north.channels] == [0, 0]

    def test_share_of_total_uses_global_conversions(self, mixed_records):
        regions = compute_region_rollup(mixed_records)
        shares = [channel.share_of_total for region in regions for channel in region.channels]
        assert sum(shares) == pytest.approx(100.0)

    def test_metric_ranges(self, mixed_records):
        for region in compute_region_rollup(mixed_records):
            assert region.ctr >= 0
            assert 0 <= region.contribution <= 100
            for channel in region.channels:
                assert channel.ctr >= 0
                assert 0 <= channel.contribution <= 100
                assert not math.isnan(channel.contribution)


# =============================================================================
# Inputs and purity
# =============================================================================

class TestInputsAndPurity:
    def test_idempotent(self, mixed_records):
        assert compute_totals(mixed_records) == compute_totals(mixed_records)
        assert compute_region_rollup(mixed_records) == compute_region_rollup(mixed_records)
        assert compute_region_channel_rollup(mixed_records) == compute_region_channel_rollup(mixed_records)

    def test_input_not_mutated(self):
        records = [dict(row) for row in NORTH_RECORDS]
        compute_region_rollup(records)
        assert records == NORTH_RECORDS

    def test_dataframe_input_is_normalized(self):
        df = pl.DataFrame(
            {
                "region": ["North", None, ""],
                "spend": [100.0, None, float("nan")],
                "conversions": [1.0, 2.0, 3.0],
            }
        )
        frame = records_frame(df)
        assert frame.columns == ["region", "channel", "spend", "impressions", "clicks", "conversions"]
        assert frame["region"].to_list() == ["North", DEFAULT_REGION, DEFAULT_REGION]
        assert frame["channel"].to_list() == [DEFAULT_CHANNEL] * 3
        assert frame["spend"].to_list() == [100.0, 0.0, 0.0]

        regions = compute_region_rollup(df)
        assert [region.region for region in regions] == [DEFAULT_REGION, "North"]
        assert regions[0].totals.conversions == 5

    def test_dataframe_and_dict_inputs_coerce_alike(self):
        rows = [
            {"region": "North", "channel": "Search", "spend": "1,200", "conversions": "3 "},
            {"region": "", "channel": None, "spend": " 300", "conversions": "abc"},
        ]
        assert compute_totals(pl.DataFrame(rows)) == compute_totals(rows)
        assert compute_totals(rows) == Totals(spend=1500.0, conversions=3.0)
        assert compute_region_rollup(pl.DataFrame(rows)) == compute_region_rollup(rows)

    def test_dataframe_falsy_keys_use_defaults(self):
        rows = [
            {"region": 0, "channel": 0.0, "conversions": 1},
            {"region": 7, "channel": 2.5, "conversions": 2},
        ]
        frame = records_frame(pl.DataFrame(rows))
        assert frame["region"].to_list() == [DEFAULT_REGION, "7"]
        assert frame["channel"].to_list() == [DEFAULT_CHANNEL, "2.5"]
        assert frame["region"].to_list() == records_frame(rows)["region"].to_list()
        assert frame["channel"].to_list() == records_frame(rows)["channel"].to_list()

    def test_iterable_input(self):
        totals = compute_totals(row for row in NORTH_RECORDS)
        assert totals.conversions == 7

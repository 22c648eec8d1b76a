import math

import pytest

from src.domain.models import (
    DEFAULT_CHANNEL,
    DEFAULT_REGION,
    ChannelRollup,
    MarketingRecord,
    RegionRollup,
    Totals,
)


class TestMarketingRecord:
    def test_from_row_defaults(self):
        record = MarketingRecord.from_row({})
        assert record == MarketingRecord(region=DEFAULT_REGION, channel=DEFAULT_CHANNEL)

    def test_falsy_keys_use_defaults(self):
        record = MarketingRecord.from_row({"region": "", "channel": None})
        assert record.region == DEFAULT_REGION
        assert record.channel == DEFAULT_CHANNEL

    def test_nan_region_uses_default(self):
        assert MarketingRecord.from_row({"region": float("nan")}).region == DEFAULT_REGION

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 0.0),
            (float("nan"), 0.0),
            ("", 0.0),
            ("abc", 0.0),
            ("1,250.5", 1250.5),
            (" 42 ", 42.0),
            (7, 7.0),
            ([1, 2], 0.0),
        ],
    )
    def test_measure_coercion(self, raw, expected):
        assert MarketingRecord.from_row({"spend": raw}).spend == expected

    def test_coerce_passes_records_through(self):
        record = MarketingRecord(region="North", spend=5.0)
        assert MarketingRecord.coerce(record) is record

    def test_as_tuple_order(self):
        record = MarketingRecord("North", "Search", 1.0, 2.0, 3.0, 4.0)
        assert record.as_tuple() == ("North", "Search", 1.0, 2.0, 3.0, 4.0)


class TestRollupModels:
    def test_totals_ctr(self):
        assert Totals(clicks=15, impressions=150).ctr == pytest.approx(10.0)
        assert Totals(clicks=15, impressions=0).ctr == 0

    def test_region_metric_lookup(self):
        region = RegionRollup(
            region="North",
            totals=Totals(spend=10, impressions=100, clicks=5, conversions=2),
            channels=(),
            ctr=5.0,
            contribution=100.0,
        )
        assert region.metric("spend") == 10
        assert region.metric("conversions") == 2
        assert region.metric("ctr") == 5.0

    def test_channel_from_row_and_dict(self):
        channel = ChannelRollup.from_row(
            {
                "channel": "Search",
                "spend": 1000.0,
                "impressions": 100.0,
                "clicks": 10.0,
                "conversions": 5.0,
                "ctr": 10.0,
                "contribution": 71.4,
                "share_of_total": None,
            }
        )
        assert channel.share_of_total == 0
        assert channel.metric("ctr") == 10.0
        payload = channel.to_dict()
        assert payload["channel"] == "Search"
        assert not math.isnan(payload["contribution"])

    def test_region_to_dict_nests_channels(self):
        channel = ChannelRollup("Search", 1.0, 2.0, 3.0, 4.0, 150.0, 100.0, 100.0)
        region = RegionRollup("North", Totals(1.0, 2.0, 3.0, 4.0), (channel,), 150.0, 100.0)
        payload = region.to_dict()
        assert payload["totals"]["conversions"] == 4.0
        assert payload["channels"][0]["channel"] == "Search"

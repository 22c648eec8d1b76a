"""Application service for the dashboard aggregation use case."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import polars as pl

from src.domain.models import RegionRollup, Totals
from src.rollup import (
    CHART_CHANNEL_LIMIT,
    Records,
    compute_region_channel_rollup,
    compute_region_rollup,
    compute_totals,
    records_frame,
)


@dataclass(frozen=True)
class DashboardResult:
    totals: Totals
    regions: list[RegionRollup]
    channel_mix: list[RegionRollup]
    record_count: int

    @property
    def channel_count(self) -> int:
        return sum(len(region.channels) for region in self.regions)


def build_dashboard(records: Records, chart_channel_limit: int | None = CHART_CHANNEL_LIMIT) -> DashboardResult:
    """Compute totals, the table rollup (all channels) and the chart rollup (top channels) once."""
    frame = records_frame(records)
    return DashboardResult(
        totals=compute_totals(frame),
        regions=compute_region_rollup(frame),
        channel_mix=compute_region_channel_rollup(frame, max_channels_per_region=chart_channel_limit),
        record_count=int(frame.height),
    )


def summary_payload(result: DashboardResult, load_meta: dict[str, Any] | None = None) -> dict[str, Any]:
    totals = result.totals.to_dict()
    totals["ctr"] = result.totals.ctr
    return {
        "load_meta": dict(load_meta or {}),
        "record_count": result.record_count,
        "totals": totals,
        "regions": [region.to_dict() for region in result.regions],
        "channel_mix": [region.to_dict() for region in result.channel_mix],
    }


def _region_sheet_df(regions: list[RegionRollup]) -> pl.DataFrame:
    rows = [
        {"region": region.region, **region.totals.to_dict(), "ctr": region.ctr, "contribution": region.contribution}
        for region in regions
    ]
    return pl.DataFrame(
        rows,
        schema={
            "region": pl.Utf8,
            "spend": pl.Float64,
            "impressions": pl.Float64,
            "clicks": pl.Float64,
            "conversions": pl.Float64,
            "ctr": pl.Float64,
            "contribution": pl.Float64,
        },
    )


def _channel_sheet_df(regions: list[RegionRollup]) -> pl.DataFrame:
    rows = [{"region": region.region, **channel.to_dict()} for region in regions for channel in region.channels]
    return pl.DataFrame(
        rows,
        schema={
            "region": pl.Utf8,
            "channel": pl.Utf8,
            "spend": pl.Float64,
            "impressions": pl.Float64,
            "clicks": pl.Float64,
            "conversions": pl.Float64,
            "ctr": pl.Float64,
            "contribution": pl.Float64,
            "share_of_total": pl.Float64,
        },
    )


def workbook_sheets(result: DashboardResult) -> dict[str, pl.DataFrame]:
    return {
        "regions": _region_sheet_df(result.regions),
        "channels": _channel_sheet_df(result.regions),
        "channel_mix": _channel_sheet_df(result.channel_mix),
    }

"""Contribution table view: region rows that expand into channel rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from src.application.reporting.formatting import fmt_money, fmt_number, fmt_pct
from src.domain.models import ChannelRollup, RegionRollup, Totals

TABLE_COLUMNS: tuple[str, ...] = (
    "Category",
    "Spend",
    "Impressions",
    "Clicks",
    "Conversions",
    "CTR",
    "Contribution (%)",
)


@dataclass(frozen=True)
class TableRow:
    kind: str
    region: str
    label: str
    cells: tuple[str, ...]


@dataclass(frozen=True)
class ContributionTable:
    columns: tuple[str, ...]
    body: tuple[TableRow, ...]
    footer: TableRow

    def region_rows(self) -> List[TableRow]:
        return [row for row in self.body if row.kind == "region"]

    def channel_rows(self, region: str) -> List[TableRow]:
        return [row for row in self.body if row.kind == "channel" and row.region == region]


def _measure_cells(totals: Totals) -> tuple[str, ...]:
    return (
        fmt_money(totals.spend),
        fmt_number(totals.impressions),
        fmt_number(totals.clicks),
        fmt_number(totals.conversions),
    )


def _region_row(region: RegionRollup) -> TableRow:
    cells = _measure_cells(region.totals) + (fmt_pct(region.ctr), fmt_pct(region.contribution))
    return TableRow(kind="region", region=region.region, label=region.region, cells=cells)


def _channel_row(region: str, channel: ChannelRollup) -> TableRow:
    cells = (
        fmt_money(channel.spend),
        fmt_number(channel.impressions),
        fmt_number(channel.clicks),
        fmt_number(channel.conversions),
        fmt_pct(channel.ctr),
        fmt_pct(channel.share_of_total),
    )
    return TableRow(kind="channel", region=region, label=channel.channel, cells=cells)


def _total_row(totals: Totals) -> TableRow:
    contribution = fmt_pct(100) if totals.conversions else "-"
    cells = _measure_cells(totals) + (fmt_pct(totals.ctr), contribution)
    return TableRow(kind="total", region="", label="Total", cells=cells)


def build_contribution_table(regions: Sequence[RegionRollup], totals: Totals) -> ContributionTable:
    """Flatten the region rollup into display rows; channel rows follow their region row."""
    body: List[TableRow] = []
    for region in regions:
        body.append(_region_row(region))
        body.extend(_channel_row(region.region, channel) for channel in region.channels)
    return ContributionTable(columns=TABLE_COLUMNS, body=tuple(body), footer=_total_row(totals))

"""Domain models for marketing records and their rollups."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Mapping

DEFAULT_REGION = "Unknown"
DEFAULT_CHANNEL = "Other"
MEASURES: tuple[str, ...] = ("spend", "impressions", "clicks", "conversions")


def _to_measure(value: Any) -> float:
    """Coerce a raw measure to float; missing, NaN and non-numeric values become 0."""
    if value is None:
        return 0.0
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    if math.isnan(number):
        return 0.0
    return number


def _to_key(value: Any, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, float) and math.isnan(value):
        return default
    if not value:
        return default
    return str(value)


def pct(num: float, den: float) -> float:
    if den <= 0:
        return 0.0
    return num / den * 100


@dataclass(frozen=True)
class MarketingRecord:
    region: str = DEFAULT_REGION
    channel: str = DEFAULT_CHANNEL
    spend: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MarketingRecord":
        return cls(
            region=_to_key(row.get("region"), DEFAULT_REGION),
            channel=_to_key(row.get("channel"), DEFAULT_CHANNEL),
            spend=_to_measure(row.get("spend")),
            impressions=_to_measure(row.get("impressions")),
            clicks=_to_measure(row.get("clicks")),
            conversions=_to_measure(row.get("conversions")),
        )

    @classmethod
    def coerce(cls, item: "MarketingRecord | Mapping[str, Any]") -> "MarketingRecord":
        if isinstance(item, MarketingRecord):
            return item
        return cls.from_row(item)

    def as_tuple(self) -> tuple[str, str, float, float, float, float]:
        return (self.region, self.channel, self.spend, self.impressions, self.clicks, self.conversions)


@dataclass(frozen=True)
class Totals:
    spend: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Totals":
        return cls(**{measure: _to_measure(row.get(measure)) for measure in MEASURES})

    @property
    def ctr(self) -> float:
        return pct(self.clicks, self.impressions)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class ChannelRollup:
    """Summed measures for one (region, channel) pair.

    ``contribution`` is the channel's share of its region's conversions and
    ``share_of_total`` its share of all conversions, both as percentages.
    """

    channel: str
    spend: float
    impressions: float
    clicks: float
    conversions: float
    ctr: float
    contribution: float
    share_of_total: float

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ChannelRollup":
        return cls(
            channel=str(row.get("channel", DEFAULT_CHANNEL)),
            spend=_to_measure(row.get("spend")),
            impressions=_to_measure(row.get("impressions")),
            clicks=_to_measure(row.get("clicks")),
            conversions=_to_measure(row.get("conversions")),
            ctr=_to_measure(row.get("ctr")),
            contribution=_to_measure(row.get("contribution")),
            share_of_total=_to_measure(row.get("share_of_total")),
        )

    def metric(self, name: str) -> float:
        return float(getattr(self, name))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RegionRollup:
    region: str
    totals: Totals
    channels: tuple[ChannelRollup, ...]
    ctr: float
    contribution: float

    def metric(self, name: str) -> float:
        if name == "ctr":
            return self.ctr
        return float(getattr(self.totals, name))

    def to_dict(self) -> dict[str, Any]:
        return {
            "region": self.region,
            "totals": self.totals.to_dict(),
            "ctr": self.ctr,
            "contribution": self.contribution,
            "channels": [channel.to_dict() for channel in self.channels],
        }

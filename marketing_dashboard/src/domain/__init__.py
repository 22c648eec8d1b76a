"""Domain layer package."""

from .models import DEFAULT_CHANNEL, DEFAULT_REGION, MEASURES, ChannelRollup, MarketingRecord, RegionRollup, Totals

__all__ = [
    "DEFAULT_CHANNEL",
    "DEFAULT_REGION",
    "MEASURES",
    "ChannelRollup",
    "MarketingRecord",
    "RegionRollup",
    "Totals",
]

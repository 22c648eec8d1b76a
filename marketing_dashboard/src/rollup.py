"""Rollup engine: global totals, region rollup and region -> channel rollup."""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Union

import polars as pl

from src.domain.models import (
    DEFAULT_CHANNEL,
    DEFAULT_REGION,
    MEASURES,
    ChannelRollup,
    MarketingRecord,
    RegionRollup,
    Totals,
)

CHART_CHANNEL_LIMIT = 6
RECORD_SCHEMA: dict[str, Any] = {
    "region": pl.Utf8,
    "channel": pl.Utf8,
    "spend": pl.Float64,
    "impressions": pl.Float64,
    "clicks": pl.Float64,
    "conversions": pl.Float64,
}
RECORD_COLUMNS: list[str] = list(RECORD_SCHEMA.keys())

Records = Union[pl.DataFrame, Iterable[Union[MarketingRecord, Mapping[str, Any]]]]


def key_expr(column_name: str, default: str, dtype: Any = pl.Utf8) -> pl.Expr:
    """Falsy raw keys (null, "", 0, NaN, False) fall back to ``default``."""
    column = pl.col(column_name)
    if dtype == pl.Null:
        return pl.lit(default, dtype=pl.Utf8).alias(column_name)
    if dtype == pl.Boolean:
        return pl.when(column).then(pl.lit("True")).otherwise(pl.lit(default)).alias(column_name)
    text = column.cast(pl.Utf8, strict=False)
    if dtype.is_numeric():
        blank = column.is_null() | (column == 0)
        if dtype.is_float():
            blank = blank | column.is_nan()
    else:
        blank = text.is_null() | (text == "")
    return pl.when(blank).then(pl.lit(default)).otherwise(text).alias(column_name)


def measure_text_expr(column_name: str) -> pl.Expr:
    return pl.col(column_name).cast(pl.Utf8, strict=False).str.strip_chars()


def parsed_measure_expr(column_name: str) -> pl.Expr:
    """Numeric text such as ' 1,200 ' parses to 1200.0; unparseable text becomes null."""
    return measure_text_expr(column_name).str.replace_all(",", "", literal=True).cast(pl.Float64, strict=False)


def measure_expr(column_name: str, dtype: Any = pl.Float64) -> pl.Expr:
    if dtype == pl.Utf8:
        parsed = parsed_measure_expr(column_name)
    else:
        parsed = pl.col(column_name).cast(pl.Float64, strict=False)
    return parsed.fill_nan(0.0).fill_null(0.0).alias(column_name)


def pct_expr(num: pl.Expr, den: pl.Expr) -> pl.Expr:
    return pl.when(den > 0).then(num / den * 100).otherwise(pl.lit(0.0))


def normalize_record_frame(df: pl.DataFrame) -> pl.DataFrame:
    """Project a frame onto the record columns, applying the default-key and falsy->0 rules."""
    missing = [column for column in RECORD_COLUMNS if column not in df.columns]
    if missing:
        df = df.with_columns([pl.lit(None).alias(column) for column in missing])
    schema = df.schema
    return df.select(
        [
            key_expr("region", DEFAULT_REGION, schema["region"]),
            key_expr("channel", DEFAULT_CHANNEL, schema["channel"]),
        ]
        + [measure_expr(measure, schema[measure]) for measure in MEASURES]
    )


def records_frame(records: Records) -> pl.DataFrame:
    if isinstance(records, pl.DataFrame):
        return normalize_record_frame(records)
    rows = [MarketingRecord.coerce(item).as_tuple() for item in records]
    return pl.DataFrame(rows, schema=RECORD_SCHEMA, orient="row")


def _sum_aggregations() -> List[pl.Expr]:
    return [pl.col(measure).sum().alias(measure) for measure in MEASURES]


def _validate_channel_cap(max_channels_per_region: int | None) -> None:
    if max_channels_per_region is not None and max_channels_per_region < 0:
        raise ValueError(f"max_channels_per_region must be >= 0, got {max_channels_per_region}")


def _totals_from_frame(frame: pl.DataFrame) -> Totals:
    return Totals.from_row(frame.select(_sum_aggregations()).row(0, named=True))


def _region_frame(frame: pl.DataFrame, total_conversions: float, sort_by_conversions: bool) -> pl.DataFrame:
    regions = (
        frame.group_by("region", maintain_order=True)
        .agg(_sum_aggregations())
        .with_columns(
            [
                pct_expr(pl.col("clicks"), pl.col("impressions")).alias("ctr"),
                pct_expr(pl.col("conversions"), pl.lit(total_conversions)).alias("contribution"),
            ]
        )
    )
    if sort_by_conversions:
        regions = regions.sort("conversions", descending=True, maintain_order=True)
    return regions


def _channel_frame(
    frame: pl.DataFrame,
    total_conversions: float,
    max_channels_per_region: int | None,
) -> pl.DataFrame:
    channels = (
        frame.group_by(["region", "channel"], maintain_order=True)
        .agg(_sum_aggregations())
        .with_columns(pl.col("conversions").sum().over("region").alias("region_conversions"))
        .with_columns(
            [
                pct_expr(pl.col("clicks"), pl.col("impressions")).alias("ctr"),
                pct_expr(pl.col("conversions"), pl.col("region_conversions")).alias("contribution"),
                pct_expr(pl.col("conversions"), pl.lit(total_conversions)).alias("share_of_total"),
            ]
        )
        .sort("conversions", descending=True, maintain_order=True)
    )
    if max_channels_per_region is None:
        return channels
    return (
        channels.with_columns(pl.int_range(pl.len()).over("region").alias("channel_rank"))
        .filter(pl.col("channel_rank") < max_channels_per_region)
        .drop("channel_rank")
    )


def _assemble(region_rows: List[dict[str, Any]], channel_rows: List[dict[str, Any]]) -> List[RegionRollup]:
    channels_by_region: dict[str, list[ChannelRollup]] = {}
    for row in channel_rows:
        channels_by_region.setdefault(str(row["region"]), []).append(ChannelRollup.from_row(row))

    output: List[RegionRollup] = []
    for row in region_rows:
        region = str(row["region"])
        output.append(
            RegionRollup(
                region=region,
                totals=Totals.from_row(row),
                channels=tuple(channels_by_region.get(region, [])),
                ctr=float(row["ctr"]),
                contribution=float(row["contribution"]),
            )
        )
    return output


def _rollup(
    records: Records,
    max_channels_per_region: int | None,
    sort_by_conversions: bool,
) -> List[RegionRollup]:
    _validate_channel_cap(max_channels_per_region)
    frame = records_frame(records)
    total_conversions = _totals_from_frame(frame).conversions
    region_rows = _region_frame(frame, total_conversions, sort_by_conversions).to_dicts()
    channel_rows = _channel_frame(frame, total_conversions, max_channels_per_region).to_dicts()
    return _assemble(region_rows, channel_rows)


def compute_totals(records: Records) -> Totals:
    """Sum spend, impressions, clicks and conversions over all records."""
    return _totals_from_frame(records_frame(records))


def compute_region_rollup(records: Records, max_channels_per_region: int | None = None) -> List[RegionRollup]:
    """Region rollup ranked by conversions (descending, ties keep first-seen order).

    Every region carries all of its channels, ranked the same way, unless
    ``max_channels_per_region`` caps them.
    """
    return _rollup(records, max_channels_per_region=max_channels_per_region, sort_by_conversions=True)


def compute_region_channel_rollup(
    records: Records,
    max_channels_per_region: int | None = CHART_CHANNEL_LIMIT,
) -> List[RegionRollup]:
    """Region -> channel rollup in first-seen region order, top channels per region by conversions."""
    return _rollup(records, max_channels_per_region=max_channels_per_region, sort_by_conversions=False)

"""Chart views: region overview bars and per-region channel-mix pies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Sequence

import plotly.graph_objects as go

from src.application.reporting.formatting import (
    CURRENCY_SYMBOL,
    fmt_axis_count,
    fmt_axis_millions,
    fmt_axis_pct,
    fmt_share_pct,
)
from src.domain.models import RegionRollup

DEFAULT_METRIC = "spend"
PIE_COLORS: List[str] = ["#0f766e", "#f97316", "#2563eb", "#7c3aed", "#eab308", "#14b8a6", "#ef4444"]
GRID_COLOR = "#e5e7eb"
REGION_CHART_HEIGHT = 340
MIX_CHART_HEIGHT = 320


@dataclass(frozen=True)
class MetricOption:
    key: str
    label: str
    color: str
    formatter: Callable[[float | None], str]
    prefix: str = ""

    def display(self, value: float | None) -> str:
        return f"{self.prefix}{self.formatter(value)}"


REGION_METRICS: Dict[str, MetricOption] = {
    "spend": MetricOption("spend", "Spend", "#0f766e", fmt_axis_millions, CURRENCY_SYMBOL),
    "conversions": MetricOption("conversions", "Conversions", "#f97316", fmt_axis_count),
    "ctr": MetricOption("ctr", "CTR", "#2563eb", fmt_axis_pct),
}
MIX_METRICS: Dict[str, MetricOption] = {
    "spend": MetricOption("spend", "Spend", "#0f766e", fmt_axis_millions, CURRENCY_SYMBOL),
    "conversions": MetricOption("conversions", "Conversions", "#f97316", fmt_axis_count),
    "ctr": MetricOption("ctr", "CTR", "#2563eb", fmt_share_pct),
}


def resolve_metric(metric: str | None, options: Mapping[str, MetricOption] = REGION_METRICS) -> MetricOption:
    """Look up a metric option; unknown keys fall back to spend."""
    return options.get(str(metric or "").strip().lower(), options[DEFAULT_METRIC])


def region_metric_series(regions: Sequence[RegionRollup], metric: str | None) -> List[tuple[str, float]]:
    option = resolve_metric(metric, REGION_METRICS)
    return [(region.region, region.metric(option.key)) for region in regions]


def channel_mix_series(region: RegionRollup, metric: str | None) -> List[tuple[str, float]]:
    option = resolve_metric(metric, MIX_METRICS)
    return [(channel.channel, channel.metric(option.key)) for channel in region.channels]


def _metric_menu(options: Sequence[MetricOption], active_index: int, with_axis_title: bool) -> dict:
    buttons = []
    for idx, option in enumerate(options):
        visible = [pos == idx for pos in range(len(options))]
        layout_update: dict = {"yaxis.title": option.label} if with_axis_title else {}
        buttons.append(dict(label=option.label, method="update", args=[{"visible": visible}, layout_update]))
    return dict(
        type="dropdown",
        direction="down",
        x=1.0,
        xanchor="right",
        y=1.18,
        yanchor="top",
        active=active_index,
        buttons=buttons,
    )


def build_region_figure(regions: Sequence[RegionRollup], metric: str | None = DEFAULT_METRIC) -> go.Figure:
    """Bar chart of one metric per region, with a dropdown to switch metric."""
    active = resolve_metric(metric, REGION_METRICS)
    options = list(REGION_METRICS.values())
    labels = [region.region for region in regions]

    fig = go.Figure()
    for option in options:
        values = [value for _, value in region_metric_series(regions, option.key)]
        fig.add_trace(
            go.Bar(
                x=labels,
                y=values,
                name=option.label,
                marker_color=option.color,
                text=[option.display(value) for value in values],
                textposition="none",
                hovertemplate=f"%{{x}}<br>{option.label}: %{{text}}<extra></extra>",
                visible=option.key == active.key,
            )
        )
    fig.update_layout(
        title=dict(text="Region overview", font=dict(size=15)),
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        margin=dict(l=40, r=20, t=60, b=40),
        xaxis=dict(gridcolor=GRID_COLOR),
        yaxis=dict(title=active.label, gridcolor=GRID_COLOR),
        showlegend=False,
        updatemenus=[_metric_menu(options, options.index(active), with_axis_title=True)],
    )
    return fig


def build_channel_mix_figure(region: RegionRollup, metric: str | None = DEFAULT_METRIC) -> go.Figure:
    """Pie of one metric per channel within a region, with a dropdown to switch metric."""
    active = resolve_metric(metric, MIX_METRICS)
    options = list(MIX_METRICS.values())
    labels = [channel.channel for channel in region.channels]
    colors = [PIE_COLORS[idx % len(PIE_COLORS)] for idx in range(len(labels))]

    fig = go.Figure()
    for option in options:
        values = [value for _, value in channel_mix_series(region, option.key)]
        fig.add_trace(
            go.Pie(
                labels=labels,
                values=values,
                name=option.label,
                marker=dict(colors=colors),
                text=[option.display(value) for value in values],
                textinfo="percent",
                hovertemplate=f"%{{label}}<br>{option.label}: %{{text}}<extra></extra>",
                sort=False,
                visible=option.key == active.key,
            )
        )
    fig.update_layout(
        title=dict(text=region.region, font=dict(size=15)),
        paper_bgcolor="rgba(0,0,0,0)",
        margin=dict(l=20, r=20, t=60, b=20),
        legend=dict(orientation="h"),
        updatemenus=[_metric_menu(options, options.index(active), with_axis_title=False)],
    )
    return fig


def figure_html(fig: go.Figure, height: int) -> str:
    return fig.to_html(
        full_html=False,
        include_plotlyjs=False,
        config={"displayModeBar": False, "responsive": True},
        default_height=f"{height}px",
    )

"""Static HTML dashboard: contribution table, region overview and channel-mix charts."""

from __future__ import annotations

from datetime import datetime
from html import escape
from pathlib import Path
from typing import List

from plotly.offline import get_plotlyjs

from src.application.dashboard_service import DashboardResult
from src.application.reporting.charts import (
    MIX_CHART_HEIGHT,
    REGION_CHART_HEIGHT,
    build_channel_mix_figure,
    build_region_figure,
    figure_html,
)
from src.application.reporting.table import ContributionTable, TableRow, build_contribution_table

PAGE_TITLE = "Marketing Contribution Dashboard"

TOGGLE_SCRIPT = """
function toggleRegion(key) {
  var row = document.querySelector('tr.region-row[data-region="' + key + '"]');
  var open = row.getAttribute('aria-expanded') !== 'true';
  row.setAttribute('aria-expanded', open ? 'true' : 'false');
  row.classList.toggle('is-open', open);
  document.querySelectorAll('tr.channel-row[data-region="' + key + '"]').forEach(function (el) {
    el.hidden = !open;
  });
}
function onRegionKey(event, key) {
  if (event.key === 'Enter' || event.key === ' ') {
    event.preventDefault();
    toggleRegion(key);
  }
}
"""


def _cells_html(row: TableRow) -> str:
    return "".join(f"<td>{escape(cell)}</td>" for cell in row.cells)


def _render_region_row(row: TableRow, key: str) -> str:
    return (
        f"<tr class=\"region-row\" data-region=\"{key}\" role=\"button\" tabindex=\"0\" aria-expanded=\"false\" "
        f"onclick=\"toggleRegion('{key}')\" onkeydown=\"onRegionKey(event, '{key}')\">"
        "<td class=\"region-name\">"
        f"<span class=\"chevron\" aria-hidden=\"true\">&#9656;</span>{escape(row.label)}"
        "</td>"
        f"{_cells_html(row)}</tr>"
    )


def _render_channel_row(row: TableRow, key: str) -> str:
    return (
        f"<tr class=\"channel-row\" data-region=\"{key}\" hidden>"
        f"<td class=\"channel-name\"><span class=\"channel-line\"></span>{escape(row.label)}</td>"
        f"{_cells_html(row)}</tr>"
    )


def render_table(table: ContributionTable) -> str:
    head_html = "".join(f"<th>{escape(column)}</th>" for column in table.columns)
    body_parts: List[str] = []
    keys: dict[str, str] = {}
    for row in table.body:
        key = keys.setdefault(row.region, f"region-{len(keys)}")
        if row.kind == "region":
            body_parts.append(_render_region_row(row, key))
        else:
            body_parts.append(_render_channel_row(row, key))
    footer_html = f"<tr class=\"total-row\"><td>{escape(table.footer.label)}</td>{_cells_html(table.footer)}</tr>"
    return (
        "<section class=\"panel\">"
        "<p class=\"kicker\">Contribution</p><h2>Region &amp; Channel Performance</h2>"
        "<div class=\"table-wrapper\"><table class=\"contribution-table\">"
        f"<thead><tr>{head_html}</tr></thead>"
        f"<tbody>{''.join(body_parts)}</tbody>"
        f"<tfoot>{footer_html}</tfoot>"
        "</table></div></section>"
    )


def render_charts(result: DashboardResult) -> str:
    region_html = (
        "<section class=\"panel\"><p class=\"kicker\">Performance Insights</p>"
        f"{figure_html(build_region_figure(result.regions), REGION_CHART_HEIGHT)}</section>"
    )
    if not result.channel_mix:
        return region_html
    cards = "".join(
        "<div class=\"chart-card\"><p class=\"kicker\">Channel mix</p>"
        f"{figure_html(build_channel_mix_figure(region), MIX_CHART_HEIGHT)}</div>"
        for region in result.channel_mix
    )
    return f"{region_html}<section class=\"chart-grid\">{cards}</section>"


def render_dashboard_html(result: DashboardResult, generated_at: str | None = None) -> str:
    generated_at = generated_at or datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    table_html = render_table(build_contribution_table(result.regions, result.totals))
    charts_html = render_charts(result)
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{escape(PAGE_TITLE)}</title>
  <script>{get_plotlyjs()}</script>
  <script>{TOGGLE_SCRIPT}</script>
  <style>
    :root {{
      --bg: #f5f7fb;
      --panel: #ffffff;
      --line: #dbe3ef;
      --text: #0f172a;
      --sub: #475569;
      --accent: #0f766e;
    }}
    body {{
      margin: 0;
      background: var(--bg);
      color: var(--text);
      font-family: "Inter", "Segoe UI", sans-serif;
    }}
    .wrap {{
      max-width: 1280px;
      margin: 0 auto;
      padding: 24px;
    }}
    .panel, .chart-card {{
      background: var(--panel);
      border: 1px solid var(--line);
      border-radius: 12px;
      padding: 16px 18px;
      margin-bottom: 16px;
    }}
    .kicker {{
      margin: 0 0 4px;
      color: var(--sub);
      font-size: 12px;
      text-transform: uppercase;
      letter-spacing: 0.06em;
    }}
    h1 {{ margin: 0 0 6px; font-size: 26px; }}
    h2 {{ margin: 0 0 12px; font-size: 20px; }}
    .meta {{ color: var(--sub); font-size: 13px; }}
    .table-wrapper {{ overflow-x: auto; }}
    table {{
      width: 100%;
      border-collapse: collapse;
      font-size: 13px;
    }}
    th, td {{
      border-bottom: 1px solid var(--line);
      padding: 8px 10px;
      text-align: right;
      white-space: nowrap;
    }}
    th:first-child, td:first-child {{ text-align: left; }}
    th {{ background: #eef4ff; font-weight: 700; }}
    .region-row {{ cursor: pointer; font-weight: 600; }}
    .region-row:hover {{ background: #f8fafc; }}
    .chevron {{ display: inline-block; margin-right: 8px; transition: transform 0.15s; }}
    .region-row.is-open .chevron {{ transform: rotate(90deg); }}
    .channel-row td {{ color: var(--sub); }}
    .channel-line {{
      display: inline-block;
      width: 14px;
      margin: 0 8px 0 10px;
      border-top: 1px solid var(--line);
      vertical-align: middle;
    }}
    .total-row td {{ font-weight: 700; background: #f8fafc; }}
    .chart-grid {{
      display: grid;
      grid-template-columns: repeat(2, minmax(320px, 1fr));
      gap: 16px;
    }}
    @media (max-width: 960px) {{
      .chart-grid {{ grid-template-columns: 1fr; }}
    }}
  </style>
</head>
<body>
  <div class="wrap">
    <section class="panel">
      <h1>{escape(PAGE_TITLE)}</h1>
      <div class="meta">Records: {result.record_count} | Regions: {len(result.regions)} | Generated: {escape(generated_at)}</div>
    </section>
    {table_html}
    {charts_html}
  </div>
</body>
</html>
"""


def write_dashboard_html(output_path: Path, result: DashboardResult, generated_at: str | None = None) -> None:
    html = render_dashboard_html(result, generated_at=generated_at)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(html, encoding="utf-8")

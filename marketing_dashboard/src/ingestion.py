"""Dataset ingestion (JSON/CSV/Excel/Parquet) and Excel output helpers."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Sequence

import polars as pl

from src.domain.models import MEASURES
from src.rollup import (
    RECORD_COLUMNS,
    measure_text_expr,
    normalize_record_frame,
    parsed_measure_expr,
    records_frame,
)

COLUMN_ALIASES: dict[str, str] = {
    "region": "region",
    "market": "region",
    "geo": "region",
    "channel": "channel",
    "source": "channel",
    "medium": "channel",
    "spend": "spend",
    "cost": "spend",
    "amount_spent": "spend",
    "impressions": "impressions",
    "impr": "impressions",
    "clicks": "clicks",
    "link_clicks": "clicks",
    "conversions": "conversions",
    "conv": "conversions",
    "orders": "conversions",
}
JSON_SUFFIXES: tuple[str, ...] = (".json",)
CSV_SUFFIXES: tuple[str, ...] = (".csv",)
EXCEL_SUFFIXES: tuple[str, ...] = (".xlsx", ".xlsm", ".xls")
PARQUET_SUFFIXES: tuple[str, ...] = (".parquet",)
PREFERRED_SHEET = "data"


def _parse_error_threshold() -> float:
    raw = os.getenv("MARKETING_PARSE_ERROR_THRESHOLD", "0")
    try:
        threshold = float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid MARKETING_PARSE_ERROR_THRESHOLD: {raw}") from exc
    if threshold < 0 or threshold > 1:
        raise ValueError(f"MARKETING_PARSE_ERROR_THRESHOLD must be in [0, 1], got {threshold}")
    return threshold


METRIC_PARSE_ERROR_THRESHOLD = _parse_error_threshold()


def _import_openpyxl() -> Any:
    try:
        from openpyxl import load_workbook
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("openpyxl is required for Excel fallback input.") from exc
    return load_workbook


def _normalize_headers(raw_headers: Sequence[Any]) -> list[str]:
    headers: list[str] = []
    seen: dict[str, int] = {}
    for idx, value in enumerate(raw_headers):
        base = str(value).strip() if value not in (None, "") else f"column_{idx + 1}"
        count = seen.get(base, 0)
        name = base if count == 0 else f"{base}_{count + 1}"
        seen[base] = count + 1
        headers.append(name)
    return headers


def _canonical_name(header: str) -> str:
    key = header.strip().lower().replace(" ", "_").replace("-", "_")
    return COLUMN_ALIASES.get(key, header)


def _rename_to_record_columns(df: pl.DataFrame) -> pl.DataFrame:
    mapping: dict[str, str] = {}
    taken: set[str] = set()
    for column in df.columns:
        target = _canonical_name(column)
        if target in RECORD_COLUMNS and target not in taken and (target == column or target not in df.columns):
            taken.add(target)
            if target != column:
                mapping[column] = target
    renamed = df.rename(mapping) if mapping else df
    present = [column for column in RECORD_COLUMNS if column in renamed.columns]
    if not present:
        raise ValueError(f"Missing required columns: expected at least one of {RECORD_COLUMNS}, got {df.columns}")
    return renamed.select(present)


def _metric_parse_error_expr(column_name: str) -> pl.Expr:
    text_expr = measure_text_expr(column_name)
    parsed_expr = parsed_measure_expr(column_name)
    return (
        (text_expr.is_not_null() & (text_expr != "") & parsed_expr.is_null())
        .cast(pl.UInt32)
        .alias(f"__parse_error_{column_name}")
    )


def _validate_metric_parse_errors(
    df: pl.DataFrame,
    metric_columns: Sequence[str],
    context: str,
    threshold: float = METRIC_PARSE_ERROR_THRESHOLD,
) -> None:
    if df.is_empty() or threshold <= 0:
        return
    targets = [column for column in metric_columns if column in df.columns]
    if not targets:
        return

    checks_df = df.select([_metric_parse_error_expr(column) for column in targets])
    row_count = int(df.height)
    failures: list[str] = []
    for column in targets:
        count_value = checks_df.select(pl.col(f"__parse_error_{column}").sum()).to_series(0)[0]
        parse_error_count = int(count_value or 0)
        parse_error_ratio = parse_error_count / row_count
        if parse_error_ratio > threshold:
            failures.append(f"{column}={parse_error_ratio:.2%} ({parse_error_count}/{row_count})")
    if failures:
        joined = ", ".join(failures)
        raise ValueError(
            f"Data quality check failed in {context}: metric parse error ratio exceeds {threshold:.2%} ({joined})"
        )


def to_record_frame(
    df: pl.DataFrame,
    context: str = "record_frame",
    threshold: float | None = None,
) -> pl.DataFrame:
    """Map raw tabular columns onto the record schema with numeric-string parsing."""
    selected = _rename_to_record_columns(df)
    _validate_metric_parse_errors(
        selected,
        metric_columns=MEASURES,
        context=context,
        threshold=METRIC_PARSE_ERROR_THRESHOLD if threshold is None else threshold,
    )
    return normalize_record_frame(selected)


def _read_json(path: Path) -> pl.DataFrame:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict) and isinstance(payload.get("records"), list):
        payload = payload["records"]
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ValueError(f"Expected a JSON list of record objects in {path}")
    rows = [{_canonical_name(str(key)): value for key, value in item.items()} for item in payload]
    return records_frame(rows)


def _read_excel_polars(path: Path, sheet_name: str | None) -> pl.DataFrame:
    """Use larger schema sampling when supported to avoid dtype inference warnings."""
    kwargs: dict[str, Any] = {} if sheet_name is None else {"sheet_name": sheet_name}
    try:
        return pl.read_excel(path, infer_schema_length=10000, **kwargs)  # type: ignore[arg-type]
    except TypeError:
        return pl.read_excel(path, **kwargs)  # type: ignore[arg-type]


def _read_excel_with_polars(path: Path, preferred_sheet: str) -> pl.DataFrame:
    try:
        return _read_excel_polars(path, preferred_sheet)
    except Exception:
        return _read_excel_polars(path, None)


def _read_excel_with_openpyxl(path: Path, preferred_sheet: str) -> pl.DataFrame:
    load_workbook = _import_openpyxl()
    workbook = load_workbook(path, read_only=True, data_only=True)
    if not workbook.sheetnames:
        workbook.close()
        raise ValueError(f"No sheets found in {path}")
    sheet_name = preferred_sheet if preferred_sheet in workbook.sheetnames else workbook.sheetnames[0]

    row_iter = workbook[sheet_name].iter_rows(values_only=True)
    header_row = next(row_iter, None)
    if header_row is None:
        workbook.close()
        return pl.DataFrame()

    headers = _normalize_headers(header_row)
    columns: dict[str, list[Any]] = {name: [] for name in headers}
    for values in row_iter:
        if values is None or all(value is None for value in values):
            continue
        for idx, name in enumerate(headers):
            value = values[idx] if idx < len(values) else None
            columns[name].append(None if value is None else str(value))
    workbook.close()
    return pl.DataFrame(columns, schema={name: pl.Utf8 for name in headers})


def _read_excel(path: Path, preferred_sheet: str) -> pl.DataFrame:
    try:
        return _read_excel_with_polars(path, preferred_sheet)
    except Exception:
        return _read_excel_with_openpyxl(path, preferred_sheet)


def read_marketing_data(
    path: str | Path,
    preferred_sheet: str = PREFERRED_SHEET,
    return_meta: bool = False,
) -> pl.DataFrame | tuple[pl.DataFrame, Dict[str, Any]]:
    """Read a marketing dataset file and return the normalized record frame."""
    data_path = Path(path)
    if not data_path.exists():
        raise FileNotFoundError(f"Input data file not found: {data_path}")

    suffix = data_path.suffix.lower()
    if suffix in JSON_SUFFIXES:
        frame = _read_json(data_path)
        source_format = "json"
    elif suffix in CSV_SUFFIXES:
        frame = to_record_frame(pl.read_csv(data_path, infer_schema_length=10000), context="csv")
        source_format = "csv"
    elif suffix in EXCEL_SUFFIXES:
        frame = to_record_frame(_read_excel(data_path, preferred_sheet), context="excel")
        source_format = "excel"
    elif suffix in PARQUET_SUFFIXES:
        frame = to_record_frame(pl.read_parquet(data_path), context="parquet")
        source_format = "parquet"
    else:
        raise ValueError(f"Unsupported input format '{suffix}' for {data_path}")

    if return_meta:
        return frame, {"source_format": source_format, "rows": int(frame.height)}
    return frame


def write_output_excel(path: str | Path, sheets: Dict[str, pl.DataFrame]) -> None:
    """Write one worksheet per frame through polars' xlsxwriter backend."""
    import xlsxwriter

    excel_path = Path(path)
    excel_path.parent.mkdir(parents=True, exist_ok=True)
    with xlsxwriter.Workbook(str(excel_path)) as workbook:
        for sheet_name, frame in sheets.items():
            frame.write_excel(workbook=workbook, worksheet=str(sheet_name)[:31], autofit=True)

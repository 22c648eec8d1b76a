"""Infrastructure adapter for cached dataset loading and workbook output."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import polars as pl

from src.ingestion import PREFERRED_SHEET, read_marketing_data, write_output_excel
from src.rollup import RECORD_COLUMNS

CACHE_SCHEMA_VERSION = 2


def _default_cache_dir(path: Path) -> Path:
    return path.resolve().parent / ".cache"


def _input_fingerprint(path: Path) -> str:
    stat = path.stat()
    parts = [
        f"v{CACHE_SCHEMA_VERSION}",
        str(path),
        str(stat.st_mtime_ns),
        str(stat.st_size),
        PREFERRED_SHEET,
        ",".join(RECORD_COLUMNS),
    ]
    return hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CachedRecordFrame:
    """Normalized record frame stored as parquet beside a small fingerprint file."""

    frame_path: Path
    meta_path: Path
    fingerprint: str

    @classmethod
    def for_input(cls, path: Path, cache_dir: Path) -> "CachedRecordFrame":
        resolved = path.resolve()
        stem = f"{resolved.stem}-{hashlib.sha1(str(resolved).encode('utf-8')).hexdigest()[:10]}"
        return cls(
            frame_path=cache_dir / f"{stem}.parquet",
            meta_path=cache_dir / f"{stem}.json",
            fingerprint=_input_fingerprint(resolved),
        )

    def read(self) -> tuple[pl.DataFrame, dict[str, Any]] | None:
        try:
            meta = json.loads(self.meta_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        if not isinstance(meta, dict) or meta.get("fingerprint") != self.fingerprint:
            return None
        try:
            frame = pl.read_parquet(self.frame_path)
        except (OSError, pl.exceptions.PolarsError):
            return None
        if frame.columns != RECORD_COLUMNS or frame.height != meta.get("rows"):
            return None
        return frame, {"source_format": meta.get("source_format"), "rows": frame.height}

    def write(self, frame: pl.DataFrame, load_meta: dict[str, Any]) -> None:
        payload = {
            "fingerprint": self.fingerprint,
            "source_format": load_meta.get("source_format"),
            "rows": frame.height,
        }
        try:
            self.frame_path.parent.mkdir(parents=True, exist_ok=True)
            frame.write_parquet(self.frame_path, compression="zstd")
            self.meta_path.write_text(json.dumps(payload), encoding="utf-8")
        except (OSError, pl.exceptions.PolarsError):
            # A stale or missing cache only costs a re-read on the next run.
            return


def load_record_frame(
    path: Path,
    cache_dir: Path | None = None,
    use_cache: bool = True,
) -> tuple[pl.DataFrame, dict[str, Any]]:
    """Load the normalized record frame, reusing the parquet cache while the input file is unchanged."""
    if not path.exists():
        raise FileNotFoundError(f"Input data file not found: {path}")

    cache = CachedRecordFrame.for_input(path, cache_dir or _default_cache_dir(path)) if use_cache else None
    if cache is not None:
        cached = cache.read()
        if cached is not None:
            frame, load_meta = cached
            return frame, {**load_meta, "input_cache_hit": True}

    frame, load_meta = read_marketing_data(path, return_meta=True)
    if cache is not None:
        cache.write(frame, load_meta)
    return frame, {**load_meta, "input_cache_hit": False}


def save_output_workbook(path: Path, sheets: dict[str, pl.DataFrame]) -> str | None:
    """Write the summary workbook; returns the reason when the target file is locked."""
    try:
        write_output_excel(path, sheets)
    except PermissionError as exc:
        return f"{path.name} is not writable ({exc})"
    return None

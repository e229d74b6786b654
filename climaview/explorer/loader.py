# -*- coding: utf-8 -*-
"""
Dataset Loader Boundary - Climate Explorer

Convenience fetchers for :meth:`ClimateExplorerService.load`. A fetcher is a
zero-argument coroutine function returning parsed rows (or, for the
basemap, an opaque object). File reads run in a worker thread so they never
block the event loop that drives the play timer.

CSV cells are read as strings with NA detection disabled, so blank and
``"NA"`` cells reach the record validator untouched and are counted there
as malformed rows rather than silently becoming NaN.

Example:
    >>> service = get_service()
    >>> await service.load(
    ...     csv_rows_fetcher("data/precip.csv"),
    ...     json_fetcher("data/world-110m.json"),
    ... )
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Union

import pandas as pd

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
RowsFetcher = Callable[[], Awaitable[List[Dict[str, Any]]]]
BasemapFetcher = Callable[[], Awaitable[Any]]


def read_csv_rows(path: PathLike) -> List[Dict[str, Any]]:
    """Read a CSV file into a list of row mappings (all cells as strings)."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    rows = df.to_dict(orient="records")
    logger.info("Read %d rows from %s (columns: %s)", len(rows), path, list(df.columns))
    return rows


def read_json(path: PathLike) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    logger.info("Read JSON document from %s", path)
    return data


def csv_rows_fetcher(path: PathLike) -> RowsFetcher:
    """Fetcher reading the tabular dataset from a CSV file."""

    async def fetch() -> List[Dict[str, Any]]:
        return await asyncio.to_thread(read_csv_rows, path)

    return fetch


def json_fetcher(path: PathLike) -> BasemapFetcher:
    """Fetcher reading a JSON document, typically the basemap topology."""

    async def fetch() -> Any:
        return await asyncio.to_thread(read_json, path)

    return fetch


__all__ = [
    "RowsFetcher",
    "BasemapFetcher",
    "read_csv_rows",
    "read_json",
    "csv_rows_fetcher",
    "json_fetcher",
]

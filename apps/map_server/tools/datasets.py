"""Bundled item datasets for the map server."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

import pandas as pd

from ..schemas.models import Place


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def list_datasets() -> List[str]:
    """Names of the bundled datasets (file stems)."""
    return sorted(path.stem for path in DATA_DIR.glob("*.json"))


def dataframe_from_records(records: list) -> pd.DataFrame:
    """
    Flatten city records into ``name``, ``lat`` and ``lng`` columns.

    Records look like ``{"name": ..., "coordinate": {"latitude": ..., "longitude": ...}}``.
    Rows without a usable coordinate are dropped.
    """
    if not records:
        return pd.DataFrame(columns=["name", "lat", "lng"])

    df = pd.json_normalize(records).rename(
        columns={"coordinate.latitude": "lat", "coordinate.longitude": "lng"}
    )
    for column in ("lat", "lng"):
        if column not in df:
            df[column] = float("nan")
        df[column] = pd.to_numeric(df[column], errors="coerce")

    before = len(df)
    df = df.dropna(subset=["lat", "lng"]).reset_index(drop=True)
    if len(df) < before:
        logger.warning(f"Dropped {before - len(df)} record(s) without coordinates")
    return df[["name", "lat", "lng"]]


def places_from_dataframe(df: pd.DataFrame, prefix: str) -> List[Place]:
    """Convert a flattened dataframe into place models with stable ids."""
    return [
        Place(id=f"{prefix}-{i}", name=str(row.name), lat=float(row.lat), lng=float(row.lng))
        for i, row in enumerate(df.itertuples(index=False))
    ]


def load_dataset(name: str) -> List[Place]:
    """
    Load a bundled dataset.

    Raises:
        FileNotFoundError: If no dataset with that name exists
    """
    path = DATA_DIR / f"{name}.json"
    if not path.exists():
        raise FileNotFoundError(
            f"Dataset '{name}' not found. Available datasets: {', '.join(list_datasets())}"
        )

    with path.open("r", encoding="utf-8") as f:
        records = json.load(f)
    return places_from_dataframe(dataframe_from_records(records), prefix=name)

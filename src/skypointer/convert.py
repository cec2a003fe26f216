"""One-off converter: HYG database CSV → JSON star asset read by ``skypointer.catalog``."""

import json
import logging
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)


def _text(value: object) -> str | None:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _number(value: object) -> float | None:
    if value is None or pd.isna(value):
        return None
    return float(value)  # type: ignore[arg-type]


def convert_hyg_csv(src: Path, dst: Path) -> int:
    """Convert the HYG CSV to a single JSON array.

    Each record is ``{id, proper, name, ra, dec, mag, ci, spect}``: ``name``
    falls back to the Bayer designation, empty text becomes null, numeric
    columns are floats, and an unparseable id or color index becomes null. Rows
    whose ra/dec cannot be parsed are dropped.

    Args:
        src: HYG CSV path (needs at least id, ra, dec, mag).
        dst: Output JSON path.

    Returns:
        Number of records written.
    """
    df = pd.read_csv(src, dtype=str)
    missing = [c for c in ("id", "ra", "dec", "mag") if c not in df.columns]
    if missing:
        raise ValueError(f"{src}: missing columns {missing}")

    for column in ("id", "ra", "dec", "mag", "ci"):
        if column in df.columns:
            df[column] = pd.to_numeric(df[column], errors="coerce")

    bad = df["ra"].isna() | df["dec"].isna()
    if bad.any():
        logger.warning("Dropping %d rows without numeric ra/dec", int(bad.sum()))
        df = df[~bad]

    no_id = df["id"].isna()
    if no_id.any():
        logger.warning("Writing %d rows without a numeric id as null", int(no_id.sum()))

    records = []
    for row in df.to_dict(orient="records"):
        name = _text(row.get("name")) or _text(row.get("bayer"))
        records.append(
            {
                "id": None if pd.isna(row["id"]) else int(row["id"]),
                "proper": _text(row.get("proper")),
                "name": name,
                "ra": float(row["ra"]),
                "dec": float(row["dec"]),
                "mag": _number(row.get("mag")),
                "ci": _number(row.get("ci")),
                "spect": _text(row.get("spect")),
            }
        )

    dst = Path(dst)
    dst.parent.mkdir(parents=True, exist_ok=True)
    with dst.open("w", encoding="utf-8") as f:
        json.dump(records, f, ensure_ascii=False)
    logger.info("Converted %d stars to %s", len(records), dst)
    return len(records)

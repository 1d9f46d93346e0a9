"""CSV / JSONL / Excel input and output for candidate tables and suggestions."""

from __future__ import annotations

import math
from pathlib import Path

import pandas as pd

from nommatch.types import Candidate, MatchResult, Prediction

SUGGESTION_COLUMNS = [
    "rank", "id", "name", "confidence", "match_type", "strategy", "reasoning", "explanation",
]


def _read_frame(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".jsonl":
        return pd.read_json(path, lines=True, dtype=False)
    if suffix in (".xlsx", ".xls"):
        return pd.read_excel(path, dtype=object)
    return pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")


def _text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def _price(value: object) -> float | None:
    text = _text(value)
    if text is None:
        return None
    try:
        return float(text.replace(",", "."))
    except ValueError:
        return None


def read_candidates(
    path: str | Path,
    name_column: str = "name",
    id_column: str | None = "id",
    supplier_column: str = "supplier",
    price_column: str = "price",
    characteristics_column: str = "characteristics",
) -> list[Candidate]:
    """Read a candidate table from CSV, JSONL or Excel.

    Rows without a name are skipped. Ids are kept as strings; when the id
    column is absent the row number is used instead.
    """
    path = Path(path)
    df = _read_frame(path)
    if name_column not in df.columns:
        raise ValueError(f"{path}: missing column '{name_column}'")

    has_id = id_column is not None and id_column in df.columns
    candidates: list[Candidate] = []
    for i, row in enumerate(df.to_dict(orient="records")):
        name = _text(row.get(name_column))
        if not name:
            continue
        item_id = _text(row.get(id_column)) if has_id else None
        candidates.append(Candidate(
            id=item_id if item_id is not None else str(i),
            name=name,
            supplier=_text(row.get(supplier_column)),
            price=_price(row.get(price_column)),
            characteristics=_text(row.get(characteristics_column)),
        ))
    return candidates


def suggestions_frame(results: list[MatchResult]) -> pd.DataFrame:
    rows = []
    for i, r in enumerate(results, start=1):
        details = r.match_details
        rows.append({
            "rank": i,
            "id": r.id,
            "name": r.name,
            "confidence": round(r.confidence, 4),
            "match_type": r.match_type.value,
            "strategy": r.strategy.value if r.strategy is not None else "",
            "reasoning": r.reasoning or "",
            "explanation": details.explanation if details is not None else "",
        })
    return pd.DataFrame(rows, columns=SUGGESTION_COLUMNS)


def write_suggestions(prediction: Prediction, path: str | Path) -> None:
    """Write ranked suggestions to CSV, JSONL or Excel (chosen by file suffix)."""
    path = Path(path)
    df = suggestions_frame(prediction.suggestions)
    suffix = path.suffix.lower()
    if suffix == ".jsonl":
        df.to_json(path, orient="records", lines=True, force_ascii=False)
    elif suffix == ".xlsx":
        df.to_excel(path, index=False)
    else:
        df.to_csv(path, index=False, encoding="utf-8")

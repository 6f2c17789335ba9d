"""Ideal / workable / check bucketing of worker results."""

import csv
import io
from dataclasses import asdict, dataclass
from typing import Literal

from .rules import MetricRange, RuleTable

Bucket = Literal["ideal", "workable", "check"]


@dataclass(frozen=True)
class Classification:
    ideal: int = 0
    workable: int = 0
    check: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def _within(bounds: tuple[float, float], value: float) -> bool:
    return bounds[0] <= value <= bounds[1]


def classify_value(rng: MetricRange, value: float) -> Bucket:
    if rng.ideal is not None and _within(rng.ideal, value):
        return "ideal"
    if _within(rng.workable, value):
        return "workable"
    return "check"


def value_status(table: RuleTable, metric: str, value: float) -> Bucket | None:
    """Bucket for a single metric value, ``None`` when the table has no rule for it."""
    rng = table.get(metric)
    if rng is None:
        return None
    return classify_value(rng, value)


def _parse_float(raw: str | None) -> float | None:
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    # float() accepts "nan"; a NaN reading is not a measurement
    if value != value:
        return None
    return value


def classify_row(row: dict[str, str], table: RuleTable) -> Classification:
    counts = {"ideal": 0, "workable": 0, "check": 0}
    for metric in table.metrics():
        value = _parse_float(row.get(metric))
        if value is None:
            continue
        counts[classify_value(table.ranges[metric], value)] += 1
    return Classification(**counts)


def classify_csv(csv_text: str, table: RuleTable) -> Classification | None:
    """Classify a results CSV: one header row, one data row.

    Returns ``None`` when there is no data row. Columns missing from the CSV
    or holding non-numeric values are left out of every tally.
    """
    rows = [row for row in csv.reader(io.StringIO(csv_text.strip())) if row]
    if len(rows) < 2:
        return None
    headers = [h.strip() for h in rows[0]]
    values = [v.strip() for v in rows[1]]
    return classify_row(dict(zip(headers, values)), table)

# backend/modules/reporting/services/shaping.py

"""
Post-aggregation shaping helpers.

Everything here operates on plain rows returned by the store. Rounding is
applied only at this boundary so derived values are computed from
unrounded inputs.
"""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

TWO_PLACES = Decimal("0.01")


def round_money(value: Optional[float], places: Decimal = TWO_PLACES) -> float:
    """Round half-up to two decimals; None and NaN become 0"""
    if value is None:
        return 0.0
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return 0.0
    return float(Decimal(str(value)).quantize(places, rounding=ROUND_HALF_UP))


def safe_divide(numerator: Optional[float], denominator: Optional[float], default: float = 0.0) -> float:
    """Division that yields `default` for zero, missing or NaN operands"""
    if numerator is None or denominator is None:
        return default
    if denominator == 0 or math.isnan(denominator) or math.isnan(numerator):
        return default
    return numerator / denominator


def percent_change(current: Optional[float], comparison: Optional[float]) -> float:
    """
    Period-over-period change in percent, rounded to two decimals.

    A zero comparison value yields 0 when current is also zero and 100
    otherwise.
    """
    current = current or 0
    comparison = comparison or 0
    if comparison == 0:
        return 0.0 if current == 0 else 100.0
    return round_money((current - comparison) / comparison * 100)


@dataclass(frozen=True)
class MetricComparison:
    current: float
    comparison: float
    percent_change: float

    @classmethod
    def build(
        cls, current: Optional[float], comparison: Optional[float], count: bool = False
    ) -> "MetricComparison":
        """Compare two period values; counts are kept as integers"""
        shape = (lambda value: int(value or 0)) if count else round_money
        return cls(
            current=shape(current),
            comparison=shape(comparison),
            percent_change=percent_change(current, comparison),
        )


def percent_of_total(
    rows: Sequence[Dict[str, Any]],
    value_key: str,
    target_key: str = "percentage",
    total: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """
    Return copies of `rows` with each row's share of the total.

    The total is summed over all rows first unless supplied; every share is
    0 when the total is 0.
    """
    if total is None:
        total = sum((row.get(value_key) or 0) for row in rows)
    shaped = []
    for row in rows:
        share = (row.get(value_key) or 0) / total * 100 if total > 0 else 0
        shaped.append({**row, target_key: round_money(share)})
    return shaped


def backfill_buckets(
    rows: Iterable[Dict[str, Any]],
    key: str,
    expected: Iterable[str],
    defaults: Dict[str, Any],
) -> List[Dict[str, Any]]:
    """
    Ensure every expected key value is present.

    Missing buckets are appended with `defaults`; rows for keys outside the
    expected set are kept.
    """
    shaped = [dict(row) for row in rows]
    present = {row.get(key) for row in shaped}
    for value in expected:
        if value not in present:
            shaped.append({key: value, **defaults})
    return shaped


def order_by_sequence(
    rows: Iterable[Dict[str, Any]], key: str, sequence: Sequence[str]
) -> List[Dict[str, Any]]:
    """Order rows by a canonical sequence; unknown keys follow alphabetically"""
    position = {value: index for index, value in enumerate(sequence)}
    return sorted(
        rows,
        key=lambda row: (
            position.get(row.get(key), len(position)),
            str(row.get(key) if row.get(key) is not None else ""),
        ),
    )


def round_fields(row: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Copy of `row` with the given numeric fields rounded to two decimals"""
    shaped = dict(row)
    for name in fields:
        if name in shaped:
            shaped[name] = round_money(shaped[name])
    return shaped


def sum_field(rows: Iterable[Dict[str, Any]], name: str) -> float:
    return sum((row.get(name) or 0) for row in rows)

"""
ARGO quality-control flag taxonomy.

Raw per-measurement QC codes map onto four levels::

    '1'       -> good
    '2'       -> questionable
    '3', '4'  -> bad
    other     -> unknown
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from .clauses import CompiledClause


class QualityLevel(str, Enum):
    GOOD = "good"
    QUESTIONABLE = "questionable"
    BAD = "bad"
    UNKNOWN = "unknown"


_CODE_LEVELS: Dict[str, QualityLevel] = {
    "1": QualityLevel.GOOD,
    "2": QualityLevel.QUESTIONABLE,
    "3": QualityLevel.BAD,
    "4": QualityLevel.BAD,
}

# parameter name -> QC column on the measurements table
QC_COLUMNS: Dict[str, str] = {
    "temperature": "temp_qc",
    "salinity": "psal_qc",
    "pressure": "pres_qc",
}


def _code_key(code: Any) -> str:
    # numeric flags (1, 1.0, Decimal("1")) share the string code
    if isinstance(code, str):
        return code.strip()
    if isinstance(code, bool):
        return ""
    if isinstance(code, float) and code.is_integer():
        return str(int(code))
    if isinstance(code, Decimal) and code.is_finite() and code == code.to_integral_value():
        return str(int(code))
    return str(code)


def classify(code: Any) -> QualityLevel:
    if code is None:
        return QualityLevel.UNKNOWN
    return _CODE_LEVELS.get(_code_key(code), QualityLevel.UNKNOWN)


def codes_for(*levels: QualityLevel) -> Tuple[str, ...]:
    """Raw codes that classify into any of ``levels``, in code order."""
    wanted = set(levels)
    return tuple(code for code, level in _CODE_LEVELS.items() if level in wanted)


def qc_predicate(alias: str, levels: Iterable[QualityLevel]) -> List[CompiledClause]:
    """
    One clause per QC column accepting ``levels`` or a missing flag.
    """
    codes = codes_for(*levels)
    if not codes:
        raise ValueError("qc_predicate needs at least one level with raw codes")
    phs = ", ".join("?" for _ in codes)
    out: List[CompiledClause] = []
    for column in QC_COLUMNS.values():
        col = f"{alias}.{column}"
        out.append(CompiledClause(f"{col} IN ({phs}) OR {col} IS NULL", codes))
    return out


def summarize_qc_counts(rows: Iterable[Mapping[str, Any]]) -> Dict[str, Dict[str, int]]:
    """
    Fold ``(parameter_type, qc_flag, count)`` rows into per-parameter counts
    keyed by quality level. Every parameter gets all four levels.
    """
    stats: Dict[str, Dict[str, int]] = {
        name: {level.value: 0 for level in QualityLevel} for name in QC_COLUMNS
    }
    for row in rows:
        parameter = row.get("parameter_type")
        if parameter is None:
            continue
        bucket = stats.setdefault(parameter, {level.value: 0 for level in QualityLevel})
        bucket[classify(row.get("qc_flag")).value] += int(row.get("count") or 0)
    return stats


__all__ = [
    "QualityLevel",
    "QC_COLUMNS",
    "classify",
    "codes_for",
    "qc_predicate",
    "summarize_qc_counts",
]

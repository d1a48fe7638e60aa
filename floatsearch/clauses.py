"""
Positional (qmark) clause fragments that carry their own bound values.

A ``CompiledClause`` pairs predicate text with exactly the parameters its
``?`` placeholders consume, so concatenating clauses can never shift a value
onto the wrong placeholder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Sequence, Tuple

_COMPARATORS = {"=", "<>", ">", ">=", "<", "<="}


@dataclass(frozen=True)
class CompiledClause:
    sql: str
    params: Tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(self.params))
        placeholders = self.sql.count("?")
        if placeholders != len(self.params):
            raise ValueError(
                f"Clause has {placeholders} placeholders but {len(self.params)} params: {self.sql!r}"
            )


def between(column: str, low: Any, high: Any) -> CompiledClause:
    return CompiledClause(f"{column} BETWEEN ? AND ?", (low, high))


def compare(column: str, op: str, value: Any) -> CompiledClause:
    if op not in _COMPARATORS:
        raise ValueError(f"Unsupported comparator: {op}")
    return CompiledClause(f"{column} {op} ?", (value,))


def in_list(column: str, values: Sequence[Any]) -> CompiledClause:
    """``column IN (?, ?, ...)`` sized to ``values``."""
    vals = list(values)
    if not vals:
        raise ValueError(f"IN list for {column} is empty")
    phs = ", ".join("?" for _ in vals)
    return CompiledClause(f"{column} IN ({phs})", tuple(vals))


def combine_clauses(clauses: Iterable[CompiledClause], joiner: str = "AND") -> Tuple[str, List[Any]]:
    """
    Join clauses into one predicate body and a flat parameter list.
    Each clause is parenthesized so an inner OR cannot leak into the join.
    Returns ("", []) when there are no clauses.
    """
    parts: List[str] = []
    params: List[Any] = []
    for c in clauses:
        parts.append(f"({c.sql})")
        params.extend(c.params)
    return f" {joiner} ".join(parts), params


__all__ = [
    "CompiledClause",
    "between",
    "compare",
    "in_list",
    "combine_clauses",
]

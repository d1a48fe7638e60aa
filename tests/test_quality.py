from decimal import Decimal

import pytest

from floatsearch.quality import (
    QualityLevel,
    classify,
    codes_for,
    qc_predicate,
    summarize_qc_counts,
)


@pytest.mark.parametrize(
    "code, level",
    [
        ("1", QualityLevel.GOOD),
        ("2", QualityLevel.QUESTIONABLE),
        ("3", QualityLevel.BAD),
        ("4", QualityLevel.BAD),
        ("0", QualityLevel.UNKNOWN),
        ("9", QualityLevel.UNKNOWN),
        ("", QualityLevel.UNKNOWN),
        ("11", QualityLevel.UNKNOWN),
        (None, QualityLevel.UNKNOWN),
        (1, QualityLevel.GOOD),
    ],
)
def test_classify(code, level):
    assert classify(code) is level


def test_classify_is_total():
    for code in ["A", " 1", "1 ", "\x00", "questionable", "-1"]:
        assert classify(code) in set(QualityLevel)


def test_codes_for():
    assert codes_for(QualityLevel.GOOD) == ("1",)
    assert codes_for(QualityLevel.GOOD, QualityLevel.QUESTIONABLE) == ("1", "2")
    assert codes_for(QualityLevel.BAD) == ("3", "4")
    assert codes_for(QualityLevel.UNKNOWN) == ()


def test_qc_predicate_one_clause_per_column():
    clauses = qc_predicate("m", [QualityLevel.GOOD, QualityLevel.QUESTIONABLE])
    assert [c.sql for c in clauses] == [
        "m.temp_qc IN (?, ?) OR m.temp_qc IS NULL",
        "m.psal_qc IN (?, ?) OR m.psal_qc IS NULL",
        "m.pres_qc IN (?, ?) OR m.pres_qc IS NULL",
    ]
    assert all(c.params == ("1", "2") for c in clauses)


def test_qc_predicate_rejects_levels_without_codes():
    with pytest.raises(ValueError):
        qc_predicate("m", [QualityLevel.UNKNOWN])


def test_summarize_qc_counts_merges_bad_codes():
    rows = [
        {"parameter_type": "temperature", "qc_flag": "1", "count": 90},
        {"parameter_type": "temperature", "qc_flag": "3", "count": 4},
        {"parameter_type": "temperature", "qc_flag": "4", "count": 6},
        {"parameter_type": "salinity", "qc_flag": "2", "count": 7},
        {"parameter_type": "salinity", "qc_flag": "8", "count": 1},
    ]
    stats = summarize_qc_counts(rows)
    assert stats["temperature"] == {"good": 90, "questionable": 0, "bad": 10, "unknown": 0}
    assert stats["salinity"] == {"good": 0, "questionable": 7, "bad": 0, "unknown": 1}
    assert stats["pressure"] == {"good": 0, "questionable": 0, "bad": 0, "unknown": 0}


@pytest.mark.parametrize(
    "code, level",
    [
        (1.0, QualityLevel.GOOD),
        (2.0, QualityLevel.QUESTIONABLE),
        (Decimal("4"), QualityLevel.BAD),
        (Decimal("3.0"), QualityLevel.BAD),
        (1.5, QualityLevel.UNKNOWN),
        (float("nan"), QualityLevel.UNKNOWN),
        (Decimal("NaN"), QualityLevel.UNKNOWN),
        (True, QualityLevel.UNKNOWN),
        (" 1", QualityLevel.GOOD),
    ],
)
def test_classify_numeric_flags(code, level):
    assert classify(code) is level

import datetime as dt

import pytest

from floatsearch.dates import to_day_offset
from floatsearch.errors import ValidationError
from floatsearch.filters import (
    BoundingBox,
    CircularRadius,
    DateRange,
    FilterRequest,
    GeospatialFilter,
    MeasurementFilter,
    NumericRange,
    PlatformFilter,
    QualityControlFilter,
)
from floatsearch.query import FilterCompiler, compile_filters

UTC = dt.timezone.utc


def _full_request():
    return FilterRequest(
        date_range=DateRange(dt.datetime(2023, 1, 1, tzinfo=UTC), dt.datetime(2023, 6, 30, tzinfo=UTC)),
        geospatial=GeospatialFilter(
            bounding_box=BoundingBox(0, 25, 50, 75),
            circular_radius=CircularRadius(15, 65, 300),
        ),
        measurements=MeasurementFilter(
            temperature_range=NumericRange(5, 30),
            salinity_range=NumericRange(34, 36),
            depth_range=NumericRange(0, 200),
        ),
        platform=PlatformFilter(
            platform_numbers=("2902746", "2902747"),
            data_center="IN",
            project_name="ARGO INDIA",
            data_mode="D",
        ),
        quality_control=QualityControlFilter(good_only=True),
    )


def test_empty_request_compiles_to_nothing():
    assert compile_filters(FilterRequest()) == []


def test_clause_order_is_fixed():
    clauses = compile_filters(_full_request())
    heads = [c.sql.split(" ")[0].lstrip("(") for c in clauses]
    assert heads[0] == "p.juld"
    assert heads[1:3] == ["p.latitude", "p.longitude"]
    assert "ACOS" in clauses[3].sql
    assert heads[4:7] == ["m.temp_adjusted", "m.psal_adjusted", "m.pres_adjusted"]
    assert heads[7:11] == ["p.platform_number", "p.data_centre", "p.project_name", "p.data_mode"]
    assert heads[11:] == ["m.temp_qc", "m.psal_qc", "m.pres_qc"]


def test_every_clause_binds_its_own_values():
    for clause in compile_filters(_full_request()):
        assert clause.sql.count("?") == len(clause.params)


def test_good_only_qc_yields_exactly_three_clauses():
    clauses = compile_filters(FilterRequest(quality_control=QualityControlFilter(good_only=True)))
    assert [c.sql for c in clauses] == [
        "m.temp_qc IN (?) OR m.temp_qc IS NULL",
        "m.psal_qc IN (?) OR m.psal_qc IS NULL",
        "m.pres_qc IN (?) OR m.pres_qc IS NULL",
    ]
    assert all(c.params == ("1",) for c in clauses)


def test_questionable_qc_accepts_two_codes():
    clauses = compile_filters(FilterRequest(quality_control=QualityControlFilter(include_questionable=True)))
    assert len(clauses) == 3
    assert clauses[0].params == ("1", "2")


def test_qc_without_flags_adds_nothing():
    assert compile_filters(FilterRequest(quality_control=QualityControlFilter())) == []


def test_inverted_temperature_range_rejected_before_compiling():
    request = FilterRequest(measurements=MeasurementFilter(temperature_range=NumericRange(30, 10)))
    with pytest.raises(ValidationError) as ei:
        compile_filters(request)
    assert ei.value.field == "temperatureRange"


def test_date_range_binds_day_offsets():
    start = dt.datetime(2023, 1, 1, tzinfo=UTC)
    end = dt.datetime(2023, 1, 31, tzinfo=UTC)
    (clause,) = compile_filters(FilterRequest(date_range=DateRange(start, end)))
    assert clause.sql == "p.juld BETWEEN ? AND ?"
    assert clause.params == (to_day_offset(start), to_day_offset(end))


@pytest.mark.parametrize(
    "date_range, sql",
    [
        (DateRange(start=dt.datetime(2020, 1, 1, tzinfo=UTC)), "p.juld >= ?"),
        (DateRange(end=dt.datetime(2020, 1, 1, tzinfo=UTC)), "p.juld <= ?"),
    ],
)
def test_one_sided_date_range(date_range, sql):
    (clause,) = compile_filters(FilterRequest(date_range=date_range))
    assert clause.sql == sql
    assert len(clause.params) == 1


def test_platform_in_list_sized_to_values():
    (clause,) = compile_filters(FilterRequest(platform=PlatformFilter(platform_numbers=("a", "b", "c", "a"))))
    assert clause.sql == "p.platform_number IN (?, ?, ?)"
    assert clause.params == ("a", "b", "c")


def test_values_never_inlined():
    request = FilterRequest(platform=PlatformFilter(data_center="x' OR '1'='1"))
    (clause,) = compile_filters(request)
    assert "OR" not in clause.sql
    assert clause.params == ("x' OR '1'='1",)


def test_compilation_is_deterministic():
    assert compile_filters(_full_request()) == compile_filters(_full_request())


def test_custom_aliases():
    compiler = FilterCompiler(profile_alias="prof", measurement_alias="meas")
    request = FilterRequest(
        platform=PlatformFilter(data_mode="R"),
        measurements=MeasurementFilter(depth_range=NumericRange(0, 10)),
    )
    sqls = [c.sql for c in compiler.compile(request)]
    assert sqls == ["meas.pres_adjusted BETWEEN ? AND ?", "prof.data_mode = ?"]


def test_radius_clause_params():
    request = FilterRequest(geospatial=GeospatialFilter(circular_radius=CircularRadius(-12.5, 97.0, 250)))
    (clause,) = compile_filters(request)
    assert clause.params == (-12.5, 97.0, -12.5, 250)
    assert clause.sql.endswith("<= ?")


def test_mixed_naive_and_aware_dates_compile():
    request = FilterRequest(date_range=DateRange(dt.datetime(2023, 1, 1), dt.datetime(2023, 2, 1, tzinfo=UTC)))
    (clause,) = compile_filters(request)
    assert clause.params == (
        to_day_offset(dt.datetime(2023, 1, 1, tzinfo=UTC)),
        to_day_offset(dt.datetime(2023, 2, 1, tzinfo=UTC)),
    )

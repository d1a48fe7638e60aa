import datetime as dt

import pytest

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
    parse_filter_request_json,
)
from floatsearch.quality import QualityLevel


def test_empty_params_give_empty_request():
    assert FilterRequest.from_query_params({}) == FilterRequest()


def test_full_wire_shape():
    req = FilterRequest.from_query_params({
        "startDate": "2023-01-01",
        "endDate": "2023-12-31",
        "minLat": "0", "maxLat": "25", "minLon": "50", "maxLon": "75",
        "centerLat": "15", "centerLon": "65", "radiusKm": "300",
        "minTemp": "5", "maxTemp": "30",
        "minSalinity": "34", "maxSalinity": "36",
        "minDepth": "0", "maxDepth": "200",
        "platformNumbers": "2902746, 2902747,,2902746",
        "dataCenter": "IN",
        "projectName": "ARGO INDIA",
        "dataMode": "D",
        "goodOnly": "true",
    })
    assert req.date_range == DateRange(
        dt.datetime(2023, 1, 1, tzinfo=dt.timezone.utc), dt.datetime(2023, 12, 31, tzinfo=dt.timezone.utc)
    )
    assert req.geospatial.bounding_box == BoundingBox(0, 25, 50, 75)
    assert req.geospatial.circular_radius == CircularRadius(15, 65, 300)
    assert req.measurements.temperature_range == NumericRange(5, 30)
    assert req.measurements.salinity_range == NumericRange(34, 36)
    assert req.measurements.depth_range == NumericRange(0, 200)
    assert req.platform.platform_numbers == ("2902746", "2902747")
    assert req.platform.data_center == "IN"
    assert req.quality_control == QualityControlFilter(good_only=True, include_questionable=False)


def test_one_sided_ranges_use_defaults():
    req = FilterRequest.from_query_params({"minTemp": "12", "maxSalinity": "35", "maxDepth": "100"})
    assert req.measurements.temperature_range == NumericRange(12, 40)
    assert req.measurements.salinity_range == NumericRange(0, 35)
    assert req.measurements.depth_range == NumericRange(0, 100)


def test_partial_bounding_box_is_ignored():
    req = FilterRequest.from_query_params({"minLat": "0", "maxLat": "10", "minLon": "40"})
    assert req.geospatial is None


def test_boolean_flags_only_for_literal_true():
    req = FilterRequest.from_query_params({"goodOnly": "1", "includeQuestionable": "yes"})
    assert req.quality_control is None


def test_non_numeric_value_names_wire_key():
    with pytest.raises(ValidationError) as ei:
        FilterRequest.from_query_params({"minTemp": "warm"})
    assert ei.value.field == "minTemp"


def test_inverted_range_names_field():
    with pytest.raises(ValidationError) as ei:
        FilterRequest.from_query_params({"minDepth": "500", "maxDepth": "100"})
    assert ei.value.field == "depthRange"


@pytest.mark.parametrize(
    "params, field",
    [
        ({"minLat": "-91", "maxLat": "0", "minLon": "0", "maxLon": "1"}, "boundingBox.minLat"),
        ({"minLat": "0", "maxLat": "1", "minLon": "0", "maxLon": "181"}, "boundingBox.maxLon"),
        ({"minLat": "10", "maxLat": "0", "minLon": "0", "maxLon": "1"}, "boundingBox.minLat"),
        ({"centerLat": "0", "centerLon": "0", "radiusKm": "0"}, "circularRadius.radiusKm"),
        ({"centerLat": "0", "centerLon": "0", "radiusKm": "-5"}, "circularRadius.radiusKm"),
        ({"centerLat": "95", "centerLon": "0", "radiusKm": "5"}, "circularRadius.centerLat"),
        ({"startDate": "2024-02-01", "endDate": "2024-01-01"}, "dateRange"),
        ({"startDate": "not-a-date"}, "startDate"),
    ],
)
def test_invalid_values_name_offending_field(params, field):
    with pytest.raises(ValidationError) as ei:
        FilterRequest.from_query_params(params)
    assert ei.value.field == field


def test_request_is_immutable():
    req = FilterRequest()
    with pytest.raises(AttributeError):
        req.date_range = DateRange()


def test_platform_numbers_dedupe_preserves_order():
    pf = PlatformFilter(platform_numbers=("b", "a", "b", " ", "c"))
    assert pf.platform_numbers == ("b", "a", "c")


def test_quality_policy_levels():
    assert QualityControlFilter(good_only=True).accepted_levels == (QualityLevel.GOOD,)
    assert QualityControlFilter(include_questionable=True).accepted_levels == (
        QualityLevel.GOOD,
        QualityLevel.QUESTIONABLE,
    )
    assert QualityControlFilter(good_only=True, include_questionable=True).accepted_levels == (QualityLevel.GOOD,)
    assert QualityControlFilter().accepted_levels == ()


def test_touches_measurements():
    assert not FilterRequest().touches_measurements
    assert not FilterRequest(quality_control=QualityControlFilter()).touches_measurements
    assert FilterRequest(quality_control=QualityControlFilter(good_only=True)).touches_measurements
    assert FilterRequest(measurements=MeasurementFilter(depth_range=NumericRange(0, 10))).touches_measurements


def test_dict_round_trip():
    req = FilterRequest(
        date_range=DateRange(start=dt.datetime(2020, 5, 1, tzinfo=dt.timezone.utc)),
        geospatial=GeospatialFilter(bounding_box=BoundingBox(-10, 10, 40, 100)),
        measurements=MeasurementFilter(temperature_range=NumericRange(10, 20)),
        platform=PlatformFilter(platform_numbers=("5904", "5905"), data_mode="R"),
        quality_control=QualityControlFilter(include_questionable=True),
    )
    assert FilterRequest.from_dict(req.to_dict()) == req


def test_parse_json_payload():
    req = parse_filter_request_json(
        '{"geospatial": {"circularRadius": {"centerLat": 10, "centerLon": 70, "radiusKm": 150}},'
        ' "qualityControl": {"goodOnly": true}}'
    )
    assert req.geospatial.circular_radius == CircularRadius(10, 70, 150)
    assert req.quality_control.good_only


def test_parse_json_schema_violation_is_validation_error():
    with pytest.raises(ValidationError) as ei:
        parse_filter_request_json({"measurements": {"temperatureRange": {"min": "cold", "max": 5}}})
    assert ei.value.field == "measurements.temperatureRange.min"


def test_parse_json_unknown_key_rejected():
    with pytest.raises(ValidationError):
        parse_filter_request_json({"chatbot": {"query": "show floats"}})


def test_parse_json_inverted_range():
    with pytest.raises(ValidationError) as ei:
        parse_filter_request_json({"measurements": {"salinityRange": {"min": 40, "max": 30}}})
    assert ei.value.field == "salinityRange"


def test_date_range_bounds_normalized_to_utc():
    rng = DateRange(dt.datetime(2023, 1, 1), dt.date(2023, 2, 1))
    assert rng.start == dt.datetime(2023, 1, 1, tzinfo=dt.timezone.utc)
    assert rng.end == dt.datetime(2023, 2, 1, tzinfo=dt.timezone.utc)


def test_date_range_mixed_naive_and_aware_compare():
    ist = dt.timezone(dt.timedelta(hours=5, minutes=30))
    with pytest.raises(ValidationError) as ei:
        DateRange(dt.datetime(2023, 3, 1), dt.datetime(2023, 2, 1, tzinfo=ist)).validate()
    assert ei.value.field == "dateRange"


def test_date_range_rejects_non_dates():
    with pytest.raises(ValidationError) as ei:
        DateRange(start="2023-01-01").validate()
    assert ei.value.field == "dateRange.start"


@pytest.mark.parametrize(
    "params, field, sent",
    [
        ({"minTemp": "45"}, "temperatureRange", "minTemp 45"),
        ({"maxSalinity": "-1"}, "salinityRange", "maxSalinity -1"),
        ({"minDepth": "7000"}, "depthRange", "minDepth 7000"),
    ],
)
def test_single_sided_range_outside_default_names_default(params, field, sent):
    with pytest.raises(ValidationError) as ei:
        FilterRequest.from_query_params(params)
    assert ei.value.field == field
    assert sent in ei.value.message
    assert "default" in ei.value.message

# Filter request models
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union
import datetime as dt
import json

import jsonschema

from ..dates import as_utc, isoformat_or_none, parse_iso_date
from ..errors import ValidationError
from ..geo import GeoPoint
from ..quality import QualityLevel
from ..validation import (
    _assert_latitude,
    _assert_longitude,
    _assert_positive,
    _assert_range,
    _parse_float,
)

# Fill-ins for a measurement range given with only one side on the wire
DEFAULT_TEMPERATURE_RANGE = (-10.0, 40.0)
DEFAULT_SALINITY_RANGE = (0.0, 50.0)
DEFAULT_DEPTH_RANGE = (0.0, 6000.0)

# ---------------------------------------------------------------------------
# Sub-filters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NumericRange:
    min: float
    max: float

    def validate(self, name: str) -> None:
        _assert_range(name, self.min, self.max)

    def to_dict(self) -> Dict[str, Any]:
        return {"min": self.min, "max": self.max}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NumericRange":
        return cls(min=data["min"], max=data["max"])


@dataclass(frozen=True)
class DateRange:
    """
    Either bound may be open; at least one must be set. Bounds are held as
    aware UTC datetimes: naive datetimes and plain dates are read as UTC.
    """
    start: Optional[dt.datetime] = None
    end: Optional[dt.datetime] = None

    def __post_init__(self) -> None:
        for attr in ("start", "end"):
            value = getattr(self, attr)
            if isinstance(value, dt.date):
                object.__setattr__(self, attr, as_utc(value))

    def validate(self, name: str = "dateRange") -> None:
        if self.start is None and self.end is None:
            raise ValidationError(name, "needs a start or an end")
        for attr in ("start", "end"):
            value = getattr(self, attr)
            if value is not None and not isinstance(value, dt.datetime):
                raise ValidationError(f"{name}.{attr}", f"expected a date, got {value!r}")
        if self.start is not None and self.end is not None and self.start > self.end:
            raise ValidationError(name, f"start {self.start.isoformat()} is after end {self.end.isoformat()}")

    def to_dict(self) -> Dict[str, Any]:
        return {"start": isoformat_or_none(self.start), "end": isoformat_or_none(self.end)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DateRange":
        start = data.get("start")
        end = data.get("end")
        return cls(
            start=parse_iso_date(start, "dateRange.start") if start else None,
            end=parse_iso_date(end, "dateRange.end") if end else None,
        )


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def validate(self, name: str = "boundingBox") -> None:
        _assert_latitude(f"{name}.minLat", self.min_lat)
        _assert_latitude(f"{name}.maxLat", self.max_lat)
        _assert_longitude(f"{name}.minLon", self.min_lon)
        _assert_longitude(f"{name}.maxLon", self.max_lon)
        if self.min_lat > self.max_lat:
            raise ValidationError(f"{name}.minLat", f"minLat {self.min_lat} is greater than maxLat {self.max_lat}")
        if self.min_lon > self.max_lon:
            raise ValidationError(f"{name}.minLon", f"minLon {self.min_lon} is greater than maxLon {self.max_lon}")

    def to_dict(self) -> Dict[str, Any]:
        return {"minLat": self.min_lat, "maxLat": self.max_lat, "minLon": self.min_lon, "maxLon": self.max_lon}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BoundingBox":
        return cls(
            min_lat=data["minLat"],
            max_lat=data["maxLat"],
            min_lon=data["minLon"],
            max_lon=data["maxLon"],
        )


@dataclass(frozen=True)
class CircularRadius:
    center_lat: float
    center_lon: float
    radius_km: float

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(self.center_lat, self.center_lon)

    def validate(self, name: str = "circularRadius") -> None:
        _assert_latitude(f"{name}.centerLat", self.center_lat)
        _assert_longitude(f"{name}.centerLon", self.center_lon)
        _assert_positive(f"{name}.radiusKm", self.radius_km)

    def to_dict(self) -> Dict[str, Any]:
        return {"centerLat": self.center_lat, "centerLon": self.center_lon, "radiusKm": self.radius_km}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CircularRadius":
        return cls(center_lat=data["centerLat"], center_lon=data["centerLon"], radius_km=data["radiusKm"])


@dataclass(frozen=True)
class GeospatialFilter:
    """Bounding box and radius may both be present; rows must satisfy both."""
    bounding_box: Optional[BoundingBox] = None
    circular_radius: Optional[CircularRadius] = None

    def validate(self) -> None:
        if self.bounding_box is not None:
            self.bounding_box.validate()
        if self.circular_radius is not None:
            self.circular_radius.validate()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.bounding_box is not None:
            out["boundingBox"] = self.bounding_box.to_dict()
        if self.circular_radius is not None:
            out["circularRadius"] = self.circular_radius.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GeospatialFilter":
        box = data.get("boundingBox")
        radius = data.get("circularRadius")
        return cls(
            bounding_box=BoundingBox.from_dict(box) if box else None,
            circular_radius=CircularRadius.from_dict(radius) if radius else None,
        )


@dataclass(frozen=True)
class MeasurementFilter:
    temperature_range: Optional[NumericRange] = None
    salinity_range: Optional[NumericRange] = None
    depth_range: Optional[NumericRange] = None

    def validate(self) -> None:
        if self.temperature_range is not None:
            self.temperature_range.validate("temperatureRange")
        if self.salinity_range is not None:
            self.salinity_range.validate("salinityRange")
        if self.depth_range is not None:
            self.depth_range.validate("depthRange")

    @property
    def is_empty(self) -> bool:
        return self.temperature_range is None and self.salinity_range is None and self.depth_range is None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.temperature_range is not None:
            out["temperatureRange"] = self.temperature_range.to_dict()
        if self.salinity_range is not None:
            out["salinityRange"] = self.salinity_range.to_dict()
        if self.depth_range is not None:
            out["depthRange"] = self.depth_range.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MeasurementFilter":
        def rng(key: str) -> Optional[NumericRange]:
            v = data.get(key)
            return NumericRange.from_dict(v) if v else None

        return cls(
            temperature_range=rng("temperatureRange"),
            salinity_range=rng("salinityRange"),
            depth_range=rng("depthRange"),
        )


def _dedupe(values: Iterable[str]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for v in values:
        s = str(v).strip()
        if s:
            seen.setdefault(s, None)
    return tuple(seen)


@dataclass(frozen=True)
class PlatformFilter:
    """
    ``platform_numbers`` is a set with stable iteration order: duplicates and
    blanks are dropped, first occurrence wins.
    """
    platform_numbers: Tuple[str, ...] = ()
    data_center: Optional[str] = None
    project_name: Optional[str] = None
    data_mode: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "platform_numbers", _dedupe(self.platform_numbers))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.platform_numbers:
            out["platformNumbers"] = list(self.platform_numbers)
        if self.data_center:
            out["dataCenter"] = self.data_center
        if self.project_name:
            out["projectName"] = self.project_name
        if self.data_mode:
            out["dataMode"] = self.data_mode
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlatformFilter":
        return cls(
            platform_numbers=tuple(data.get("platformNumbers") or ()),
            data_center=data.get("dataCenter") or None,
            project_name=data.get("projectName") or None,
            data_mode=data.get("dataMode") or None,
        )


@dataclass(frozen=True)
class QualityControlFilter:
    good_only: bool = False
    include_questionable: bool = False

    @property
    def accepted_levels(self) -> Tuple[QualityLevel, ...]:
        """Levels a QC column may hold; empty means no QC restriction."""
        if self.good_only:
            return (QualityLevel.GOOD,)
        if self.include_questionable:
            return (QualityLevel.GOOD, QualityLevel.QUESTIONABLE)
        return ()

    def to_dict(self) -> Dict[str, Any]:
        return {"goodOnly": self.good_only, "includeQuestionable": self.include_questionable}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QualityControlFilter":
        return cls(
            good_only=bool(data.get("goodOnly", False)),
            include_questionable=bool(data.get("includeQuestionable", False)),
        )


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FilterRequest:
    """
    Immutable filter request. ``None`` means the sub-filter is absent and
    contributes nothing to the compiled query.
    """
    date_range: Optional[DateRange] = None
    geospatial: Optional[GeospatialFilter] = None
    measurements: Optional[MeasurementFilter] = None
    platform: Optional[PlatformFilter] = None
    quality_control: Optional[QualityControlFilter] = None

    def validate(self) -> "FilterRequest":
        if self.date_range is not None:
            self.date_range.validate()
        if self.geospatial is not None:
            self.geospatial.validate()
        if self.measurements is not None:
            self.measurements.validate()
        return self

    @property
    def touches_measurements(self) -> bool:
        if self.measurements is not None and not self.measurements.is_empty:
            return True
        return self.quality_control is not None and bool(self.quality_control.accepted_levels)

    # camelCase JSON helpers
    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.date_range is not None:
            out["dateRange"] = self.date_range.to_dict()
        if self.geospatial is not None:
            out["geospatial"] = self.geospatial.to_dict()
        if self.measurements is not None:
            out["measurements"] = self.measurements.to_dict()
        if self.platform is not None:
            out["platform"] = self.platform.to_dict()
        if self.quality_control is not None:
            out["qualityControl"] = self.quality_control.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterRequest":
        def sub(key: str, factory):
            v = data.get(key)
            return factory(v) if v is not None else None

        return cls(
            date_range=sub("dateRange", DateRange.from_dict),
            geospatial=sub("geospatial", GeospatialFilter.from_dict),
            measurements=sub("measurements", MeasurementFilter.from_dict),
            platform=sub("platform", PlatformFilter.from_dict),
            quality_control=sub("qualityControl", QualityControlFilter.from_dict),
        )

    @classmethod
    def from_query_params(cls, params: Mapping[str, Any]) -> "FilterRequest":
        """
        Build and validate a request from flat query-string parameters
        (``startDate``, ``minLat``, ``minTemp``, ``platformNumbers``, ...).
        Blank values count as absent.
        """
        def get(key: str) -> Optional[str]:
            v = params.get(key)
            if v is None:
                return None
            s = str(v).strip()
            return s or None

        def num(key: str) -> Optional[float]:
            raw = get(key)
            return _parse_float(key, raw) if raw is not None else None

        date_range = None
        start, end = get("startDate"), get("endDate")
        if start or end:
            date_range = DateRange(
                start=parse_iso_date(start, "startDate") if start else None,
                end=parse_iso_date(end, "endDate") if end else None,
            )

        box = None
        box_vals = [num(k) for k in ("minLat", "maxLat", "minLon", "maxLon")]
        if all(v is not None for v in box_vals):
            box = BoundingBox(*box_vals)

        radius = None
        radius_vals = [num(k) for k in ("centerLat", "centerLon", "radiusKm")]
        if all(v is not None for v in radius_vals):
            radius = CircularRadius(*radius_vals)

        geospatial = GeospatialFilter(box, radius) if box or radius else None

        def rng(name: str, lo_key: str, hi_key: str, default: Tuple[float, float]) -> Optional[NumericRange]:
            lo, hi = num(lo_key), num(hi_key)
            if lo is None and hi is None:
                return None
            if lo is not None and hi is None and lo > default[1]:
                raise ValidationError(
                    name, f"{lo_key} {lo:g} is greater than the default max {default[1]:g} used because {hi_key} is missing"
                )
            if hi is not None and lo is None and hi < default[0]:
                raise ValidationError(
                    name, f"{hi_key} {hi:g} is less than the default min {default[0]:g} used because {lo_key} is missing"
                )
            return NumericRange(
                min=lo if lo is not None else default[0],
                max=hi if hi is not None else default[1],
            )

        measurements = MeasurementFilter(
            temperature_range=rng("temperatureRange", "minTemp", "maxTemp", DEFAULT_TEMPERATURE_RANGE),
            salinity_range=rng("salinityRange", "minSalinity", "maxSalinity", DEFAULT_SALINITY_RANGE),
            depth_range=rng("depthRange", "minDepth", "maxDepth", DEFAULT_DEPTH_RANGE),
        )

        platform = PlatformFilter(
            platform_numbers=tuple((get("platformNumbers") or "").split(",")),
            data_center=get("dataCenter"),
            project_name=get("projectName"),
            data_mode=get("dataMode"),
        )

        good_only = get("goodOnly") == "true"
        include_questionable = get("includeQuestionable") == "true"
        qc = QualityControlFilter(good_only, include_questionable) if good_only or include_questionable else None

        request = cls(
            date_range=date_range,
            geospatial=geospatial,
            measurements=None if measurements.is_empty else measurements,
            platform=platform if platform.to_dict() else None,
            quality_control=qc,
        )
        return request.validate()


# ---------------------------------------------------------------------------
# JSON Schema for the nested (POST body) form
# ---------------------------------------------------------------------------

_RANGE = {
    "type": "object",
    "additionalProperties": False,
    "properties": {"min": {"type": "number"}, "max": {"type": "number"}},
    "required": ["min", "max"],
}

FILTER_REQUEST_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$id": "https://floatsearch.local/filter-request.schema.json",
    "title": "Float Filter Request",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "dateRange": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "start": {"type": ["string", "null"]},
                "end": {"type": ["string", "null"]},
            },
        },
        "geospatial": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "boundingBox": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {k: {"type": "number"} for k in ("minLat", "maxLat", "minLon", "maxLon")},
                    "required": ["minLat", "maxLat", "minLon", "maxLon"],
                },
                "circularRadius": {
                    "type": "object",
                    "additionalProperties": False,
                    "properties": {k: {"type": "number"} for k in ("centerLat", "centerLon", "radiusKm")},
                    "required": ["centerLat", "centerLon", "radiusKm"],
                },
            },
        },
        "measurements": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "temperatureRange": _RANGE,
                "salinityRange": _RANGE,
                "depthRange": _RANGE,
            },
        },
        "platform": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "platformNumbers": {"type": "array", "items": {"type": "string"}},
                "dataCenter": {"type": "string"},
                "projectName": {"type": "string"},
                "dataMode": {"type": "string"},
            },
        },
        "qualityControl": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "goodOnly": {"type": "boolean"},
                "includeQuestionable": {"type": "boolean"},
            },
        },
    },
}


def _schema_error_field(err: jsonschema.ValidationError) -> str:
    path = ".".join(str(p) for p in err.absolute_path)
    return path or "filters"


def parse_filter_request_json(payload: Union[str, Mapping[str, Any]]) -> FilterRequest:
    """
    Accept a JSON string or dict in the nested camelCase shape and return a
    validated FilterRequest. Schema violations surface as ValidationError.
    """
    data = json.loads(payload) if isinstance(payload, str) else payload
    try:
        jsonschema.validate(instance=data, schema=FILTER_REQUEST_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ValidationError(_schema_error_field(e), e.message) from None
    return FilterRequest.from_dict(data).validate()


__all__ = [
    "NumericRange",
    "DateRange",
    "BoundingBox",
    "CircularRadius",
    "GeospatialFilter",
    "MeasurementFilter",
    "PlatformFilter",
    "QualityControlFilter",
    "FilterRequest",
    "FILTER_REQUEST_SCHEMA",
    "parse_filter_request_json",
]

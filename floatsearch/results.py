"""
Read-only projections handed to the presentation layer.

Each result exposes ``to_dict`` producing the camelCase JSON shape the
dashboard consumes, and a ``from_row`` constructor over warehouse rows
(lower-case column keys).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple
import datetime as dt

from .dates import isoformat_or_none, to_calendar_date
from .filters import BoundingBox
from .pagination import PageResult
from .quality import QC_COLUMNS, QualityLevel, classify


def _num(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _round(value: Any, digits: int) -> Optional[float]:
    n = _num(value)
    return None if n is None else round(n, digits)


def _int(value: Any) -> int:
    n = _num(value)
    return 0 if n is None else int(n)


def _opt_int(value: Any) -> Optional[int]:
    return None if value is None else _int(value)


@dataclass(frozen=True)
class FloatSummary:
    id: str
    latitude: Optional[float]
    longitude: Optional[float]
    last_update: Optional[dt.datetime]
    temperature: Optional[float]
    salinity: Optional[float]
    depth: Optional[float]
    data_centre: Optional[str]
    data_mode: Optional[str]
    platform: Optional[str]
    project_name: Optional[str]
    principal_investigator: Optional[str]
    profiles: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "FloatSummary":
        return cls(
            id=str(row.get("id")),
            latitude=_num(row.get("latitude")),
            longitude=_num(row.get("longitude")),
            last_update=to_calendar_date(row.get("juld")),
            temperature=_num(row.get("temperature")),
            salinity=_num(row.get("salinity")),
            depth=_num(row.get("depth")),
            data_centre=row.get("data_centre"),
            data_mode=row.get("data_mode"),
            platform=row.get("platform_type"),
            project_name=row.get("project_name"),
            principal_investigator=row.get("pi_name"),
            profiles=_int(row.get("profile_count")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "temperature": self.temperature,
            "salinity": self.salinity,
            "depth": self.depth,
            "lastUpdate": isoformat_or_none(self.last_update),
            "dataCentre": self.data_centre,
            "dataMode": self.data_mode,
            "platform": self.platform,
            "projectName": self.project_name,
            "principalInvestigator": self.principal_investigator,
            "profiles": self.profiles,
        }


@dataclass(frozen=True)
class DatasetStatistics:
    total: int
    profiles: int
    measurements: int
    average_temperature: Optional[float]
    average_salinity: Optional[float]
    data_centers: int
    platform_types: int

    @classmethod
    def from_row(cls, row: Optional[Mapping[str, Any]]) -> "DatasetStatistics":
        row = row or {}
        return cls(
            total=_int(row.get("total_floats")),
            profiles=_int(row.get("total_profiles")),
            measurements=_int(row.get("total_measurements")),
            average_temperature=_round(row.get("avg_temperature"), 1),
            average_salinity=_round(row.get("avg_salinity"), 1),
            data_centers=_int(row.get("data_centers")),
            platform_types=_int(row.get("platform_types")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "profiles": self.profiles,
            "measurements": self.measurements,
            "averageTemperature": self.average_temperature,
            "averageSalinity": self.average_salinity,
            "dataCenters": self.data_centers,
            "platformTypes": self.platform_types,
        }


@dataclass(frozen=True)
class NearestFloatResult:
    id: str
    latitude: float
    longitude: float
    cycle: Optional[int]
    last_seen: Optional[dt.datetime]
    distance_km: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "cycle": self.cycle,
            "lastSeen": isoformat_or_none(self.last_seen),
            "distanceKm": round(self.distance_km, 2),
        }


@dataclass(frozen=True)
class StatBlock:
    avg: Optional[float]
    min: Optional[float]
    max: Optional[float]
    std_dev: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {"avg": self.avg, "min": self.min, "max": self.max, "stdDev": self.std_dev}


@dataclass(frozen=True)
class RegionalStatistics:
    float_count: int
    profile_count: int
    measurement_count: int
    temperature: StatBlock
    salinity: StatBlock

    @classmethod
    def from_row(cls, row: Optional[Mapping[str, Any]]) -> "RegionalStatistics":
        row = row or {}

        def block(prefix: str, digits: int) -> StatBlock:
            return StatBlock(
                avg=_round(row.get(f"avg_{prefix}"), digits),
                min=_round(row.get(f"min_{prefix}"), digits),
                max=_round(row.get(f"max_{prefix}"), digits),
                std_dev=_round(row.get(f"stddev_{prefix}"), digits),
            )

        return cls(
            float_count=_int(row.get("float_count")),
            profile_count=_int(row.get("profile_count")),
            measurement_count=_int(row.get("measurement_count")),
            temperature=block("temperature", 2),
            salinity=block("salinity", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "floatCount": self.float_count,
            "profileCount": self.profile_count,
            "measurementCount": self.measurement_count,
            "temperature": self.temperature.to_dict(),
            "salinity": self.salinity.to_dict(),
        }


@dataclass(frozen=True)
class RegionalComparison:
    key: str
    name: str
    bounds: BoundingBox
    statistics: RegionalStatistics

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "region": self.name, "bounds": self.bounds.to_dict(), **self.statistics.to_dict()}


@dataclass(frozen=True)
class ProfileSummary:
    profile_id: Any
    platform_number: Optional[str]
    cycle_number: Optional[int]
    latitude: Optional[float]
    longitude: Optional[float]
    date: Optional[dt.datetime]
    data_center: Optional[str]
    data_mode: Optional[str] = None
    platform_type: Optional[str] = None
    project_name: Optional[str] = None
    pi_name: Optional[str] = None
    profile_qc: Dict[str, Optional[str]] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ProfileSummary":
        cycle = row.get("cycle_number")
        return cls(
            profile_id=row.get("profile_id"),
            platform_number=row.get("platform_number"),
            cycle_number=None if cycle is None else _int(cycle),
            latitude=_num(row.get("latitude")),
            longitude=_num(row.get("longitude")),
            date=to_calendar_date(row.get("juld")),
            data_center=row.get("data_centre"),
            data_mode=row.get("data_mode"),
            platform_type=row.get("platform_type"),
            project_name=row.get("project_name"),
            pi_name=row.get("pi_name"),
            profile_qc={
                k: row.get(f"profile_{k}_qc") for k in ("temp", "psal", "pres") if f"profile_{k}_qc" in row
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "profile_id": self.profile_id,
            "platform_number": self.platform_number,
            "cycle_number": self.cycle_number,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "date": isoformat_or_none(self.date),
            "data_center": self.data_center,
            "data_mode": self.data_mode,
            "platform_type": self.platform_type,
            "project_name": self.project_name,
            "pi_name": self.pi_name,
        }
        for k, v in self.profile_qc.items():
            out[f"profile_{k}_qc"] = v
        return out


@dataclass(frozen=True)
class Measurement:
    profile_id: Any
    level_index: Optional[int]
    pressure: Optional[float]
    temperature: Optional[float]
    salinity: Optional[float]
    quality: Dict[str, QualityLevel]
    errors: Dict[str, Optional[float]]

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Measurement":
        level = row.get("level_index")
        return cls(
            profile_id=row.get("profile_id"),
            level_index=None if level is None else _int(level),
            pressure=_num(row.get("pres_adjusted")),
            temperature=_num(row.get("temp_adjusted")),
            salinity=_num(row.get("psal_adjusted")),
            quality={name: classify(row.get(col)) for name, col in QC_COLUMNS.items()},
            errors={
                "temperature": _num(row.get("temp_adjusted_error")),
                "salinity": _num(row.get("psal_adjusted_error")),
                "pressure": _num(row.get("pres_adjusted_error")),
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "profile_id": self.profile_id,
            "level_index": self.level_index,
            "pressure": self.pressure,
            "temperature": self.temperature,
            "salinity": self.salinity,
            "quality": {k: v.value for k, v in self.quality.items()},
            "errors": dict(self.errors),
        }


@dataclass(frozen=True)
class ProfilePage:
    page: PageResult[ProfileSummary]
    total_measurements: int


@dataclass(frozen=True)
class MeasurementPage:
    profile: ProfileSummary
    page: PageResult[Measurement]


@dataclass(frozen=True)
class FloatProfile:
    platform_number: str
    depth: Tuple[Optional[float], ...]
    temperature: Tuple[Optional[float], ...]
    salinity: Tuple[Optional[float], ...]
    quality_flags: Tuple[Dict[str, QualityLevel], ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "floatId": self.platform_number,
            "depth": list(self.depth),
            "temperature": list(self.temperature),
            "salinity": list(self.salinity),
            "qualityFlags": [{k: v.value for k, v in q.items()} for q in self.quality_flags],
        }


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: Optional[dt.datetime]
    cycle_number: Optional[int]
    temperature: Optional[float]
    salinity: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": isoformat_or_none(self.date),
            "cycleNumber": self.cycle_number,
            "temperature": self.temperature,
            "salinity": self.salinity,
        }


@dataclass(frozen=True)
class TrajectoryPoint:
    date: Optional[dt.datetime]
    latitude: Optional[float]
    longitude: Optional[float]
    cycle: Optional[int]
    temperature: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.date().isoformat() if self.date else None,
            "timestamp": int(self.date.timestamp() * 1000) if self.date else None,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "cycle": self.cycle,
            "temperature": self.temperature,
        }


__all__ = [
    "FloatSummary",
    "DatasetStatistics",
    "NearestFloatResult",
    "StatBlock",
    "RegionalStatistics",
    "RegionalComparison",
    "ProfileSummary",
    "Measurement",
    "ProfilePage",
    "MeasurementPage",
    "FloatProfile",
    "TimeSeriesPoint",
    "TrajectoryPoint",
]

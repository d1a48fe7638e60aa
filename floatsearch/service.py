"""
Query orchestration over the ARGO profiles/measurements warehouse tables.

``QueryService`` compiles filter requests, assembles complete statements,
delegates them to an injected warehouse executor and shapes the returned
rows into typed results. Operations that need several independent queries
issue them concurrently inside one ``asyncio.TaskGroup``: if one fails or
the caller is cancelled, the siblings are cancelled too and no partial
result is returned.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Awaitable, List, Optional, Sequence

from . import config
from .clauses import CompiledClause, combine_clauses, compare
from .database import Row, WarehouseExecutor
from .dates import to_calendar_date
from .errors import ExecutionError, ValidationError
from .filters import (
    BoundingBox,
    CircularRadius,
    DateRange,
    FilterRequest,
    GeospatialFilter,
    MeasurementFilter,
    NumericRange,
    PlatformFilter,
)
from .geo import GeoPoint, distance_expression, nearest_within_radius, point_of, radius_predicate
from .pagination import PageRequest, PageResult, assemble
from .query import FilterCompiler, SelectBuildResult, build_count, build_select, redact
from .quality import QC_COLUMNS, classify, summarize_qc_counts
from .regions import Region
from .results import (
    DatasetStatistics,
    FloatProfile,
    FloatSummary,
    Measurement,
    MeasurementPage,
    NearestFloatResult,
    ProfilePage,
    ProfileSummary,
    RegionalComparison,
    RegionalStatistics,
    TimeSeriesPoint,
    TrajectoryPoint,
    _num,
    _opt_int,
)

logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = [
    "p.profile_id",
    "p.platform_number",
    "p.cycle_number",
    "p.latitude",
    "p.longitude",
    "p.juld",
    "p.data_centre",
    "p.data_mode",
    "p.platform_type",
    "p.project_name",
    "p.pi_name",
    "p.profile_temp_qc",
    "p.profile_psal_qc",
    "p.profile_pres_qc",
]

_MEASUREMENT_COLUMNS = [
    "m.profile_id",
    "m.level_index",
    "m.pres_adjusted",
    "m.temp_adjusted",
    "m.psal_adjusted",
    "m.temp_qc",
    "m.psal_qc",
    "m.pres_qc",
    "m.temp_adjusted_error",
    "m.psal_adjusted_error",
    "m.pres_adjusted_error",
]

FLOAT_PROFILE_MAX_LEVELS = 2000
TIMESERIES_MAX_POINTS = 500
TRAJECTORY_MAX_POINTS = 200


def _first(rows: Sequence[Row]) -> Optional[Row]:
    return rows[0] if rows else None


def _total(rows: Sequence[Row], key: str = "total_count") -> int:
    row = _first(rows)
    if not row or row.get(key) is None:
        return 0
    return int(row[key])


class QueryService:
    def __init__(
        self,
        executor: WarehouseExecutor,
        *,
        profiles_table: str = config.PROFILES_TABLE,
        measurements_table: str = config.MEASUREMENTS_TABLE,
        compiler: Optional[FilterCompiler] = None,
    ):
        self.executor = executor
        self.profiles = profiles_table
        self.measurements = measurements_table
        self.compiler = compiler or FilterCompiler()

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    async def _run(self, operation: str, q: SelectBuildResult) -> List[Row]:
        logger.debug("%s: %s", operation, redact(q.sql))
        try:
            rows = await self.executor.execute(q.sql, q.params)
        except ExecutionError as e:
            logger.error("%s failed: %s", operation, e.message)
            raise ExecutionError(e.message, query=redact(q.sql), operation=operation) from e
        logger.info("%s returned %d rows", operation, len(rows))
        return rows

    @staticmethod
    async def _fan_out(*aws: Awaitable[Any]) -> List[Any]:
        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(a) for a in aws]
        except BaseExceptionGroup as group:
            first: BaseException = group
            while isinstance(first, BaseExceptionGroup):
                first = first.exceptions[0]
            raise first from None
        return [t.result() for t in tasks]

    def _joined_from(self) -> str:
        return f"{self.measurements} m JOIN {self.profiles} p ON m.profile_id = p.profile_id"

    def _profile_scope(self, request: FilterRequest) -> List[CompiledClause]:
        """
        Clauses over the profiles table alone. Measurement-level conditions
        become one EXISTS clause so each profile appears at most once.
        """
        clauses = self.compiler.compile(dataclasses.replace(request, measurements=None, quality_control=None))
        measurement_only = FilterRequest(measurements=request.measurements, quality_control=request.quality_control)
        body, params = combine_clauses(self.compiler.compile(measurement_only))
        if body:
            clauses.append(CompiledClause(
                f"EXISTS (SELECT 1 FROM {self.measurements} m WHERE m.profile_id = p.profile_id AND {body})",
                params,
            ))
        return clauses

    # ------------------------------------------------------------------
    # floats
    # ------------------------------------------------------------------

    def _float_queries(self, request: FilterRequest, page: PageRequest) -> tuple[SelectBuildResult, SelectBuildResult]:
        scope = self._profile_scope(request)
        rows_q = build_select(
            [
                "p.platform_number AS id",
                "p.latitude",
                "p.longitude",
                "p.juld",
                "p.data_centre",
                "p.data_mode",
                "p.platform_type",
                "p.project_name",
                "p.pi_name",
                "s.temp_adjusted AS temperature",
                "s.psal_adjusted AS salinity",
                "s.pres_adjusted AS depth",
                "COUNT(*) OVER (PARTITION BY p.platform_number) AS profile_count",
            ],
            f"{self.profiles} p LEFT JOIN {self.measurements} s "
            "ON s.profile_id = p.profile_id AND s.level_index = 0",
            scope,
            qualify="ROW_NUMBER() OVER (PARTITION BY p.platform_number ORDER BY p.juld DESC) = 1",
            order_by=["p.platform_number ASC"],
            limit=page.limit,
            offset=page.offset,
        )
        count_q = build_count(f"{self.profiles} p", scope, count_expr="COUNT(DISTINCT p.platform_number)")
        return rows_q, count_q

    async def search(self, request: FilterRequest, page: PageRequest) -> PageResult[FloatSummary]:
        """One float per row (latest matching profile, surface values), paged."""
        rows_q, count_q = self._float_queries(request, page)
        rows, count_rows = await self._fan_out(
            self._run("search", rows_q),
            self._run("search.count", count_q),
        )
        return assemble(page.page, page.limit, _total(count_rows), [FloatSummary.from_row(r) for r in rows])

    async def statistics(self, request: FilterRequest) -> DatasetStatistics:
        q = build_select(
            [
                "COUNT(DISTINCT p.platform_number) AS total_floats",
                "COUNT(DISTINCT p.profile_id) AS total_profiles",
                "COUNT(m.profile_id) AS total_measurements",
                "AVG(m.temp_adjusted) AS avg_temperature",
                "AVG(m.psal_adjusted) AS avg_salinity",
                "COUNT(DISTINCT p.data_centre) AS data_centers",
                "COUNT(DISTINCT p.platform_type) AS platform_types",
            ],
            f"{self.profiles} p LEFT JOIN {self.measurements} m ON p.profile_id = m.profile_id",
            self.compiler.compile(request),
        )
        return DatasetStatistics.from_row(_first(await self._run("statistics", q)))

    async def search_with_statistics(
        self, request: FilterRequest, page: PageRequest
    ) -> tuple[PageResult[FloatSummary], DatasetStatistics]:
        """Float page, its total and dataset statistics as one fan-out."""
        rows_q, count_q = self._float_queries(request, page)
        rows, count_rows, stats = await self._fan_out(
            self._run("search", rows_q),
            self._run("search.count", count_q),
            self.statistics(request),
        )
        result = assemble(page.page, page.limit, _total(count_rows), [FloatSummary.from_row(r) for r in rows])
        return result, stats

    async def nearest_floats(self, center: GeoPoint, radius_km: float, limit: int) -> List[NearestFloatResult]:
        """
        Floats whose latest reported position lies within ``radius_km`` of
        ``center``, nearest first.
        """
        CircularRadius(center.latitude, center.longitude, radius_km).validate()
        if limit < 1:
            raise ValidationError("limit", f"must be >= 1, got {limit}")

        latest = (
            f"(SELECT platform_number, latitude, longitude, cycle_number, juld FROM {self.profiles} "
            "WHERE latitude IS NOT NULL AND longitude IS NOT NULL "
            "QUALIFY ROW_NUMBER() OVER (PARTITION BY platform_number ORDER BY cycle_number DESC) = 1) p"
        )
        distance = distance_expression(center)
        q = build_select(
            [
                "p.platform_number AS id",
                "p.latitude",
                "p.longitude",
                "p.cycle_number AS cycle",
                "p.juld",
                f"{distance.sql} AS distance_km",
            ],
            latest,
            [radius_predicate(center, radius_km)],
            select_params=distance.params,
            order_by=["distance_km ASC"],
            limit=limit,
        )
        rows = await self._run("nearest_floats", q)
        ranked = nearest_within_radius(rows, center, radius_km, limit, point=point_of)
        return [
            NearestFloatResult(
                id=str(row.get("id")),
                latitude=float(row["latitude"]),
                longitude=float(row["longitude"]),
                cycle=_opt_int(row.get("cycle")),
                last_seen=to_calendar_date(row.get("juld")),
                distance_km=d,
            )
            for row, d in ranked
        ]

    # ------------------------------------------------------------------
    # regions
    # ------------------------------------------------------------------

    async def regional_statistics(
        self,
        bounds: BoundingBox,
        date_range: Optional[DateRange] = None,
        depth_range: Optional[NumericRange] = None,
    ) -> RegionalStatistics:
        request = FilterRequest(
            date_range=date_range,
            geospatial=GeospatialFilter(bounding_box=bounds),
            measurements=MeasurementFilter(depth_range=depth_range) if depth_range else None,
        )
        q = build_select(
            [
                "COUNT(DISTINCT p.platform_number) AS float_count",
                "COUNT(DISTINCT p.profile_id) AS profile_count",
                "AVG(m.temp_adjusted) AS avg_temperature",
                "MIN(m.temp_adjusted) AS min_temperature",
                "MAX(m.temp_adjusted) AS max_temperature",
                "STDDEV(m.temp_adjusted) AS stddev_temperature",
                "AVG(m.psal_adjusted) AS avg_salinity",
                "MIN(m.psal_adjusted) AS min_salinity",
                "MAX(m.psal_adjusted) AS max_salinity",
                "STDDEV(m.psal_adjusted) AS stddev_salinity",
                "COUNT(*) AS measurement_count",
            ],
            self._joined_from(),
            self.compiler.compile(request),
        )
        return RegionalStatistics.from_row(_first(await self._run("regional_statistics", q)))

    async def compare_regions(
        self,
        regions: Sequence[Region],
        date_range: Optional[DateRange] = None,
        depth_range: Optional[NumericRange] = None,
    ) -> List[RegionalComparison]:
        stats = await self._fan_out(
            *(self.regional_statistics(r.bounds, date_range, depth_range) for r in regions)
        )
        return [
            RegionalComparison(key=r.key, name=r.name, bounds=r.bounds, statistics=s)
            for r, s in zip(regions, stats)
        ]

    # ------------------------------------------------------------------
    # profiles and measurements
    # ------------------------------------------------------------------

    async def list_profiles(self, request: FilterRequest, page: PageRequest) -> ProfilePage:
        scope = self._profile_scope(request)
        rows_q = build_select(
            _PROFILE_COLUMNS,
            f"{self.profiles} p",
            scope,
            order_by=["p.juld DESC"],
            limit=page.limit,
            offset=page.offset,
        )
        count_q = build_count(f"{self.profiles} p", scope)
        measurements_q = build_count(self._joined_from(), self.compiler.compile(request))

        rows, count_rows, measurement_rows = await self._fan_out(
            self._run("list_profiles", rows_q),
            self._run("list_profiles.count", count_q),
            self._run("list_profiles.measurements", measurements_q),
        )
        result = assemble(page.page, page.limit, _total(count_rows), [ProfileSummary.from_row(r) for r in rows])
        return ProfilePage(page=result, total_measurements=_total(measurement_rows))

    async def profile_measurements(
        self,
        profile_id: int,
        page: PageRequest,
        request: Optional[FilterRequest] = None,
    ) -> Optional[MeasurementPage]:
        """
        Measurements of one profile, paged by level. Only the measurement
        ranges and QC policy of ``request`` apply. ``None`` when the profile
        does not exist.
        """
        request = request or FilterRequest()
        clauses = [compare("m.profile_id", "=", profile_id)]
        clauses += self.compiler.compile(
            FilterRequest(measurements=request.measurements, quality_control=request.quality_control)
        )
        rows_q = build_select(
            _MEASUREMENT_COLUMNS,
            f"{self.measurements} m",
            clauses,
            order_by=["m.level_index ASC"],
            limit=page.limit,
            offset=page.offset,
        )
        count_q = build_count(f"{self.measurements} m", clauses)
        profile_q = build_select(
            _PROFILE_COLUMNS,
            f"{self.profiles} p",
            [compare("p.profile_id", "=", profile_id)],
            limit=1,
        )

        rows, count_rows, profile_rows = await self._fan_out(
            self._run("profile_measurements", rows_q),
            self._run("profile_measurements.count", count_q),
            self._run("profile_measurements.profile", profile_q),
        )
        profile = _first(profile_rows)
        if profile is None:
            return None
        result = assemble(page.page, page.limit, _total(count_rows), [Measurement.from_row(r) for r in rows])
        return MeasurementPage(profile=ProfileSummary.from_row(profile), page=result)

    # ------------------------------------------------------------------
    # single float views
    # ------------------------------------------------------------------

    async def float_profile(self, platform_number: str) -> FloatProfile:
        """Vertical profile of the float's most recent cycle with QC levels."""
        latest = CompiledClause(
            f"p.profile_id = (SELECT profile_id FROM {self.profiles} "
            "WHERE platform_number = ? ORDER BY juld DESC LIMIT 1)",
            (platform_number,),
        )
        q = build_select(
            [
                "m.pres_adjusted AS depth",
                "m.temp_adjusted AS temperature",
                "m.psal_adjusted AS salinity",
                "m.temp_qc",
                "m.psal_qc",
                "m.pres_qc",
                "m.level_index",
            ],
            self._joined_from(),
            [
                latest,
                CompiledClause("m.pres_adjusted IS NOT NULL"),
                CompiledClause("m.temp_adjusted IS NOT NULL"),
                CompiledClause("m.psal_adjusted IS NOT NULL"),
            ],
            order_by=["m.level_index ASC"],
            limit=FLOAT_PROFILE_MAX_LEVELS,
        )
        rows = await self._run("float_profile", q)
        return FloatProfile(
            platform_number=platform_number,
            depth=tuple(_num(r.get("depth")) for r in rows),
            temperature=tuple(_num(r.get("temperature")) for r in rows),
            salinity=tuple(_num(r.get("salinity")) for r in rows),
            quality_flags=tuple(
                {name: classify(r.get(col)) for name, col in QC_COLUMNS.items()} for r in rows
            ),
        )

    def _float_scope(self, platform_number: str, date_range: Optional[DateRange]) -> List[CompiledClause]:
        return self.compiler.compile(FilterRequest(
            date_range=date_range,
            platform=PlatformFilter(platform_numbers=(platform_number,)),
        ))

    async def float_timeseries(
        self, platform_number: str, date_range: Optional[DateRange] = None
    ) -> List[TimeSeriesPoint]:
        """Near-surface (first 10 levels) averages per cycle."""
        q = build_select(
            [
                "p.cycle_number",
                "p.juld",
                "AVG(CASE WHEN m.level_index < 10 THEN m.temp_adjusted END) AS temperature",
                "AVG(CASE WHEN m.level_index < 10 THEN m.psal_adjusted END) AS salinity",
            ],
            self._joined_from(),
            self._float_scope(platform_number, date_range),
            group_by=["p.profile_id", "p.cycle_number", "p.juld"],
            order_by=["p.cycle_number ASC"],
            limit=TIMESERIES_MAX_POINTS,
        )
        rows = await self._run("float_timeseries", q)
        return [
            TimeSeriesPoint(
                date=to_calendar_date(r.get("juld")),
                cycle_number=_opt_int(r.get("cycle_number")),
                temperature=_num(r.get("temperature")),
                salinity=_num(r.get("salinity")),
            )
            for r in rows
        ]

    async def float_trajectory(
        self, platform_number: str, date_range: Optional[DateRange] = None
    ) -> List[TrajectoryPoint]:
        q = build_select(
            [
                "p.juld",
                "p.latitude",
                "p.longitude",
                "p.cycle_number AS cycle",
                "AVG(CASE WHEN m.level_index < 5 THEN m.temp_adjusted END) AS temperature",
            ],
            f"{self.profiles} p LEFT JOIN {self.measurements} m ON p.profile_id = m.profile_id",
            self._float_scope(platform_number, date_range),
            group_by=["p.profile_id", "p.juld", "p.latitude", "p.longitude", "p.cycle_number"],
            order_by=["p.cycle_number ASC"],
            limit=TRAJECTORY_MAX_POINTS,
        )
        rows = await self._run("float_trajectory", q)
        return [
            TrajectoryPoint(
                date=to_calendar_date(r.get("juld")),
                latitude=_num(r.get("latitude")),
                longitude=_num(r.get("longitude")),
                cycle=_opt_int(r.get("cycle")),
                temperature=_num(r.get("temperature")),
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # quality control
    # ------------------------------------------------------------------

    async def quality_control_stats(self, request: FilterRequest) -> dict:
        """Measurement counts per parameter and quality level."""
        clauses = self.compiler.compile(request)
        parts: List[str] = []
        params: List[Any] = []
        for name, column in QC_COLUMNS.items():
            branch = build_select(
                [f"'{name}' AS parameter_type", f"m.{column} AS qc_flag", "COUNT(*) AS count"],
                self._joined_from(),
                clauses + [CompiledClause(f"m.{column} IS NOT NULL")],
                group_by=[f"m.{column}"],
            )
            parts.append(branch.sql)
            params.extend(branch.params)
        q = SelectBuildResult(sql=" UNION ALL ".join(parts), params=params)
        rows = await self._run("quality_control_stats", q)
        return summarize_qc_counts(rows)


__all__ = ["QueryService"]

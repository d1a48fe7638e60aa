"""
Compile a FilterRequest into ordered, parameterized WHERE clauses.

Clause order is fixed:

    date range -> bounding box -> radius -> temperature -> salinity ->
    depth -> platform numbers -> data centre -> project -> data mode -> QC

Absent sub-filters contribute no clauses.
"""

from __future__ import annotations

import logging
from typing import List

from ..clauses import CompiledClause, between, compare, in_list
from ..dates import to_day_offset
from ..filters import FilterRequest
from ..geo import bounding_box_predicate, radius_predicate
from ..quality import qc_predicate

logger = logging.getLogger(__name__)


class FilterCompiler:
    def __init__(self, profile_alias: str = "p", measurement_alias: str = "m"):
        self.p = profile_alias
        self.m = measurement_alias

    def compile(self, request: FilterRequest) -> List[CompiledClause]:
        request.validate()
        p, m = self.p, self.m
        out: List[CompiledClause] = []

        dr = request.date_range
        if dr is not None:
            juld = f"{p}.juld"
            if dr.start is not None and dr.end is not None:
                out.append(between(juld, to_day_offset(dr.start), to_day_offset(dr.end)))
            elif dr.start is not None:
                out.append(compare(juld, ">=", to_day_offset(dr.start)))
            else:
                out.append(compare(juld, "<=", to_day_offset(dr.end)))

        geo = request.geospatial
        if geo is not None:
            if geo.bounding_box is not None:
                out.extend(bounding_box_predicate(
                    geo.bounding_box, lat_column=f"{p}.latitude", lon_column=f"{p}.longitude"
                ))
            if geo.circular_radius is not None:
                cr = geo.circular_radius
                out.append(radius_predicate(
                    cr.center, cr.radius_km, lat_column=f"{p}.latitude", lon_column=f"{p}.longitude"
                ))

        ms = request.measurements
        if ms is not None:
            for column, rng in (
                ("temp_adjusted", ms.temperature_range),
                ("psal_adjusted", ms.salinity_range),
                ("pres_adjusted", ms.depth_range),
            ):
                if rng is not None:
                    out.append(between(f"{m}.{column}", rng.min, rng.max))

        pf = request.platform
        if pf is not None:
            if pf.platform_numbers:
                out.append(in_list(f"{p}.platform_number", pf.platform_numbers))
            if pf.data_center:
                out.append(compare(f"{p}.data_centre", "=", pf.data_center))
            if pf.project_name:
                out.append(compare(f"{p}.project_name", "=", pf.project_name))
            if pf.data_mode:
                out.append(compare(f"{p}.data_mode", "=", pf.data_mode))

        qc = request.quality_control
        if qc is not None and qc.accepted_levels:
            out.extend(qc_predicate(m, qc.accepted_levels))

        logger.debug("compiled %d clauses", len(out))
        return out


_DEFAULT = FilterCompiler()


def compile_filters(request: FilterRequest) -> List[CompiledClause]:
    return _DEFAULT.compile(request)


__all__ = ["FilterCompiler", "compile_filters"]

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from . import config
from .filters import BoundingBox

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    key: str
    name: str
    bounds: BoundingBox


class RegionRegistry:
    """Named ocean regions loaded from a YAML (or JSON) mapping file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else config.REGIONS_FILE
        self.regions: Dict[str, Region] = {}

    def load(self) -> "RegionRegistry":
        if not self.path.exists():
            raise RuntimeError(f"Region mapping file not found: {self.path}")
        with self.path.open("r", encoding="utf-8") as f:
            if self.path.suffix.lower() in (".yaml", ".yml"):
                cfg = yaml.safe_load(f) or {}
            else:
                cfg = json.load(f)
        norm: Dict[str, Region] = {}
        for key, v in (cfg.get("regions") or {}).items():
            if not isinstance(v, dict) or "bounds" not in v:
                raise RuntimeError(f"Bad region mapping for {key}: {v}")
            box = BoundingBox.from_dict(v["bounds"])
            box.validate(f"regions.{key}")
            norm[key] = Region(key=key, name=str(v.get("name", key)), bounds=box)
        self.regions = norm
        logger.info("loaded %d regions from %s", len(norm), self.path)
        return self

    def keys(self) -> List[str]:
        return list(self.regions)

    def get(self, key: str) -> Region:
        if key not in self.regions:
            raise KeyError(f"Unknown region: {key}")
        return self.regions[key]

    def resolve(self, keys: Optional[List[str]]) -> List[Region]:
        """Regions for ``keys`` in request order; unknown keys are skipped."""
        wanted = keys or self.keys()
        out: List[Region] = []
        for k in wanted:
            region = self.regions.get(k.strip())
            if region is None:
                logger.info("skipping unknown region %r", k)
                continue
            out.append(region)
        return out

"""
Domain service: attaches each occurrence to the conservation area containing it.

Join policy:
- "within" predicate, so a point lying exactly on a polygon edge is not
  matched and stays unjoined
- overlapping polygons resolve to the polygon listed first in the source
  (lowest area_id); the discarded extra matches are counted
- every occurrence appears exactly once in the output, in input order
"""
from dataclasses import dataclass
from typing import Optional
import logging

import pandas as pd
import geopandas as gpd

from richness_report.config import settings
from richness_report.domain.exceptions import CoordinateSystemError

logger = logging.getLogger(__name__)

SUPPORTED_PREDICATES = ("within",)


@dataclass
class JoinConfig:
    """Configuration for the spatial join."""

    predicate: str = "within"
    """Spatial predicate between occurrence point and area polygon"""

    def __post_init__(self):
        if self.predicate not in SUPPORTED_PREDICATES:
            raise ValueError(
                f"Unsupported join predicate '{self.predicate}' "
                f"(supported: {', '.join(SUPPORTED_PREDICATES)})"
            )


@dataclass
class JoinResult:
    """Joined occurrences plus overlap bookkeeping."""
    occurrences: gpd.GeoDataFrame
    overlapping_matches: int = 0


class SpatialJoiner:
    """
    Domain service for the point-in-polygon join.

    Candidate polygons are found through the geopandas spatial index, so the
    join stays fast with hundreds of areas and many thousands of points.
    """

    def __init__(self, config: Optional[JoinConfig] = None):
        """
        Initialize the joiner.

        Args:
            config: Join configuration (defaults to the configured predicate)
        """
        self.config = config or JoinConfig(predicate=settings.join_predicate)
        logger.info(f"Initialized SpatialJoiner with predicate={self.config.predicate}")

    def join(
        self,
        areas: gpd.GeoDataFrame,
        occurrences: gpd.GeoDataFrame,
    ) -> JoinResult:
        """
        Attach area_id and area_name to every occurrence.

        Args:
            areas: Conservation areas with area_id, area_name and geometry
            occurrences: Occurrence points in the same CRS

        Returns:
            JoinResult whose frame has one row per occurrence; area_id is a
            nullable integer and area_name is missing for unjoined points

        Raises:
            CoordinateSystemError: If the layers use different CRSs
        """
        self._check_crs(areas, occurrences)
        logger.info(f"Joining {len(occurrences)} occurrences to {len(areas)} conservation areas")

        if occurrences.empty or areas.empty:
            joined = occurrences.copy()
            joined["area_id"] = pd.Series(pd.NA, index=joined.index, dtype="Int64")
            joined["area_name"] = pd.Series(pd.NA, index=joined.index, dtype="string")
            logger.info("Nothing to join, all occurrences left unjoined")
            return JoinResult(occurrences=joined)

        points = occurrences.reset_index(drop=True)
        polygons = areas[["area_id", "area_name", "geometry"]]

        # Step 1: Left join keeps unmatched points with missing area columns
        matches = gpd.sjoin(points, polygons, how="left", predicate=self.config.predicate)
        matches = matches.drop(columns=["index_right"])

        # Step 2: Resolve overlapping areas to the first polygon in the source
        matches["_point"] = matches.index
        matches = matches.sort_values(["_point", "area_id"], kind="stable", na_position="last")
        duplicated = matches["_point"].duplicated(keep="first")
        overlapping = int(duplicated.sum())
        if overlapping:
            logger.warning(f"{matches.loc[duplicated, '_point'].nunique()} occurrences fall in "
                           f"overlapping areas; discarded {overlapping} extra matches")
        matches = matches[~duplicated].drop(columns=["_point"])

        joined = matches.sort_index()
        joined["area_id"] = joined["area_id"].astype("Int64")
        joined["area_name"] = joined["area_name"].astype("string")
        joined = gpd.GeoDataFrame(joined, geometry="geometry", crs=occurrences.crs)

        matched = int(joined["area_id"].notna().sum())
        logger.info(f"Joined {matched} occurrences, {len(joined) - matched} outside all areas")
        return JoinResult(occurrences=joined, overlapping_matches=overlapping)

    @staticmethod
    def _check_crs(areas: gpd.GeoDataFrame, occurrences: gpd.GeoDataFrame) -> None:
        if areas.crs is None or occurrences.crs is None:
            raise CoordinateSystemError("Both layers need a coordinate reference system before joining")
        if not areas.crs.equals(occurrences.crs):
            raise CoordinateSystemError(
                f"Layers use different coordinate reference systems: "
                f"{areas.crs.to_string()} vs {occurrences.crs.to_string()}"
            )

"""
Result of one pipeline run, passed explicitly from stage to stage.
"""
from dataclasses import dataclass, field

import pandas as pd
import geopandas as gpd

from richness_report.domain.models import JoinSummary


@dataclass
class RichnessAnalysis:
    """Named intermediates of load, join and aggregate."""
    areas: gpd.GeoDataFrame
    occurrences: gpd.GeoDataFrame
    joined: gpd.GeoDataFrame
    richness: pd.DataFrame
    top_species: pd.DataFrame
    summary: JoinSummary
    species_by_area: dict[int, list[str]] = field(default_factory=dict)

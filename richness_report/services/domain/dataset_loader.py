"""
Domain service: loads conservation-area polygons and occurrence points.

Both layers come out as GeoDataFrames in one shared geographic CRS with
canonical column names, so the joiner and aggregator never see source-specific
column names.
"""
import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging

import numpy as np
import pandas as pd
import geopandas as gpd
import shapely

from richness_report.config import settings
from richness_report.domain.exceptions import (
    CoordinateSystemError,
    LoadError,
    SchemaError,
)
from richness_report.infrastructure.source_fetcher import SourceFetcher
from richness_report.utils.geo_projection import (
    area_km2,
    resolve_crs,
    resolve_geographic_crs,
)

logger = logging.getLogger(__name__)

AREA_COLUMNS = ["area_id", "area_name", "area_km2", "geometry"]
OCCURRENCE_COLUMNS = [
    "record_id",
    "species",
    "locality",
    "event_date",
    "institution",
    "longitude",
    "latitude",
    "geometry",
]
POLYGON_TYPES = {"Polygon", "MultiPolygon"}
TAB_SUFFIXES = {".tsv", ".txt", ".tab"}


@dataclass
class LoaderConfig:
    """Column mapping and reference systems for loading."""

    area_name_column: str = "name"
    longitude_column: str = "decimalLongitude"
    latitude_column: str = "decimalLatitude"
    species_column: str = "species"

    metadata_columns: dict[str, str] = field(default_factory=lambda: {
        "record_id": "gbifID",
        "locality": "locality",
        "event_date": "eventDate",
        "institution": "institutionCode",
    })
    """Canonical name -> source column for optional occurrence attributes"""

    delimiter: Optional[str] = None
    """Occurrence delimiter; inferred from the file suffix when None"""

    occurrence_crs: str = "EPSG:4326"
    target_crs: str = "EPSG:4326"

    @classmethod
    def from_settings(cls) -> "LoaderConfig":
        return cls(
            area_name_column=settings.area_name_column,
            longitude_column=settings.longitude_column,
            latitude_column=settings.latitude_column,
            species_column=settings.species_column,
            metadata_columns={
                "record_id": settings.record_id_column,
                "locality": settings.locality_column,
                "event_date": settings.event_date_column,
                "institution": settings.institution_column,
            },
            delimiter=settings.occurrence_delimiter,
            occurrence_crs=settings.occurrence_crs,
            target_crs=settings.target_crs,
        )


@dataclass
class LoadedDatasets:
    """Both layers after loading, in the same CRS."""
    areas: gpd.GeoDataFrame
    occurrences: gpd.GeoDataFrame


class DatasetLoader:
    """
    Domain service for reading the polygon and point layers.

    Failures are reported with the pipeline's error taxonomy:
    - LoadError for missing, unreadable or malformed sources
    - SchemaError for absent columns or unexpected geometry types
    - CoordinateSystemError for unset or non-geographic reference systems
    """

    def __init__(
        self,
        config: Optional[LoaderConfig] = None,
        fetcher: Optional[SourceFetcher] = None,
    ):
        """
        Initialize the loader.

        Args:
            config: Column mapping and CRS configuration (defaults to settings)
            fetcher: Resolves local paths and downloads remote sources
        """
        self.config = config or LoaderConfig.from_settings()
        self.fetcher = fetcher or SourceFetcher()
        self.target_crs = resolve_geographic_crs(self.config.target_crs, "target")

        logger.info(f"Initialized DatasetLoader with target CRS {self.target_crs.to_string()}, "
                    f"coordinates=({self.config.longitude_column}, {self.config.latitude_column})")

    def load(self, polygon_source: str, occurrence_source: str) -> LoadedDatasets:
        """
        Load both layers into the shared target CRS.

        Args:
            polygon_source: Path or URL of the conservation-area layer
            occurrence_source: Path or URL of the occurrence table

        Returns:
            LoadedDatasets with areas and occurrences
        """
        areas = self.load_conservation_areas(polygon_source)
        occurrences = self.load_occurrences(occurrence_source)
        return LoadedDatasets(areas=areas, occurrences=occurrences)

    def load_conservation_areas(self, source: str) -> gpd.GeoDataFrame:
        """
        Read the conservation-area polygon layer.

        Args:
            source: Any vector format readable by geopandas, or an http(s) URL

        Returns:
            GeoDataFrame with area_id, area_name, area_km2 and geometry columns
        """
        path = self.fetcher.resolve(source)
        logger.info(f"Loading conservation areas from {path}")

        try:
            raw = gpd.read_file(path)
        except Exception as e:
            # pyogrio/fiona raise driver-specific errors for unreadable data
            raise LoadError(f"Could not read polygon source {source}: {e}")

        # Attribute-only layers (CSV, non-spatial tables) come back as plain DataFrames
        if not isinstance(raw, gpd.GeoDataFrame) or raw.active_geometry_name is None:
            raise SchemaError(f"Polygon source {source} has no geometry column")

        if raw.empty:
            logger.warning(f"Polygon source {source} has no features")
            return self._empty_areas()

        name_column = self.config.area_name_column
        if name_column not in raw.columns:
            raise SchemaError(
                f"Polygon source {source} has no '{name_column}' column "
                f"(available: {', '.join(map(str, raw.columns))})"
            )

        if raw.crs is None:
            raise CoordinateSystemError(f"Polygon source {source} has no coordinate reference system")

        geom_types = set(raw.geometry.dropna().geom_type.unique())
        unexpected = geom_types - POLYGON_TYPES
        if unexpected:
            raise SchemaError(
                f"Polygon source {source} contains non-polygon geometries: {', '.join(sorted(unexpected))}"
            )

        missing_geometry = int(raw.geometry.isna().sum())
        if missing_geometry:
            logger.warning(f"{missing_geometry} conservation areas have no geometry")

        areas = gpd.GeoDataFrame(
            {
                "area_id": np.arange(len(raw), dtype="int64"),
                "area_name": raw[name_column].astype("string").fillna("").str.strip().to_numpy(),
            },
            geometry=raw.geometry.to_numpy(),
            crs=raw.crs,
        )
        areas = areas.to_crs(self.target_crs)

        invalid = ~areas.geometry.is_valid & areas.geometry.notna()
        if invalid.any():
            logger.warning(f"Repairing {int(invalid.sum())} invalid conservation-area polygons")
            areas.loc[invalid, "geometry"] = shapely.make_valid(areas.geometry[invalid].to_numpy())
            repaired = areas.loc[invalid]
            degenerate = repaired.loc[~repaired.geom_type.isin(POLYGON_TYPES), "area_name"]
            if not degenerate.empty:
                logger.warning(f"Repaired areas without a clean polygon result: {', '.join(degenerate)}")

        areas["area_km2"] = pd.Series(
            [area_km2(geom, self.target_crs) for geom in areas.geometry],
            index=areas.index,
            dtype="float64",
        )

        logger.info(f"Loaded {len(areas)} conservation areas")
        return areas[AREA_COLUMNS]

    def load_occurrences(self, source: str) -> gpd.GeoDataFrame:
        """
        Read the occurrence table and build point geometries.

        Rows with missing or out-of-range coordinates are dropped.

        Args:
            source: Delimited text file (or http(s) URL)

        Returns:
            GeoDataFrame with canonical occurrence columns and point geometry
        """
        path = self.fetcher.resolve(source)
        source_crs = resolve_crs(self.config.occurrence_crs, "occurrences")
        delimiter = self._delimiter_for(path)
        logger.info(f"Loading occurrences from {path} (delimiter={delimiter!r})")

        try:
            # GBIF tab exports leave quotes unescaped inside fields
            quoting = csv.QUOTE_NONE if delimiter == "\t" else csv.QUOTE_MINIMAL
            raw = pd.read_csv(path, sep=delimiter, dtype=str, quoting=quoting)
        except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise LoadError(f"Could not read occurrence source {source}: {e}")

        required = [
            self.config.longitude_column,
            self.config.latitude_column,
            self.config.species_column,
        ]
        missing = [column for column in required if column not in raw.columns]
        if missing:
            raise SchemaError(f"Occurrence source {source} is missing columns: {', '.join(missing)}")

        longitude = pd.to_numeric(raw[self.config.longitude_column], errors="coerce").astype("float64")
        latitude = pd.to_numeric(raw[self.config.latitude_column], errors="coerce").astype("float64")

        frame = pd.DataFrame({
            "species": self._clean_text(raw[self.config.species_column]),
            "longitude": longitude,
            "latitude": latitude,
        })
        for canonical, column in self.config.metadata_columns.items():
            if column in raw.columns:
                frame[canonical] = self._clean_text(raw[column])
            else:
                logger.debug(f"Optional column '{column}' absent, {canonical} left empty")
                frame[canonical] = pd.Series(pd.NA, index=raw.index, dtype="string")

        valid = np.isfinite(longitude) & np.isfinite(latitude)
        if source_crs.is_geographic:
            valid &= longitude.between(-180, 180) & latitude.between(-90, 90)
        dropped = int((~valid).sum())
        if dropped:
            logger.warning(f"Dropped {dropped} occurrences with missing or out-of-range coordinates")
        frame = frame[valid].reset_index(drop=True)

        occurrences = gpd.GeoDataFrame(
            frame,
            geometry=gpd.points_from_xy(frame["longitude"], frame["latitude"]),
            crs=source_crs,
        )
        if not source_crs.equals(self.target_crs):
            occurrences = occurrences.to_crs(self.target_crs)
            occurrences["longitude"] = occurrences.geometry.x
            occurrences["latitude"] = occurrences.geometry.y

        logger.info(f"Loaded {len(occurrences)} occurrences "
                    f"({occurrences['species'].nunique()} distinct species)")
        return occurrences[OCCURRENCE_COLUMNS]

    def _empty_areas(self) -> gpd.GeoDataFrame:
        areas = gpd.GeoDataFrame(
            {
                "area_id": pd.Series(dtype="int64"),
                "area_name": pd.Series(dtype=object),
                "area_km2": pd.Series(dtype="float64"),
            },
            geometry=[],
            crs=self.target_crs,
        )
        return areas[AREA_COLUMNS]

    def _delimiter_for(self, path: Path) -> str:
        if self.config.delimiter:
            return self.config.delimiter
        return "\t" if path.suffix.lower() in TAB_SUFFIXES else ","

    @staticmethod
    def _clean_text(values: pd.Series) -> pd.Series:
        """Strip whitespace and turn blank strings into missing values."""
        cleaned = values.astype("string").str.strip()
        return cleaned.mask(cleaned == "")

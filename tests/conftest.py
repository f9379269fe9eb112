"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Polygon and occurrence frames built in memory
- GeoJSON and CSV source files on disk
- The reference scenario (one area, one point inside, one outside)
- FastAPI test client
"""
import json
from pathlib import Path

import pytest
import pandas as pd
import geopandas as gpd
from fastapi.testclient import TestClient
from shapely.geometry import Point, box

from richness_report.main import app
from richness_report.infrastructure.source_fetcher import SourceFetcher
from richness_report.rendering.report_renderer import ReportRenderer
from richness_report.services.application.report_service import ReportService
from richness_report.services.domain.dataset_loader import DatasetLoader, LoaderConfig
from richness_report.services.domain.richness_aggregator import RichnessAggregator
from richness_report.services.domain.spatial_joiner import SpatialJoiner


# ============================================================
# Frame Builders
# ============================================================

def make_areas(specs: list[tuple[str, tuple[float, float, float, float]]]) -> gpd.GeoDataFrame:
    """Build a conservation-area frame from (name, (minx, miny, maxx, maxy)) specs."""
    return gpd.GeoDataFrame(
        {
            "area_id": list(range(len(specs))),
            "area_name": [name for name, _ in specs],
            "area_km2": [None] * len(specs),
        },
        geometry=[box(*bounds) for _, bounds in specs],
        crs="EPSG:4326",
    )


def make_occurrences(rows: list[tuple[float, float, object]]) -> gpd.GeoDataFrame:
    """Build an occurrence frame from (longitude, latitude, species) rows."""
    frame = pd.DataFrame({
        "record_id": pd.Series([str(i) for i in range(len(rows))], dtype="string"),
        "species": pd.Series([species for _, _, species in rows], dtype="string"),
        "locality": pd.Series([pd.NA] * len(rows), dtype="string"),
        "event_date": pd.Series([pd.NA] * len(rows), dtype="string"),
        "institution": pd.Series([pd.NA] * len(rows), dtype="string"),
        "longitude": [float(lon) for lon, _, _ in rows],
        "latitude": [float(lat) for _, lat, _ in rows],
    })
    return gpd.GeoDataFrame(
        frame,
        geometry=[Point(lon, lat) for lon, lat, _ in rows],
        crs="EPSG:4326",
    )


def square_feature(name: str, minx: float, miny: float, maxx: float, maxy: float) -> dict:
    """GeoJSON feature for an axis-aligned square."""
    return {
        "type": "Feature",
        "properties": {"name": name},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[
                [minx, miny], [maxx, miny], [maxx, maxy], [minx, maxy], [minx, miny],
            ]],
        },
    }


def write_geojson(path: Path, features: list[dict]) -> Path:
    path.write_text(json.dumps({"type": "FeatureCollection", "features": features}))
    return path


def write_occurrences(path: Path, rows: list[dict], sep: str = ",") -> Path:
    pd.DataFrame(rows).to_csv(path, sep=sep, index=False)
    return path


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def scenario_areas() -> gpd.GeoDataFrame:
    """One area covering longitude [-85, -84], latitude [9, 10]."""
    return make_areas([("Area1", (-85.0, 9.0, -84.0, 10.0))])


@pytest.fixture
def scenario_occurrences() -> gpd.GeoDataFrame:
    """One point inside Area1 and one outside every area."""
    return make_occurrences([
        (-84.5, 9.5, "Epidendrum sp."),
        (-80.0, 5.0, "Oncidium sp."),
    ])


@pytest.fixture
def polygon_file(tmp_path) -> Path:
    """GeoJSON with two areas; Area2 has no occurrences."""
    return write_geojson(tmp_path / "areas.geojson", [
        square_feature("Area1", -85.0, 9.0, -84.0, 10.0),
        square_feature("Area2", -83.0, 9.0, -82.5, 9.5),
    ])


@pytest.fixture
def occurrence_file(tmp_path) -> Path:
    """Occurrence CSV with Darwin Core column names."""
    return write_occurrences(tmp_path / "occurrences.csv", [
        {"gbifID": 101, "species": "Epidendrum sp.", "decimalLongitude": -84.5,
         "decimalLatitude": 9.5, "locality": "Monteverde", "eventDate": "2019-03-01",
         "institutionCode": "INB"},
        {"gbifID": 102, "species": "Oncidium sp.", "decimalLongitude": -80.0,
         "decimalLatitude": 5.0, "locality": "Offshore", "eventDate": "2020-07-12",
         "institutionCode": "MO"},
    ])


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def loader():
    """Dataset loader with default column mapping."""
    fetcher = SourceFetcher()
    yield DatasetLoader(config=LoaderConfig(), fetcher=fetcher)
    fetcher.close()


@pytest.fixture
def report_service(loader) -> ReportService:
    """Fully wired report service."""
    return ReportService(
        loader=loader,
        joiner=SpatialJoiner(),
        aggregator=RichnessAggregator(),
        renderer=ReportRenderer(title="Test Report"),
        top_species_limit=10,
    )


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client() -> TestClient:
    """Create a synchronous test client for FastAPI."""
    return TestClient(app)

"""
Domain models for conservation areas, occurrences and richness results.

The pipeline itself passes GeoDataFrames between stages; these models are the
typed, immutable view of those frames used at the API boundary and in tests.
"""
from typing import Any, List, Optional

import pandas as pd
from pydantic import BaseModel, Field
from shapely.geometry.base import BaseGeometry


def _scalar(value: Any) -> Any:
    """Map pandas missing markers (NaN, NA, NaT) to None."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


class ConservationArea(BaseModel):
    """Protected-area polygon in the target CRS."""
    area_id: int = Field(description="Position of the polygon in its source layer")
    name: str
    area_km2: Optional[float] = Field(default=None, description="Planar area in km²")
    geometry: BaseGeometry

    class Config:
        arbitrary_types_allowed = True
        frozen = True


class Occurrence(BaseModel):
    """Single occurrence record."""
    record_id: Optional[str] = None
    species: Optional[str] = None
    locality: Optional[str] = None
    event_date: Optional[str] = None
    institution: Optional[str] = None
    longitude: float
    latitude: float

    class Config:
        frozen = True


class JoinedOccurrence(Occurrence):
    """Occurrence with the conservation area containing it, if any."""
    area_id: Optional[int] = None
    area_name: Optional[str] = None


class RichnessRecord(BaseModel):
    """Species richness of one conservation area."""
    area_id: int
    area_name: str
    richness: int = Field(ge=0, description="Distinct non-null species recorded in the area")
    occurrence_count: int = Field(ge=0, description="Occurrences joined to the area")
    area_km2: Optional[float] = None

    class Config:
        frozen = True


class SpeciesCount(BaseModel):
    """Occurrence count for one species."""
    species: str
    occurrence_count: int = Field(ge=0)


class JoinSummary(BaseModel):
    """Record bookkeeping for a join run."""
    total_occurrences: int
    joined_occurrences: int
    unjoined_occurrences: int
    overlapping_matches: int = Field(
        default=0,
        description="Extra polygon matches discarded because areas overlap"
    )


def areas_to_models(areas: pd.DataFrame) -> List[ConservationArea]:
    """Convert a loaded conservation-area frame to models."""
    return [
        ConservationArea(
            area_id=int(row.area_id),
            name=str(row.area_name),
            area_km2=_scalar(row.area_km2),
            geometry=row.geometry,
        )
        for row in areas.itertuples(index=False)
    ]


def joined_to_models(joined: pd.DataFrame) -> List[JoinedOccurrence]:
    """Convert a joined occurrence frame to models."""
    models = []
    for row in joined.itertuples(index=False):
        area_id = _scalar(row.area_id)
        models.append(JoinedOccurrence(
            record_id=_scalar(row.record_id),
            species=_scalar(row.species),
            locality=_scalar(row.locality),
            event_date=_scalar(row.event_date),
            institution=_scalar(row.institution),
            longitude=float(row.longitude),
            latitude=float(row.latitude),
            area_id=int(area_id) if area_id is not None else None,
            area_name=_scalar(row.area_name),
        ))
    return models


def richness_to_models(richness: pd.DataFrame) -> List[RichnessRecord]:
    """Convert an aggregated richness frame to models."""
    return [
        RichnessRecord(
            area_id=int(row.area_id),
            area_name=str(row.area_name),
            richness=int(row.richness),
            occurrence_count=int(row.occurrence_count),
            area_km2=_scalar(row.area_km2),
        )
        for row in richness.itertuples(index=False)
    ]


def species_to_models(top_species: pd.DataFrame) -> List[SpeciesCount]:
    """Convert a top-species frame to models."""
    return [
        SpeciesCount(species=str(row.species), occurrence_count=int(row.occurrence_count))
        for row in top_species.itertuples(index=False)
    ]

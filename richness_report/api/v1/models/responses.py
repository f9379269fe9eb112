"""
API response models using Pydantic.
"""
from typing import List
from pydantic import BaseModel, Field

from richness_report.domain.models import (
    JoinedOccurrence,
    JoinSummary,
    RichnessRecord,
    SpeciesCount,
)


class RichnessResponse(BaseModel):
    """Response model for the richness endpoint."""
    area_count: int = Field(
        description="Number of conservation areas (one record each)"
    )
    records: List[RichnessRecord] = Field(
        description="Richness per conservation area, richness descending"
    )
    summary: JoinSummary

    class Config:
        json_schema_extra = {
            "example": {
                "area_count": 2,
                "records": [
                    {"area_id": 0, "area_name": "Area1", "richness": 1,
                     "occurrence_count": 1, "area_km2": 12100.4},
                    {"area_id": 1, "area_name": "Area2", "richness": 0,
                     "occurrence_count": 0, "area_km2": 530.2},
                ],
                "summary": {
                    "total_occurrences": 2,
                    "joined_occurrences": 1,
                    "unjoined_occurrences": 1,
                    "overlapping_matches": 0,
                },
            }
        }


class TopSpeciesResponse(BaseModel):
    """Response model for the top species endpoint."""
    limit: int = Field(
        description="Maximum number of species requested"
    )
    species: List[SpeciesCount] = Field(
        description="Species ordered by occurrence count, descending"
    )


class OccurrencesResponse(BaseModel):
    """Response model for the occurrences endpoint."""
    count: int = Field(
        description="Number of occurrences returned"
    )
    occurrences: List[JoinedOccurrence]

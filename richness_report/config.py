"""
Application configuration using Pydantic settings.
"""
from typing import Literal, Optional

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Input Sources
    polygon_source: str = Field(
        default="data/conservation_areas.geojson",
        description="Path or http(s) URL of the conservation-area polygon layer"
    )
    occurrence_source: str = Field(
        default="data/occurrences.csv",
        description="Path or http(s) URL of the occurrence table"
    )

    # Column Mapping
    area_name_column: str = Field(
        default="name",
        description="Polygon attribute holding the conservation area name"
    )
    longitude_column: str = Field(
        default="decimalLongitude",
        description="Occurrence column holding longitude in degrees"
    )
    latitude_column: str = Field(
        default="decimalLatitude",
        description="Occurrence column holding latitude in degrees"
    )
    species_column: str = Field(
        default="species",
        description="Occurrence column holding the species name"
    )
    locality_column: str = Field(
        default="locality",
        description="Occurrence column holding the locality description"
    )
    event_date_column: str = Field(
        default="eventDate",
        description="Occurrence column holding the event date"
    )
    institution_column: str = Field(
        default="institutionCode",
        description="Occurrence column holding the source institution"
    )
    record_id_column: str = Field(
        default="gbifID",
        description="Occurrence column holding the external record identifier"
    )
    occurrence_delimiter: Optional[str] = Field(
        default=None,
        description="Occurrence table delimiter (inferred from the file suffix when unset)"
    )

    # Coordinate Reference Systems
    target_crs: str = Field(
        default="EPSG:4326",
        description="Geographic CRS both layers are normalized to"
    )
    occurrence_crs: str = Field(
        default="EPSG:4326",
        description="CRS of the occurrence coordinate columns"
    )

    # Analysis
    join_predicate: Literal["within"] = Field(
        default="within",
        description="Spatial predicate used to attach occurrences to areas"
    )
    top_species_limit: int = Field(
        default=10,
        description="Number of species shown in the most-recorded species chart"
    )

    # Report Output
    report_title: str = Field(
        default="Orchid Species Richness in Conservation Areas",
        description="Title of the rendered report"
    )
    report_output_path: str = Field(
        default="report.html",
        description="Where the CLI writes the rendered report"
    )

    # Remote Source Fetching
    http_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds when downloading remote sources"
    )
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of attempts for remote source downloads"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=30,
        description="Maximum report renders per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Orchid Richness Report",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        env_prefix = "RICHNESS_"
        case_sensitive = False


# Global settings instance
settings = Settings()

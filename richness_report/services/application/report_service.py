"""
Application service: Orchestration layer for the richness report.
"""
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from richness_report.config import settings
from richness_report.domain.analysis import RichnessAnalysis
from richness_report.rendering.report_renderer import ReportRenderer
from richness_report.services.domain.dataset_loader import DatasetLoader
from richness_report.services.domain.richness_aggregator import RichnessAggregator
from richness_report.services.domain.spatial_joiner import SpatialJoiner

logger = logging.getLogger(__name__)


class ReportService:
    """
    Application service for building the richness report.

    Runs load, join, aggregate and render in sequence. No business logic
    here, only coordination between the domain services; each stage gets
    the previous stage's output as an argument.
    """

    def __init__(
        self,
        loader: DatasetLoader,
        joiner: SpatialJoiner,
        aggregator: RichnessAggregator,
        renderer: ReportRenderer,
        top_species_limit: Optional[int] = None,
    ):
        """
        Initialize the service with dependencies.

        Args:
            loader: Reads both input layers
            joiner: Attaches occurrences to conservation areas
            aggregator: Computes richness and species rankings
            renderer: Produces the report document
            top_species_limit: Species shown in the ranking chart
        """
        self.loader = loader
        self.joiner = joiner
        self.aggregator = aggregator
        self.renderer = renderer
        self.top_species_limit = top_species_limit or settings.top_species_limit

    def build_analysis(
        self,
        polygon_source: str,
        occurrence_source: str,
    ) -> RichnessAnalysis:
        """
        Load both layers, join them and aggregate richness.

        This method orchestrates:
        1. Loading conservation areas and occurrences in one CRS
        2. Joining occurrences to the areas containing them
        3. Aggregating richness per area (zero-filled)
        4. Ranking species by occurrence count

        Args:
            polygon_source: Path or URL of the conservation-area layer
            occurrence_source: Path or URL of the occurrence table

        Returns:
            RichnessAnalysis with every intermediate result

        Raises:
            LoadError, SchemaError, CoordinateSystemError: On invalid input
        """
        datasets = self.loader.load(polygon_source, occurrence_source)

        join_result = self.joiner.join(datasets.areas, datasets.occurrences)
        joined = join_result.occurrences

        richness = self.aggregator.aggregate(datasets.areas, joined)
        top_species = self.aggregator.top_species(joined, limit=self.top_species_limit)
        species_by_area = self.aggregator.species_by_area(joined)
        summary = self.aggregator.summarize(joined, join_result.overlapping_matches)

        logger.info(f"Analysis complete: {summary.joined_occurrences}/{summary.total_occurrences} "
                    f"occurrences in {len(datasets.areas)} conservation areas")

        return RichnessAnalysis(
            areas=datasets.areas,
            occurrences=datasets.occurrences,
            joined=joined,
            richness=richness,
            top_species=top_species,
            summary=summary,
            species_by_area=species_by_area,
        )

    def rank_species(self, analysis: RichnessAnalysis, limit: int) -> pd.DataFrame:
        """Re-rank species of a finished analysis with a different limit."""
        if limit == self.top_species_limit:
            return analysis.top_species
        return self.aggregator.top_species(analysis.joined, limit=limit)

    def render_report(self, analysis: RichnessAnalysis) -> str:
        """Render the HTML report for a finished analysis."""
        return self.renderer.render_document(analysis)

    def write_report(self, analysis: RichnessAnalysis, output_path: str) -> Path:
        """
        Render the report and write it to disk.

        Args:
            analysis: Finished analysis
            output_path: Destination HTML file

        Returns:
            Path of the written file
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render_report(analysis), encoding="utf-8")
        logger.info(f"Report written to {path}")
        return path

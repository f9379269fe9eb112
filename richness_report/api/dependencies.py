"""
Dependency injection for FastAPI.
"""
from typing import Annotated, Iterator
from fastapi import Depends

from richness_report.infrastructure.source_fetcher import SourceFetcher
from richness_report.rendering.report_renderer import ReportRenderer
from richness_report.services.application.report_service import ReportService
from richness_report.services.domain.dataset_loader import DatasetLoader
from richness_report.services.domain.richness_aggregator import RichnessAggregator
from richness_report.services.domain.spatial_joiner import SpatialJoiner


def get_source_fetcher() -> Iterator[SourceFetcher]:
    """
    Provide a source fetcher scoped to one request.

    Downloads of the request live in the fetcher's own temporary directory,
    which is removed when the request finishes.

    Yields:
        SourceFetcher instance
    """
    with SourceFetcher() as fetcher:
        yield fetcher


def get_dataset_loader(
    fetcher: Annotated[SourceFetcher, Depends(get_source_fetcher)],
) -> DatasetLoader:
    """
    Dependency factory for DatasetLoader.

    Args:
        fetcher: Source fetcher (injected)

    Returns:
        DatasetLoader instance
    """
    return DatasetLoader(fetcher=fetcher)


def get_report_service(
    loader: Annotated[DatasetLoader, Depends(get_dataset_loader)],
) -> ReportService:
    """
    Dependency factory for ReportService.

    Args:
        loader: Dataset loader (injected)

    Returns:
        ReportService instance
    """
    return ReportService(
        loader=loader,
        joiner=SpatialJoiner(),
        aggregator=RichnessAggregator(),
        renderer=ReportRenderer(),
    )


# Type aliases for cleaner route signatures
ReportServiceDep = Annotated[ReportService, Depends(get_report_service)]

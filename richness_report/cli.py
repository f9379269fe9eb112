"""
Command line interface for building the richness report.
"""
import logging
import sys
from typing import Optional

import click

from richness_report.config import settings
from richness_report.domain.exceptions import ReportError
from richness_report.infrastructure.source_fetcher import SourceFetcher
from richness_report.rendering.report_renderer import ReportRenderer, area_labels
from richness_report.services.application.report_service import ReportService
from richness_report.services.domain.dataset_loader import DatasetLoader, LoaderConfig
from richness_report.services.domain.richness_aggregator import RichnessAggregator
from richness_report.services.domain.spatial_joiner import SpatialJoiner

logger = logging.getLogger(__name__)


def source_options(func):
    """Options shared by every command that runs the pipeline."""
    options = [
        click.option("--polygons", "-p", default=settings.polygon_source, show_default=True,
                     help="Conservation-area layer (path or URL)"),
        click.option("--occurrences", "-o", default=settings.occurrence_source, show_default=True,
                     help="Occurrence table (path or URL)"),
        click.option("--name-column", default=settings.area_name_column, show_default=True,
                     help="Polygon attribute with the area name"),
        click.option("--lon-column", default=settings.longitude_column, show_default=True,
                     help="Occurrence longitude column"),
        click.option("--lat-column", default=settings.latitude_column, show_default=True,
                     help="Occurrence latitude column"),
        click.option("--species-column", default=settings.species_column, show_default=True,
                     help="Occurrence species column"),
        click.option("--top-species", default=settings.top_species_limit, show_default=True,
                     type=click.IntRange(min=1), help="Species shown in the ranking chart"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_service(
    fetcher: SourceFetcher,
    name_column: str,
    lon_column: str,
    lat_column: str,
    species_column: str,
    top_species: int,
    title: Optional[str] = None,
) -> ReportService:
    """Wire the pipeline with command line overrides applied to the settings."""
    config = LoaderConfig.from_settings()
    config.area_name_column = name_column
    config.longitude_column = lon_column
    config.latitude_column = lat_column
    config.species_column = species_column

    return ReportService(
        loader=DatasetLoader(config=config, fetcher=fetcher),
        joiner=SpatialJoiner(),
        aggregator=RichnessAggregator(),
        renderer=ReportRenderer(title=title),
        top_species_limit=top_species,
    )


@click.group()
@click.version_option(version=settings.app_version)
@click.option("--log-level", default=settings.log_level, show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def main(log_level):
    """
    Orchid species richness per conservation area.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@main.command()
@source_options
@click.option("--output", default=settings.report_output_path, show_default=True,
              type=click.Path(dir_okay=False), help="HTML file to write")
@click.option("--title", default=settings.report_title, show_default=True, help="Report title")
def build(polygons, occurrences, name_column, lon_column, lat_column, species_column,
          top_species, output, title):
    """Build the HTML report."""
    with SourceFetcher() as fetcher:
        try:
            service = build_service(fetcher, name_column, lon_column, lat_column,
                                    species_column, top_species, title)
            analysis = service.build_analysis(polygons, occurrences)
            path = service.write_report(analysis, output)
        except ReportError as e:
            click.echo(f"Error ({type(e).__name__}): {e.message}", err=True)
            sys.exit(1)

    record_summary = analysis.summary
    click.echo(f"Report written to {path}")
    click.echo(f"{record_summary.joined_occurrences} of {record_summary.total_occurrences} occurrences "
               f"fall in {len(analysis.areas)} conservation areas")


@main.command()
@source_options
def summary(polygons, occurrences, name_column, lon_column, lat_column, species_column, top_species):
    """Print richness per area and the record summary."""
    with SourceFetcher() as fetcher:
        try:
            service = build_service(fetcher, name_column, lon_column, lat_column,
                                    species_column, top_species)
            analysis = service.build_analysis(polygons, occurrences)
        except ReportError as e:
            click.echo(f"Error ({type(e).__name__}): {e.message}", err=True)
            sys.exit(1)

    richness = analysis.richness
    labels = area_labels(richness)
    width = max([len("Conservation area")] + [len(label) for label in labels])

    click.echo(f"{'Conservation area':<{width}}  {'Richness':>8}  {'Occurrences':>11}")
    for label, row in zip(labels, richness.itertuples(index=False)):
        click.echo(f"{label:<{width}}  {row.richness:>8}  {row.occurrence_count:>11}")

    click.echo("")
    click.echo(f"Total occurrences:  {analysis.summary.total_occurrences}")
    click.echo(f"In areas:           {analysis.summary.joined_occurrences}")
    click.echo(f"Outside all areas:  {analysis.summary.unjoined_occurrences}")

    click.echo("")
    click.echo("Most recorded species:")
    for row in analysis.top_species.itertuples(index=False):
        click.echo(f"  {row.species}: {row.occurrence_count}")


if __name__ == "__main__":
    main()

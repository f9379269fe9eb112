"""
API router for the richness report endpoints.
"""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import HTMLResponse

from richness_report.api.dependencies import ReportServiceDep
from richness_report.api.v1.models.responses import (
    OccurrencesResponse,
    RichnessResponse,
    TopSpeciesResponse,
)
from richness_report.config import settings
from richness_report.domain.analysis import RichnessAnalysis
from richness_report.domain.exceptions import ReportError
from richness_report.domain.models import (
    joined_to_models,
    richness_to_models,
    species_to_models,
)
from richness_report.middleware.rate_limit import REPORT_RATE_LIMIT, limiter
from richness_report.services.application.report_service import ReportService

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["report"],
)

ERROR_RESPONSES = {
    422: {"description": "Input layers have missing columns or an unusable CRS"},
    500: {"description": "Internal server error"},
    503: {"description": "An input source could not be read"},
}


def _run_analysis(report_service: ReportService) -> RichnessAnalysis:
    """
    Run the pipeline on the configured sources.

    Raises:
        HTTPException: With the pipeline error's status code
    """
    try:
        # Delegate to service layer (no business logic here)
        return report_service.build_analysis(
            settings.polygon_source,
            settings.occurrence_source,
        )
    except ReportError as e:
        logger.error(f"{type(e).__name__}: {e.message}")
        raise HTTPException(
            status_code=e.status_code,
            detail=f"{type(e).__name__}: {e.message}",
        )
    except Exception as e:
        # Handle unexpected errors
        logger.exception("Report pipeline failed")
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(e)}",
        )


@router.get(
    "/report",
    response_class=HTMLResponse,
    summary="Rendered richness report",
    description="""
    Build the full HTML report from the configured sources.

    The report contains:
    1. A sortable table of species richness per conservation area
    2. An interactive map: areas colored by richness, occurrences by species
    3. A bar chart of richness per area
    4. A bar chart of the most recorded species
    """,
    responses={
        **ERROR_RESPONSES,
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(REPORT_RATE_LIMIT)
def get_report(
    request: Request,
    report_service: ReportServiceDep,
) -> HTMLResponse:
    analysis = _run_analysis(report_service)
    return HTMLResponse(content=report_service.render_report(analysis))


@router.get(
    "/richness",
    response_model=RichnessResponse,
    summary="Species richness per conservation area",
    responses=ERROR_RESPONSES,
)
def get_richness(report_service: ReportServiceDep) -> RichnessResponse:
    """
    Richness for every conservation area, including areas with zero species.
    """
    analysis = _run_analysis(report_service)
    records = richness_to_models(analysis.richness)
    return RichnessResponse(
        area_count=len(records),
        records=records,
        summary=analysis.summary,
    )


@router.get(
    "/species/top",
    response_model=TopSpeciesResponse,
    summary="Most recorded species",
    responses=ERROR_RESPONSES,
)
def get_top_species(
    report_service: ReportServiceDep,
    limit: Annotated[int, Query(ge=1, le=100, description="Number of species")] = settings.top_species_limit,
) -> TopSpeciesResponse:
    analysis = _run_analysis(report_service)
    ranked = report_service.rank_species(analysis, limit)
    return TopSpeciesResponse(limit=limit, species=species_to_models(ranked))


@router.get(
    "/occurrences",
    response_model=OccurrencesResponse,
    summary="Occurrences with their conservation area",
    responses=ERROR_RESPONSES,
)
def get_occurrences(
    report_service: ReportServiceDep,
    area_id: Annotated[Optional[int], Query(description="Only occurrences in this area")] = None,
    unjoined: Annotated[bool, Query(description="Only occurrences outside every area")] = False,
) -> OccurrencesResponse:
    """
    Joined occurrences, optionally restricted to one area or to unjoined records.
    """
    if area_id is not None and unjoined:
        raise HTTPException(
            status_code=400,
            detail="area_id and unjoined cannot be combined",
        )

    analysis = _run_analysis(report_service)
    joined = analysis.joined
    if area_id is not None:
        joined = joined[joined["area_id"].eq(area_id).fillna(False)]
    elif unjoined:
        joined = joined[joined["area_id"].isna()]

    occurrences = joined_to_models(joined)
    return OccurrencesResponse(count=len(occurrences), occurrences=occurrences)

"""
Domain service: species richness per conservation area.
"""
import logging

import pandas as pd

from richness_report.domain.models import JoinSummary

logger = logging.getLogger(__name__)

RICHNESS_COLUMNS = ["area_id", "area_name", "richness", "occurrence_count", "area_km2"]


class RichnessAggregator:
    """
    Counts distinct species per area and ranks species by occurrences.

    Every area is present in the richness output exactly once, with zero
    richness when no occurrence joined to it. Occurrences without a species
    name do not add to richness but still count as occurrences of their area.
    """

    def aggregate(self, areas: pd.DataFrame, joined: pd.DataFrame) -> pd.DataFrame:
        """
        Compute richness and occurrence counts for every conservation area.

        Args:
            areas: Conservation areas with area_id, area_name and area_km2
            joined: Occurrences with area_id attached by the joiner

        Returns:
            DataFrame with one row per area, richness descending; equal
            richness keeps the areas' input order
        """
        in_area = joined[joined["area_id"].notna()]
        in_area = in_area.assign(area_id=in_area["area_id"].astype("int64"))
        grouped = in_area.groupby("area_id")

        # nunique skips missing species
        richness = grouped["species"].nunique()
        occurrence_count = grouped.size()

        result = pd.DataFrame(areas[["area_id", "area_name", "area_km2"]]).copy()
        result["richness"] = result["area_id"].map(richness).fillna(0).astype("int64")
        result["occurrence_count"] = result["area_id"].map(occurrence_count).fillna(0).astype("int64")

        result = result.sort_values("richness", ascending=False, kind="stable")
        result = result.reset_index(drop=True)[RICHNESS_COLUMNS]

        logger.info(f"Aggregated richness for {len(result)} areas, "
                    f"{int((result['richness'] > 0).sum())} with at least one species")
        return result

    def top_species(self, joined: pd.DataFrame, limit: int = 10) -> pd.DataFrame:
        """
        Rank species by occurrence count.

        Args:
            joined: Occurrence frame (joined or not; every record counts)
            limit: Number of species to keep

        Returns:
            DataFrame with species and occurrence_count columns, count
            descending; equal counts are ordered by species name
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")

        counts = joined["species"].dropna().value_counts()
        ranked = pd.DataFrame({
            "species": counts.index.astype(str),
            "occurrence_count": counts.to_numpy(dtype="int64"),
        })
        ranked = ranked.sort_values(
            ["occurrence_count", "species"],
            ascending=[False, True],
        )
        top = ranked.head(limit).reset_index(drop=True)

        logger.debug(f"Top {len(top)} of {len(ranked)} species selected")
        return top

    def species_by_area(self, joined: pd.DataFrame) -> dict[int, list[str]]:
        """
        Distinct species recorded in each area, sorted by name.

        Areas without named species are absent from the mapping.
        """
        in_area = joined[joined["area_id"].notna() & joined["species"].notna()]
        return {
            int(area_id): sorted(set(species.astype(str)))
            for area_id, species in in_area.groupby("area_id")["species"]
        }

    def summarize(self, joined: pd.DataFrame, overlapping_matches: int = 0) -> JoinSummary:
        """
        Record bookkeeping for a join: joined plus unjoined equals total.

        Args:
            joined: Output of the spatial joiner
            overlapping_matches: Extra matches discarded by the joiner

        Returns:
            JoinSummary
        """
        total = len(joined)
        matched = int(joined["area_id"].notna().sum())
        return JoinSummary(
            total_occurrences=total,
            joined_occurrences=matched,
            unjoined_occurrences=total - matched,
            overlapping_matches=overlapping_matches,
        )

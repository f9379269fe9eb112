"""
Report rendering: richness table, interactive map and bar charts.

Each view is built independently from the analysis frames; the document
renderer only stitches the finished fragments together.
"""
import html
import logging
from itertools import cycle
from typing import Optional

import pandas as pd
import geopandas as gpd
import folium
import plotly.graph_objects as go
from branca.colormap import LinearColormap
from jinja2 import Template
from plotly.colors import qualitative

from richness_report.config import settings
from richness_report.domain.analysis import RichnessAnalysis

logger = logging.getLogger(__name__)

UNKNOWN_SPECIES_COLOR = "#7f7f7f"
RICHNESS_COLORS = ["#ffffcc", "#a1dab4", "#41b6c4", "#2c7fb8", "#253494"]
ESRI_IMAGERY_URL = (
    "https://server.arcgisonline.com/ArcGIS/rest/services/"
    "World_Imagery/MapServer/tile/{z}/{y}/{x}"
)

DOCUMENT_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title | e }}</title>
<style>
  body { font-family: sans-serif; margin: 2rem auto; max-width: 1100px; }
  table.richness-table { border-collapse: collapse; width: 100%; }
  table.richness-table th, table.richness-table td { padding: 4px 8px; border-bottom: 1px solid #ddd; }
  table.richness-table th { cursor: pointer; text-align: left; }
  .summary span { margin-right: 2rem; }
</style>
</head>
<body>
<h1>{{ title | e }}</h1>
<p class="summary">
  <span>Occurrences: {{ summary.total_occurrences }}</span>
  <span>In conservation areas: {{ summary.joined_occurrences }}</span>
  <span>Outside conservation areas: {{ summary.unjoined_occurrences }}</span>
  <span>Conservation areas: {{ area_count }}</span>
</p>
<h2>Species richness by conservation area</h2>
{{ table }}
<h2>Map</h2>
{{ map }}
<h2>Richness per conservation area</h2>
{{ richness_chart }}
<h2>Most recorded species</h2>
{{ species_chart }}
<script>
document.querySelectorAll("table.sortable").forEach(function (table) {
  table.querySelectorAll("th").forEach(function (header, column) {
    var descending = false;
    header.addEventListener("click", function () {
      var body = table.tBodies[0];
      var rows = Array.prototype.slice.call(body.rows);
      descending = !descending;
      rows.sort(function (a, b) {
        var x = a.cells[column].innerText, y = b.cells[column].innerText;
        var nx = parseFloat(x), ny = parseFloat(y);
        var order = (isNaN(nx) || isNaN(ny)) ? x.localeCompare(y) : nx - ny;
        return descending ? -order : order;
      });
      rows.forEach(function (row) { body.appendChild(row); });
    });
  });
});
</script>
</body>
</html>
""")


def area_labels(richness: pd.DataFrame) -> pd.Series:
    """
    Display labels for areas; repeated names get their area_id appended.

    Args:
        richness: Frame with area_id and area_name columns

    Returns:
        Series of unique labels aligned with the input rows
    """
    names = richness["area_name"].astype(str)
    repeated = names.duplicated(keep=False)
    labels = names.where(~repeated, names + " (" + richness["area_id"].astype(str) + ")")
    return labels


def species_colors(species: pd.Series) -> dict[str, str]:
    """Assign a categorical color to each distinct species name."""
    palette = cycle(qualitative.Dark24 + qualitative.Light24)
    names = sorted(species.dropna().astype(str).unique())
    return {name: color for name, color in zip(names, palette)}


class ReportRenderer:
    """
    Renders the report views.

    Views:
    - Sortable richness table
    - Choropleth map with occurrence markers and base-map switcher
    - Richness-per-area bar chart
    - Most-recorded species bar chart
    """

    def __init__(self, title: Optional[str] = None):
        self.title = title or settings.report_title

    def render_table(self, richness: pd.DataFrame) -> str:
        """
        Render the richness table as HTML, richness descending.

        Args:
            richness: Aggregated richness frame

        Returns:
            HTML table markup
        """
        table = pd.DataFrame({
            "Conservation area": richness["area_name"].astype(str),
            "Species richness": richness["richness"].astype(int),
            "Occurrences": richness["occurrence_count"].astype(int),
            "Area (km²)": pd.to_numeric(richness["area_km2"], errors="coerce").round(2),
        })
        table = table.sort_values("Species richness", ascending=False, kind="stable")
        return table.to_html(
            index=False,
            classes=["sortable", "richness-table"],
            border=0,
            na_rep="",
        )

    def render_map(
        self,
        areas: gpd.GeoDataFrame,
        richness: pd.DataFrame,
        joined: gpd.GeoDataFrame,
        species_by_area: Optional[dict[int, list[str]]] = None,
    ) -> folium.Map:
        """
        Build the interactive map.

        Args:
            areas: Conservation-area polygons
            richness: Aggregated richness frame
            joined: Joined occurrence points
            species_by_area: Optional species lists for the polygon tooltips

        Returns:
            folium.Map with toggleable area and occurrence layers
        """
        bounds = self._bounds(areas, joined)
        if bounds is None:
            folium_map = folium.Map(location=[0, 0], zoom_start=2, tiles=None, control_scale=True)
        else:
            folium_map = folium.Map(tiles=None, control_scale=True)
            folium_map.fit_bounds(bounds)

        # Base maps
        folium.TileLayer("OpenStreetMap", name="OpenStreetMap").add_to(folium_map)
        folium.TileLayer("CartoDB positron", name="CartoDB Positron").add_to(folium_map)
        folium.TileLayer(
            tiles=ESRI_IMAGERY_URL,
            attr="Tiles &copy; Esri",
            name="Esri World Imagery",
        ).add_to(folium_map)

        if not areas.empty:
            self._add_area_layer(folium_map, areas, richness, species_by_area or {})
        if not joined.empty:
            self._add_occurrence_layer(folium_map, joined)

        folium.LayerControl(collapsed=False).add_to(folium_map)
        return folium_map

    def render_richness_chart(self, richness: pd.DataFrame) -> go.Figure:
        """
        Bar chart of richness per area, in the richness frame's order.
        """
        labels = area_labels(richness)
        fig = go.Figure(go.Bar(
            x=labels.tolist(),
            y=richness["richness"].astype(int).tolist(),
            marker_color=RICHNESS_COLORS[-1],
            hovertemplate="%{x}<br>Species: %{y}<extra></extra>",
        ))
        fig.update_layout(
            title="Species richness per conservation area",
            xaxis_title="Conservation area",
            yaxis_title="Distinct species",
            xaxis={"categoryorder": "array", "categoryarray": labels.tolist()},
        )
        return fig

    def render_species_chart(self, top_species: pd.DataFrame) -> go.Figure:
        """
        Bar chart of the most recorded species, count descending.
        """
        names = top_species["species"].astype(str).tolist()
        colors = species_colors(top_species["species"])
        fig = go.Figure(go.Bar(
            x=names,
            y=top_species["occurrence_count"].astype(int).tolist(),
            marker_color=[colors[name] for name in names],
            hovertemplate="%{x}<br>Occurrences: %{y}<extra></extra>",
        ))
        fig.update_layout(
            title=f"Top {len(names)} species by number of occurrences",
            xaxis_title="Species",
            yaxis_title="Occurrences",
            xaxis={"categoryorder": "array", "categoryarray": names},
        )
        return fig

    def render_document(self, analysis: RichnessAnalysis) -> str:
        """
        Render the full HTML report.

        Args:
            analysis: Output of the report service

        Returns:
            HTML document
        """
        table = self.render_table(analysis.richness)
        folium_map = self.render_map(
            analysis.areas, analysis.richness, analysis.joined, analysis.species_by_area
        )
        richness_chart = self.render_richness_chart(analysis.richness)
        species_chart = self.render_species_chart(analysis.top_species)

        document = DOCUMENT_TEMPLATE.render(
            title=self.title,
            summary=analysis.summary,
            area_count=len(analysis.areas),
            table=table,
            map=folium_map._repr_html_(),
            richness_chart=richness_chart.to_html(full_html=False, include_plotlyjs="cdn"),
            species_chart=species_chart.to_html(full_html=False, include_plotlyjs=False),
        )
        logger.info(f"Rendered report '{self.title}' ({len(document)} characters)")
        return document

    def _add_area_layer(
        self,
        folium_map: folium.Map,
        areas: gpd.GeoDataFrame,
        richness: pd.DataFrame,
        species_by_area: dict[int, list[str]],
    ) -> None:
        counts = richness.set_index("area_id")
        area_ids = areas["area_id"].astype(int)

        # Plain Python values only; the layer is serialized to GeoJSON
        layer = gpd.GeoDataFrame(
            {
                "area_name": areas["area_name"].astype(str).to_numpy(dtype=object),
                "richness": [int(counts.at[area_id, "richness"]) for area_id in area_ids],
                "occurrences": [int(counts.at[area_id, "occurrence_count"]) for area_id in area_ids],
                "species": [", ".join(species_by_area.get(area_id, [])) for area_id in area_ids],
            },
            geometry=areas.geometry.to_numpy(),
            crs=areas.crs,
        )
        layer = layer[layer.geometry.notna()]

        colormap = LinearColormap(
            colors=RICHNESS_COLORS,
            vmin=0,
            vmax=max(int(layer["richness"].max()), 1),
            caption="Species richness",
        )

        folium.GeoJson(
            layer,
            name="Conservation areas",
            style_function=lambda feature: {
                "fillColor": colormap(feature["properties"]["richness"]),
                "color": "#333333",
                "weight": 1,
                "fillOpacity": 0.6,
            },
            tooltip=folium.GeoJsonTooltip(
                fields=["area_name", "richness", "occurrences", "species"],
                aliases=["Area:", "Species richness:", "Occurrences:", "Species:"],
                sticky=True,
            ),
        ).add_to(folium_map)
        colormap.add_to(folium_map)

    def _add_occurrence_layer(self, folium_map: folium.Map, joined: gpd.GeoDataFrame) -> None:
        colors = species_colors(joined["species"])
        layer = folium.FeatureGroup(name="Occurrences")

        for row in joined.itertuples(index=False):
            species = None if pd.isna(row.species) else str(row.species)
            area_name = None if pd.isna(row.area_name) else str(row.area_name)
            popup = "<br>".join(
                f"<b>{label}</b> {html.escape(str(value))}"
                for label, value in (
                    ("Species:", species or "Unknown"),
                    ("Locality:", row.locality),
                    ("Date:", row.event_date),
                    ("Institution:", row.institution),
                    ("Area:", area_name or "Outside conservation areas"),
                )
                if not pd.isna(value)
            )
            folium.CircleMarker(
                location=(float(row.latitude), float(row.longitude)),
                radius=4,
                color=colors.get(species, UNKNOWN_SPECIES_COLOR),
                fill=True,
                fill_opacity=0.8,
                popup=folium.Popup(popup, max_width=300),
                tooltip=species or "Unknown species",
            ).add_to(layer)

        layer.add_to(folium_map)

    @staticmethod
    def _bounds(areas: gpd.GeoDataFrame, joined: gpd.GeoDataFrame) -> Optional[list[list[float]]]:
        """Bounds as [[south, west], [north, east]] or None when nothing has geometry."""
        for frame in (areas, joined):
            geometry = frame.geometry.dropna()
            geometry = geometry[~geometry.is_empty]
            if not geometry.empty:
                minx, miny, maxx, maxy = geometry.total_bounds
                return [[float(miny), float(minx)], [float(maxy), float(maxx)]]
        return None

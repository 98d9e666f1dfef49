from typing import List, Mapping, Optional, Sequence

import plotly.graph_objects as go

from .aggregate import Bucket, Pivot, StackedSeries, TreeNode, tree_map_frame
from .config import HEATMAP_COLORSCALE
from .timeline import TimelineBucket, TimelinePoint


# ============================================================
# Configuration / constants
# ============================================================

FALLBACK_COLOR = "#2563eb"

HOVER_TEMPLATE_PIE = "%{label}: %{value} (%{percent})<extra></extra>"

HOVER_TEMPLATE_HEATMAP = "%{y} × %{x}: %{z} publications<extra></extra>"

HOVER_TEMPLATE_STACKED = (
    "%{x}<br>"
    "%{fullData.name}: %{y}<br>"
    "Total: %{customdata}<extra></extra>"
)

POINT_SIZE = 14
LOCKED_POINT_SIZE = 22

HOVER_TEMPLATE_TIMELINE = (
    "<b>%{text}</b><br>"
    "%{customdata[2]}<extra></extra>"
)

BASE_LAYOUT = dict(
    margin=dict(t=60, l=40, r=20, b=40),
    plot_bgcolor="#f5f7fb",
    font=dict(size=12),
)


# ============================================================
# Helper functions
# ============================================================


def _empty_figure(title: str) -> go.Figure:
    fig = go.Figure()
    fig.update_layout(
        title=title,
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
        annotations=[
            dict(text="No data", showarrow=False, font=dict(size=14, color="#64748b"))
        ],
        **BASE_LAYOUT,
    )
    return fig


def _format_details(details: Mapping[str, str]) -> str:
    return "<br>".join(f"{key}: {value}" for key, value in details.items())


# ============================================================
# Statistics charts
# ============================================================


def create_pie_chart(
    buckets: Sequence[Bucket], title: str, center_label: str = "Total"
) -> go.Figure:
    """Donut chart of one tally, with the category count in the centre."""
    if not buckets:
        return _empty_figure(title)

    fig = go.Figure(
        go.Pie(
            labels=[b.name for b in buckets],
            values=[b.value for b in buckets],
            marker=dict(colors=[b.color for b in buckets], line=dict(color="white", width=3)),
            hole=0.55,
            sort=False,
            direction="clockwise",
            textinfo="none",
            hovertemplate=HOVER_TEMPLATE_PIE,
        )
    )
    fig.update_layout(
        title=title,
        showlegend=True,
        legend=dict(orientation="h", y=-0.1),
        annotations=[
            dict(
                text=f"<b>{len(buckets)}</b><br>{center_label}",
                showarrow=False,
                font=dict(size=16),
            )
        ],
        **BASE_LAYOUT,
    )
    return fig


def create_heatmap(
    pivot: Pivot,
    title: str,
    x_title: str,
    y_title: str,
) -> go.Figure:
    """
    Count heatmap over a pivot table.

    Parameters
    ----------
    pivot : Pivot
        Output of :func:`pubdash.aggregate.pivot_counts`.
    title : str
        Figure title.
    x_title, y_title : str
        Axis titles for the column and row fields.

    Returns
    -------
    go.Figure
        Cells with a zero count are left unlabelled.
    """
    if not pivot.cells:
        return _empty_figure(title)

    matrix = pivot.matrix()
    text = [[str(v) if v > 0 else "" for v in row] for row in matrix]

    fig = go.Figure(
        go.Heatmap(
            z=matrix,
            x=pivot.column_labels,
            y=pivot.row_labels,
            text=text,
            texttemplate="%{text}",
            colorscale=[list(stop) for stop in HEATMAP_COLORSCALE],
            zmin=0,
            zmax=max(pivot.max_value, 1),
            hovertemplate=HOVER_TEMPLATE_HEATMAP,
            xgap=2,
            ygap=2,
        )
    )
    fig.update_layout(
        title=title,
        xaxis=dict(title=x_title, side="top"),
        yaxis=dict(title=y_title, autorange="reversed"),
        height=max(400, 32 * len(pivot.row_labels) + 160),
        **BASE_LAYOUT,
    )
    return fig


def create_stacked_bar_chart(
    series: StackedSeries,
    title: str,
    *,
    y_title: str = "Publications",
    tick_angle: int = -45,
) -> go.Figure:
    """Stacked bars, one trace per stack key; hover shows the bar total."""
    if not series.rows or not series.keys:
        return _empty_figure(title)

    totals = series.totals()
    fig = go.Figure()
    for key in series.keys:
        fig.add_trace(
            go.Bar(
                x=series.categories,
                y=[row[key] for row in series.rows],
                name=key,
                marker_color=series.colors.get(key, FALLBACK_COLOR),
                customdata=totals,
                hovertemplate=HOVER_TEMPLATE_STACKED,
            )
        )

    fig.update_layout(
        title=title,
        barmode="stack",
        xaxis=dict(tickangle=tick_angle),
        yaxis=dict(title=y_title, rangemode="tozero"),
        legend=dict(orientation="h", y=1.02, x=0.5, xanchor="center", yanchor="bottom"),
        **BASE_LAYOUT,
    )
    return fig


def create_monthly_chart(series: StackedSeries, title: str) -> go.Figure:
    """Publications per calendar month, stacked by output type."""
    return create_stacked_bar_chart(series, title, tick_angle=0)


# ============================================================
# Tree map
# ============================================================


def create_tree_map(nodes: Sequence[TreeNode], title: str, height: int = 700) -> go.Figure:
    """Alignment -> division -> publication treemap.

    Node ids are the paths produced by
    :func:`pubdash.aggregate.tree_map_frame`, so a clicked id can be
    resolved back with :func:`pubdash.aggregate.find_tree_node`.
    """
    df = tree_map_frame(nodes)
    if df.empty:
        return _empty_figure(title)

    fig = go.Figure(
        go.Treemap(
            ids=df["id"],
            labels=df["label"],
            parents=df["parent"],
            values=df["value"],
            branchvalues="total",
            marker=dict(colors=df["color"], line=dict(color="white", width=2)),
            customdata=[_format_details(d) for d in df["details"]],
            hovertemplate="<b>%{label}</b><br>%{value} publication(s)<br>%{customdata}<extra></extra>",
            maxdepth=3,
            root=dict(color="#f5f7fb"),
        )
    )
    fig.update_layout(title=title, height=height, margin=dict(t=50, l=10, r=10, b=10))
    return fig


# ============================================================
# Timeline
# ============================================================


def timeline_marker_sizes(
    buckets: Sequence[TimelineBucket], locked: Optional[TimelinePoint] = None
) -> List[int]:
    """Marker size per point in display order; the locked point is enlarged."""
    return [
        LOCKED_POINT_SIZE if point == locked else POINT_SIZE
        for bucket in buckets
        for point in bucket.points
    ]


def create_timeline_figure(
    buckets: Sequence[TimelineBucket],
    colors: Mapping[str, str],
    locked: Optional[TimelinePoint] = None,
) -> go.Figure:
    """
    Vertical timeline: one row per bucket, one marker per point.

    The first trace holds every point; its ``customdata`` is
    ``[bucket_index, point_index, detail]`` so pointer callbacks can map
    back to the :class:`TimelinePoint`.  The remaining traces are legend
    entries only.
    """
    title = "Publication timeline"
    if not buckets:
        return _empty_figure(title)

    # ------------------------------------------------------------------
    # 1. Flatten points in display order
    # ------------------------------------------------------------------
    xs, ys, texts, marker_colors, customdata = [], [], [], [], []
    for b_index, bucket in enumerate(buckets):
        for p_index, point in enumerate(bucket.points):
            pub = point.publication
            xs.append(p_index)
            ys.append(bucket.label)
            texts.append(pub.category("title"))
            marker_colors.append(colors.get(pub.category("alignment"), FALLBACK_COLOR))
            customdata.append(
                [b_index, p_index, f"{point.date:%Y-%m-%d} · {pub.category('directorate')}"]
            )

    fig = go.Figure(
        go.Scatter(
            x=xs,
            y=ys,
            mode="markers",
            text=texts,
            customdata=customdata,
            marker=dict(
                color=marker_colors,
                size=timeline_marker_sizes(buckets, locked),
                line=dict(color="white", width=2),
            ),
            hovertemplate=HOVER_TEMPLATE_TIMELINE,
            showlegend=False,
        )
    )

    # ------------------------------------------------------------------
    # 2. Legend entries, one per alignment colour
    # ------------------------------------------------------------------
    for name, color in colors.items():
        fig.add_trace(
            go.Scatter(
                x=[None],
                y=[None],
                mode="markers",
                marker=dict(color=color, size=10),
                name=name,
                hoverinfo="skip",
            )
        )

    # ------------------------------------------------------------------
    # 3. Layout
    # ------------------------------------------------------------------
    labels = [bucket.label for bucket in buckets]
    fig.update_layout(
        title=title,
        height=max(400, 44 * len(buckets) + 120),
        xaxis=dict(visible=False, rangemode="tozero"),
        yaxis=dict(
            categoryorder="array",
            categoryarray=labels,
            autorange="reversed",
            showgrid=True,
        ),
        legend=dict(orientation="h", x=0.5, y=1.02, xanchor="center", yanchor="bottom"),
        hovermode="closest",
        **BASE_LAYOUT,
    )
    return fig

import asyncio
from typing import Callable, Optional

import plotly.graph_objects as go
from shiny import reactive, render
from shiny import ui as sui
from shiny.express import input, ui
from shinywidgets import render_plotly, render_widget

# Import organized modules
from pubdash.aggregate import (
    TreeNode,
    alignment_colors,
    build_tree_map,
    distinct_values,
    find_tree_node,
    group_and_count,
    monthly_counts,
    pivot_counts,
    stacked_counts,
    summary_cards,
    tree_map_frame,
)
from pubdash.config import (
    CSV_COLUMNS,
    DEFAULT_GRANULARITY,
    DEFAULT_SORT_ASCENDING,
    GRANULARITY_OPTIONS,
    PAN_STEP,
)
from pubdash.data_manager import PageData, load_page_data
from pubdash.plotting import (
    create_heatmap,
    create_monthly_chart,
    create_pie_chart,
    create_stacked_bar_chart,
    create_timeline_figure,
    create_tree_map,
    timeline_marker_sizes,
)
from pubdash.records import records_to_frame
from pubdash.timeline import (
    TimelineFilters,
    TimelinePoint,
    TimelineSelection,
    bucket_label,
    bucket_statistics,
    build_timeline,
    count_points,
)
from pubdash.viewport import Viewport

# Helpers for UI mapping
GRANULARITY_CHOICES = {value: label for label, value in GRANULARITY_OPTIONS}
TABLE_COLUMNS = {name: header for name, header in CSV_COLUMNS.items() if name != "publish_dates"}
EMPTY_TIMELINE_TEXT = (
    "Hover over a timeline point to see details, or click to lock the selection."
)

# Scroll zooms and drag pans the tree map; events go to the server as inputs
TREEMAP_POINTER_SCRIPT = """
(() => {
  const frame = document.getElementById("treemap-viewport");
  let dragging = false;
  let pending = null;
  const send = (kind, e) => Shiny.setInputValue(
    "treemap_pointer", {kind: kind, x: e.clientX, y: e.clientY}, {priority: "event"}
  );
  frame.addEventListener("wheel", (e) => {
    e.preventDefault();
    Shiny.setInputValue("treemap_wheel", e.deltaY, {priority: "event"});
  }, {passive: false});
  frame.addEventListener("pointerdown", (e) => {
    dragging = true;
    send("down", e);
  });
  window.addEventListener("pointermove", (e) => {
    if (!dragging) return;
    if (pending === null) {
      requestAnimationFrame(() => { send("move", pending); pending = null; });
    }
    pending = e;
  });
  window.addEventListener("pointerup", (e) => {
    if (!dragging) return;
    dragging = false;
    send("up", e);
  });
})();
"""


# ======================================================
#  PAGE DATA
# ======================================================
# Each page fetches on its own; the fetch runs in a worker thread so the
# dashboard can call the JSON service hosted by the same process.
def page_loader() -> Callable:
    @reactive.calc
    async def _load() -> PageData:
        return await asyncio.to_thread(load_page_data)

    return _load


explore_page = page_loader()
statistics_page = page_loader()
treemap_page = page_loader()
timeline_page = page_loader()


# ======================================================
#  REACTIVE STATE
# ======================================================
sort_ascending = reactive.value(DEFAULT_SORT_ASCENDING)
selection = reactive.value(TimelineSelection())
viewport = reactive.value(Viewport())
selected_node: reactive.Value[Optional[TreeNode]] = reactive.value(None)


def _update(value: reactive.Value, transition: Callable) -> None:
    # Widget callbacks run outside a reactive context
    with reactive.isolate():
        value.set(transition(value.get()))


def _locked_point() -> Optional[TimelinePoint]:
    current = selection.get()
    return current.point if current.is_locked else None


@reactive.calc
def timeline_filters() -> TimelineFilters:
    return TimelineFilters.build(
        alignments=input.alignments(),
        directorates=input.directorates(),
        divisions=input.divisions(),
        search=input.search(),
    )


@reactive.calc
async def timeline_colors():
    page = await timeline_page()
    return alignment_colors(page.records)


@reactive.calc
async def timeline_buckets():
    page = await timeline_page()
    return build_timeline(
        page.records,
        filters=timeline_filters(),
        granularity=input.granularity(),
        ascending=sort_ascending(),
    )


# ======================================================
#  UI LAYOUT
# ======================================================
ui.page_opts(
    title="Publications Dashboard",
    fillable=False,
    full_width=True,
    id="page",
    lang="en",
)

with ui.navset_tab(id="main_tabs"):

    # --------------------------------------------------
    #  Explore
    # --------------------------------------------------
    with ui.nav_panel("Explore"):

        @render.data_frame
        async def publications_table():
            page = await explore_page()
            df = records_to_frame(page.records)[list(TABLE_COLUMNS)]
            return render.DataGrid(
                df.rename(columns=TABLE_COLUMNS),
                filters=True,
                height="700px",
                width="100%",
            )

    # --------------------------------------------------
    #  Statistics
    # --------------------------------------------------
    with ui.nav_panel("Statistics"):

        @render.ui
        async def alignment_summary():
            page = await statistics_page()
            cards = summary_cards(page.records, colors=alignment_colors(page.records))
            return sui.layout_column_wrap(
                *[
                    sui.value_box(
                        card.title,
                        f"{card.publication_count} publications",
                        f"{card.division_count} divisions",
                        style=f"border-top: 4px solid {card.color};",
                    )
                    for card in cards
                ],
                width="240px",
            )

        with ui.layout_column_wrap(width="320px"):
            with ui.card():

                @render_plotly
                async def frequency_pie():
                    page = await statistics_page()
                    return create_pie_chart(
                        group_and_count(page.records, "frequency"),
                        "Publication Frequency",
                        "Types",
                    )

            with ui.card():

                @render_plotly
                async def directorate_pie():
                    page = await statistics_page()
                    return create_pie_chart(
                        group_and_count(page.records, "directorate"),
                        "Directorate Distribution",
                        "Directorates",
                    )

            with ui.card():

                @render_plotly
                async def output_type_pie():
                    page = await statistics_page()
                    return create_pie_chart(
                        group_and_count(page.records, "output_type"),
                        "Output Types",
                        "Types",
                    )

            with ui.card():

                @render_plotly
                async def alignment_pie():
                    page = await statistics_page()
                    return create_pie_chart(
                        group_and_count(
                            page.records,
                            "alignment",
                            colors=alignment_colors(page.records),
                        ),
                        "PO2 Alignment",
                        "Categories",
                    )

        with ui.card():

            @render_plotly
            async def directorate_frequency_heatmap():
                page = await statistics_page()
                return create_heatmap(
                    pivot_counts(page.records, "directorate", "frequency"),
                    "Directorate by Frequency",
                    x_title="Frequency",
                    y_title="Directorate",
                )

        with ui.layout_columns(col_widths=[6, 6]):
            with ui.card():

                @render_plotly
                async def output_alignment_bars():
                    page = await statistics_page()
                    return create_stacked_bar_chart(
                        stacked_counts(
                            page.records,
                            "output_type",
                            "alignment",
                            colors=alignment_colors(page.records),
                        ),
                        "Output Types by PO2 Alignment",
                    )

            with ui.card():

                @render_plotly
                async def monthly_publications():
                    page = await statistics_page()
                    return create_monthly_chart(
                        monthly_counts(page.records, "output_type"),
                        "Publications by Month",
                    )

    # --------------------------------------------------
    #  Tree map
    # --------------------------------------------------
    with ui.nav_panel("Tree map"):
        with ui.div(class_="d-flex gap-2 mb-2"):
            ui.input_action_button("zoom_in", "Zoom in")
            ui.input_action_button("zoom_out", "Zoom out")
            ui.input_action_button("pan_left", "←")
            ui.input_action_button("pan_right", "→")
            ui.input_action_button("pan_up", "↑")
            ui.input_action_button("pan_down", "↓")
            ui.input_action_button("reset_view", "Reset view")

        @render.ui
        def treemap_transform():
            return ui.tags.style(
                "#treemap-canvas {"
                f" transform: {viewport.get().css_transform()};"
                " transform-origin: 0 0; transition: transform 0.1s ease-out; }"
            )

        with ui.div(id="treemap-viewport", style="overflow: hidden; cursor: grab;"):
            with ui.div(id="treemap-canvas"):

                @render_widget
                async def publication_tree_map():
                    page = await treemap_page()
                    nodes = build_tree_map(page.records)
                    ids = list(tree_map_frame(nodes)["id"])
                    fig = go.FigureWidget(
                        create_tree_map(nodes, "Publications by PO2 Alignment")
                    )

                    def _on_click(trace, points, state):
                        if not points.point_inds:
                            return
                        node = find_tree_node(nodes, ids[points.point_inds[0]])
                        selected_node.set(node)

                    if fig.data:
                        fig.data[0].on_click(_on_click)
                    return fig

        ui.tags.script(TREEMAP_POINTER_SCRIPT)

        @render.ui
        def node_details():
            node = selected_node.get()
            if node is None:
                return None
            rows = [
                ui.tags.div(ui.tags.strong(f"{key}: "), value)
                for key, value in node.details.items()
            ]
            return sui.card(
                sui.card_header(node.name),
                *rows,
                sui.input_action_button("close_node", "Close", class_="btn-secondary btn-sm"),
            )

    # --------------------------------------------------
    #  Timeline
    # --------------------------------------------------
    with ui.nav_panel("Timeline"):
        with ui.layout_sidebar():
            with ui.sidebar(open="always", position="left"):
                ui.input_text("search", "Search", placeholder="Search publications...")
                ui.input_select(
                    "granularity",
                    "View mode",
                    GRANULARITY_CHOICES,
                    selected=DEFAULT_GRANULARITY,
                )
                ui.input_action_button("sort_toggle", "Newest First")
                ui.input_selectize("alignments", "PO2 Alignments", [], multiple=True)
                ui.input_selectize("directorates", "Directorates", [], multiple=True)
                ui.input_selectize("divisions", "Divisions", [], multiple=True)
                ui.input_action_button(
                    "clear_filters", "Clear all filters", class_="btn-primary mt-3"
                )

            with ui.layout_columns(col_widths=[7, 5]):
                with ui.card():

                    @render.text
                    async def timeline_header():
                        count = count_points(await timeline_buckets())
                        active = timeline_filters().active_count
                        text = f"Publications from the past year ({count} items)"
                        if active:
                            text += f" with {active} active filter{'s' if active > 1 else ''}"
                        return text

                    @render_widget
                    async def timeline_plot():
                        buckets = await timeline_buckets()
                        colors = await timeline_colors()
                        points = [p for bucket in buckets for p in bucket.points]
                        with reactive.isolate():
                            locked = _locked_point()
                        fig = go.FigureWidget(
                            create_timeline_figure(buckets, colors, locked)
                        )

                        def _point(event_points):
                            if not event_points.point_inds:
                                return None
                            return points[event_points.point_inds[0]]

                        def _on_hover(trace, event_points, state):
                            point = _point(event_points)
                            if point is not None:
                                _update(selection, lambda s: s.hover(point))

                        def _on_unhover(trace, event_points, state):
                            _update(selection, lambda s: s.leave())

                        def _on_click(trace, event_points, state):
                            point = _point(event_points)
                            if point is not None:
                                _update(selection, lambda s: s.click(point))

                        if fig.data:
                            fig.data[0].on_hover(_on_hover)
                            fig.data[0].on_unhover(_on_unhover)
                            fig.data[0].on_click(_on_click)
                        return fig

                with ui.card():

                    @render.ui
                    async def timeline_details():
                        point = selection.get().active
                        if point is None:
                            return ui.tags.p(EMPTY_TIMELINE_TEXT, class_="text-muted")

                        colors = await timeline_colors()
                        pub = point.publication
                        color = colors.get(pub.category("alignment"), "#2563eb")
                        fields = [
                            ui.tags.div(ui.tags.strong(f"{key}: "), value or "")
                            for key, value in pub.to_row().items()
                            if key != CSV_COLUMNS["publish_dates"]
                        ]

                        buckets = await timeline_buckets()
                        bucket = next((b for b in buckets if point in b.points), None)
                        stats = []
                        if bucket is not None:
                            summary = bucket_statistics(bucket.points, colors=colors)
                            stats = [
                                ui.tags.h5(f"{bucket.label} Statistics", class_="mt-3"),
                                ui.tags.h6("By PO2 Alignment"),
                                *[
                                    ui.tags.div(
                                        ui.tags.span("● ", style=f"color: {b.color};"),
                                        f"{b.name}: {b.value}",
                                    )
                                    for b in summary.alignments
                                ],
                                ui.tags.h6("By Directorate", class_="mt-2"),
                                *[
                                    ui.tags.div(f"{b.name}: {b.value}")
                                    for b in summary.directorates
                                ],
                            ]

                        return ui.tags.div(
                            ui.tags.h4(
                                pub.category("title"),
                                style=f"border-left: 6px solid {color}; padding-left: 8px;",
                            ),
                            ui.tags.p(
                                ui.tags.span(
                                    bucket_label(point.date, "day"),
                                    class_="badge bg-light text-dark",
                                ),
                                f" {pub.category('directorate')} / {pub.category('division')}",
                            ),
                            *fields,
                            *stats,
                        )


# ======================================================
#  EVENT HANDLERS
# ======================================================
@reactive.effect
async def _sync_filter_choices():
    # Filter menus list every value in the data, sorted
    page = await timeline_page()
    ui.update_selectize("alignments", choices=distinct_values(page.records, "alignment"))
    ui.update_selectize("directorates", choices=distinct_values(page.records, "directorate"))
    ui.update_selectize("divisions", choices=distinct_values(page.records, "division"))


@reactive.effect
@reactive.event(input.clear_filters)
def _clear_filters():
    ui.update_selectize("alignments", selected=[])
    ui.update_selectize("directorates", selected=[])
    ui.update_selectize("divisions", selected=[])
    ui.update_text("search", value="")


@reactive.effect
@reactive.event(input.sort_toggle)
def _toggle_sort():
    ascending = not sort_ascending.get()
    sort_ascending.set(ascending)
    ui.update_action_button(
        "sort_toggle", label="Oldest First" if ascending else "Newest First"
    )


@reactive.effect
async def _highlight_locked_point():
    # Enlarge the locked point without re-rendering the figure
    buckets = await timeline_buckets()
    widget = timeline_plot.widget
    if widget is None or not widget.data:
        return
    widget.data[0].marker.size = timeline_marker_sizes(buckets, _locked_point())


@reactive.effect
@reactive.event(input.close_node)
def _close_node():
    selected_node.set(None)


@reactive.effect
@reactive.event(input.zoom_in)
def _zoom_in():
    viewport.set(viewport.get().wheel(-1))


@reactive.effect
@reactive.event(input.zoom_out)
def _zoom_out():
    viewport.set(viewport.get().wheel(1))


@reactive.effect
@reactive.event(input.pan_left)
def _pan_left():
    viewport.set(viewport.get().pan_by(-PAN_STEP, 0))


@reactive.effect
@reactive.event(input.pan_right)
def _pan_right():
    viewport.set(viewport.get().pan_by(PAN_STEP, 0))


@reactive.effect
@reactive.event(input.pan_up)
def _pan_up():
    viewport.set(viewport.get().pan_by(0, -PAN_STEP))


@reactive.effect
@reactive.event(input.pan_down)
def _pan_down():
    viewport.set(viewport.get().pan_by(0, PAN_STEP))


@reactive.effect
@reactive.event(input.reset_view)
def _reset_view():
    viewport.set(viewport.get().reset())


@reactive.effect
@reactive.event(input.treemap_wheel)
def _wheel_zoom():
    viewport.set(viewport.get().wheel(input.treemap_wheel()))


@reactive.effect
@reactive.event(input.treemap_pointer)
def _drag_pan():
    event = input.treemap_pointer()
    viewport.set(viewport.get().pointer(event["kind"], event["x"], event["y"]))

"""Aggregations behind every dashboard view.

Each function takes the current list of :class:`~pubdash.records.Publication`
records and returns the shape one chart needs.  They are pure: inputs are
never mutated, and the same records always produce the same output.

Shared policies:

* A missing or blank categorical value is grouped under ``"Unknown"``.
* Grouping is exact string equality (no trimming, no case folding).
* Categories appear in first-seen order unless a function says otherwise.
* Colours are assigned by category name once, here, and travel with the
  data so a category keeps its colour when filters change the category set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .config import ALIGNMENT_COLORS, CHART_COLORS, OTHER
from .records import Publication

MONTH_LABELS: Tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Bucket:
    name: str
    value: int
    color: str


@dataclass(frozen=True)
class HeatCell:
    x: str
    y: str
    value: int


@dataclass(frozen=True)
class Pivot:
    row_labels: List[str]
    column_labels: List[str]
    cells: List[HeatCell]

    @property
    def max_value(self) -> int:
        return max((cell.value for cell in self.cells), default=0)

    def value(self, x: str, y: str) -> int:
        for cell in self.cells:
            if cell.x == x and cell.y == y:
                return cell.value
        return 0

    def matrix(self) -> List[List[int]]:
        """Row-major counts, ``row_labels`` by ``column_labels``."""
        lookup = {(cell.y, cell.x): cell.value for cell in self.cells}
        return [
            [lookup.get((row, col), 0) for col in self.column_labels]
            for row in self.row_labels
        ]


@dataclass(frozen=True)
class StackedSeries:
    categories: List[str]
    keys: List[str]
    rows: List[Dict[str, object]]
    colors: Dict[str, str]

    def totals(self) -> List[int]:
        return [sum(int(row[key]) for key in self.keys) for row in self.rows]


@dataclass(frozen=True)
class SummaryCard:
    title: str
    publication_count: int
    division_count: int
    color: str


@dataclass(frozen=True)
class TreeNode:
    name: str
    value: int
    color: str
    children: Tuple["TreeNode", ...] = ()
    details: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def is_leaf(self) -> bool:
        return not self.children


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _category_frame(records: Sequence[Publication], *names: str) -> pd.DataFrame:
    """One column per requested field, missing values already ``Unknown``."""
    return pd.DataFrame(
        {name: [rec.category(name) for rec in records] for name in names},
        columns=list(names),
    )


def assign_palette(
    names: Iterable[str],
    palette: Optional[Sequence[str]] = None,
    fixed: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Give every category a colour, keyed by name.

    Names found in ``fixed`` keep that colour; the rest cycle through
    ``palette`` in the order given.  Duplicate names are assigned once.
    """
    palette = list(palette or CHART_COLORS)
    fixed = fixed or {}
    colors: Dict[str, str] = {}
    cursor = 0
    for name in names:
        if name in colors:
            continue
        if name in fixed:
            colors[name] = fixed[name]
        else:
            colors[name] = palette[cursor % len(palette)]
            cursor += 1
    return colors


def distinct_values(
    records: Sequence[Publication], name: str, sort: bool = True
) -> List[str]:
    """Distinct category values (``Unknown`` for blanks), for filter menus."""
    values = list(dict.fromkeys(rec.category(name) for rec in records))
    return sorted(values) if sort else values


def alignment_colors(records: Sequence[Publication]) -> Dict[str, str]:
    """Alignment palette: the fixed alignment colours plus any new categories."""
    names = list(ALIGNMENT_COLORS) + distinct_values(records, "alignment", sort=False)
    return assign_palette(names, fixed=ALIGNMENT_COLORS)


# ---------------------------------------------------------------------------
# Single-field tallies
# ---------------------------------------------------------------------------


def group_and_count(
    records: Sequence[Publication],
    name: str,
    colors: Optional[Mapping[str, str]] = None,
) -> List[Bucket]:
    """Count records per value of one field.

    The counts always add up to ``len(records)``: records without a value
    are counted under ``Unknown``.

    Parameters
    ----------
    records : Sequence[Publication]
        Current record list.
    name : str
        Record field to group on, e.g. ``"frequency"``.
    colors : Mapping[str, str], optional
        Colours already assigned to categories; unseen categories get the
        next palette colours.

    Returns
    -------
    List[Bucket]
        One bucket per category in first-seen order.
    """
    df = _category_frame(records, name)
    if df.empty:
        return []
    counts = df.groupby(name, sort=False).size()
    palette = assign_palette(counts.index, fixed=colors)
    return [
        Bucket(name=str(category), value=int(count), color=palette[category])
        for category, count in counts.items()
    ]


# ---------------------------------------------------------------------------
# Two-field pivots
# ---------------------------------------------------------------------------


def _crosstab(
    df: pd.DataFrame, row_field: str, column_field: str
) -> Tuple[List[str], List[str], pd.DataFrame]:
    row_labels = list(dict.fromkeys(df[row_field]))
    column_labels = list(dict.fromkeys(df[column_field]))
    table = (
        df.groupby([row_field, column_field], sort=False)
        .size()
        .unstack(fill_value=0)
        .reindex(index=row_labels, columns=column_labels, fill_value=0)
    )
    return row_labels, column_labels, table


def pivot_counts(
    records: Sequence[Publication], row_field: str, column_field: str
) -> Pivot:
    """Heatmap cells for every (column, row) combination, zeros included."""
    df = _category_frame(records, row_field, column_field)
    if df.empty:
        return Pivot(row_labels=[], column_labels=[], cells=[])

    row_labels, column_labels, table = _crosstab(df, row_field, column_field)
    cells = [
        HeatCell(x=col, y=row, value=int(table.at[row, col]))
        for row in row_labels
        for col in column_labels
    ]
    return Pivot(row_labels=row_labels, column_labels=column_labels, cells=cells)


def stacked_counts(
    records: Sequence[Publication],
    group_field: str,
    stack_field: str,
    colors: Optional[Mapping[str, str]] = None,
) -> StackedSeries:
    """Bar-per-group counts split by ``stack_field``, zero-filled."""
    df = _category_frame(records, group_field, stack_field)
    if df.empty:
        return StackedSeries(categories=[], keys=[], rows=[], colors={})

    categories, keys, table = _crosstab(df, group_field, stack_field)
    rows: List[Dict[str, object]] = []
    for category in categories:
        row: Dict[str, object] = {"name": category}
        row.update({key: int(table.at[category, key]) for key in keys})
        rows.append(row)
    return StackedSeries(
        categories=categories,
        keys=keys,
        rows=rows,
        colors=assign_palette(keys, fixed=colors),
    )


def monthly_counts(
    records: Sequence[Publication],
    stack_field: str = "output_type",
    year: Optional[int] = None,
    colors: Optional[Mapping[str, str]] = None,
) -> StackedSeries:
    """Publication dates per calendar month, split by ``stack_field``.

    Every publish date counts once; all twelve months are always present.
    """
    keys: List[str] = []
    counts: Dict[Tuple[int, str], int] = {}
    for rec in records:
        key = rec.category(stack_field)
        for date in rec.dates():
            if year is not None and date.year != year:
                continue
            if key not in keys:
                keys.append(key)
            counts[(date.month, key)] = counts.get((date.month, key), 0) + 1

    rows: List[Dict[str, object]] = []
    for month, label in enumerate(MONTH_LABELS, start=1):
        row: Dict[str, object] = {"name": label}
        row.update({key: counts.get((month, key), 0) for key in keys})
        rows.append(row)
    return StackedSeries(
        categories=list(MONTH_LABELS),
        keys=keys,
        rows=rows,
        colors=assign_palette(keys, fixed=colors),
    )


def summary_cards(
    records: Sequence[Publication], colors: Optional[Mapping[str, str]] = None
) -> List[SummaryCard]:
    """Publication and distinct-division counts per alignment category."""
    df = _category_frame(records, "alignment", "division")
    if df.empty:
        return []
    grouped = df.groupby("alignment", sort=False)["division"].agg(["size", "nunique"])
    palette = assign_palette(grouped.index, fixed=colors or ALIGNMENT_COLORS)
    return [
        SummaryCard(
            title=str(name),
            publication_count=int(row["size"]),
            division_count=int(row["nunique"]),
            color=palette[name],
        )
        for name, row in grouped.iterrows()
    ]


# ---------------------------------------------------------------------------
# Tree map
# ---------------------------------------------------------------------------


def sort_tree_groups(names: Iterable[str]) -> List[str]:
    """Alphabetical, with ``Other`` always last."""
    return sorted(names, key=lambda name: (name == OTHER, name.casefold(), name))


def build_tree_map(
    records: Sequence[Publication], colors: Optional[Mapping[str, str]] = None
) -> List[TreeNode]:
    """Alignment -> division -> publication hierarchy.

    Each publication is a leaf worth 1, so every parent's value is the
    sum of its children's.  Children inherit their root's colour.
    """
    groups: Dict[str, Dict[str, List[Publication]]] = {}
    for rec in records:
        divisions = groups.setdefault(rec.category("alignment"), {})
        divisions.setdefault(rec.category("division"), []).append(rec)

    names = sort_tree_groups(groups)
    palette = assign_palette(names, fixed=colors or ALIGNMENT_COLORS)

    nodes: List[TreeNode] = []
    for alignment in names:
        color = palette[alignment]
        division_nodes: List[TreeNode] = []
        for division, pubs in groups[alignment].items():
            leaves = tuple(
                TreeNode(
                    name=pub.category("title"),
                    value=1,
                    color=color,
                    details=pub.details(),
                )
                for pub in pubs
            )
            division_nodes.append(
                TreeNode(
                    name=division,
                    value=sum(leaf.value for leaf in leaves),
                    color=color,
                    children=leaves,
                    details={
                        "Division": division,
                        "Publications": str(len(leaves)),
                        "PO2 Alignment": alignment,
                    },
                )
            )
        nodes.append(
            TreeNode(
                name=alignment,
                value=sum(node.value for node in division_nodes),
                color=color,
                children=tuple(division_nodes),
                details={
                    "PO2 Alignment": alignment,
                    "Total Publications": str(sum(n.value for n in division_nodes)),
                    "Divisions": str(len(division_nodes)),
                },
            )
        )
    return nodes


def tree_map_frame(nodes: Sequence[TreeNode]) -> pd.DataFrame:
    """Flatten tree nodes into the id/parent table Plotly's treemap reads."""
    rows: List[Dict[str, object]] = []

    def _visit(node: TreeNode, node_id: str, parent_id: str, depth: int) -> None:
        rows.append(
            {
                "id": node_id,
                "label": node.name,
                "parent": parent_id,
                "value": node.value,
                "color": node.color,
                "depth": depth,
                "details": node.details,
            }
        )
        for index, child in enumerate(node.children):
            _visit(child, f"{node_id}/{index}", node_id, depth + 1)

    for index, node in enumerate(nodes):
        _visit(node, str(index), "", 0)

    return pd.DataFrame(
        rows, columns=["id", "label", "parent", "value", "color", "depth", "details"]
    )


def find_tree_node(nodes: Sequence[TreeNode], node_id: str) -> Optional[TreeNode]:
    """Resolve an id produced by :func:`tree_map_frame` back to its node."""
    parts = node_id.split("/") if node_id else []
    current: Sequence[TreeNode] = nodes
    found: Optional[TreeNode] = None
    for part in parts:
        try:
            index = int(part)
        except ValueError:
            return None
        if not 0 <= index < len(current):
            return None
        found = current[index]
        current = found.children
    return found

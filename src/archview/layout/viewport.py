"""
Viewport Fit Calculator.

Computes the pan and zoom that frame the selected (or all visible) nodes
and edges inside the view, leaving a fixed padding around them.
"""

import math
from typing import Dict, List, Optional

from ..config import FIT_VIEW_PADDING, MAX_ZOOM, MIN_ZOOM
from ..core.types import Edge, Node, Viewport, ViewSize


def fit_viewport(
    nodes: Dict[str, Node],
    edges: Dict[str, Edge],
    view_size: ViewSize,
    fit_to_selection: bool = False,
    duration: Optional[int] = None,
) -> Viewport:
    """
    Frame the candidate elements.

    Candidates are the selected visible nodes and edges when
    `fit_to_selection` is set (falling back to everything visible if none
    are selected), otherwise everything visible. Candidate edges pull in
    their endpoint nodes and contribute their bend points to the box.
    """
    if not nodes and not edges:
        return Viewport(x=0.0, y=0.0, zoom=1.0, duration=duration)

    visible_nodes = [node for node in nodes.values() if not node.hidden]
    visible_edges = [edge for edge in edges.values() if not edge.hidden]

    candidate_nodes: List[Node] = visible_nodes
    candidate_edges: List[Edge] = visible_edges
    if fit_to_selection:
        selected_nodes = [node for node in visible_nodes if node.selected]
        selected_edges = [edge for edge in visible_edges if edge.selected]
        if selected_nodes or selected_edges:
            candidate_nodes, candidate_edges = selected_nodes, selected_edges

    framed: Dict[str, Node] = {node.id: node for node in candidate_nodes}
    for edge in candidate_edges:
        for endpoint in (edge.source, edge.target):
            node = nodes.get(endpoint)
            if node is not None:
                framed.setdefault(endpoint, node)

    min_x = min_y = math.inf
    max_x = max_y = -math.inf

    for node in framed.values():
        x, y = node.absolute_position.x, node.absolute_position.y
        min_x, min_y = min(min_x, x), min(min_y, y)
        max_x, max_y = max(max_x, x + (node.width or 0.0)), max(max_y, y + (node.height or 0.0))

    for edge in candidate_edges:
        for point in edge.section.bend_points if edge.section else []:
            min_x, min_y = min(min_x, point.x), min(min_y, point.y)
            max_x, max_y = max(max_x, point.x), max(max_y, point.y)

    if math.isinf(min_x):
        return Viewport(x=0.0, y=0.0, zoom=1.0, duration=duration)

    view_width = view_size.width - 2 * FIT_VIEW_PADDING
    view_height = view_size.height - 2 * FIT_VIEW_PADDING
    frame_width = max_x - min_x
    frame_height = max_y - min_y

    ratios = [
        view_width / frame_width if frame_width > 0 else math.inf,
        view_height / frame_height if frame_height > 0 else math.inf,
    ]
    zoom = min(MAX_ZOOM, max(MIN_ZOOM, min(ratios)))

    center_x = (min_x + max_x) / 2
    center_y = (min_y + max_y) / 2

    return Viewport(
        x=view_width / 2 - center_x * zoom + FIT_VIEW_PADDING,
        y=view_height / 2 - center_y * zoom + FIT_VIEW_PADDING,
        zoom=zoom,
        duration=duration,
    )

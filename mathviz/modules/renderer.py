"""
Render props builder.
Flattens an Analysis into the prop bag the frontend visualizer components
consume (library, type, expression, axis ranges, geometry elements, options).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from mathviz.agents.library_agent import library_configuration
from mathviz.config import settings
from mathviz.models import Analysis, Point, RenderProps

logger = logging.getLogger(__name__)

THREE_D_LIBRARIES = {"mathbox", "three", "grafar"}


def geometry_elements(points: List[Point]) -> List[Dict[str, Any]]:
    """Points first, then the closed outline through them (3+ points only)."""
    elements: List[Dict[str, Any]] = [
        {
            "type": "point",
            "id": p.label,
            "label": p.label,
            "coordinates": p.coordinates[:2],
            "color": p.color,
            "fixed": False,
        }
        for p in points
    ]
    if len(points) >= 3:
        for current, following in zip(points, points[1:] + points[:1]):
            elements.append({
                "type": "line",
                "point1Id": current.label,
                "point2Id": following.label,
                "straightFirst": False,
                "straightLast": False,
            })
    return elements


def build_render_props(analysis: Analysis, library: str) -> RenderProps:
    concept = analysis.concept
    visualization = analysis.visualization
    is_3d = visualization.dimensionality == "3D" or library in THREE_D_LIBRARIES

    options: Dict[str, Any] = dict(library_configuration(library, visualization.viewport))
    options["functions"] = [f.model_dump() for f in analysis.parameters.functions]
    options["specialFeatures"] = [f.model_dump() for f in visualization.special_features]
    options["interactiveElements"] = [e.model_dump() for e in visualization.interactive_elements]

    props = RenderProps(
        library=library,
        type=concept.type,
        expression=concept.expression,
        domain=list(analysis.parameters.domain),
        range=list(analysis.parameters.range),
        z_range=list(visualization.viewport.z) if is_3d else None,
        points=list(analysis.parameters.points),
        elements=geometry_elements(analysis.parameters.points) if concept.type == "geometry" else [],
        width=settings.render_width,
        height=settings.render_height,
        options=options,
    )
    logger.debug("Render props for %s via %s (%d elements)", concept.type, library, len(props.elements))
    return props
